# src/rag/retriever/recommender.py — v1
"""Content recommendation from a learner's answer history.

Recommendations are the neighbours of the centroid of the answered
questions' embeddings. Post-processing, in order:

1. Diversity: round-robin across topic buckets.
2. Difficulty progression: prefer tiers close to the learner's average
   plus a small step.
3. Truncation to ``max_results``.

With no usable history the engine falls back to a random sample scored
with a neutral 0.5.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any

import numpy as np

from learnhub.core.models import (
    Document,
    RecommendationConfig,
    SimilarityMatch,
    difficulty_to_number,
)
from learnhub.core.similarity import centroid, similarity_score
from learnhub.logging.context import operation_context
from learnhub.rag.document_store.base_document_store import guarded_store_call

if TYPE_CHECKING:
    from learnhub.rag.document_store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_STORE_TIMEOUT_S = 10.0
NEUTRAL_SCORE = 0.5
CANDIDATE_MULTIPLIER = 2
DIFFICULTY_STEP = 0.2
MAX_DIFFICULTY = 3.0
DIFFICULTY_TIE_TOLERANCE = 0.1
# Random fallback draws from a pool this many times larger than requested.
RANDOM_POOL_MULTIPLIER = 5
MIN_RANDOM_POOL = 50
UNKNOWN_TOPIC = "unknown"


class RecommendationEngine:
    """Recommend unanswered questions close to what a learner has answered."""

    def __init__(
        self,
        store: BaseDocumentStore,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        store_timeout_s: float = DEFAULT_STORE_TIMEOUT_S,
    ) -> None:
        self._store = store
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._store_timeout_s = store_timeout_s

    async def recommend(
        self,
        answered_ids: Iterable[str],
        config: RecommendationConfig | None = None,
    ) -> list[SimilarityMatch]:
        """Recommend up to ``config.max_results`` documents.

        Answered ids and ``config.exclude_ids`` never appear in the result.

        Raises:
            StoreUnavailable: A store query failed or timed out.
        """
        config = config or RecommendationConfig()
        answered = list(dict.fromkeys(answered_ids))
        excluded = set(answered) | set(config.exclude_ids)

        with operation_context("recommend"):
            logger.info(
                "Generating recommendations based on %d answered questions",
                len(answered),
            )
            if not answered:
                return await self._random_sample(config, excluded)

            history = await self._call(self._store.get_by_ids(answered), "get_by_ids")
            target = _history_centroid(history)
            if not target:
                logger.info("No embedded questions in history; using random sample")
                return await self._random_sample(config, excluded)

            raw = await self._call(
                self._store.knn_search(
                    target,
                    config.max_results * CANDIDATE_MULTIPLIER,
                    _filters(config, excluded),
                ),
                "knn_search",
            )
            candidates = [
                SimilarityMatch(
                    document=doc,
                    score=similarity_score(target, doc.embedding),
                    explanation=_explain(doc),
                    store_score=store_score,
                )
                for doc, store_score in zip(raw.documents, _padded(raw.scores, raw.documents))
            ]
            if not candidates:
                logger.info("No candidates near history centroid; using random sample")
                return await self._random_sample(config, excluded)

            candidates.sort(key=lambda m: m.score, reverse=True)
            if config.diversity_factor > 0:
                candidates = apply_diversity(candidates)
            if config.difficulty_progression:
                candidates = apply_difficulty_progression(candidates, history)

            recommendations = candidates[: config.max_results]
            logger.info("Generated %d content recommendations", len(recommendations))
            return recommendations

    async def _random_sample(
        self, config: RecommendationConfig, excluded: set[str]
    ) -> list[SimilarityMatch]:
        pool_size = max(config.max_results * RANDOM_POOL_MULTIPLIER, MIN_RANDOM_POOL)
        filters = _filters(config, excluded)
        raw = await self._call(self._store.search("", filters, size=pool_size), "search")
        if raw.total > pool_size:
            # Pool is a window at a random offset so every document is reachable.
            offset = int(self._rng.integers(0, raw.total - pool_size + 1))
            if offset:
                raw = await self._call(
                    self._store.search("", filters, size=pool_size, offset=offset),
                    "search",
                )
        pool = raw.documents
        if not pool:
            return []
        picks = self._rng.choice(
            len(pool), size=min(config.max_results, len(pool)), replace=False
        )
        return [
            SimilarityMatch(
                document=pool[int(i)],
                score=NEUTRAL_SCORE,
                explanation=_explain(pool[int(i)]),
            )
            for i in picks
        ]

    async def _call(self, awaitable: Any, operation: str) -> Any:
        return await guarded_store_call(awaitable, self._store_timeout_s, operation)


def apply_diversity(matches: Sequence[SimilarityMatch]) -> list[SimilarityMatch]:
    """Round-robin one pick per topic bucket per round.

    Buckets keep first-seen order and each bucket keeps its input order.
    """
    buckets: dict[str, list[SimilarityMatch]] = {}
    for match in matches:
        buckets.setdefault(match.document.topic or UNKNOWN_TOPIC, []).append(match)

    diverse: list[SimilarityMatch] = []
    depth = max((len(b) for b in buckets.values()), default=0)
    for round_index in range(depth):
        for bucket in buckets.values():
            if round_index < len(bucket):
                diverse.append(bucket[round_index])
    return diverse


def apply_difficulty_progression(
    matches: Sequence[SimilarityMatch], history: Sequence[Document]
) -> list[SimilarityMatch]:
    """Order by closeness to the learner's average tier plus one small step.

    Near-ties (distance gap under 0.1) are broken by score, best first.
    """
    if not history:
        return list(matches)
    average = sum(d.difficulty_level for d in history) / len(history)
    target = min(MAX_DIFFICULTY, average + DIFFICULTY_STEP)

    def distance(match: SimilarityMatch) -> float:
        return abs(difficulty_to_number(match.document.difficulty_tier) - target)

    def compare(a: SimilarityMatch, b: SimilarityMatch) -> float:
        gap = distance(a) - distance(b)
        if abs(gap) < DIFFICULTY_TIE_TOLERANCE:
            return b.score - a.score
        return gap

    return sorted(matches, key=cmp_to_key(compare))


def _history_centroid(history: Sequence[Document]) -> list[float]:
    vectors = [d.embedding for d in history if d.embedding]
    if not vectors:
        return []
    # Mixed dimensions (e.g. after a model switch): keep the majority.
    dominant, _ = Counter(len(v) for v in vectors).most_common(1)[0]
    return centroid([v for v in vectors if len(v) == dominant])


def _filters(config: RecommendationConfig, excluded: set[str]) -> dict[str, Any]:
    filters: dict[str, Any] = {"exclude_ids": excluded}
    if config.topic_focus:
        filters["subject_area"] = config.topic_focus
    return filters


def _explain(doc: Document) -> str:
    return f"Recommended from {doc.topic}" if doc.topic else "Recommended for you"


def _padded(scores: Sequence[float], documents: Sequence[Document]) -> list[float | None]:
    return list(scores) + [None] * (len(documents) - len(scores))
