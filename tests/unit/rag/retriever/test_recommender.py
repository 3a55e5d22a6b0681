# tests/unit/rag/retriever/test_recommender.py — v1
"""Tests for rag/retriever/recommender.py."""

from __future__ import annotations

import pytest

from conftest import make_document
from learnhub.core.errors import StoreUnavailable
from learnhub.core.models import Document, RecommendationConfig, SimilarityMatch
from learnhub.rag.document_store.memory_store import InMemoryDocumentStore
from learnhub.rag.retriever.recommender import (
    NEUTRAL_SCORE,
    RecommendationEngine,
    apply_difficulty_progression,
    apply_diversity,
)


def _match(doc_id: str, topic: str = "", score: float = 0.5, tier: str = "medium") -> SimilarityMatch:
    return SimilarityMatch(
        document=Document(id=doc_id, text=doc_id, topic=topic, difficulty_tier=tier),
        score=score,
    )


class _BrokenStore(InMemoryDocumentStore):
    async def get_by_ids(self, ids):
        raise ConnectionError("store down")


class TestRecommendWithoutHistory:
    @pytest.mark.asyncio
    async def test_empty_history_non_empty_result(self, memory_store):
        engine = RecommendationEngine(memory_store, seed=1)
        results = await engine.recommend([], RecommendationConfig(max_results=5))
        assert len(results) == 5
        assert all(m.score == NEUTRAL_SCORE for m in results)
        assert len({m.document.id for m in results}) == 5

    @pytest.mark.asyncio
    async def test_topic_focus_filters_subject_area(self, memory_store):
        engine = RecommendationEngine(memory_store, seed=1)
        results = await engine.recommend(
            [], RecommendationConfig(max_results=5, topic_focus="science")
        )
        assert {m.document.id for m in results} == {"q11", "q12"}

    @pytest.mark.asyncio
    async def test_seeded_sample_is_reproducible(self, memory_store):
        config = RecommendationConfig(max_results=4)
        first = await RecommendationEngine(memory_store, seed=7).recommend([], config)
        second = await RecommendationEngine(memory_store, seed=7).recommend([], config)
        assert [m.document.id for m in first] == [m.document.id for m in second]

    @pytest.mark.asyncio
    async def test_exclusions_respected(self, memory_store):
        engine = RecommendationEngine(memory_store, seed=3)
        excluded = {f"q{i}" for i in range(1, 11)}
        results = await engine.recommend([], RecommendationConfig(exclude_ids=excluded))
        assert {m.document.id for m in results} == {"q11", "q12"}

    @pytest.mark.asyncio
    async def test_empty_store(self):
        engine = RecommendationEngine(InMemoryDocumentStore())
        assert await engine.recommend([]) == []

    @pytest.mark.asyncio
    async def test_sample_reaches_past_first_page(self):
        store = InMemoryDocumentStore(
            [make_document(f"d{i}", f"question {i}") for i in range(200)]
        )
        first_page = {f"d{i}" for i in range(50)}
        seen: set[str] = set()
        for seed in range(10):
            engine = RecommendationEngine(store, seed=seed)
            results = await engine.recommend([], RecommendationConfig(max_results=10))
            assert len(results) == 10
            seen.update(m.document.id for m in results)
        assert seen - first_page


class TestRecommendWithHistory:
    @pytest.mark.asyncio
    async def test_neighbours_of_history(self, memory_store):
        engine = RecommendationEngine(memory_store)
        results = await engine.recommend(["q1"], RecommendationConfig(max_results=3))
        ids = [m.document.id for m in results]
        assert "q1" not in ids
        assert ids[0] == "q2"
        assert [m.score for m in results] == sorted((m.score for m in results), reverse=True)

    @pytest.mark.asyncio
    async def test_excludes_answered_and_excluded(self, memory_store):
        engine = RecommendationEngine(memory_store)
        results = await engine.recommend(
            ["q1", "q4"], RecommendationConfig(max_results=20, exclude_ids={"q2"})
        )
        ids = {m.document.id for m in results}
        assert not ids & {"q1", "q2", "q4"}
        assert len(ids) == 9

    @pytest.mark.asyncio
    async def test_truncates_to_max_results(self, memory_store):
        engine = RecommendationEngine(memory_store)
        results = await engine.recommend(["q8"], RecommendationConfig(max_results=2))
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_unembedded_history_falls_back(self):
        store = InMemoryDocumentStore([
            make_document("h", "answered question", embed=False),
            make_document("a", "candidate one"),
            make_document("b", "candidate two"),
        ])
        engine = RecommendationEngine(store, seed=0)
        results = await engine.recommend(["h"], RecommendationConfig(max_results=5))
        assert {m.document.id for m in results} == {"a", "b"}
        assert all(m.score == NEUTRAL_SCORE for m in results)

    @pytest.mark.asyncio
    async def test_unknown_history_falls_back(self, memory_store):
        engine = RecommendationEngine(memory_store, seed=0)
        results = await engine.recommend(["ghost"], RecommendationConfig(max_results=3))
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_diversity_spreads_topics(self, memory_store):
        engine = RecommendationEngine(memory_store)
        results = await engine.recommend(
            ["q1", "q8"], RecommendationConfig(max_results=4, diversity_factor=0.5)
        )
        topics = [m.document.topic for m in results]
        assert len(set(topics[:2])) == 2

    @pytest.mark.asyncio
    async def test_store_failure(self):
        engine = RecommendationEngine(_BrokenStore([make_document("a", "x")]))
        with pytest.raises(StoreUnavailable, match="store down"):
            await engine.recommend(["a"])


class TestApplyDiversity:
    def test_round_robin(self):
        matches = [
            _match("a1", "A"), _match("a2", "A"), _match("a3", "A"),
            _match("b1", "B"), _match("b2", "B"), _match("c1", "C"),
        ]
        result = apply_diversity(matches)
        assert [m.document.id for m in result] == ["a1", "b1", "c1", "a2", "b2", "a3"]

    def test_missing_topic_bucket(self):
        result = apply_diversity([_match("x"), _match("y"), _match("a", "A")])
        assert [m.document.id for m in result] == ["x", "a", "y"]

    def test_single_topic_unchanged(self):
        matches = [_match("a1", "A"), _match("a2", "A")]
        assert apply_diversity(matches) == matches


class TestApplyDifficultyProgression:
    def test_easy_history_prefers_easy_then_medium(self):
        history = [Document(id="h", text="h", difficulty_tier="easy")]
        matches = [_match("hard", tier="hard"), _match("medium", tier="medium"), _match("easy", tier="easy")]
        result = apply_difficulty_progression(matches, history)
        assert [m.document.id for m in result] == ["easy", "medium", "hard"]

    def test_hard_history_targets_hard(self):
        history = [Document(id="h", text="h", difficulty_tier="hard")]
        matches = [_match("easy", tier="easy"), _match("hard", tier="hard")]
        result = apply_difficulty_progression(matches, history)
        assert result[0].document.id == "hard"

    def test_ties_broken_by_score(self):
        history = [Document(id="h", text="h", difficulty_tier="medium")]
        matches = [_match("low", score=0.2), _match("high", score=0.9)]
        result = apply_difficulty_progression(matches, history)
        assert [m.document.id for m in result] == ["high", "low"]

    def test_empty_history_unchanged(self):
        matches = [_match("a"), _match("b")]
        assert apply_difficulty_progression(matches, []) == matches
