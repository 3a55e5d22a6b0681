# src/rag/retriever/similarity_engine.py — v1
"""Similarity search over the document store.

The store proposes the top-k candidates (its scores may be approximate);
cosine similarity is then recomputed locally against the query vector and
that local score is the one callers see. The store's own score is kept on
each match for diagnostics.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from learnhub.core.errors import VectorServiceError
from learnhub.core.models import (
    BatchSearchError,
    BatchSearchItem,
    BatchSearchQuery,
    BatchSearchResult,
    Document,
    SearchConfig,
    SimilarityMatch,
)
from learnhub.core.similarity import similarity_score
from learnhub.core.text import common_significant_words
from learnhub.logging.context import operation_context
from learnhub.rag.document_store.base_document_store import guarded_store_call

if TYPE_CHECKING:
    from learnhub.rag.document_store.base_document_store import BaseDocumentStore
    from learnhub.rag.embeddings.service import EmbeddingService

logger = logging.getLogger(__name__)

DEFAULT_STORE_TIMEOUT_S = 10.0
MAX_EXPLAINED_WORDS = 3


def explain_match(query_text: str, document: Document) -> str:
    """Human-readable hint of why ``document`` matched; advisory only."""
    common = list(dict.fromkeys(common_significant_words(query_text, document.text)))
    topic = f" ({document.topic})" if document.topic else ""
    if common:
        return f"Similar concepts: {', '.join(common[:MAX_EXPLAINED_WORDS])}{topic}"
    return f"Related content{topic}"


class VectorSimilarityEngine:
    """k-NN retrieval with locally recomputed similarity."""

    def __init__(
        self,
        embeddings: EmbeddingService,
        store: BaseDocumentStore,
        store_timeout_s: float = DEFAULT_STORE_TIMEOUT_S,
    ) -> None:
        self._embeddings = embeddings
        self._store = store
        self._store_timeout_s = store_timeout_s

    async def find_similar(
        self, query_text: str, config: SearchConfig | None = None
    ) -> list[SimilarityMatch]:
        """Find documents similar to ``query_text``.

        Args:
            query_text: Free text to embed and search with.
            config: k, optional threshold, store filters and rerank flag.

        Returns:
            Matches in store order, or by local score when ``rerank`` is set.

        Raises:
            ProviderUnavailable: Query embedding failed.
            StoreUnavailable: The k-NN query failed or timed out.
        """
        config = config or SearchConfig()
        with operation_context("find_similar", model=self._embeddings.model):
            embedding = await self._embeddings.embed(query_text)
            matches = await self._match(embedding, query_text, config)
            logger.info(
                "Similarity search: %d results (k=%d, threshold=%s)",
                len(matches), config.k, config.threshold,
            )
            return matches

    async def find_similar_to_document(
        self, document_id: str, config: SearchConfig | None = None
    ) -> list[SimilarityMatch]:
        """Neighbours of a stored document ("more like this"), excluding itself.

        Raises:
            NotFound: ``document_id`` is not in the store.
        """
        config = config or SearchConfig()
        with operation_context("find_similar_to_document", model=self._embeddings.model):
            source = await guarded_store_call(
                self._store.get_document(document_id),
                self._store_timeout_s,
                "get_document",
            )
            embedding = source.embedding
            if not embedding:
                logger.debug("Document %s has no embedding; embedding it now", document_id)
                embedding = await self._embeddings.embed(source.embedding_text())

            excluded = set(config.filters.get("exclude_ids") or ()) | {document_id}
            scoped = config.model_copy(
                update={"filters": {**config.filters, "exclude_ids": excluded}}
            )
            return await self._match(embedding, source.text, scoped)

    async def batch_find_similar(
        self,
        queries: Sequence[BatchSearchQuery],
        global_config: SearchConfig | None = None,
    ) -> BatchSearchResult:
        """Run several searches; a failing query lands in ``errors``.

        Fields set on a query's own config override ``global_config``.
        """
        start = time.monotonic()
        base = global_config.model_dump(exclude_unset=True) if global_config else {}
        results: list[BatchSearchItem] = []
        errors: list[BatchSearchError] = []

        logger.info("Processing batch search with %d queries", len(queries))
        for query in queries:
            query_start = time.monotonic()
            override = query.config.model_dump(exclude_unset=True) if query.config else {}
            try:
                config = SearchConfig.model_validate({**base, **override})
                matches = await self.find_similar(query.text, config)
            except VectorServiceError as e:
                logger.warning("Error processing query %s: %s", query.id, e)
                errors.append(BatchSearchError(query_id=query.id, error=str(e)))
                continue
            results.append(
                BatchSearchItem(
                    query_id=query.id,
                    matches=matches,
                    processing_time_ms=_elapsed_ms(query_start),
                )
            )

        total_ms = _elapsed_ms(start)
        logger.info(
            "Batch search completed: %d successful, %d failed, %dms",
            len(results), len(errors), total_ms,
        )
        return BatchSearchResult(
            results=results, errors=errors, total_processing_time_ms=total_ms
        )

    async def _match(
        self, embedding: list[float], query_text: str, config: SearchConfig
    ) -> list[SimilarityMatch]:
        raw = await guarded_store_call(
            self._store.knn_search(embedding, config.k, config.filters),
            self._store_timeout_s,
            "knn_search",
        )
        store_scores = list(raw.scores) + [None] * (len(raw.documents) - len(raw.scores))

        matches: list[SimilarityMatch] = []
        for doc, store_score in zip(raw.documents, store_scores):
            score = similarity_score(embedding, doc.embedding)
            if config.threshold is not None and score < config.threshold:
                continue
            matches.append(
                SimilarityMatch(
                    document=doc,
                    score=score,
                    explanation=explain_match(query_text, doc),
                    store_score=store_score,
                )
            )

        if config.rerank:
            matches.sort(key=lambda m: m.score, reverse=True)
        return matches


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
