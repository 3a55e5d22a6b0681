# src/rag/document_store/memory_store.py — v1
"""In-process document store.

Keeps documents in insertion order and answers k-NN queries with exact
cosine similarity. Suited to tests and small corpora.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

from learnhub.core.models import Document, StoreQueryResult
from learnhub.core.similarity import cosine_similarity
from learnhub.rag.document_store.base_document_store import (
    BaseDocumentStore,
    matches_filters,
)


class InMemoryDocumentStore(BaseDocumentStore):
    """Document store backed by a dict."""

    def __init__(self, documents: Iterable[Document] | None = None) -> None:
        self._documents: dict[str, Document] = {}
        if documents:
            for doc in documents:
                self._documents[doc.id] = doc

    async def search(
        self,
        query: str = "",
        filters: Mapping[str, Any] | None = None,
        size: int = 10,
        offset: int = 0,
    ) -> StoreQueryResult:
        start = time.monotonic()
        needle = query.strip().lower()
        hits = [
            d for d in self._documents.values()
            if matches_filters(d, filters)
            and (not needle or needle in d.embedding_text().lower())
        ]
        page = hits[offset:offset + size]
        return StoreQueryResult(
            documents=page,
            scores=[1.0] * len(page),
            total=len(hits),
            took_ms=_elapsed_ms(start),
            max_score=1.0 if page else None,
        )

    async def knn_search(
        self,
        embedding: list[float],
        k: int = 10,
        filters: Mapping[str, Any] | None = None,
    ) -> StoreQueryResult:
        start = time.monotonic()
        scored = [
            (cosine_similarity(embedding, d.embedding), d)
            for d in self._documents.values()
            if d.has_embedding and matches_filters(d, filters)
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        top = scored[:k]
        return StoreQueryResult(
            documents=[d for _, d in top],
            scores=[s for s, _ in top],
            total=len(scored),
            took_ms=_elapsed_ms(start),
            max_score=top[0][0] if top else None,
        )

    async def get_by_ids(self, ids: Iterable[str]) -> list[Document]:
        return [self._documents[i] for i in ids if i in self._documents]

    async def get_all(self, offset: int = 0, size: int = 100) -> StoreQueryResult:
        docs = list(self._documents.values())
        page = docs[offset:offset + size]
        return StoreQueryResult(documents=page, scores=[1.0] * len(page), total=len(docs))

    async def upsert(self, documents: Iterable[Document]) -> None:
        for doc in documents:
            self._documents[doc.id] = doc

    async def count(self) -> int:
        return len(self._documents)

    @property
    def provider_name(self) -> str:
        return "memory"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
