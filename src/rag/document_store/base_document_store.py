# src/rag/document_store/base_document_store.py — v1
"""Abstract document store interface.

The engines only ever talk to this contract: filtered queries, vector
k-NN queries and batch-get by id. Supported filter keys:

    topic, subtopic, subject_area, difficulty_tier, grade   equality
    keywords                                                 any match
    exclude_ids                                              id exclusion

Any other key is compared for equality against ``Document.metadata``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, TypeVar

from learnhub.core.errors import NotFound, StoreUnavailable, VectorServiceError
from learnhub.core.models import Document, StoreQueryResult

T = TypeVar("T")

EQUALITY_FIELDS = ("topic", "subtopic", "subject_area", "difficulty_tier", "grade")


class BaseDocumentStore(ABC):
    """Unified interface for document store backends."""

    @abstractmethod
    async def search(
        self,
        query: str = "",
        filters: Mapping[str, Any] | None = None,
        size: int = 10,
        offset: int = 0,
    ) -> StoreQueryResult:
        """Filtered query. A non-empty ``query`` must occur in the document text."""

    @abstractmethod
    async def knn_search(
        self,
        embedding: list[float],
        k: int = 10,
        filters: Mapping[str, Any] | None = None,
    ) -> StoreQueryResult:
        """Top ``k`` documents by vector similarity, best first."""

    @abstractmethod
    async def get_by_ids(self, ids: Iterable[str]) -> list[Document]:
        """Fetch documents by id. Unknown ids are skipped; order follows ``ids``."""

    @abstractmethod
    async def get_all(self, offset: int = 0, size: int = 100) -> StoreQueryResult:
        """One page of the whole corpus in a stable order."""

    @abstractmethod
    async def upsert(self, documents: Iterable[Document]) -> None:
        """Insert or replace documents by id."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored documents."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (memory, chromadb)."""

    async def get_document(self, doc_id: str) -> Document:
        """Fetch one document.

        Raises:
            NotFound: No document has this id.
        """
        found = await self.get_by_ids([doc_id])
        if not found:
            raise NotFound([doc_id])
        return found[0]


def matches_filters(document: Document, filters: Mapping[str, Any] | None) -> bool:
    """Evaluate the store filter semantics against one document."""
    if not filters:
        return True
    for key, expected in filters.items():
        if expected is None:
            continue
        if key == "exclude_ids":
            if document.id in set(expected):
                return False
        elif key == "keywords":
            wanted = {expected} if isinstance(expected, str) else set(expected)
            if wanted and not wanted.intersection(document.keywords):
                return False
        elif key in EQUALITY_FIELDS:
            if getattr(document, key) != expected:
                return False
        elif document.metadata.get(key) != expected:
            return False
    return True


async def guarded_store_call(
    awaitable: Awaitable[T], timeout_s: float, operation: str
) -> T:
    """Await a store call with a deadline.

    Timeouts and backend failures become StoreUnavailable; errors of this
    package (NotFound in particular) propagate unchanged.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except asyncio.TimeoutError as e:
        raise StoreUnavailable(operation, f"no response within {timeout_s}s") from e
    except VectorServiceError:
        raise
    except Exception as e:
        raise StoreUnavailable(operation, str(e) or type(e).__name__) from e
