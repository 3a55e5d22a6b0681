# src/rag/document_store/chromadb_store.py — v1
"""ChromaDB document store adapter.

Uses the chromadb SDK for local or remote storage. The collection lives in
cosine space, so ``score = 1 - distance``. Chroma metadata only holds
scalars: keywords are flattened with ``|`` and free-form document metadata
is serialized to JSON. The keyword filter is applied after the query.

Documents without an embedding are stored under a placeholder vector and
flagged ``has_embedding=False``: exact-match reads return them, vector
queries never do.

Requires: pip install chromadb.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from learnhub.core.errors import ConfigurationError
from learnhub.core.models import Document, StoreQueryResult
from learnhub.rag.document_store.base_document_store import (
    EQUALITY_FIELDS,
    BaseDocumentStore,
    matches_filters,
)

logger = logging.getLogger(__name__)

_KEYWORD_SEPARATOR = "|"
# Over-fetch factor when the keyword filter has to run client-side.
_KEYWORD_OVERFETCH = 5
_INCLUDE = ["documents", "metadatas", "embeddings"]
_EMBEDDED = {"has_embedding": True}


class ChromaDocumentStore(BaseDocumentStore):
    """Document store backed by a ChromaDB collection."""

    def __init__(
        self,
        collection: str = "questions",
        persist_path: str | Path | None = None,
        host: str | None = None,
        port: int = 8000,
        client: Any = None,
        dimensions: int | None = None,
    ) -> None:
        if client is None:
            try:
                import chromadb
            except ImportError as e:
                raise ImportError(
                    "chromadb package required: pip install chromadb"
                ) from e

            if host:
                client = chromadb.HttpClient(host=host, port=port)
            elif persist_path:
                client = chromadb.PersistentClient(path=str(persist_path))
            else:
                client = chromadb.EphemeralClient()

        self._client = client
        self._collection_name = collection
        self._collection: Any = None
        self._dimensions = dimensions

    def _col(self) -> Any:
        if self._collection is None:
            self._collection = self._client.get_or_create_collection(
                self._collection_name, metadata={"hnsw:space": "cosine"}
            )
        return self._collection

    async def search(
        self,
        query: str = "",
        filters: Mapping[str, Any] | None = None,
        size: int = 10,
        offset: int = 0,
    ) -> StoreQueryResult:
        start = time.monotonic()
        kwargs: dict[str, Any] = {"include": _INCLUDE}
        where = _build_where(filters)
        if where:
            kwargs["where"] = where
        if query.strip():
            kwargs["where_document"] = {"$contains": query.strip()}

        raw = await asyncio.to_thread(self._col().get, **kwargs)
        hits = [
            d for d in _documents_from_get(raw)
            if matches_filters(d, _client_side(filters))
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
        col = self._col()
        available = await asyncio.to_thread(col.count)
        if available == 0:
            return StoreQueryResult(took_ms=_elapsed_ms(start))

        post_filter = _client_side(filters)
        n_results = k * _KEYWORD_OVERFETCH if post_filter else k
        kwargs: dict[str, Any] = {
            "query_embeddings": [list(embedding)],
            "n_results": min(n_results, available),
            "include": _INCLUDE + ["distances"],
        }
        where = _build_where(filters)
        kwargs["where"] = {"$and": [_EMBEDDED, where]} if where else _EMBEDDED

        raw = await asyncio.to_thread(col.query, **kwargs)

        documents: list[Document] = []
        scores: list[float] = []
        ids = raw["ids"][0] if raw.get("ids") else []
        distances = _first_row(raw.get("distances"))
        texts = _first_row(raw.get("documents"))
        metadatas = _first_row(raw.get("metadatas"))
        vectors = _first_row(raw.get("embeddings"))
        for i, doc_id in enumerate(ids):
            doc = _to_document(
                doc_id,
                texts[i] if texts is not None else "",
                metadatas[i] if metadatas is not None else None,
                vectors[i] if vectors is not None else None,
            )
            if not matches_filters(doc, post_filter):
                continue
            distance = distances[i] if distances is not None else 0.0
            documents.append(doc)
            scores.append(1.0 - float(distance))
            if len(documents) == k:
                break

        logger.debug("ChromaDB knn on %s: %d results", self._collection_name, len(documents))
        return StoreQueryResult(
            documents=documents,
            scores=scores,
            total=len(documents),
            took_ms=_elapsed_ms(start),
            max_score=max(scores) if scores else None,
        )

    async def get_by_ids(self, ids: Iterable[str]) -> list[Document]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        raw = await asyncio.to_thread(self._col().get, ids=wanted, include=_INCLUDE)
        by_id = {d.id: d for d in _documents_from_get(raw)}
        return [by_id[i] for i in wanted if i in by_id]

    async def get_all(self, offset: int = 0, size: int = 100) -> StoreQueryResult:
        col = self._col()
        total = await asyncio.to_thread(col.count)
        raw = await asyncio.to_thread(col.get, limit=size, offset=offset, include=_INCLUDE)
        docs = _documents_from_get(raw)
        return StoreQueryResult(documents=docs, scores=[1.0] * len(docs), total=total)

    async def upsert(self, documents: Iterable[Document]) -> None:
        """Insert or update documents.

        Documents without an embedding get a placeholder vector sized to the
        collection; the ``has_embedding`` flag keeps them out of k-NN results.
        """
        docs = list(documents)
        if not docs:
            return
        placeholder: list[float] | None = None
        if not all(d.has_embedding for d in docs):
            placeholder = _placeholder_vector(await self._vector_dimensions(docs))
        await asyncio.to_thread(
            self._col().upsert,
            ids=[d.id for d in docs],
            embeddings=[list(d.embedding) if d.embedding else placeholder for d in docs],
            documents=[d.text for d in docs],
            metadatas=[_to_metadata(d) for d in docs],
        )
        logger.info("Upserted %d documents into %s", len(docs), self._collection_name)

    async def _vector_dimensions(self, docs: Sequence[Document]) -> int:
        if self._dimensions is not None:
            return self._dimensions
        for doc in docs:
            if doc.embedding:
                return len(doc.embedding)
        raw = await asyncio.to_thread(self._col().get, limit=1, include=["embeddings"])
        vectors = raw.get("embeddings")
        if vectors is not None and len(vectors) > 0:
            return len(vectors[0])
        raise ConfigurationError(
            f"Cannot store documents without embeddings in empty collection "
            f"{self._collection_name!r}: vector dimensions unknown"
        )

    async def count(self) -> int:
        return await asyncio.to_thread(self._col().count)

    @property
    def provider_name(self) -> str:
        return "chromadb"


# --- Filter translation ---


def _build_where(filters: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Translate the server-side part of ``filters`` into a Chroma where clause."""
    if not filters:
        return None
    clauses: list[dict[str, Any]] = []
    for key, value in filters.items():
        if value is None or key == "keywords":
            continue
        if key == "exclude_ids":
            excluded = sorted(value)
            if excluded:
                clauses.append({"doc_id": {"$nin": excluded}})
        elif key in EQUALITY_FIELDS:
            clauses.append({key: value})
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _client_side(filters: Mapping[str, Any] | None) -> dict[str, Any]:
    """Filters Chroma cannot evaluate: keyword membership and custom metadata."""
    if not filters:
        return {}
    return {
        k: v for k, v in filters.items()
        if k not in EQUALITY_FIELDS and k != "exclude_ids" and v is not None
    }


# --- Record mapping ---


def _to_metadata(doc: Document) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "doc_id": doc.id,
        "answer": doc.answer,
        "topic": doc.topic,
        "subject_area": doc.subject_area,
        "difficulty_tier": doc.difficulty_tier,
        "keywords": _KEYWORD_SEPARATOR.join(doc.keywords),
        "has_embedding": doc.has_embedding,
    }
    if doc.explanation is not None:
        meta["explanation"] = doc.explanation
    if doc.subtopic is not None:
        meta["subtopic"] = doc.subtopic
    if doc.grade is not None:
        meta["grade"] = doc.grade
    if doc.metadata:
        meta["extra"] = json.dumps(doc.metadata)
    return meta


def _to_document(
    doc_id: str, text: str | None, meta: Mapping[str, Any] | None, vector: Any
) -> Document:
    meta = meta or {}
    keywords = meta.get("keywords") or ""
    extra = meta.get("extra")
    return Document(
        id=doc_id,
        text=text or "",
        answer=meta.get("answer", ""),
        explanation=meta.get("explanation"),
        topic=meta.get("topic", ""),
        subtopic=meta.get("subtopic"),
        subject_area=meta.get("subject_area", ""),
        grade=meta.get("grade"),
        difficulty_tier=meta.get("difficulty_tier", "medium"),
        keywords=[k for k in keywords.split(_KEYWORD_SEPARATOR) if k],
        embedding=(
            [float(x) for x in vector]
            if vector is not None and meta.get("has_embedding", True)
            else None
        ),
        metadata=json.loads(extra) if extra else {},
    )


def _documents_from_get(raw: Mapping[str, Any]) -> list[Document]:
    ids = raw.get("ids") or []
    texts = raw.get("documents")
    metadatas = raw.get("metadatas")
    vectors = raw.get("embeddings")
    return [
        _to_document(
            doc_id,
            texts[i] if texts is not None else "",
            metadatas[i] if metadatas is not None else None,
            vectors[i] if vectors is not None else None,
        )
        for i, doc_id in enumerate(ids)
    ]


def _placeholder_vector(dimensions: int) -> list[float]:
    # Unit vector: a zero vector has no cosine distance.
    return [1.0] + [0.0] * (dimensions - 1)


def _first_row(column: Sequence[Any] | None) -> Sequence[Any] | None:
    # query() returns one row per query embedding; numpy arrays have no truth value.
    if column is None or len(column) == 0:
        return None
    return column[0]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
