# src/core/models.py — v1
"""Domain models shared by the embedding service, stores and engines.

Other modules import these types from here instead of redefining them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnhub.core.text import compose_document_text

DifficultyTier = Literal["easy", "medium", "hard"]

_DIFFICULTY_LEVELS: dict[str, int] = {"easy": 1, "medium": 2, "hard": 3}
DEFAULT_DIFFICULTY_LEVEL = 2


def difficulty_to_number(difficulty: str | None) -> int:
    """Map a difficulty tier to 1..3. Unknown or missing tiers count as medium."""
    if not difficulty:
        return DEFAULT_DIFFICULTY_LEVEL
    return _DIFFICULTY_LEVELS.get(difficulty.lower(), DEFAULT_DIFFICULTY_LEVEL)


# === DOCUMENTS ===


class Document(BaseModel):
    """Question document as stored in the document store.

    Owned by the ingestion side; this package only attaches embeddings
    (see ``with_embedding``).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    answer: str = ""
    explanation: str | None = None
    topic: str = ""
    subtopic: str | None = None
    subject_area: str = ""
    grade: int | None = None
    difficulty_tier: str = "medium"
    keywords: list[str] = Field(default_factory=list)
    embedding: list[float] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("keywords")
    @classmethod
    def dedupe_keywords(cls, v: list[str]) -> list[str]:
        """Keywords have set semantics; keep first occurrence order."""
        return list(dict.fromkeys(k for k in v if k))

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def difficulty_level(self) -> int:
        return difficulty_to_number(self.difficulty_tier)

    def embedding_text(self) -> str:
        """Text that gets embedded for this document."""
        return compose_document_text(
            self.text, self.answer, self.explanation, self.keywords
        )

    def with_embedding(self, embedding: list[float]) -> Document:
        """Return a copy carrying ``embedding``."""
        return self.model_copy(update={"embedding": list(embedding)})


class StoreQueryResult(BaseModel):
    """Document store response for filtered and k-NN queries.

    ``scores`` runs parallel to ``documents`` and holds the store's own
    (possibly approximate) relevance scores.
    """

    documents: list[Document] = Field(default_factory=list)
    scores: list[float] = Field(default_factory=list)
    total: int = 0
    took_ms: int = 0
    max_score: float | None = None


# === SEARCH ===


class SearchConfig(BaseModel):
    """Similarity search parameters."""

    k: int = Field(default=10, ge=1)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    filters: dict[str, Any] = Field(default_factory=dict)
    rerank: bool = False


class SimilarityMatch(BaseModel):
    """A document matched against a query vector.

    ``score`` is the locally recomputed cosine similarity clamped to [0, 1];
    ``store_score`` is whatever the store reported, kept for diagnostics.
    """

    document: Document
    score: float = Field(ge=0.0, le=1.0)
    explanation: str = ""
    store_score: float | None = None


class BatchSearchQuery(BaseModel):
    """One query of a batch similarity search."""

    id: str
    text: str
    config: SearchConfig | None = None


class BatchSearchItem(BaseModel):
    query_id: str
    matches: list[SimilarityMatch]
    processing_time_ms: int


class BatchSearchError(BaseModel):
    query_id: str
    error: str


class BatchSearchResult(BaseModel):
    """Outcome of a batch similarity search; failed queries land in ``errors``."""

    results: list[BatchSearchItem] = Field(default_factory=list)
    errors: list[BatchSearchError] = Field(default_factory=list)
    total_processing_time_ms: int = 0


# === RECOMMENDATION ===


class RecommendationConfig(BaseModel):
    """Recommendation parameters."""

    max_results: int = Field(default=10, ge=1)
    diversity_factor: float = Field(default=0.0, ge=0.0, le=1.0)
    difficulty_progression: bool = False
    topic_focus: str | None = None
    exclude_ids: set[str] = Field(default_factory=set)


# === EMBEDDINGS ===


class EmbeddingResult(BaseModel):
    """Single embedding with its bookkeeping."""

    embedding: list[float]
    tokens: int
    model: str
    cache_key: str
    cached: bool = False


class BatchItemError(BaseModel):
    """Failure of one batch item; ``index`` is the position in the input."""

    index: int
    text: str
    reason: str


class BatchEmbeddingResult(BaseModel):
    """Batch embedding outcome.

    ``results`` is positional: slot ``i`` holds the vector for input ``i``
    or None when that item failed (see ``errors``).
    """

    results: list[list[float] | None] = Field(default_factory=list)
    errors: list[BatchItemError] = Field(default_factory=list)
    total_tokens: int = 0
    processing_time_ms: int = 0

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r is not None)


# === CLUSTERING ===


class Cluster(BaseModel):
    """A group of documents around a centroid."""

    id: str
    centroid: list[float]
    members: list[Document]
    keywords: list[str] = Field(default_factory=list)
    average_difficulty: float


class ClusteringResult(BaseModel):
    """k-means outcome over the embedded part of a corpus."""

    clusters: list[Cluster] = Field(default_factory=list)
    total_documents: int = 0
    iterations: int = 0
    converged: bool = False
    processing_time_ms: int = 0
