# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides a deterministic bag-of-words embedding provider, a small question
corpus with embeddings attached, and an in-memory document store.
No external dependencies — no network, no model downloads.
"""

from __future__ import annotations

import asyncio
import hashlib
import re

import pytest

from learnhub.core.errors import MalformedResponse, ProviderUnavailable
from learnhub.core.models import Document
from learnhub.rag.document_store.memory_store import InMemoryDocumentStore
from learnhub.rag.embeddings.base_provider import ProviderResult, estimate_tokens
from learnhub.rag.embeddings.config import EmbeddingConfig
from learnhub.rag.embeddings.service import EmbeddingService

DIMS = 256

_TOKEN = re.compile(r"\w+")


def vectorize(text: str, dims: int = DIMS) -> list[float]:
    """Hash each lowercased word into a bucket; word order does not matter."""
    vector = [0.0] * dims
    for token in _TOKEN.findall(text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dims
        vector[bucket] += 1.0
    return vector


class FakeProvider:
    """Deterministic provider that records every text it is asked to embed."""

    def __init__(
        self,
        model: str = "fake-embed",
        dimensions: int = DIMS,
        fail_on: tuple[str, ...] = (),
        malformed_on: tuple[str, ...] = (),
        delay_s: float = 0.0,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self.fail_on = fail_on
        self.malformed_on = malformed_on
        self.delay_s = delay_s
        self.calls: list[str] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def generate(self, text: str) -> ProviderResult:
        self.calls.append(text)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if any(marker in text for marker in self.fail_on):
            raise ProviderUnavailable("fake", "service unavailable", 503)
        if any(marker in text for marker in self.malformed_on):
            raise MalformedResponse("fake", "missing 'embedding' array")
        return ProviderResult(
            embedding=vectorize(text, self._dimensions), tokens=estimate_tokens(text)
        )

    async def aclose(self) -> None:
        self.closed = True


def make_document(
    doc_id: str,
    text: str,
    answer: str = "",
    topic: str = "",
    subject_area: str = "mathematics",
    difficulty_tier: str = "medium",
    keywords: list[str] | None = None,
    embed: bool = True,
) -> Document:
    doc = Document(
        id=doc_id,
        text=text,
        answer=answer,
        topic=topic,
        subject_area=subject_area,
        difficulty_tier=difficulty_tier,
        keywords=keywords or [],
    )
    return doc.with_embedding(vectorize(doc.embedding_text())) if embed else doc


# === FIXTURES: Embeddings ===


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def embedding_config() -> EmbeddingConfig:
    """Config with no pauses so batch and retry tests run instantly."""
    return EmbeddingConfig(
        model="fake-embed",
        dimensions=DIMS,
        batch_delay_s=0.0,
        retry_base_delay_s=0.0,
        max_retries=1,
    )


@pytest.fixture
def embedding_service(
    fake_provider: FakeProvider, embedding_config: EmbeddingConfig
) -> EmbeddingService:
    return EmbeddingService(
        config=embedding_config,
        provider=fake_provider,
        provider_factory=lambda cfg: FakeProvider(model=cfg.model, dimensions=cfg.dimensions),
    )


# === FIXTURES: Corpus ===


@pytest.fixture
def sample_documents() -> list[Document]:
    """Twelve questions over four math topics plus two science questions."""
    return [
        make_document("q1", "What is 2 + 3?", "5", "addition", difficulty_tier="easy",
                      keywords=["addition", "sum"]),
        make_document("q2", "What is 7 + 8?", "15", "addition", difficulty_tier="easy",
                      keywords=["addition", "sum"]),
        make_document("q3", "Add 125 and 376 together", "501", "addition",
                      keywords=["addition", "carrying"]),
        make_document("q4", "What is 9 - 4?", "5", "subtraction", difficulty_tier="easy",
                      keywords=["subtraction", "difference"]),
        make_document("q5", "Subtract 238 from 502", "264", "subtraction",
                      keywords=["subtraction", "borrowing"]),
        make_document("q6", "What is one half plus one quarter?", "three quarters",
                      "fractions", keywords=["fractions", "denominator"]),
        make_document("q7", "Simplify the fraction twelve eighteenths", "two thirds",
                      "fractions", difficulty_tier="hard", keywords=["fractions", "simplify"]),
        make_document("q8", "How many sides does a hexagon have?", "6", "geometry",
                      difficulty_tier="easy", keywords=["geometry", "polygon"]),
        make_document("q9", "Find the area of a triangle with base 6 and height 4", "12",
                      "geometry", keywords=["geometry", "area"]),
        make_document("q10", "Find the volume of a cylinder with radius 3 and height 5",
                      "141.37", "geometry", difficulty_tier="hard",
                      keywords=["geometry", "volume"]),
        make_document("q11", "What do plants need for photosynthesis?",
                      "sunlight water and carbon dioxide", "plants",
                      subject_area="science", keywords=["photosynthesis"]),
        make_document("q12", "Which part of the plant absorbs water?", "roots", "plants",
                      subject_area="science", difficulty_tier="easy",
                      keywords=["roots", "water"]),
    ]


@pytest.fixture
def memory_store(sample_documents: list[Document]) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(sample_documents)
