# src/rag/embeddings/base_provider.py — v2
"""Embedding provider capability shared by the three backends.

Providers form a closed set (ollama, openai, huggingface). They share no
base class: each one only maps a single text to its backend's request and
maps the response back to a validated vector. Caching, batching and
retries live in EmbeddingService.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from learnhub.core.errors import MalformedResponse


@dataclass(frozen=True)
class ProviderResult:
    """Validated provider output for one text."""

    embedding: list[float]
    tokens: int


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Single-request embedding capability."""

    @property
    def provider_name(self) -> str: ...

    @property
    def model_name(self) -> str: ...

    @property
    def dimensions(self) -> int: ...

    async def generate(self, text: str) -> ProviderResult:
        """Embed one text.

        Raises:
            ProviderUnavailable: Transport failure, timeout or non-2xx status.
            MalformedResponse: Success status without a usable vector.
        """
        ...

    async def aclose(self) -> None: ...


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 characters per token)."""
    return math.ceil(len(text) / 4)


def validate_vector(payload: Any, provider: str, dimensions: int | None) -> list[float]:
    """Check that ``payload`` is a finite numeric vector of the expected size.

    Args:
        payload: Raw value extracted from the provider response.
        provider: Provider name for error messages.
        dimensions: Expected length, or None to accept any non-empty length.

    Returns:
        The vector as a list of floats.

    Raises:
        MalformedResponse: If the payload is not a usable vector.
    """
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise MalformedResponse(provider, f"expected a number array, got {type(payload).__name__}")
    if not payload:
        raise MalformedResponse(provider, "embedding array is empty")
    vector: list[float] = []
    for value in payload:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedResponse(provider, f"non-numeric component {value!r}")
        if not math.isfinite(value):
            raise MalformedResponse(provider, "embedding contains NaN or infinity")
        vector.append(float(value))
    if dimensions and len(vector) != dimensions:
        raise MalformedResponse(
            provider, f"expected {dimensions} dimensions, got {len(vector)}"
        )
    return vector


def field_of(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an SDK response object, None if absent."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)
