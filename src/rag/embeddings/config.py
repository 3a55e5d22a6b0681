# src/rag/embeddings/config.py — v1
"""Service-level embedding configuration.

A read-only view of the EMBEDDING_* settings. EmbeddingService.update_config
merges changes into a new instance; it is never mutated in place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from learnhub.config.settings import ProviderKind

if TYPE_CHECKING:
    from learnhub.config.settings import Settings


class EmbeddingConfig(BaseModel):
    """Provider selection plus batching, timeout and retry policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: ProviderKind = "ollama"
    model: str = Field(default="nomic-embed-text", min_length=1)
    dimensions: int = Field(default=768, ge=1)
    base_url: str | None = None
    api_key: str = ""
    max_tokens: int = Field(default=8192, ge=1)
    batch_size: int = Field(default=10, ge=1)
    batch_delay_s: float = Field(default=0.1, ge=0.0)
    timeout_s: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    retry_base_delay_s: float = Field(default=0.5, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingConfig:
        return cls(
            provider=settings.embedding_provider,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            base_url=settings.provider_base_url,
            api_key=settings.provider_api_key,
            max_tokens=settings.embedding_max_tokens,
            batch_size=settings.embedding_batch_size,
            batch_delay_s=settings.embedding_batch_delay_s,
            timeout_s=settings.embedding_timeout_s,
            max_retries=settings.embedding_batch_max_retries,
            retry_base_delay_s=settings.embedding_retry_base_delay_s,
        )

    def requires_new_provider(self, other: EmbeddingConfig) -> bool:
        """True when ``other`` needs a different provider client."""
        return (
            self.provider != other.provider
            or self.model != other.model
            or self.dimensions != other.dimensions
            or self.base_url != other.base_url
            or self.api_key != other.api_key
            or self.timeout_s != other.timeout_s
        )
