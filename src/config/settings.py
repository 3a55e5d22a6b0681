# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from learnhub.core.errors import ConfigurationError

__all__ = ["ConfigurationError", "Settings", "load_settings"]

ProviderKind = Literal["ollama", "openai", "huggingface"]


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === EMBEDDINGS ===
    embedding_provider: ProviderKind = "ollama"
    embedding_model: str = "nomic-embed-text"
    embedding_dimensions: int = 768
    embedding_max_tokens: int = 8192
    embedding_timeout_s: float = 30.0

    # Batch processing
    embedding_batch_size: int = 10
    embedding_batch_delay_s: float = 0.1
    embedding_batch_max_retries: int = 2
    embedding_retry_base_delay_s: float = 0.5

    # Cache
    embedding_cache_ttl_s: float = 24 * 60 * 60
    embedding_cache_high_water_mark: int = 10_000

    # Provider endpoints and credentials
    ollama_base_url: str = "http://localhost:11434"
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    huggingface_api_key: str = ""
    huggingface_base_url: str = "https://api-inference.huggingface.co"

    # === Document store ===
    document_store_type: Literal["memory", "chromadb"] = "memory"
    document_store_path: Path = Path("~/.learnhub/vectordb")
    document_store_url: str = ""
    document_store_collection: str = "questions"
    document_store_timeout_s: float = 10.0

    # === Clustering / recommendation ===
    clustering_max_iterations: int = 10
    clustering_keyword_count: int = 5
    clustering_seed: int | None = None
    recommendation_seed: int | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "embedding_batch_size",
        "embedding_cache_high_water_mark",
        "embedding_dimensions",
        "clustering_max_iterations",
        "clustering_keyword_count",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator(
        "embedding_cache_ttl_s", "embedding_timeout_s", "document_store_timeout_s"
    )
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator(
        "embedding_batch_delay_s",
        "embedding_retry_base_delay_s",
        "embedding_batch_max_retries",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_provider_credentials(self) -> Settings:
        """The selected provider must have a model and, if hosted, a key."""
        errors: list[str] = []

        if not self.embedding_model.strip():
            errors.append("EMBEDDING_MODEL must not be empty")

        if self.embedding_provider == "openai" and not self.openai_api_key:
            errors.append("OPENAI_API_KEY is required when EMBEDDING_PROVIDER=openai")

        if self.embedding_provider == "huggingface" and not self.huggingface_api_key:
            errors.append(
                "HUGGINGFACE_API_KEY is required when EMBEDDING_PROVIDER=huggingface"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def provider_api_key(self) -> str:
        """API key of the selected provider ("" for local providers)."""
        if self.embedding_provider == "openai":
            return self.openai_api_key
        if self.embedding_provider == "huggingface":
            return self.huggingface_api_key
        return ""

    @property
    def provider_base_url(self) -> str:
        """Base URL of the selected provider."""
        if self.embedding_provider == "openai":
            return self.openai_base_url
        if self.embedding_provider == "huggingface":
            return self.huggingface_base_url
        return self.ollama_base_url


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the selected provider is not usable.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
