# src/rag/embeddings/provider_factory.py — v2
"""Factory: instantiate the configured embedding provider."""

from __future__ import annotations

import logging
from typing import Union

from learnhub.core.errors import ConfigurationError
from learnhub.rag.embeddings.config import EmbeddingConfig
from learnhub.rag.embeddings.huggingface_provider import HuggingFaceProvider
from learnhub.rag.embeddings.ollama_provider import OllamaProvider
from learnhub.rag.embeddings.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

AnyProvider = Union[OllamaProvider, OpenAIProvider, HuggingFaceProvider]

_PROVIDERS: dict[str, type[AnyProvider]] = {
    "ollama": OllamaProvider,
    "openai": OpenAIProvider,
    "huggingface": HuggingFaceProvider,
}


class UnsupportedEmbeddingProviderError(ConfigurationError):
    """Raised when the configured provider is not one of the known backends."""


def create_provider(config: EmbeddingConfig) -> AnyProvider:
    """Instantiate the provider selected by ``config``.

    Raises:
        UnsupportedEmbeddingProviderError: Unknown provider name.
        ConfigurationError: A hosted provider is selected without an API key.
    """
    cls = _PROVIDERS.get(config.provider)
    if cls is None:
        raise UnsupportedEmbeddingProviderError(
            f"Unsupported embedding provider: {config.provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDERS))}"
        )

    kwargs: dict = {
        "model": config.model,
        "base_url": config.base_url,
        "dimensions": config.dimensions,
        "timeout_s": config.timeout_s,
    }
    if config.provider in ("openai", "huggingface"):
        kwargs["api_key"] = config.api_key

    logger.debug("Creating embedding provider: %s:%s", config.provider, config.model)
    return cls(**kwargs)


def available_providers() -> list[str]:
    return sorted(_PROVIDERS)
