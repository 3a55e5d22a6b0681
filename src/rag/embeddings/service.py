# src/rag/embeddings/service.py — v1
"""Embedding generation with a content-addressed cache.

EmbeddingService owns one provider and one EmbeddingCache:

    text -> normalize -> cache key -> cache hit?  -> vector
                                   -> provider     -> validate -> cache -> vector

Single calls surface provider failures to the caller. Batch calls process
fixed-size chunks sequentially, retry transient failures per item and
record per-item errors without aborting the batch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from learnhub.cache.embedding_cache import EmbeddingCache
from learnhub.cache.fingerprint import compute_cache_key, short_key
from learnhub.cache.models import CacheStats
from learnhub.core.errors import (
    ConfigurationError,
    MalformedResponse,
    ProviderUnavailable,
)
from learnhub.core.models import (
    BatchEmbeddingResult,
    BatchItemError,
    Document,
    EmbeddingResult,
)
from learnhub.core.text import compose_document_text, normalize_text
from learnhub.logging.context import operation_context
from learnhub.rag.embeddings.base_provider import (
    EmbeddingProvider,
    ProviderResult,
    estimate_tokens,
)
from learnhub.rag.embeddings.config import EmbeddingConfig
from learnhub.rag.embeddings.provider_factory import create_provider
from learnhub.rag.embeddings.retry import RetryExhausted, RetryPolicy, with_retry

if TYPE_CHECKING:
    from learnhub.config.settings import Settings

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[EmbeddingConfig], EmbeddingProvider]

_PREVIEW_CHARS = 100
_CONNECTION_PROBE = "connection test"


class EmbeddingService:
    """Single and batch embedding generation over a cached provider."""

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        cache: EmbeddingCache | None = None,
        provider: EmbeddingProvider | None = None,
        provider_factory: ProviderFactory = create_provider,
    ) -> None:
        self._config = config or EmbeddingConfig()
        self._cache = cache if cache is not None else EmbeddingCache()
        self._provider_factory = provider_factory
        self._provider = provider or provider_factory(self._config)
        # Bumped by update_config; requests started under an older
        # generation never write to the cache.
        self._generation = 0
        # Replaced providers may still serve in-flight calls; closed in aclose().
        self._retired: list[EmbeddingProvider] = []
        logger.info(
            "Embedding service initialized with %s:%s",
            self._config.provider, self._config.model,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: EmbeddingProvider | None = None,
        cache: EmbeddingCache | None = None,
        provider_factory: ProviderFactory = create_provider,
    ) -> EmbeddingService:
        if cache is None:
            cache = EmbeddingCache(
                ttl_s=settings.embedding_cache_ttl_s,
                high_water_mark=settings.embedding_cache_high_water_mark,
            )
        return cls(
            config=EmbeddingConfig.from_settings(settings),
            cache=cache,
            provider=provider,
            provider_factory=provider_factory,
        )

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def provider(self) -> EmbeddingProvider:
        return self._provider

    @property
    def cache(self) -> EmbeddingCache:
        return self._cache

    # --- Single embeddings ---

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``, serving repeated requests from the cache.

        Raises:
            ProviderUnavailable: Provider unreachable, timed out or returned
                a non-success status.
            MalformedResponse: Provider answered without a usable vector.
        """
        result = await self.embed_with_details(text)
        return result.embedding

    async def embed_with_details(self, text: str) -> EmbeddingResult:
        """Like ``embed`` but also reports tokens, cache key and hit status."""
        config = self._config
        provider = self._provider
        generation = self._generation

        normalized = normalize_text(text)
        key = compute_cache_key(normalized, config.model)

        cached = self._cache.get(key, config.model)
        if cached is not None:
            logger.debug("Using cached embedding for text hash %s", short_key(key))
            return EmbeddingResult(
                embedding=cached,
                tokens=estimate_tokens(normalized),
                model=config.model,
                cache_key=key,
                cached=True,
            )

        result = await self._call_provider(
            provider, self._fit_to_budget(normalized, config), config
        )

        if generation == self._generation:
            self._cache.put(key, result.embedding, config.model)
        else:
            logger.info(
                "Configuration changed mid-request; embedding %s not cached",
                short_key(key),
            )

        return EmbeddingResult(
            embedding=result.embedding,
            tokens=result.tokens,
            model=config.model,
            cache_key=key,
        )

    async def embed_document(
        self,
        question: str,
        answer: str,
        explanation: str | None = None,
        keywords: Sequence[str] | None = None,
    ) -> list[float]:
        """Embed a question document using the canonical text composition."""
        return await self.embed(
            compose_document_text(question, answer, explanation, keywords)
        )

    # --- Batches ---

    async def embed_batch(self, texts: Sequence[str]) -> BatchEmbeddingResult:
        """Embed ``texts`` chunk by chunk; failures are isolated per item.

        Result slots are positional. Chunks run sequentially with a short
        pause between them to stay under provider rate limits.
        """
        config = self._config
        policy = RetryPolicy(
            max_retries=config.max_retries, base_delay_s=config.retry_base_delay_s
        )
        batch_size = config.batch_size
        total_batches = -(-len(texts) // batch_size)

        start = time.monotonic()
        results: list[list[float] | None] = [None] * len(texts)
        errors: list[BatchItemError] = []
        total_tokens = 0

        with operation_context("embed_batch", model=config.model):
            logger.info(
                "Generating embeddings for %d texts in batches of %d",
                len(texts), batch_size,
            )
            for batch_number, offset in enumerate(range(0, len(texts), batch_size), 1):
                logger.debug("Processing batch %d/%d", batch_number, total_batches)
                for index in range(offset, min(offset + batch_size, len(texts))):
                    text = texts[index]
                    result, reason = await self._embed_item(text, index, policy)
                    if result is not None:
                        results[index] = result.embedding
                        total_tokens += result.tokens
                        continue
                    logger.warning("Embedding failed for item %d: %s", index, reason)
                    errors.append(
                        BatchItemError(
                            index=index, text=_preview(text), reason=reason or "unknown"
                        )
                    )

                if offset + batch_size < len(texts) and config.batch_delay_s > 0:
                    await asyncio.sleep(config.batch_delay_s)

            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "Batch embedding completed: %d successful, %d failed, %dms",
                len(texts) - len(errors), len(errors), elapsed_ms,
                extra={"data": {"total_tokens": total_tokens}},
            )

        return BatchEmbeddingResult(
            results=results,
            errors=errors,
            total_tokens=total_tokens,
            processing_time_ms=elapsed_ms,
        )

    async def embed_documents(self, documents: Sequence[Document]) -> BatchEmbeddingResult:
        """Batch-embed documents for reindexing (canonical text per document)."""
        return await self.embed_batch([d.embedding_text() for d in documents])

    async def _embed_item(
        self, text: str, index: int, policy: RetryPolicy
    ) -> tuple[EmbeddingResult | None, str | None]:
        try:
            result = await with_retry(
                self.embed_with_details,
                text,
                policy=policy,
                label=f"embedding item {index}",
            )
        except RetryExhausted as e:
            return None, str(e.last_error)
        except MalformedResponse as e:
            return None, str(e)
        return result, None

    # --- Configuration & cache management ---

    def update_config(self, **changes: Any) -> EmbeddingConfig:
        """Apply configuration changes and invalidate the whole cache.

        The new provider (when one is needed) is built before any state
        changes, so a ConfigurationError leaves the service untouched.
        """
        try:
            new_config = EmbeddingConfig.model_validate(
                {**self._config.model_dump(), **changes}
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid embedding configuration: {e}") from e
        provider = self._provider
        if self._config.requires_new_provider(new_config):
            provider = self._provider_factory(new_config)

        old_model = self._config.model
        if provider is not self._provider:
            self._retired.append(self._provider)
        self._config = new_config
        self._provider = provider
        self._generation += 1
        removed = self._cache.clear()

        if old_model != new_config.model:
            logger.info(
                "Model changed from %s to %s, cache cleared (%d entries)",
                old_model, new_config.model, removed,
            )
        else:
            logger.info("Embedding configuration updated, cache cleared (%d entries)", removed)
        return new_config

    def clear_cache(self) -> int:
        removed = self._cache.clear()
        logger.info("Embedding cache cleared (%d entries)", removed)
        return removed

    def cache_stats(self) -> CacheStats:
        return self._cache.stats(model=self._config.model)

    async def test_connection(self) -> bool:
        """Probe the provider with an uncached request."""
        try:
            await self._call_provider(self._provider, _CONNECTION_PROBE, self._config)
        except (ProviderUnavailable, MalformedResponse) as e:
            logger.warning("Embedding provider connection test failed: %s", e)
            return False
        return True

    async def aclose(self) -> None:
        retired, self._retired = self._retired, []
        for provider in (*retired, self._provider):
            await provider.aclose()

    # --- Internals ---

    async def _call_provider(
        self, provider: EmbeddingProvider, text: str, config: EmbeddingConfig
    ) -> ProviderResult:
        try:
            return await asyncio.wait_for(provider.generate(text), timeout=config.timeout_s)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(
                provider.provider_name, f"no response within {config.timeout_s}s"
            ) from e

    @staticmethod
    def _fit_to_budget(text: str, config: EmbeddingConfig) -> str:
        if estimate_tokens(text) <= config.max_tokens:
            return text
        logger.warning(
            "Text of ~%d tokens exceeds max_tokens=%d; truncating",
            estimate_tokens(text), config.max_tokens,
        )
        return text[: config.max_tokens * 4]


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[:_PREVIEW_CHARS] + "..."
