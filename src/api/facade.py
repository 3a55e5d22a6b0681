# src/api/facade.py — v1
"""Public API facade — single entry point wiring the vector services.

Usage:
    from learnhub.api.facade import create_vector_services
    services = create_vector_services()
    matches = await services.similarity.find_similar("What is photosynthesis?")
    await services.aclose()

Every collaborator can be injected; anything not passed is built from
Settings (loaded from .env when ``settings`` is None).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from learnhub.config.settings import Settings, load_settings
from learnhub.consolidator.clustering import ClusteringEngine
from learnhub.rag.document_store.store_factory import create_document_store
from learnhub.rag.embeddings.service import EmbeddingService
from learnhub.rag.retriever.recommender import RecommendationEngine
from learnhub.rag.retriever.similarity_engine import VectorSimilarityEngine

if TYPE_CHECKING:
    from learnhub.cache.embedding_cache import EmbeddingCache
    from learnhub.rag.document_store.base_document_store import BaseDocumentStore
    from learnhub.rag.embeddings.base_provider import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class VectorServices:
    """The wired component graph. Engines share one store and one cache."""

    settings: Settings
    embeddings: EmbeddingService
    store: BaseDocumentStore
    similarity: VectorSimilarityEngine
    recommendations: RecommendationEngine
    clustering: ClusteringEngine

    async def aclose(self) -> None:
        await self.embeddings.aclose()


def create_vector_services(
    settings: Settings | None = None,
    store: BaseDocumentStore | None = None,
    provider: EmbeddingProvider | None = None,
    cache: EmbeddingCache | None = None,
) -> VectorServices:
    """Build embedding service, store and engines from configuration.

    Args:
        settings: Global settings. Loaded from .env if None.
        store: Document store. Built by create_document_store if None.
        provider: Embedding provider. Built from EMBEDDING_* if None.
        cache: Embedding cache. Sized from EMBEDDING_CACHE_* if None.

    Raises:
        ConfigurationError: Settings are inconsistent (e.g. hosted provider
            without an API key) or name an unsupported store/provider.
    """
    settings = settings or load_settings()

    embeddings = EmbeddingService.from_settings(settings, provider=provider, cache=cache)

    store = store or create_document_store(settings)
    timeout = settings.document_store_timeout_s

    logger.info(
        "Vector services ready: provider=%s model=%s store=%s",
        settings.embedding_provider, settings.embedding_model, store.provider_name,
    )
    return VectorServices(
        settings=settings,
        embeddings=embeddings,
        store=store,
        similarity=VectorSimilarityEngine(embeddings, store, store_timeout_s=timeout),
        recommendations=RecommendationEngine(
            store, seed=settings.recommendation_seed, store_timeout_s=timeout
        ),
        clustering=ClusteringEngine(
            store,
            max_iterations=settings.clustering_max_iterations,
            keyword_count=settings.clustering_keyword_count,
            seed=settings.clustering_seed,
            store_timeout_s=timeout,
        ),
    )
