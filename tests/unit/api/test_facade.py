# tests/unit/api/test_facade.py — v1
"""Tests for api/facade.py — component wiring."""

from __future__ import annotations

import pytest

from conftest import FakeProvider
from learnhub.api.facade import VectorServices, create_vector_services
from learnhub.cache.embedding_cache import EmbeddingCache
from learnhub.config.settings import Settings
from learnhub.core.models import RecommendationConfig, SearchConfig
from learnhub.rag.document_store.memory_store import InMemoryDocumentStore


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, embedding_model="fake-embed", embedding_dimensions=256)


class TestCreateVectorServices:
    def test_defaults_to_memory_store(self, settings):
        services = create_vector_services(settings, provider=FakeProvider())
        assert isinstance(services, VectorServices)
        assert isinstance(services.store, InMemoryDocumentStore)
        assert services.embeddings.model == "fake-embed"

    def test_injected_collaborators(self, settings, memory_store):
        cache = EmbeddingCache(ttl_s=5)
        provider = FakeProvider()
        services = create_vector_services(
            settings, store=memory_store, provider=provider, cache=cache
        )
        assert services.store is memory_store
        assert services.embeddings.cache is cache
        assert services.embeddings.provider is provider

    @pytest.mark.asyncio
    async def test_end_to_end(self, settings, memory_store):
        provider = FakeProvider()
        services = create_vector_services(settings, store=memory_store, provider=provider)

        matches = await services.similarity.find_similar(
            "How many sides does a hexagon have?", SearchConfig(k=2)
        )
        assert matches[0].document.id == "q8"

        recs = await services.recommendations.recommend([], RecommendationConfig(max_results=3))
        assert len(recs) == 3

        clusters = await services.clustering.cluster(k=3)
        assert 1 <= len(clusters.clusters) <= 3

        await services.aclose()
        assert provider.closed

    def test_builds_real_provider_from_settings(self, settings):
        services = create_vector_services(settings)
        assert services.embeddings.provider.provider_name == "ollama"
