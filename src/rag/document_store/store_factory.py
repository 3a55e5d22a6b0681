# src/rag/document_store/store_factory.py — v1
"""Factory: instantiate the document store from configuration."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from learnhub.config.settings import Settings
from learnhub.core.errors import ConfigurationError
from learnhub.rag.document_store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

_DEFAULT_CHROMA_PORT = 8000


class UnsupportedDocumentStoreError(ConfigurationError):
    """Raised when a document store type is not supported."""


def create_document_store(settings: Settings) -> BaseDocumentStore:
    """Instantiate the configured document store.

    Args:
        settings: Application settings (DOCUMENT_STORE_TYPE and friends).

    Raises:
        UnsupportedDocumentStoreError: If the type is not supported.
    """
    store_type = settings.document_store_type

    if store_type == "memory":
        from learnhub.rag.document_store.memory_store import InMemoryDocumentStore
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()

    if store_type == "chromadb":
        from learnhub.rag.document_store.chromadb_store import ChromaDocumentStore
        url = settings.document_store_url
        if url:
            # Remote ChromaDB: accept "host:port" or a full URL
            parts = urlsplit(url if "://" in url else f"http://{url}")
            logger.info("Using remote ChromaDB at %s", parts.netloc)
            return ChromaDocumentStore(
                collection=settings.document_store_collection,
                host=parts.hostname,
                port=parts.port or _DEFAULT_CHROMA_PORT,
                dimensions=settings.embedding_dimensions,
            )
        path = settings.document_store_path.expanduser()
        logger.info("Using persistent ChromaDB at %s", path)
        return ChromaDocumentStore(
            collection=settings.document_store_collection,
            persist_path=path,
            dimensions=settings.embedding_dimensions,
        )

    raise UnsupportedDocumentStoreError(
        f"Unsupported document store type: {store_type!r}. "
        f"Available: memory, chromadb"
    )
