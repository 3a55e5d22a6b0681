# src/consolidator/clustering.py — v1
"""Question clustering — k-means over document embeddings.

Lloyd's algorithm with cosine affinity: each point joins the centroid it
is most similar to, centroids move to the mean of their members, and the
loop stops when no assignment changes or after ``max_iterations``.
Initial centroids are distinct documents drawn with a seedable numpy
generator. Clusters that end up empty are dropped, not re-seeded.

Only embedded documents participate. When embeddings of several
dimensions coexist (e.g. mid-reindex), the most common dimension wins and
the rest are skipped.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import numpy as np

from learnhub.core.models import Cluster, ClusteringResult, Document
from learnhub.core.similarity import cosine_similarity_matrix
from learnhub.core.text import split_words
from learnhub.logging.context import operation_context
from learnhub.rag.document_store.base_document_store import guarded_store_call

if TYPE_CHECKING:
    from learnhub.rag.document_store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_K = 5
DEFAULT_MAX_ITERATIONS = 10
DEFAULT_KEYWORD_COUNT = 5
DEFAULT_STORE_TIMEOUT_S = 10.0
PAGE_SIZE = 500
MIN_KEYWORD_LENGTH = 4


class ClusteringEngine:
    """Group stored questions into at most k clusters."""

    def __init__(
        self,
        store: BaseDocumentStore,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        keyword_count: int = DEFAULT_KEYWORD_COUNT,
        seed: int | None = None,
        store_timeout_s: float = DEFAULT_STORE_TIMEOUT_S,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        self._store = store
        self._max_iterations = max_iterations
        self._keyword_count = keyword_count
        self._seed = seed
        self._store_timeout_s = store_timeout_s

    async def cluster(
        self,
        document_ids: Iterable[str] | None = None,
        k: int = DEFAULT_K,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> ClusteringResult:
        """Cluster the given documents, or the whole corpus when ids are None.

        Args:
            document_ids: Documents to cluster; unknown ids are skipped.
            k: Requested cluster count; at most ``min(k, n)`` are formed.
            seed: Overrides the engine seed for this call.
            rng: Explicit generator; takes precedence over any seed.

        Returns:
            ClusteringResult with between 1 and k disjoint, non-empty
            clusters, or no clusters when nothing is embedded.

        Raises:
            ValueError: If k < 1.
            StoreUnavailable: Loading documents failed or timed out.
        """
        if k < 1:
            raise ValueError("k must be >= 1")
        start = time.monotonic()

        with operation_context("cluster"):
            documents = await self._load(document_ids)
            embedded = _embedded_documents(documents)
            if not embedded:
                logger.info(
                    "No embedded documents among %d loaded — skipping clustering",
                    len(documents),
                )
                return ClusteringResult(processing_time_ms=_elapsed_ms(start))

            logger.info("Clustering %d documents into %d clusters", len(embedded), k)
            generator = rng if rng is not None else np.random.default_rng(
                seed if seed is not None else self._seed
            )
            vectors = np.asarray([d.embedding for d in embedded], dtype=np.float64)
            assignments, centroids, iterations, converged = kmeans(
                vectors, k, generator, self._max_iterations
            )

            clusters: list[Cluster] = []
            for index in range(centroids.shape[0]):
                members = [d for d, a in zip(embedded, assignments) if a == index]
                if not members:
                    continue
                clusters.append(
                    Cluster(
                        id=f"cluster_{index}",
                        centroid=centroids[index].tolist(),
                        members=members,
                        keywords=cluster_keywords(members, self._keyword_count),
                        average_difficulty=sum(m.difficulty_level for m in members)
                        / len(members),
                    )
                )

            elapsed = _elapsed_ms(start)
            logger.info(
                "Clustering completed: %d clusters, %d documents, %d iterations, %dms",
                len(clusters), len(embedded), iterations, elapsed,
            )
            return ClusteringResult(
                clusters=clusters,
                total_documents=len(embedded),
                iterations=iterations,
                converged=converged,
                processing_time_ms=elapsed,
            )

    async def _load(self, document_ids: Iterable[str] | None) -> list[Document]:
        if document_ids is not None:
            return await guarded_store_call(
                self._store.get_by_ids(list(document_ids)),
                self._store_timeout_s,
                "get_by_ids",
            )

        documents: list[Document] = []
        offset = 0
        while True:
            page = await guarded_store_call(
                self._store.get_all(offset=offset, size=PAGE_SIZE),
                self._store_timeout_s,
                "get_all",
            )
            documents.extend(page.documents)
            offset += len(page.documents)
            if not page.documents or offset >= page.total:
                return documents


def kmeans(
    vectors: np.ndarray,
    k: int,
    rng: np.random.Generator,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> tuple[np.ndarray, np.ndarray, int, bool]:
    """Lloyd's k-means with cosine affinity.

    Args:
        vectors: (n, d) array, n >= 1.
        k: Requested cluster count, clamped to n.
        rng: Generator used to pick distinct initial centroids.
        max_iterations: Upper bound on assignment passes.

    Returns:
        (assignments, centroids, iterations, converged). Ties go to the
        lowest centroid index. Centroids of clusters that lost all their
        members keep their previous position.
    """
    n = vectors.shape[0]
    k_eff = min(k, n)
    initial = rng.choice(n, size=k_eff, replace=False)
    centroids = vectors[initial].copy()
    assignments = np.full(n, -1, dtype=np.int64)

    iterations = 0
    converged = False
    for _ in range(max_iterations):
        iterations += 1
        affinity = cosine_similarity_matrix(vectors, centroids)
        updated = np.argmax(affinity, axis=1)
        if np.array_equal(updated, assignments):
            converged = True
            break
        assignments = updated
        for j in range(k_eff):
            members = vectors[assignments == j]
            if len(members):
                centroids[j] = members.mean(axis=0)

    return assignments, centroids, iterations, converged


def cluster_keywords(members: Sequence[Document], count: int = DEFAULT_KEYWORD_COUNT) -> list[str]:
    """Most frequent significant words across member text, keywords and topic."""
    counts: Counter[str] = Counter()
    for doc in members:
        words = [*split_words(doc.text), *doc.keywords, doc.topic]
        counts.update(
            w.lower() for w in words if len(w) >= MIN_KEYWORD_LENGTH
        )
    return [word for word, _ in counts.most_common(count)]


def _embedded_documents(documents: Sequence[Document]) -> list[Document]:
    embedded = [d for d in documents if d.has_embedding]
    if not embedded:
        return []
    dims = Counter(len(d.embedding or ()) for d in embedded)
    dominant, _ = dims.most_common(1)[0]
    if len(dims) > 1:
        logger.warning(
            "Mixed embedding dimensions %s; clustering only %d-dim documents",
            sorted(dims), dominant,
        )
    return [d for d in embedded if len(d.embedding or ()) == dominant]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
