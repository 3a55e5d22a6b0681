# src/core/similarity.py — v2
"""Cosine similarity and centroid utilities over embedding vectors.

Pairwise scoring of single vectors uses numpy; matrix scoring (k-NN over a
corpus, k-means assignment) goes through scikit-learn, which maps
zero-magnitude rows to zero similarity.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity of two vectors in [-1, 1].

    Returns 0.0 when either vector is missing or empty, has zero magnitude,
    or when dimensions differ. Never raises.
    """
    if not a or not b or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0 or not np.isfinite(magnitude):
        return 0.0
    score = float(np.dot(va, vb) / magnitude)
    return max(-1.0, min(1.0, score))


def similarity_score(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity clamped to [0, 1] for ranking and display."""
    return max(0.0, cosine_similarity(a, b))


def cosine_similarity_matrix(
    embeddings: np.ndarray, others: np.ndarray | None = None
) -> np.ndarray:
    """Compute the cosine similarity matrix between two sets of vectors.

    Args:
        embeddings: 2D array of shape (n_samples, n_features).
        others: Optional 2D array of shape (m_samples, n_features). Defaults
            to ``embeddings`` (pairwise matrix).

    Returns:
        Matrix of shape (n_samples, m_samples) with values in [-1, 1].

    Raises:
        ValueError: If an input is not 2D or feature counts differ.
    """
    if embeddings.ndim != 2:
        raise ValueError(f"Expected 2D array, got {embeddings.ndim}D")
    if others is not None and others.ndim != 2:
        raise ValueError(f"Expected 2D array, got {others.ndim}D")
    m = embeddings.shape[0] if others is None else others.shape[0]
    if embeddings.shape[0] == 0 or m == 0:
        return np.empty((embeddings.shape[0], m), dtype=np.float64)
    if others is not None and others.shape[1] != embeddings.shape[1]:
        raise ValueError(
            f"Feature mismatch: {embeddings.shape[1]} vs {others.shape[1]}"
        )
    result = _sk_cosine(embeddings, others)
    return np.clip(result, -1.0, 1.0)


def centroid(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Element-wise mean of equally sized vectors; [] for an empty input.

    Raises:
        ValueError: If vectors have different dimensions.
    """
    if not vectors:
        return []
    dims = {len(v) for v in vectors}
    if len(dims) != 1:
        raise ValueError(f"Cannot average vectors of dimensions {sorted(dims)}")
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()
