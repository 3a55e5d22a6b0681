# tests/unit/core/test_similarity.py — v1
"""Tests for core/similarity.py — cosine similarity and centroids."""

from __future__ import annotations

import math

import numpy as np
import pytest

from learnhub.core.similarity import (
    centroid,
    cosine_similarity,
    cosine_similarity_matrix,
    similarity_score,
)


class TestCosineSimilarity:
    def test_self_similarity_is_one(self):
        v = [0.3, -1.2, 4.0, 0.0]
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_symmetric(self):
        a = [1.0, 2.0, 3.0]
        b = [-2.0, 0.5, 1.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_matches_definition(self):
        a = [1.0, 2.0, 2.0]
        b = [2.0, 0.0, 1.0]
        expected = 4.0 / (3.0 * math.sqrt(5.0))
        assert cosine_similarity(a, b) == pytest.approx(expected)

    def test_dimension_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_zero_vector_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_missing_or_empty_is_zero(self):
        assert cosine_similarity(None, [1.0]) == 0.0
        assert cosine_similarity([], []) == 0.0


class TestSimilarityScore:
    def test_clamps_negative_to_zero(self):
        assert similarity_score([1.0, 0.0], [-1.0, 0.0]) == 0.0

    def test_positive_unchanged(self):
        assert similarity_score([1.0, 1.0], [1.0, 1.0]) == pytest.approx(1.0)


class TestCosineSimilarityMatrix:
    def test_pairwise(self):
        vecs = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
        result = cosine_similarity_matrix(vecs)
        assert result.shape == (3, 3)
        assert result[0, 1] == pytest.approx(0.0)
        assert result[0, 2] == pytest.approx(1 / math.sqrt(2))

    def test_against_others(self):
        vecs = np.array([[1.0, 0.0], [0.0, 1.0]])
        others = np.array([[1.0, 0.0]])
        result = cosine_similarity_matrix(vecs, others)
        assert result.shape == (2, 1)
        assert result[0, 0] == pytest.approx(1.0)

    def test_zero_row_scores_zero(self):
        vecs = np.array([[0.0, 0.0], [1.0, 0.0]])
        result = cosine_similarity_matrix(vecs)
        assert result[0, 1] == pytest.approx(0.0)

    def test_empty_array(self):
        result = cosine_similarity_matrix(np.empty((0, 3)))
        assert result.shape == (0, 0)

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError, match="Expected 2D"):
            cosine_similarity_matrix(np.array([1.0, 2.0, 3.0]))

    def test_feature_mismatch(self):
        with pytest.raises(ValueError, match="Feature mismatch"):
            cosine_similarity_matrix(np.ones((2, 3)), np.ones((1, 2)))


class TestCentroid:
    def test_mean(self):
        assert centroid([[1.0, 2.0], [3.0, 4.0]]) == pytest.approx([2.0, 3.0])

    def test_empty(self):
        assert centroid([]) == []

    def test_mixed_dimensions(self):
        with pytest.raises(ValueError, match="dimensions"):
            centroid([[1.0], [1.0, 2.0]])
