"""Tests for matrix square roots and salvaging."""

import numpy as np
import pytest

from utils.linalg import (
    SalvagingAlgorithm,
    cholesky_decomposition,
    higham_nearest_correlation,
    pseudo_sqrt,
    rank_reduced_sqrt,
)

C_PSD = np.array([[1.0, 0.5, 0.2],
                  [0.5, 1.0, 0.3],
                  [0.2, 0.3, 1.0]])
# eigenvector (1, -1, 1) has eigenvalue -0.8
C_BAD = np.array([[1.0, 0.9, -0.9],
                  [0.9, 1.0, 0.9],
                  [-0.9, 0.9, 1.0]])


class TestPseudoSqrt:
    def test_cholesky_root_reproduces_matrix(self):
        S = pseudo_sqrt(C_PSD)
        np.testing.assert_allclose(S @ S.T, C_PSD, atol=1e-12)
        assert np.allclose(np.triu(S, 1), 0.0)

    def test_non_psd_rejected_without_salvaging(self):
        with pytest.raises(ValueError):
            pseudo_sqrt(C_BAD, SalvagingAlgorithm.NONE)

    def test_spectral_salvaging_keeps_unit_diagonal(self):
        S = pseudo_sqrt(C_BAD, SalvagingAlgorithm.SPECTRAL)
        repaired = S @ S.T
        np.testing.assert_allclose(np.diag(repaired), 1.0, atol=1e-12)
        assert np.linalg.eigvalsh(repaired).min() > -1e-12

    def test_principal_root_is_symmetric(self):
        S = pseudo_sqrt(C_PSD, SalvagingAlgorithm.PRINCIPAL)
        np.testing.assert_allclose(S, S.T, atol=1e-14)
        np.testing.assert_allclose(S @ S, C_PSD, atol=1e-12)

    def test_non_symmetric_rejected(self):
        bad = C_PSD.copy()
        bad[0, 1] = 0.4
        with pytest.raises(ValueError):
            pseudo_sqrt(bad)

    def test_non_square_rejected(self):
        with pytest.raises(ValueError):
            pseudo_sqrt(np.ones((2, 3)))


class TestHigham:
    def test_nearest_correlation_is_valid(self):
        repaired = higham_nearest_correlation(C_BAD)
        np.testing.assert_allclose(np.diag(repaired), 1.0)
        np.testing.assert_allclose(repaired, repaired.T)
        assert np.linalg.eigvalsh(repaired).min() > -1e-4

    def test_higham_salvaged_root(self):
        S = pseudo_sqrt(C_BAD, SalvagingAlgorithm.HIGHAM)
        assert S.shape == (3, 3)
        assert np.all(np.isfinite(S))


class TestRankReducedSqrt:
    def test_full_rank_reproduces_matrix(self):
        R = rank_reduced_sqrt(C_PSD, 3, 1.0, SalvagingAlgorithm.NONE)
        assert R.shape == (3, 3)
        np.testing.assert_allclose(R @ R.T, C_PSD, atol=1e-12)

    def test_single_factor_keeps_diagonal(self):
        R = rank_reduced_sqrt(C_PSD, 1, 1.0, SalvagingAlgorithm.SPECTRAL)
        assert R.shape == (3, 1)
        np.testing.assert_allclose(np.diag(R @ R.T), 1.0, atol=1e-12)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            rank_reduced_sqrt(C_PSD, 0, 1.0)
        with pytest.raises(ValueError):
            rank_reduced_sqrt(C_PSD, 2, 1.5)
        with pytest.raises(ValueError):
            rank_reduced_sqrt(C_PSD, 2, 0.0)


class TestCholesky:
    def test_singular_matrix(self):
        singular = np.array([[1.0, 1.0], [1.0, 1.0]])
        with pytest.raises(ValueError):
            cholesky_decomposition(singular)
        L = cholesky_decomposition(singular, flexible=True)
        np.testing.assert_allclose(L @ L.T, singular, atol=1e-14)
