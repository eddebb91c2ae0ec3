"""Tests for the distribution helpers and root finders."""

import numpy as np
import pytest
from scipy.stats import ncx2, poisson

from utils.distributions import (
    NonCentralChiSquare,
    cumulative_normal,
    inverse_cumulative_normal,
    inverse_cumulative_poisson,
)
from utils.solvers import bounded_brent, bracket_root, brent_in_bracket

DF, NCP = 3.0, 2.0


class TestNonCentralChiSquare:
    def test_moments(self):
        dist = NonCentralChiSquare(DF, NCP)
        assert dist.mean() == pytest.approx(5.0)
        assert dist.variance() == pytest.approx(14.0)

    def test_cdf_matches_scipy(self):
        dist = NonCentralChiSquare(DF, NCP)
        for x in (0.5, 2.0, 7.5):
            assert abs(dist.cdf(x) - ncx2.cdf(x, DF, NCP)) < 1e-10
        assert dist.cdf(-1.0) == 0.0

    def test_inverse_cdf(self):
        dist = NonCentralChiSquare(DF, NCP)
        for x in (0.3, 4.2, 15.0):
            assert abs(dist.inverse_cdf(dist.cdf(x)) - x) < 1e-6
        assert dist.inverse_cdf(0.0) == 0.0

    def test_invalid_probability(self):
        dist = NonCentralChiSquare(DF, NCP)
        with pytest.raises(ValueError):
            dist.inverse_cdf(1.0)
        with pytest.raises(ValueError):
            dist.inverse_cdf(-0.1)

    def test_budget_exhausted(self):
        dist = NonCentralChiSquare(DF, NCP, max_evaluations=1)
        with pytest.raises(RuntimeError):
            dist.inverse_cdf(1.0 - 1e-12)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            NonCentralChiSquare(0.0, 1.0)
        with pytest.raises(ValueError):
            NonCentralChiSquare(1.0, -1.0)


class TestPoisson:
    def test_matches_scipy(self):
        for u in (0.05, 0.5, 0.97):
            assert inverse_cumulative_poisson(u, 3.0) == int(poisson.ppf(u, 3.0))

    def test_zero_mean(self):
        assert inverse_cumulative_poisson(0.999, 0.0) == 0

    def test_negative_mean(self):
        with pytest.raises(ValueError):
            inverse_cumulative_poisson(0.5, -1.0)


class TestNormal:
    def test_round_trip_values(self):
        assert cumulative_normal(0.0) == pytest.approx(0.5)
        assert inverse_cumulative_normal(0.975) == pytest.approx(1.959964, abs=1e-6)


class TestSolvers:
    def test_bounded_brent(self):
        root = bounded_brent(lambda x: x * x - 2.0, 1e-12, 1.0, 0.1, lower_bound=0.0)
        assert abs(root - np.sqrt(2.0)) < 1e-10

    def test_bracket_without_root(self):
        with pytest.raises(RuntimeError):
            bracket_root(lambda x: x * x + 1.0, 0.0, 0.1, max_evaluations=20)

    def test_bracket_found(self):
        a, b, used = bracket_root(lambda x: x - 10.0, 0.0, 1.0)
        assert a <= 10.0 <= b
        assert used <= 100

    def test_brent_needs_budget(self):
        with pytest.raises(RuntimeError):
            brent_in_bracket(lambda x: x, 1e-8, -1.0, 1.0, max_evaluations=0)
