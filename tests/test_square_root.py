"""Tests for the square-root processes."""

import numpy as np
import pytest

from processes import CIRDiscretization, CoxIngersollRossProcess, SquareRootProcess
from processes.square_root import quadratic_exponential_step

SPEED, VOL, X0, LEVEL = 0.5, 0.1, 0.04, 0.05
SEED = 7


def cir_variance(x0, k, sigma, theta, dt):
    e1, e2 = np.exp(-k * dt), np.exp(-2.0 * k * dt)
    return x0 * sigma ** 2 / k * (e1 - e2) + theta * sigma ** 2 / (2.0 * k) * (1.0 - e1) ** 2


class TestCIRMoments:
    def test_closed_form(self):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL)
        assert cir.expectation(0.0, X0, 1.0) == pytest.approx(LEVEL + (X0 - LEVEL) * np.exp(-SPEED))
        assert abs(cir.variance(0.0, X0, 1.0) - cir_variance(X0, SPEED, VOL, LEVEL, 1.0)) < 1e-15

    def test_variance_uses_start_value(self):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL)
        assert cir.variance(0.0, 0.2, 1.0) == pytest.approx(cir_variance(0.2, SPEED, VOL, LEVEL, 1.0))

    def test_diffusion_is_square_root(self):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL)
        assert cir.diffusion(0.0, 0.09) == pytest.approx(VOL * 0.3)
        assert cir.diffusion(0.0, -0.01) == 0.0


class TestCIRSchemes:
    @pytest.mark.parametrize("scheme", [CIRDiscretization.FULL_TRUNCATION,
                                        CIRDiscretization.REFLECTION])
    def test_non_negative(self, scheme):
        # Feller condition strongly violated
        cir = CoxIngersollRossProcess(1.0, 1.0, 0.04, 0.04, discretization=scheme)
        rng = np.random.default_rng(SEED)
        x = np.full(10_000, 0.04)
        for step in range(50):
            x = cir.evolve(step * 0.02, x, 0.02, rng.standard_normal(x.shape))
            assert np.all(x >= 0.0)

    @pytest.mark.parametrize("scheme", [CIRDiscretization.QUADRATIC_EXPONENTIAL,
                                        CIRDiscretization.EXACT])
    def test_one_step_mean(self, scheme):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL, discretization=scheme)
        rng = np.random.default_rng(SEED)
        n = 4000 if scheme == CIRDiscretization.EXACT else 20_000
        samples = np.array([cir.evolve(0.0, X0, 1.0, z) for z in rng.standard_normal(n)])
        assert np.all(samples >= 0.0)
        stderr = samples.std() / np.sqrt(n)
        assert abs(samples.mean() - cir.expectation(0.0, X0, 1.0)) < 4 * stderr
        assert abs(samples.var() / cir.variance(0.0, X0, 1.0) - 1.0) < 0.1

    @pytest.mark.parametrize("scheme", list(CIRDiscretization))
    def test_zero_step_returns_start(self, scheme):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL, discretization=scheme)
        for z in (-2.0, 0.0, 1.5):
            x1 = cir.evolve(0.0, X0, 0.0, z)
            assert np.isfinite(x1)
            assert x1 == pytest.approx(X0, rel=1e-12)

    def test_degenerate_quadratic_exponential_draw(self):
        value, psi, branch = quadratic_exponential_step(0.04, 0.0, 1.7)
        assert value == 0.04 and psi == 0.0 and branch is None

    @pytest.mark.parametrize("scheme", [CIRDiscretization.QUADRATIC_EXPONENTIAL,
                                        CIRDiscretization.EXACT])
    def test_path_array_matches_single_draws(self, scheme):
        cir = CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL, discretization=scheme)
        x = np.array([0.001, 0.01, 0.04, 0.2])
        z = np.random.default_rng(SEED).standard_normal(x.shape)
        x1 = cir.evolve(0.0, x, 0.5, z)
        assert x1.shape == x.shape
        expected = [cir.evolve(0.0, xi, 0.5, zi) for xi, zi in zip(x, z)]
        np.testing.assert_allclose(x1, expected)
        np.testing.assert_allclose(cir.evolve(0.0, x, 0.0, z), x)

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            CoxIngersollRossProcess(SPEED, -0.1, X0, LEVEL)
        with pytest.raises(ValueError):
            CoxIngersollRossProcess(0.0, VOL, X0, LEVEL, CIRDiscretization.QUADRATIC_EXPONENTIAL)
        with pytest.raises(ValueError):
            CoxIngersollRossProcess(SPEED, VOL, X0, LEVEL, "exact")


class TestSquareRootProcess:
    def test_euler_moments(self):
        process = SquareRootProcess(LEVEL, SPEED, VOL, X0)
        assert process.expectation(0.0, X0, 0.1) == pytest.approx(X0 + SPEED * (LEVEL - X0) * 0.1)
        assert process.variance(0.0, X0, 0.1) == pytest.approx(VOL ** 2 * X0 * 0.1)
