"""Tests for the composite processes: correlated arrays, joint processes and the Heston/Hull-White hybrid."""

from datetime import date

import numpy as np
import pytest

from market import FlatForward
from processes import (
    G2Process,
    HestonDiscretization,
    HestonProcess,
    HullWhiteForwardProcess,
    HybridDiscretization,
    HybridHestonHullWhiteProcess,
    JointStochasticProcess,
    OrnsteinUhlenbeckProcess,
    StochasticProcessArray,
)

REF_DATE = date(2024, 1, 2)
SEED = 99

# eigenvector (1, -1, 1) has eigenvalue -0.8
C_BAD = np.array([[1.0, 0.9, -0.9],
                  [0.9, 1.0, 0.9],
                  [-0.9, 0.9, 1.0]])


def ou(speed=0.5, vol=0.2):
    return OrnsteinUhlenbeckProcess(speed, vol, 0.0, 0.0)


class CorrelatedJoint(JointStochasticProcess):
    """Joint process with a constant cross correlation between all constituents."""

    def __init__(self, processes, rho, factors=None):
        super().__init__(processes, factors=factors, name="CorrelatedJoint")
        self.rho = rho
        self.pre_calls = 0

    def pre_evolve(self, t0, x0, dt, dw):
        self.pre_calls += 1

    def post_evolve(self, t0, x0, dt, dw, y0):
        return y0

    def numeraire(self, t, x):
        return 1.0

    def correlation_is_state_dependent(self):
        return False

    def cross_model_correlation(self, t0, x0):
        n = self.size()
        cross = np.zeros((n, n))
        if n == 2:
            cross[0, 1] = cross[1, 0] = self.rho
        return cross


class StateCorrelatedJoint(CorrelatedJoint):
    """Cross correlation 0.8 tanh(x_1), read from the state at each step."""

    def __init__(self, processes):
        super().__init__(processes, 0.0)

    def correlation_is_state_dependent(self):
        return True

    def cross_model_correlation(self, t0, x0):
        rho = 0.8 * np.tanh(x0[0])
        return np.array([[0.0, rho], [rho, 0.0]])


class TestProcessArray:
    def test_correlated_increments(self):
        array = StochasticProcessArray([ou(), ou(1.0, 0.3)], [[1.0, 0.6], [0.6, 1.0]])
        rng = np.random.default_rng(SEED)
        x0 = array.initial_values()
        samples = np.array([array.evolve(0.0, x0, 1.0, dw)
                            for dw in rng.standard_normal((20_000, 2))])
        assert np.corrcoef(samples.T)[0, 1] == pytest.approx(0.6, abs=0.03)

    def test_covariance_and_correlation(self):
        array = StochasticProcessArray([ou(), ou(1.0, 0.3)], [[1.0, 0.6], [0.6, 1.0]])
        np.testing.assert_allclose(array.correlation(), [[1.0, 0.6], [0.6, 1.0]], atol=1e-12)
        cov = array.covariance(0.0, [0.0, 0.0], 1.0)
        v1 = ou().variance(0.0, 0.0, 1.0)
        v2 = ou(1.0, 0.3).variance(0.0, 0.0, 1.0)
        np.testing.assert_allclose(np.diag(cov), [v1, v2])
        assert cov[0, 1] == pytest.approx(0.6 * np.sqrt(v1 * v2))

    def test_diffusion_rows_scaled_by_volatility(self):
        array = StochasticProcessArray([ou(), ou(1.0, 0.3)], [[1.0, 0.6], [0.6, 1.0]])
        sigma = array.diffusion(0.0, [0.0, 0.0])
        np.testing.assert_allclose(np.linalg.norm(sigma, axis=1), [0.2, 0.3])

    def test_non_psd_correlation_is_salvaged(self):
        with pytest.warns(RuntimeWarning):
            array = StochasticProcessArray([ou(), ou(), ou()], C_BAD)
        np.testing.assert_allclose(np.diag(array.correlation()), 1.0)
        assert np.linalg.eigvalsh(array.correlation()).min() > -1e-10

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            StochasticProcessArray([], np.zeros((0, 0)))
        with pytest.raises(ValueError):
            StochasticProcessArray([ou(), ou()], np.eye(3))
        with pytest.raises(ValueError):
            StochasticProcessArray([ou(), ou()], [[1.0, 0.2], [0.3, 1.0]])
        with pytest.raises(ValueError):
            StochasticProcessArray([ou(), G2Process(0.1, 0.01, 0.3, 0.015, 0.0)], np.eye(2))


class TestJointProcess:
    def test_block_structure(self):
        joint = CorrelatedJoint([ou(), ou(1.0, 0.3)], 0.4)
        assert joint.size() == 2 and joint.factors() == 2
        np.testing.assert_allclose(joint.slice([1.0, 2.0], 1), [2.0])
        np.testing.assert_allclose(joint.drift(0.0, [1.0, 1.0]), [-0.5, -1.0])

    def test_cross_correlation_in_covariance(self):
        joint = CorrelatedJoint([ou(), ou(1.0, 0.3)], 0.4)
        cov = joint.covariance(0.0, [0.0, 0.0], 1.0)
        assert cov[0, 1] / np.sqrt(cov[0, 0] * cov[1, 1]) == pytest.approx(0.4)

    def test_evolve_reproduces_cross_correlation(self):
        joint = CorrelatedJoint([ou(), ou(1.0, 0.3)], -0.5)
        rng = np.random.default_rng(SEED)
        x0 = joint.initial_values()
        samples = np.array([joint.evolve(0.0, x0, 1.0, dw)
                            for dw in rng.standard_normal((10_000, 2))])
        assert np.corrcoef(samples.T)[0, 1] == pytest.approx(-0.5, abs=0.03)
        assert samples[:, 0].var() == pytest.approx(ou().variance(0.0, 0.0, 1.0), rel=0.05)
        assert joint.pre_calls == 10_000

    def test_driver_map_cache(self):
        joint = CorrelatedJoint([ou(), ou()], 0.3)
        joint.evolve(0.0, [0.0, 0.0], 0.5, [0.1, 0.2])
        joint.evolve(0.0, [0.1, 0.1], 0.5, [0.1, 0.2])
        assert len(joint.correlation_cache) == 1
        joint.update()
        joint.refresh()
        assert len(joint.correlation_cache) == 0

    def test_state_dependent_covariance(self):
        joint = StateCorrelatedJoint([ou(), ou(1.0, 0.3)])
        for x0 in ([1.0, 0.0], [-1.0, 0.0], [0.2, 0.5]):
            cov = joint.covariance(0.0, x0, 1.0)
            assert cov[0, 1] / np.sqrt(cov[0, 0] * cov[1, 1]) == pytest.approx(0.8 * np.tanh(x0[0]))

    def test_state_dependent_evolve_skips_cache(self):
        joint = StateCorrelatedJoint([ou(), ou(1.0, 0.3)])
        dw = np.array([0.3, -1.1])
        for x0 in ([1.0, 0.0], [-1.0, 0.0], [0.2, 0.5]):
            # a constant-correlation joint frozen at this state's correlation
            frozen = CorrelatedJoint([ou(), ou(1.0, 0.3)], 0.8 * np.tanh(x0[0]))
            np.testing.assert_allclose(joint.evolve(0.0, x0, 0.5, dw),
                                       frozen.evolve(0.0, x0, 0.5, dw))
        assert len(joint.correlation_cache) == 0
        assert joint.pre_calls == 3

    def test_state_dependent_increment_correlation(self):
        joint = StateCorrelatedJoint([ou(), ou(1.0, 0.3)])
        rng = np.random.default_rng(SEED)
        draws = rng.standard_normal((5000, 2))
        for x0 in ([1.0, 0.0], [-1.0, 0.0]):
            samples = np.array([joint.evolve(0.0, x0, 1.0, dw) for dw in draws])
            assert np.corrcoef(samples.T)[0, 1] == pytest.approx(0.8 * np.tanh(x0[0]), abs=0.04)

    def test_too_many_factors(self):
        with pytest.raises(ValueError):
            CorrelatedJoint([ou(), ou()], 0.3, factors=3)

    def test_reduced_factors(self):
        joint = CorrelatedJoint([ou(), ou()], 0.3, factors=1)
        assert joint.factors() == 1
        y = joint.evolve(0.0, [0.0, 0.0], 1.0, [1.0])
        assert y.shape == (2,)

    def test_heterogeneous_constituents(self):
        heston = HestonProcess(FlatForward(0.0, REF_DATE), FlatForward(0.0, REF_DATE), 100.0,
                               0.04, 2.0, 0.04, 0.3, -0.5,
                               scheme=HestonDiscretization.QUADRATIC_EXPONENTIAL)
        joint = CorrelatedJoint([heston, ou()], 0.0)
        assert joint.size() == 3 and joint.factors() == 3
        x0 = joint.initial_values()
        np.testing.assert_allclose(x0, [100.0, 0.04, 0.0])
        y = joint.evolve(0.0, x0, 0.1, [0.3, -0.2, 0.5])
        assert y.shape == (3,)
        assert y[0] > 0.0 and y[1] >= 0.0
        assert joint.diffusion(0.0, x0).shape == (3, 3)


@pytest.fixture
def hybrid_parts():
    curve = FlatForward(0.03, REF_DATE)
    heston = HestonProcess(curve, FlatForward(0.01, REF_DATE), 100.0, 0.04, 1.5, 0.04, 0.3, -0.5,
                           scheme=HestonDiscretization.QUADRATIC_EXPONENTIAL)
    hull_white = HullWhiteForwardProcess(curve, 0.1, 0.01, T=5.0)
    return heston, hull_white


class TestHybridHestonHullWhite:
    def test_numeraire_is_one_at_origin(self, hybrid_parts):
        process = HybridHestonHullWhiteProcess(*hybrid_parts, 0.3)
        assert process.numeraire(0.0, process.initial_values()) == pytest.approx(1.0, rel=1e-12)

    def test_initial_values(self, hybrid_parts):
        process = HybridHestonHullWhiteProcess(*hybrid_parts, 0.3)
        np.testing.assert_allclose(process.initial_values(), [100.0, 0.04, 0.03])
        assert process.size() == 3 and process.factors() == 3

    def test_short_rate_row_has_hull_white_volatility(self, hybrid_parts):
        process = HybridHestonHullWhiteProcess(*hybrid_parts, 0.3)
        sigma = process.diffusion(0.0, process.initial_values())
        assert np.sum(sigma[2] ** 2) == pytest.approx(0.01 ** 2)
        assert sigma[2, 0] == pytest.approx(0.3 * 0.01)
        assert sigma[0, 1] == 0.0 and sigma[0, 2] == 0.0

    @pytest.mark.parametrize("scheme", [HybridDiscretization.EULER,
                                        HybridDiscretization.BSM_HULL_WHITE])
    def test_zero_shock_step(self, hybrid_parts, scheme):
        heston, hull_white = hybrid_parts
        process = HybridHestonHullWhiteProcess(heston, hull_white, 0.3, scheme)
        x0 = process.initial_values()
        y = process.evolve(0.0, x0, 0.25, [0.0, 0.0, 0.0])
        assert np.all(np.isfinite(y))
        assert y[1] == pytest.approx(0.04)
        assert y[2] == pytest.approx(hull_white.expectation(0.0, 0.03, 0.25))

    def test_invalid_correlation(self, hybrid_parts):
        heston, hull_white = hybrid_parts
        with pytest.raises(ValueError):
            HybridHestonHullWhiteProcess(heston, hull_white, 0.9)

    def test_hull_white_requirements(self, hybrid_parts):
        heston, _ = hybrid_parts
        curve = heston.risk_free_rate
        with pytest.raises(ValueError):
            HybridHestonHullWhiteProcess(heston, HullWhiteForwardProcess(curve, 0.1, 0.01), 0.3)
        with pytest.raises(ValueError):
            HybridHestonHullWhiteProcess(heston, HullWhiteForwardProcess(curve, 0.0, 0.01, T=5.0), 0.3)
