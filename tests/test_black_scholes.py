"""Tests for the Black-Scholes family and the Merton jump-diffusion."""

from datetime import date

import numpy as np
import pytest

from market import (
    BlackConstantVol,
    BlackVarianceCurve,
    BlackVolTermStructure,
    FlatForward,
    LocalConstantVol,
    SimpleQuote,
)
from processes import (
    BlackProcess,
    BlackScholesMertonProcess,
    BlackScholesProcess,
    GarmanKohlagenProcess,
    GeneralizedBlackScholesProcess,
    Merton76Process,
)

REF_DATE = date(2024, 1, 2)
SEED = 7


class SmileVol(BlackVolTermStructure):
    """Linear-in-strike Black volatility."""

    def black_variance(self, t, strike=0.0):
        vol = 0.2 + 0.001 * strike
        return vol * vol * t


@pytest.fixture
def bsm():
    return BlackScholesMertonProcess(100.0, FlatForward(0.02, REF_DATE),
                                     FlatForward(0.05, REF_DATE), BlackConstantVol(0.2))


class TestExactMoments:
    def test_expectation_and_variance(self, bsm):
        assert bsm.expectation(0.0, 100.0, 1.0) == pytest.approx(100.0 * np.exp(0.03))
        assert bsm.variance(0.0, 100.0, 1.0) == pytest.approx(0.04)
        assert bsm.std_deviation(0.0, 100.0, 1.0) == pytest.approx(0.2)

    def test_evolve_zero_shock(self, bsm):
        # carry 0.03 minus half the variance
        assert bsm.evolve(0.0, 100.0, 1.0, 0.0) == pytest.approx(100.0 * np.exp(0.01))

    def test_term_variance_curve(self):
        curve = BlackVarianceCurve([1.0, 2.0], [0.2, 0.25])
        process = GeneralizedBlackScholesProcess(100.0, FlatForward(0.0, REF_DATE),
                                                 FlatForward(0.0, REF_DATE), curve)
        assert process.variance(1.0, 100.0, 1.0) == pytest.approx(2 * 0.0625 - 0.04)

    def test_lognormal_terminal_mean(self, bsm):
        rng = np.random.default_rng(SEED)
        n = 20_000
        s1 = bsm.evolve(0.0, 100.0, 1.0, rng.standard_normal(n))
        stderr = s1.std() / np.sqrt(n)
        assert abs(s1.mean() - 100.0 * np.exp(0.03)) < 4 * stderr
        assert np.all(s1 > 0.0)

    def test_negative_step(self, bsm):
        with pytest.raises(ValueError):
            bsm.evolve(0.0, 100.0, -0.1, 0.0)


class TestDiscretized:
    def test_forced_discretization(self):
        process = BlackScholesMertonProcess(100.0, FlatForward(0.02, REF_DATE),
                                            FlatForward(0.05, REF_DATE), BlackConstantVol(0.2),
                                            force_discretization=True)
        with pytest.raises(NotImplementedError):
            process.expectation(0.0, 100.0, 1.0)
        assert process.variance(0.0, 100.0, 0.5) == pytest.approx(0.02)
        expected = 100.0 * np.exp((0.03 - 0.02) * 0.5)
        assert process.evolve(0.0, 100.0, 0.5, 0.0) == pytest.approx(expected)

    def test_strike_dependent_vol_requires_local_vol(self):
        process = GeneralizedBlackScholesProcess(100.0, FlatForward(0.0, REF_DATE),
                                                 FlatForward(0.0, REF_DATE), SmileVol())
        with pytest.raises(NotImplementedError):
            process.diffusion(0.0, 100.0)

    def test_external_local_vol(self):
        process = GeneralizedBlackScholesProcess(100.0, FlatForward(0.0, REF_DATE),
                                                 FlatForward(0.0, REF_DATE), SmileVol(),
                                                 local_volatility=LocalConstantVol(0.3))
        assert process.diffusion(0.0, 100.0) == pytest.approx(0.3)
        with pytest.raises(NotImplementedError):
            process.expectation(0.0, 100.0, 1.0)


class TestNotifications:
    def test_vol_quote_change_rebuilds_local_vol(self):
        vol = SimpleQuote(0.2)
        process = BlackScholesMertonProcess(100.0, FlatForward(0.0, REF_DATE),
                                            FlatForward(0.0, REF_DATE), BlackConstantVol(vol))
        assert process.diffusion(0.0, 100.0) == pytest.approx(0.2)
        vol.set_value(0.3)
        assert process.diffusion(0.0, 100.0) == pytest.approx(0.3)

    def test_spot_quote(self):
        spot = SimpleQuote(100.0)
        process = BlackScholesMertonProcess(spot, FlatForward(0.0, REF_DATE),
                                            FlatForward(0.0, REF_DATE), BlackConstantVol(0.2))
        spot.set_value(105.0)
        assert process.x0() == 105.0
        np.testing.assert_allclose(process.initial_values(), [105.0])


class TestFlavours:
    def test_black_scholes_has_no_dividend(self):
        process = BlackScholesProcess(100.0, FlatForward(0.05, REF_DATE), BlackConstantVol(0.2))
        assert process.expectation(0.0, 100.0, 1.0) == pytest.approx(100.0 * np.exp(0.05))

    def test_black_is_driftless(self):
        process = BlackProcess(100.0, FlatForward(0.05, REF_DATE), BlackConstantVol(0.2))
        assert process.expectation(0.0, 100.0, 2.0) == pytest.approx(100.0)

    def test_garman_kohlhagen(self):
        process = GarmanKohlagenProcess(1.1, FlatForward(0.04, REF_DATE),
                                        FlatForward(0.01, REF_DATE), BlackConstantVol(0.1))
        assert process.expectation(0.0, 1.1, 1.0) == pytest.approx(1.1 * np.exp(-0.03))


class TestMerton76:
    def make(self, intensity):
        return Merton76Process(100.0, FlatForward(0.02, REF_DATE), FlatForward(0.05, REF_DATE),
                               BlackConstantVol(0.2), intensity, -0.1, 0.2)

    def test_dimensions(self):
        process = self.make(0.5)
        assert process.size() == 1
        assert process.factors() == 3
        np.testing.assert_allclose(process.initial_values(), [100.0])

    def test_no_jumps_matches_black_scholes(self, bsm):
        process = self.make(0.0)
        dw = np.array([0.4, 1.5, -0.7])
        np.testing.assert_allclose(process.evolve(0.0, [100.0], 1.0, dw),
                                   [bsm.evolve(0.0, 100.0, 1.0, 0.4)])

    def test_compensated_drift(self, bsm):
        process = self.make(0.5)
        k = np.exp(-0.1 + 0.02) - 1.0
        assert process.drift(0.0, [100.0])[0] == pytest.approx(bsm.drift(0.0, 100.0) - 0.5 * k)

    def test_jump_compensation_keeps_forward(self):
        process = self.make(1.0)
        rng = np.random.default_rng(SEED)
        n = 20_000
        s1 = np.array([process.evolve(0.0, [100.0], 1.0, dw)[0]
                       for dw in rng.standard_normal((n, 3))])
        stderr = s1.std() / np.sqrt(n)
        assert abs(s1.mean() - 100.0 * np.exp(0.03)) < 4 * stderr

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            self.make(-1.0)
