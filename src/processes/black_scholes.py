"""
Generalized Black-Scholes Process

Log-normal asset dynamics with term-structure rates and volatilities,
and the usual flavours (Black-Scholes, Black-Scholes-Merton, Black,
Garman-Kohlhagen)
"""
import numpy as np

from market.observable import Observable
from market.quotes import quote_value
from market.volatility import (
    BlackConstantVol,
    BlackVarianceCurve,
    LocalConstantVol,
    LocalVolCurve,
)
from market.yield_curves import FlatForward
from .base import StochasticProcess1D


class GeneralizedBlackScholesProcess(StochasticProcess1D):
    """
    Generalized Black-Scholes process

        d ln S(t) = (r(t) - q(t) - sigma(t, S)^2 / 2) dt + sigma(t, S) dW_t

    The interface is expressed in S; increments are applied to ln S, so
    apply(x, dx) = x * exp(dx).

    With a strike-independent Black volatility (constant or term curve) the
    step moments are exact:
        E[S(t+dt)]      = S exp((r - q) dt)
        Var[ln S(t+dt)] = sigma_B^2(t+dt)(t+dt) - sigma_B^2(t) t
    Otherwise, or with force_discretization=True, the plugged discretization
    is applied to the local volatility dynamics; expectation() is then not
    available.

    Args:
        x0: initial value (float or quote)
        dividend_yield: yield curve q(t)
        risk_free_rate: yield curve r(t)
        black_volatility: Black volatility term structure
        discretization: step strategy (Euler by default)
        force_discretization: ignore exact moments even when available
        local_volatility: external local volatility; when given, it drives
            the dynamics and the exact moments are never used
    """

    # forward rates in drift() are measured over this interval
    forward_shift = 1e-4

    def __init__(
        self,
        x0,
        dividend_yield,
        risk_free_rate,
        black_volatility,
        discretization=None,
        force_discretization: bool = False,
        local_volatility=None,
        name: str = "GeneralizedBlackScholes"
    ):
        super().__init__(discretization, name=name)
        self._x0 = x0
        self.dividend_yield = dividend_yield
        self.risk_free_rate = risk_free_rate
        self.black_volatility = black_volatility
        self.force_discretization = bool(force_discretization)
        self.external_local_vol = local_volatility
        self._local_vol = None
        self._strike_independent = False

        for observable in (x0, dividend_yield, risk_free_rate, black_volatility, local_volatility):
            if isinstance(observable, Observable):
                self.register_with(observable)

    def x0(self) -> float:
        return quote_value(self._x0)

    def invalidate_caches(self) -> None:
        self._local_vol = None

    def local_volatility(self):
        """Local volatility driving the dynamics, rebuilt after any change."""
        if self.external_local_vol is not None:
            return self.external_local_vol
        self.refresh()
        if self._local_vol is None:
            vol = self.black_volatility
            if isinstance(vol, BlackConstantVol):
                self._local_vol = LocalConstantVol(vol.black_vol(0.0, self.x0()))
                self._strike_independent = True
            elif isinstance(vol, BlackVarianceCurve):
                self._local_vol = LocalVolCurve(vol)
                self._strike_independent = True
            else:
                raise NotImplementedError(
                    f"{type(vol).__name__} is strike dependent; pass local_volatility explicitly"
                )
        return self._local_vol

    def _is_exact(self) -> bool:
        self.local_volatility()
        return (self.external_local_vol is None and self._strike_independent
                and not self.force_discretization)

    def _carry(self, t0: float, t1: float) -> float:
        return self.risk_free_rate.forward_rate(t0, t1) - self.dividend_yield.forward_rate(t0, t1)

    def drift(self, t, x):
        sigma = self.diffusion(t, x)
        return self._carry(t, t + self.forward_shift) - 0.5 * sigma * sigma

    def diffusion(self, t, x):
        return self.local_volatility().local_vol(t, x)

    def apply(self, x0, dx):
        return x0 * np.exp(dx)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        if self._is_exact():
            return x0 * np.exp(dt * self._carry(t0, t0 + dt))
        raise NotImplementedError(
            "expectation of a discretized Black-Scholes process is not implemented"
        )

    def variance(self, t0, x0, dt):
        self._check_step(dt)
        if self._is_exact():
            var = (self.black_volatility.black_variance(t0 + dt, 0.01)
                   - self.black_volatility.black_variance(t0, 0.01))
            return var + 0.0 * np.asarray(x0)
        return self.discretization.variance(self, t0, x0, dt)

    def std_deviation(self, t0, x0, dt):
        self._check_step(dt)
        if self._is_exact():
            return np.sqrt(self.variance(t0, x0, dt))
        return self.discretization.diffusion(self, t0, x0, dt)

    def evolve(self, t0, x0, dt, dw):
        self._check_step(dt)
        if self._is_exact():
            var = self.variance(t0, x0, dt)
            drift = self._carry(t0, t0 + dt) * dt - 0.5 * var
            return self.apply(x0, np.sqrt(var) * dw + drift)
        return self.apply(x0, self.discretization.drift(self, t0, x0, dt)
                          + self.std_deviation(t0, x0, dt) * dw)

    def time(self, d) -> float:
        return self.risk_free_rate.time_from_reference(d)


class BlackScholesProcess(GeneralizedBlackScholesProcess):
    """Black-Scholes process without dividends: d ln S = (r - sigma^2/2) dt + sigma dW."""

    def __init__(self, x0, risk_free_rate, black_volatility, discretization=None,
                 force_discretization: bool = False, name: str = "BlackScholes"):
        super().__init__(x0, FlatForward(0.0, risk_free_rate.reference_date, risk_free_rate.day_counter),
                         risk_free_rate, black_volatility, discretization, force_discretization,
                         name=name)


class BlackScholesMertonProcess(GeneralizedBlackScholesProcess):
    """Black-Scholes process with a continuous dividend yield."""

    def __init__(self, x0, dividend_yield, risk_free_rate, black_volatility, discretization=None,
                 force_discretization: bool = False, name: str = "BlackScholesMerton"):
        super().__init__(x0, dividend_yield, risk_free_rate, black_volatility, discretization,
                         force_discretization, name=name)


class BlackProcess(GeneralizedBlackScholesProcess):
    """Black (1976) process for forwards and futures: zero drift."""

    def __init__(self, x0, risk_free_rate, black_volatility, discretization=None,
                 force_discretization: bool = False, name: str = "Black"):
        super().__init__(x0, risk_free_rate, risk_free_rate, black_volatility, discretization,
                         force_discretization, name=name)


class GarmanKohlagenProcess(GeneralizedBlackScholesProcess):
    """Garman-Kohlhagen process for FX rates: the foreign rate plays the dividend."""

    def __init__(self, x0, foreign_risk_free_rate, domestic_risk_free_rate, black_volatility,
                 discretization=None, force_discretization: bool = False,
                 name: str = "GarmanKohlagen"):
        super().__init__(x0, foreign_risk_free_rate, domestic_risk_free_rate, black_volatility,
                         discretization, force_discretization, name=name)
