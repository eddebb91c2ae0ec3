"""
Volatility term structures

Black (implied) volatilities feed exact Black-Scholes moments; local
volatilities feed the discretized dynamics. Only strike-independent
shapes are provided here: a constant and a term curve.
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np

from .observable import Observable, Observer
from .quotes import quote_value


class BlackVolTermStructure(Observable, Observer, ABC):
    """Black volatility sigma(t, K) with total variance sigma^2 t."""

    strike_independent = False

    def __init__(self):
        Observable.__init__(self)
        Observer.__init__(self)

    @abstractmethod
    def black_variance(self, t: float, strike: float = 0.0) -> float:
        pass

    def black_vol(self, t: float, strike: float = 0.0) -> float:
        if t == 0.0:
            t = 1e-5
        return float(np.sqrt(self.black_variance(t, strike) / t))

    def update(self) -> None:
        self.notify_observers()


class BlackConstantVol(BlackVolTermStructure):
    """Flat Black volatility; accepts a float or a quote."""

    strike_independent = True

    def __init__(self, volatility):
        super().__init__()
        self._volatility = volatility
        if isinstance(volatility, Observable):
            self.register_with(volatility)

    @property
    def volatility(self) -> float:
        return quote_value(self._volatility)

    def black_vol(self, t: float, strike: float = 0.0) -> float:
        return self.volatility

    def black_variance(self, t: float, strike: float = 0.0) -> float:
        return self.volatility ** 2 * t

    def __repr__(self):
        return f"BlackConstantVol({self.volatility})"


class BlackVarianceCurve(BlackVolTermStructure):
    """
    Strike-independent Black volatility term curve

    Total variance sigma_i^2 t_i is interpolated linearly in time, starting
    from zero at t = 0; beyond the last pillar the last volatility is
    extrapolated flat.

    Args:
        times: increasing positive pillar times
        volatilities: Black volatilities at the pillars
    """

    strike_independent = True

    def __init__(self, times: Sequence[float], volatilities: Sequence[float]):
        super().__init__()
        times = np.asarray(times, dtype=float)
        vols = np.asarray(volatilities, dtype=float)
        if times.shape != vols.shape or times.ndim != 1 or len(times) == 0:
            raise ValueError("times and volatilities must be non-empty 1-D arrays of equal length")
        if times[0] <= 0.0 or np.any(np.diff(times) <= 0.0):
            raise ValueError("pillar times must be positive and strictly increasing")
        variances = vols ** 2 * times
        if np.any(np.diff(variances) < 0.0):
            raise ValueError("total variance must be non-decreasing")
        self.times = np.concatenate([[0.0], times])
        self.variances = np.concatenate([[0.0], variances])

    def black_variance(self, t: float, strike: float = 0.0) -> float:
        if t <= self.times[-1]:
            return float(np.interp(t, self.times, self.variances))
        return float(self.variances[-1] * t / self.times[-1])


class LocalVolTermStructure(Observable, Observer, ABC):
    """Local volatility sigma(t, S)."""

    def __init__(self):
        Observable.__init__(self)
        Observer.__init__(self)

    @abstractmethod
    def local_vol(self, t, underlying):
        pass

    def update(self) -> None:
        self.notify_observers()


class LocalConstantVol(LocalVolTermStructure):

    def __init__(self, volatility):
        super().__init__()
        self._volatility = volatility
        if isinstance(volatility, Observable):
            self.register_with(volatility)

    def local_vol(self, t, underlying):
        vol = quote_value(self._volatility)
        return np.full(np.shape(underlying), vol) if np.ndim(underlying) else vol


class LocalVolCurve(LocalVolTermStructure):
    """
    Local volatility implied by a strike-independent Black variance curve

        sigma_loc(t)^2 = d/dt [sigma_B(t)^2 t]
    """

    dt = 1.0 / 365.0

    def __init__(self, curve: BlackVarianceCurve):
        super().__init__()
        self.curve = curve
        self.register_with(curve)

    def local_vol(self, t, underlying):
        var1 = self.curve.black_variance(t)
        var2 = self.curve.black_variance(t + self.dt)
        vol = np.sqrt(max(var2 - var1, 0.0) / self.dt)
        return np.full(np.shape(underlying), vol) if np.ndim(underlying) else vol
