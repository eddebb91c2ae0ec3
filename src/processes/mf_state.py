"""
Markov-functional state process
"""
import numpy as np

from .base import StochasticProcess1D

QL_EPSILON = np.finfo(float).eps


class MfStateProcess(StochasticProcess1D):
    """
    Driftless state variable of the Markov-functional model

        dx_t = sigma(t) e^{a t} dW_t,  x_0 = 0

    sigma is piecewise constant on the grid `times` (len(vols) ==
    len(times) + 1); the step variance integrates sigma^2 e^{2 a s} exactly
    over each grid cell.
    """

    def __init__(self, reversion: float, times, vols, name: str = "MfState"):
        super().__init__(name=name)
        self.reversion = float(reversion)
        self.times = np.asarray(times, dtype=float)
        self.vols = np.asarray(vols, dtype=float)
        self._reversion_zero = abs(self.reversion) < QL_EPSILON
        if len(self.times) != len(self.vols) - 1:
            raise ValueError(
                f"number of volatilities ({len(self.vols)}) compared to number of "
                f"times ({len(self.times)}) must be bigger by one"
            )
        if np.any(np.diff(self.times) <= 0.0):
            raise ValueError(f"times must be increasing: {self.times}")
        if np.any(self.vols < 0.0):
            raise ValueError(f"volatilities must be non negative: {self.vols}")
        self.params.update({'reversion': self.reversion})

    def _upper_index(self, t: float) -> int:
        return int(np.searchsorted(self.times, t, side='right'))

    def x0(self) -> float:
        return 0.0

    def drift(self, t, x):
        return 0.0 * np.asarray(x)

    def diffusion(self, t, x):
        return self.vols[self._upper_index(t)] + 0.0 * np.asarray(x)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        return x0

    def _cell_variance(self, vol: float, start: float, end: float) -> float:
        if self._reversion_zero:
            return vol * vol * (end - start)
        return vol * vol / (2.0 * self.reversion) * (
            np.exp(2.0 * self.reversion * end) - np.exp(2.0 * self.reversion * start))

    def variance(self, t0, x0, dt):
        self._check_step(dt)
        if dt < QL_EPSILON:
            return 0.0
        if len(self.times) == 0:
            return self._cell_variance(self.vols[0], t0, t0 + dt)

        i = self._upper_index(t0)
        j = self._upper_index(t0 + dt)
        v = 0.0
        for k in range(i, j):
            start = max(self.times[k - 1] if k > 0 else 0.0, t0)
            v += self._cell_variance(self.vols[k], start, self.times[k])
        start = max(self.times[j - 1] if j > 0 else 0.0, t0)
        v += self._cell_variance(self.vols[j], start, t0 + dt)
        return v

    def std_deviation(self, t0, x0, dt):
        return np.sqrt(self.variance(t0, x0, dt))
