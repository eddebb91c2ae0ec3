"""
Gaussian Short Rate Core

Closed-form moments of the GSR state variable with piecewise constant
volatilities and mean reversions, memoised per (w, t) pair
"""
import logging

import numpy as np

from utils.cache import MemoTable
from .config import DEFAULT_CONFIG, NumericalConfig

logger = logging.getLogger(__name__)

QL_EPSILON = np.finfo(float).eps
QL_MIN_POSITIVE_REAL = np.finfo(float).tiny


class GsrProcessCore:
    """
    Integrals of the Gaussian short rate state

        dx_t = (y(t) - G(t, T) sigma(t)^2 - a(t) x_t) dt + sigma(t) dW_t

    on a grid t_1 < ... < t_n, with sigma_i and a_i constant on
    [t_i, t_{i+1}) (t_0 = 0, t_{n+1} = T). A single reversion may be given
    for all cells.

    Every analytic term is memoised in its own MemoTable:
        x0_dependent  A(w, t), the factor applied to x(w)
        risk_neutral  int_w^t A(s, t) y(s) ds
        t_forward     -int_w^t A(s, t) sigma(s)^2 G(s, T) ds
        variance      int_w^t A(s, t)^2 sigma(s)^2 ds
        y             y(t)
        G             G(t, w)
    flush_cache() clears all of them and re-derives which reversions are
    treated as zero (|a_i| below the zero reversion threshold).
    """

    def __init__(self, times, vols, reversions, T: float,
                 config: NumericalConfig = DEFAULT_CONFIG):
        self.times = np.asarray(times, dtype=float)
        self.vols = np.asarray(vols, dtype=float)
        self.reversions = np.asarray(reversions, dtype=float)
        self.T = float(T)
        self.config = config

        if len(self.times) != len(self.vols) - 1:
            raise ValueError(
                f"number of volatilities ({len(self.vols)}) compared to number of "
                f"times ({len(self.times)}) must be bigger by one"
            )
        if len(self.times) != len(self.reversions) - 1 and len(self.reversions) != 1:
            raise ValueError(
                f"number of reversions ({len(self.reversions)}) compared to number of "
                f"times ({len(self.times)}) must be bigger by one, or exactly 1 "
                "reversion must be given"
            )
        if np.any(np.diff(self.times) <= 0.0):
            raise ValueError(f"times must be increasing: {self.times}")

        self.caches = {
            'x0_dependent': MemoTable('gsr.x0_dependent'),
            'risk_neutral': MemoTable('gsr.risk_neutral'),
            't_forward': MemoTable('gsr.t_forward'),
            'variance': MemoTable('gsr.variance'),
            'y': MemoTable('gsr.y'),
            'G': MemoTable('gsr.G'),
        }
        self._rev_zero = np.zeros(len(self.reversions), dtype=bool)
        self.flush_cache()

    def flush_cache(self) -> None:
        # small reversions are numerically unstable in the closed forms
        self._rev_zero = np.abs(self.reversions) < self.config.zero_reversion_threshold
        for table in self.caches.values():
            table.invalidate()

    def set_forward_measure_time(self, T: float) -> None:
        self.T = float(T)
        self.flush_cache()

    def set_volatilities(self, vols) -> None:
        vols = np.asarray(vols, dtype=float)
        if vols.shape != self.vols.shape:
            raise ValueError(f"expected {len(self.vols)} volatilities, got {len(vols)}")
        self.vols = vols
        self.flush_cache()

    def set_reversions(self, reversions) -> None:
        reversions = np.asarray(reversions, dtype=float)
        if reversions.shape != self.reversions.shape:
            raise ValueError(f"expected {len(self.reversions)} reversions, got {len(reversions)}")
        self.reversions = reversions
        self.flush_cache()

    # grid helpers

    def _lower_index(self, t: float) -> int:
        return int(np.searchsorted(self.times, t, side='right'))

    def _upper_index(self, t: float) -> int:
        if t < QL_MIN_POSITIVE_REAL:
            return 0
        return int(np.searchsorted(self.times, t - QL_EPSILON, side='right')) + 1

    def time2(self, index: int) -> float:
        """Grid point `index`, with 0 at the start and T past the end."""
        if index == 0:
            return 0.0
        if index > len(self.times):
            return self.T
        return self.times[index - 1]

    def _capped(self, index: int, cap: float) -> float:
        return min(cap, self.time2(index))

    def _floored(self, index: int, floor: float) -> float:
        return max(floor, self.time2(index))

    def _vol(self, index: int) -> float:
        return self.vols[min(index, len(self.vols) - 1)]

    def _rev(self, index: int) -> float:
        return self.reversions[min(index, len(self.reversions) - 1)]

    def _is_rev_zero(self, index: int) -> bool:
        return bool(self._rev_zero[min(index, len(self._rev_zero) - 1)])

    def _zeta_tail(self, k: int, t: float, scale: float = 1.0) -> float:
        """prod_{i > k} exp(-scale a_i (min(t, t_{i+1}) - t_i))"""
        res = 1.0
        for i in range(k + 1, self._upper_index(t)):
            res *= np.exp(-scale * self._rev(i) * (self._capped(i + 1, t) - self.time2(i)))
        return res

    # moments

    def expectation_x0dep_part(self, w: float, xw: float, dt: float) -> float:
        t = w + dt

        def compute():
            res = 1.0
            for i in range(self._lower_index(w), self._upper_index(t)):
                res *= np.exp(-self._rev(i) * (self._capped(i + 1, t) - self._floored(i, w)))
            return res

        return xw * self.caches['x0_dependent'].get_or_compute((w, t), compute)

    def expectation_rn_part(self, w: float, dt: float) -> float:
        t = w + dt
        return self.caches['risk_neutral'].get_or_compute((w, t), lambda: self._rn_part(w, t))

    def _rn_part(self, w: float, t: float) -> float:
        res = 0.0
        for k in range(self._lower_index(w), self._upper_index(t)):
            rk, vk = self._rev(k), self._vol(k)
            tk, ck, fk = self.time2(k), self._capped(k + 1, t), self._floored(k, w)
            zeta = self._zeta_tail(k, t)
            for l in range(k):
                rl, vl = self._rev(l), self._vol(l)
                span = self.time2(l + 1) - self.time2(l)
                if self._is_rev_zero(l):
                    term = vl * vl * span
                else:
                    term = vl * vl / (2.0 * rl) * (1.0 - np.exp(-2.0 * rl * span))
                term *= zeta
                for j in range(l + 1, k):
                    term *= np.exp(-2.0 * self._rev(j) * (self.time2(j + 1) - self.time2(j)))
                if self._is_rev_zero(k):
                    term *= 2.0 * tk - fk - ck - 2.0 * (tk - ck)
                else:
                    term *= (np.exp(rk * (2.0 * tk - fk - ck))
                             - np.exp(2.0 * rk * (tk - ck))) / rk
                res += term
            if self._is_rev_zero(k):
                term = vk * vk / 4.0 * (4.0 * (ck - tk) ** 2
                                        - ((fk - 2.0 * tk + ck) ** 2 + (ck - fk) ** 2))
            else:
                term = vk * vk / (2.0 * rk * rk) * (
                    np.exp(-2.0 * rk * (ck - tk)) + 1.0
                    - (np.exp(-rk * (fk - 2.0 * tk + ck)) + np.exp(-rk * (ck - fk))))
            res += term * zeta
        return res

    def expectation_tf_part(self, w: float, dt: float) -> float:
        t = w + dt
        return self.caches['t_forward'].get_or_compute((w, t), lambda: self._tf_part(w, t))

    def _tf_part(self, w: float, t: float) -> float:
        T = self.T
        res = 0.0
        for k in range(self._lower_index(w), self._upper_index(t)):
            rk, vk = self._rev(k), self._vol(k)
            ck, fk, tk1 = self._capped(k + 1, t), self._floored(k, w), self.time2(k + 1)
            cT = self._capped(k + 1, T)
            zeta = self._zeta_tail(k, t)
            inner = 0.0
            for l in range(k + 1, self._upper_index(T)):
                rl = self._rev(l)
                span = self._capped(l + 1, T) - self.time2(l)
                term = span if self._is_rev_zero(l) else (1.0 - np.exp(-rl * span)) / rl
                term *= zeta
                for j in range(k + 1, l):
                    term *= np.exp(-self._rev(j) * (self.time2(j + 1) - self.time2(j)))
                if self._is_rev_zero(k):
                    term *= (ck - tk1 - (2.0 * fk - ck - tk1)) / 2.0
                else:
                    term *= (np.exp(rk * (ck - tk1))
                             - np.exp(rk * (2.0 * fk - ck - tk1))) / (2.0 * rk)
                inner += term
            if self._is_rev_zero(k):
                term = (-(ck - cT) ** 2 - 2.0 * (ck - fk) ** 2 + (2.0 * fk - cT - ck) ** 2) / 4.0
            else:
                term = (2.0 - np.exp(rk * (ck - cT))
                        - (2.0 * np.exp(-rk * (ck - fk)) - np.exp(rk * (2.0 * fk - cT - ck)))
                        ) / (2.0 * rk * rk)
            inner += term * zeta
            res += -vk * vk * inner
        return res

    def variance(self, w: float, dt: float) -> float:
        t = w + dt

        def compute():
            res = 0.0
            for k in range(self._lower_index(w), self._upper_index(t)):
                rk, vk = self._rev(k), self._vol(k)
                span = self._floored(k, w) - self._capped(k + 1, t)
                if self._is_rev_zero(k):
                    term = vk * vk * -span
                else:
                    term = vk * vk * (1.0 - np.exp(2.0 * rk * span)) / (2.0 * rk)
                res += term * self._zeta_tail(k, t, scale=2.0)
            return res

        return self.caches['variance'].get_or_compute((w, t), compute)

    def y(self, t: float) -> float:
        def compute():
            res = 0.0
            for i in range(self._upper_index(t)):
                ri, vi = self._rev(i), self._vol(i)
                span = self._capped(i + 1, t) - self.time2(i)
                if self._is_rev_zero(i):
                    term = vi * vi * span
                else:
                    term = vi * vi / (2.0 * ri) * (1.0 - np.exp(-2.0 * ri * span))
                res += term * self._zeta_tail(i, t, scale=2.0)
            return res

        return self.caches['y'].get_or_compute(t, compute)

    def G(self, t: float, w: float) -> float:
        def compute():
            res = 0.0
            lower = self._lower_index(t)
            for i in range(lower, self._upper_index(w)):
                term = 1.0
                for j in range(lower, i):
                    term *= np.exp(-self._rev(j) * (self.time2(j + 1) - self._floored(j, t)))
                span = self._capped(i + 1, w) - self._floored(i, t)
                ri = self._rev(i)
                term *= span if self._is_rev_zero(i) else (1.0 - np.exp(-ri * span)) / ri
                res += term
            return res

        return self.caches['G'].get_or_compute((w, t), compute)

    def sigma(self, t: float) -> float:
        return self._vol(self._lower_index(t))

    def reversion(self, t: float) -> float:
        return self._rev(self._lower_index(t))
