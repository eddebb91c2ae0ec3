"""
Hull-White Short-Rate Processes

One-factor Gaussian short rate fitted to an initial yield curve, under the
risk-neutral and under a T-forward measure
"""
from abc import ABC

import numpy as np

from market.observable import Observable
from .base import StochasticProcess1D
from .ornstein_uhlenbeck import OrnsteinUhlenbeckProcess

QL_EPSILON = np.finfo(float).eps


class ForwardMeasureProcess1D(StochasticProcess1D, ABC):
    """
    Scalar process expressed under the T-forward measure

    Changing the horizon T changes the drift; observers are notified.
    """

    def __init__(self, T: float = None, discretization=None, name: str = "ForwardMeasureProcess1D"):
        super().__init__(discretization, name=name)
        self._T = T

    def set_forward_measure_time(self, T: float) -> None:
        self._T = float(T)
        self.notify_observers()

    def get_forward_measure_time(self) -> float:
        return self._T


class _HullWhiteMixin:
    """Curve-fitting terms shared by both measures."""

    forward_shift = 1e-4

    def _init_hull_white(self, term_structure, a: float, sigma: float):
        if a < 0.0:
            raise ValueError(f"negative a given: {a}")
        if sigma < 0.0:
            raise ValueError(f"negative sigma given: {sigma}")
        self.term_structure = term_structure
        self.a = float(a)
        self.sigma = float(sigma)
        self.ou = OrnsteinUhlenbeckProcess(a, sigma, term_structure.forward_rate(0.0, 0.0), 0.0)
        if isinstance(term_structure, Observable):
            self.register_with(term_structure)
        self.params['a'] = self.a
        self.params['sigma'] = self.sigma

    def _instantaneous_forward(self, t: float) -> float:
        return self.term_structure.forward_rate(t, t)

    def _alpha_drift(self, t: float) -> float:
        """d alpha/dt + a alpha, with a finite-difference forward slope."""
        if self.a > QL_EPSILON:
            result = self.sigma ** 2 / (2 * self.a) * (1 - np.exp(-2 * self.a * t))
        else:
            result = self.sigma ** 2 * t
        f = self._instantaneous_forward(t)
        fup = self._instantaneous_forward(t + self.forward_shift)
        f_prime = (fup - f) / self.forward_shift
        return result + self.a * f + f_prime

    def alpha(self, t: float) -> float:
        """
        Deterministic shift fitting the initial curve

            alpha(t) = f(0, t) + (sigma (1 - e^{-a t}) / a)^2 / 2
        """
        alfa = (self.sigma / self.a) * (1 - np.exp(-self.a * t)) if self.a > QL_EPSILON else self.sigma * t
        return 0.5 * alfa * alfa + self._instantaneous_forward(t)

    def x0(self) -> float:
        return self.ou.x0()

    def diffusion(self, t, x):
        return self.ou.diffusion(t, x)

    def std_deviation(self, t0, x0, dt):
        return self.ou.std_deviation(t0, x0, dt)

    def variance(self, t0, x0, dt):
        return self.ou.variance(t0, x0, dt)

    def time(self, d) -> float:
        return self.term_structure.time_from_reference(d)


class HullWhiteProcess(_HullWhiteMixin, StochasticProcess1D):
    """
    Hull-White short rate under the risk-neutral measure

        dr_t = (theta(t) - a r_t) dt + sigma dW_t
        r_t  = x_t + alpha(t),  x an OU process started at f(0, 0)

    Exact step moments follow from the OU moments plus the alpha shift.
    """

    def __init__(self, term_structure, a: float, sigma: float, name: str = "HullWhite"):
        StochasticProcess1D.__init__(self, name=name)
        self._init_hull_white(term_structure, a, sigma)

    def drift(self, t, x):
        return self.ou.drift(t, x) + self._alpha_drift(t)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        return (self.ou.expectation(t0, x0, dt)
                + self.alpha(t0 + dt) - self.alpha(t0) * np.exp(-self.a * dt))


class HullWhiteForwardProcess(_HullWhiteMixin, ForwardMeasureProcess1D):
    """
    Hull-White short rate under the T-forward measure

    Drift and expectation pick up the measure change:
        mu_T(t, r)  = mu(t, r) - B(t, T) sigma^2
        E_T[r(t)]   = E[r(t)] - M_T(s, t, T)
    """

    def __init__(self, term_structure, a: float, sigma: float, T: float = None,
                 name: str = "HullWhiteForward"):
        ForwardMeasureProcess1D.__init__(self, T, name=name)
        self._init_hull_white(term_structure, a, sigma)

    def _horizon(self) -> float:
        if self._T is None:
            raise ValueError("forward measure time not set")
        return self._T

    def drift(self, t, x):
        return (self.ou.drift(t, x) + self._alpha_drift(t)
                - self.B(t, self._horizon()) * self.sigma ** 2)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        return (self.ou.expectation(t0, x0, dt)
                + self.alpha(t0 + dt) - self.alpha(t0) * np.exp(-self.a * dt)
                - self.M_T(t0, t0 + dt, self._horizon()))

    def M_T(self, s: float, t: float, T: float) -> float:
        if self.a > QL_EPSILON:
            coeff = self.sigma ** 2 / self.a ** 2
            exp1 = np.exp(-self.a * (t - s))
            exp2 = np.exp(-self.a * (T - t))
            exp3 = np.exp(-self.a * (T + t - 2.0 * s))
            return coeff * (1 - exp1) - 0.5 * coeff * (exp2 - exp3)
        coeff = self.sigma ** 2 / 2.0
        return coeff * (t - s) * (2.0 * T - t - s)

    def B(self, t: float, T: float) -> float:
        return 1 / self.a * (1 - np.exp(-self.a * (T - t))) if self.a > QL_EPSILON else T - t
