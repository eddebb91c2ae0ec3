"""
Square-root (CIR-type) Processes

Mean-reverting processes with state-dependent volatility sigma * sqrt(x):
short rates, stochastic variances, default intensities.

    dx_t = k (theta - x_t) dt + sigma sqrt(x_t) dW_t

The state has to stay non-negative; CoxIngersollRossProcess therefore
evolves with one of several schemes that handle the boundary explicitly.
"""
from enum import Enum

import numpy as np

from utils.distributions import NonCentralChiSquare, cumulative_normal
from .base import StochasticProcess1D
from .config import DEFAULT_CONFIG, NumericalConfig

QL_EPSILON = np.finfo(float).eps


class SquareRootProcess(StochasticProcess1D):
    """
    Square-root process with discretized evolution

    dx = a (b - x) dt + sigma sqrt(x) dW

    No boundary handling: the plugged discretization (Euler by default) is
    used as is, so negative states are possible for coarse steps.
    """

    def __init__(self, b: float, a: float, sigma: float, x0: float = 0.0,
                 discretization=None, name: str = "SquareRoot"):
        super().__init__(discretization, name=name)
        self.mean = float(b)
        self.speed = float(a)
        self.volatility = float(sigma)
        self._x0 = float(x0)
        self.params.update({'b': self.mean, 'a': self.speed, 'sigma': self.volatility, 'x0': self._x0})

    def x0(self) -> float:
        return self._x0

    def drift(self, t, x):
        return self.speed * (self.mean - x)

    def diffusion(self, t, x):
        return self.volatility * np.sqrt(x)


class CIRDiscretization(Enum):
    PARTIAL_TRUNCATION = "partial_truncation"
    FULL_TRUNCATION = "full_truncation"
    REFLECTION = "reflection"
    QUADRATIC_EXPONENTIAL = "quadratic_exponential"
    EXACT = "exact"


def quadratic_exponential_step(m, s2, dw):
    """
    Andersen's quadratic-exponential draw for a variance with conditional
    mean m and variance s2, driven by a standard normal dw.

        psi = s2 / m^2 < 1.5:  a (b + Z)^2         (squared shifted Gaussian)
        otherwise:             0 w.p. p, else exponential tail, via Phi(Z)

    Returns:
        Tuple (value, psi, branch) where branch holds the matched
        parameters, (a, b^2) for the quadratic branch and (p, beta) for
        the exponential one, or None when s2 = 0 and the draw is m itself.
    """
    if s2 <= 0.0:
        # degenerate law, e.g. a zero step or a vanishing vol
        return m, 0.0, None
    psi = s2 / (m * m)
    if psi < 1.5:
        b2 = 2.0 / psi - 1.0 + np.sqrt(2.0 / psi * (2.0 / psi - 1.0))
        b = np.sqrt(b2)
        a = m / (1.0 + b2)
        return a * (b + dw) ** 2, psi, (a, b2)

    p = (psi - 1.0) / (psi + 1.0)
    beta = (1.0 - p) / m
    u = cumulative_normal(dw)
    value = 0.0 if u <= p else np.log((1.0 - p) / (1.0 - u)) / beta
    return value, psi, (p, beta)


def square_root_moments(x0, kappa, theta, sigma, dt):
    """Exact conditional mean and variance of the square-root diffusion."""
    ex = np.exp(-kappa * dt)
    m = theta + (x0 - theta) * ex
    s2 = (x0 * sigma * sigma * ex / kappa * (1.0 - ex)
          + theta * sigma * sigma / (2.0 * kappa) * (1.0 - ex) ** 2)
    return m, s2


def sample_square_root_exact(x0, kappa, theta, sigma, dt, dw, config: NumericalConfig = DEFAULT_CONFIG):
    """
    Exact draw of x(t0+dt) from its scaled non-central chi-square law

        x(t+dt) = c * chi2'(d, lambda)
        c = sigma^2 (1 - e^{-k dt}) / (4k),  d = 4 k theta / sigma^2,
        lambda = 4 k e^{-k dt} x0 / (sigma^2 (1 - e^{-k dt}))

    The uniform Phi(dw) is clamped to [0, 1 - eps].
    """
    if dt == 0.0:
        return x0
    ex = np.exp(-kappa * dt)
    df = 4.0 * theta * kappa / (sigma * sigma)
    ncp = 4.0 * kappa * ex / (sigma * sigma * (1.0 - ex)) * x0
    p = min(1.0 - QL_EPSILON, max(0.0, float(cumulative_normal(dw))))
    scale = sigma * sigma * (1.0 - ex) / (4.0 * kappa)
    dist = NonCentralChiSquare(df, max(ncp, 0.0), config.chi2_max_evaluations, config.chi2_accuracy)
    return scale * dist.inverse_cdf(p)


class CoxIngersollRossProcess(StochasticProcess1D):
    """
    Cox-Ingersoll-Ross process

    dx(t) = k (theta - x(t)) dt + sigma sqrt(x(t)) dW(t)

    Closed-form step moments:
        E[x(t+dt)]   = theta + (x0 - theta) e^{-k dt}
        Var[x(t+dt)] = x0 sigma^2/k (e^{-k dt} - e^{-2k dt})
                       + theta sigma^2/(2k) (1 - e^{-k dt})^2

    Evolution schemes (CIRDiscretization):
        - PARTIAL_TRUNCATION: sqrt(max(x, 0)) in the diffusion only
        - FULL_TRUNCATION: max(x, 0) in drift and diffusion, result floored
        - REFLECTION: |x| everywhere, result reflected
        - QUADRATIC_EXPONENTIAL: Andersen moment matching (default)
        - EXACT: non-central chi-square inversion

    Arrays of paths are accepted by every scheme; EXACT and
    QUADRATIC_EXPONENTIAL draw them path by path.
    """

    def __init__(
        self,
        speed: float,
        vol: float,
        x0: float,
        level: float,
        discretization: CIRDiscretization = CIRDiscretization.QUADRATIC_EXPONENTIAL,
        config: NumericalConfig = DEFAULT_CONFIG,
        name: str = "CIR"
    ):
        super().__init__(name=name)
        if vol < 0.0:
            raise ValueError(f"negative volatility given: {vol}")
        if not isinstance(discretization, CIRDiscretization):
            raise ValueError(f"unknown discretization scheme: {discretization}")
        if speed <= 0.0 and discretization in (CIRDiscretization.QUADRATIC_EXPONENTIAL,
                                                CIRDiscretization.EXACT):
            raise ValueError(f"{discretization.name} requires a positive speed, got {speed}")
        self.speed = float(speed)
        self.volatility = float(vol)
        self._x0 = float(x0)
        self.level = float(level)
        self.scheme = discretization
        self.config = config

        self.params['speed'] = self.speed
        self.params['vol'] = self.volatility
        self.params['x0'] = self._x0
        self.params['level'] = self.level
        self.params['scheme'] = self.scheme.name
        self.params['feller_satisfied'] = 2 * self.speed * self.level >= self.volatility ** 2

    def x0(self) -> float:
        return self._x0

    def drift(self, t, x):
        return self.speed * (self.level - x)

    def diffusion(self, t, x):
        return self.volatility * np.sqrt(np.maximum(x, 0.0))

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        return self.level + (x0 - self.level) * np.exp(-self.speed * dt)

    def variance(self, t0, x0, dt):
        self._check_step(dt)
        if abs(self.speed) < np.sqrt(QL_EPSILON):
            return self.volatility ** 2 * x0 * dt
        exponent1 = np.exp(-self.speed * dt)
        exponent2 = np.exp(-2.0 * self.speed * dt)
        fraction = self.volatility ** 2 / self.speed
        return (x0 * fraction * (exponent1 - exponent2)
                + self.level * fraction * 0.5 * (1.0 - exponent1) ** 2)

    def std_deviation(self, t0, x0, dt):
        return np.sqrt(self.variance(t0, x0, dt))

    def evolve(self, t0, x0, dt, dw):
        self._check_step(dt)
        k, theta, sigma = self.speed, self.level, self.volatility
        sdt = np.sqrt(dt)

        if self.scheme == CIRDiscretization.PARTIAL_TRUNCATION:
            vol = np.sqrt(np.maximum(x0, 0.0))
            return x0 + k * (theta - x0) * dt + sigma * vol * sdt * dw

        if self.scheme == CIRDiscretization.FULL_TRUNCATION:
            v_pos = np.maximum(x0, 0.0)
            x1 = x0 + k * (theta - v_pos) * dt + sigma * np.sqrt(v_pos) * sdt * dw
            return np.maximum(x1, 0.0)

        if self.scheme == CIRDiscretization.REFLECTION:
            v = np.abs(x0)
            return np.abs(v + k * (theta - v) * dt + sigma * np.sqrt(v) * sdt * dw)

        if np.ndim(x0) == 0 and np.ndim(dw) == 0:
            return self._draw(x0, dt, dw)
        return np.vectorize(self._draw, otypes=[float])(x0, dt, dw)

    def _draw(self, x0, dt, dw):
        k, theta, sigma = self.speed, self.level, self.volatility
        if self.scheme == CIRDiscretization.QUADRATIC_EXPONENTIAL:
            m, s2 = square_root_moments(x0, k, theta, sigma, dt)
            value, _, _ = quadratic_exponential_step(m, s2, dw)
            return value
        return sample_square_root_exact(x0, k, theta, sigma, dt, dw, self.config)
