"""
Heston Stochastic Volatility Model

Two-factor model with square-root stochastic variance for the asset price
and a family of evolution schemes that keep the variance admissible
"""
import logging
import warnings
from enum import Enum

import numpy as np

from market.quotes import quote_value
from market.observable import Observable
from utils.distributions import cumulative_normal
from utils.solvers import bounded_brent
from .base import StochasticProcess
from .config import DEFAULT_CONFIG, NumericalConfig
from .heston_exact import cdf_integrated_variance, integration_cutoff
from .square_root import quadratic_exponential_step, sample_square_root_exact, square_root_moments

logger = logging.getLogger(__name__)

QL_EPSILON = np.finfo(float).eps


class HestonDiscretization(Enum):
    PARTIAL_TRUNCATION = "partial_truncation"
    FULL_TRUNCATION = "full_truncation"
    REFLECTION = "reflection"
    NON_CENTRAL_CHI_SQUARE_VARIANCE = "non_central_chi_square_variance"
    QUADRATIC_EXPONENTIAL = "quadratic_exponential"
    QUADRATIC_EXPONENTIAL_MARTINGALE = "quadratic_exponential_martingale"
    BROADIE_KAYA_EXACT_SCHEME_LOBATTO = "broadie_kaya_lobatto"
    BROADIE_KAYA_EXACT_SCHEME_LAGUERRE = "broadie_kaya_laguerre"
    BROADIE_KAYA_EXACT_SCHEME_TRAPEZOIDAL = "broadie_kaya_trapezoidal"

    @property
    def is_broadie_kaya(self) -> bool:
        return self.name.startswith("BROADIE_KAYA")


class HestonProcess(StochasticProcess):
    """
    Heston Stochastic Volatility Model

    Two-dimensional system:
        dS_t = (r - q) S_t dt + sqrt(v_t) S_t dW_t^S
        dv_t = kappa * (theta - v_t) dt + sigma * sqrt(v_t) dW_t^v
        dW^S dW^v = rho dt

    where:
        - S_t: asset price
        - v_t: instantaneous variance (volatility squared)
        - r, q: risk-free and dividend forward rates from their curves
        - kappa: mean reversion speed of variance
        - theta: long-term mean of variance
        - sigma: volatility of volatility (vol-of-vol)
        - rho: correlation between dW^S and dW^v

    State vector: x = [S, v]; increments move log S, so apply() is
    multiplicative in the first component and additive in the second.

    The diffusion uses the Cholesky root of [[1, rho], [rho, 1]]:
        | 1          0          |
        | rho   sqrt(1 - rho^2) |
    so the first driver moves the asset unscaled and the variance mixes
    both drivers.

    Schemes (HestonDiscretization):
        - PARTIAL_TRUNCATION / FULL_TRUNCATION / REFLECTION:
          Lord, Koekkoek and van Dijk (2006)
        - NON_CENTRAL_CHI_SQUARE_VARIANCE: exact variance, Lewis
          decorrelation of the log-asset
        - QUADRATIC_EXPONENTIAL(_MARTINGALE): Andersen (2008)
        - BROADIE_KAYA_EXACT_SCHEME_*: Broadie and Kaya (2006), needs a
          third driver for the integrated variance
    """

    def __init__(
        self,
        risk_free_rate,
        dividend_yield,
        s0,
        v0: float,
        kappa: float,
        theta: float,
        sigma: float,
        rho: float,
        scheme: HestonDiscretization = HestonDiscretization.QUADRATIC_EXPONENTIAL_MARTINGALE,
        config: NumericalConfig = DEFAULT_CONFIG,
        name: str = "Heston"
    ):
        """
        Initialize Heston model

        Args:
            risk_free_rate: yield curve r(t)
            dividend_yield: yield curve q(t)
            s0: initial asset value (float or quote)
            v0: initial variance
            kappa: mean reversion speed
            theta: long-term variance
            sigma: volatility of volatility (sigma >= 0)
            rho: correlation in [-1, 1]
            scheme: evolution scheme
            config: numerical settings for the exact schemes
            name: Model name
        """
        super().__init__(name=name)
        if not isinstance(scheme, HestonDiscretization):
            raise ValueError(f"unknown discretization scheme: {scheme}")
        if not -1.0 <= rho <= 1.0:
            raise ValueError(f"correlation must lie in [-1, 1], got {rho}")
        if sigma < 0.0:
            raise ValueError(f"negative volatility of variance given: {sigma}")
        if scheme not in (HestonDiscretization.PARTIAL_TRUNCATION,
                          HestonDiscretization.FULL_TRUNCATION,
                          HestonDiscretization.REFLECTION):
            if kappa <= 0.0 or sigma <= 0.0:
                raise ValueError(f"{scheme.name} requires kappa > 0 and sigma > 0")

        self.risk_free_rate = risk_free_rate
        self.dividend_yield = dividend_yield
        self._s0 = s0
        self.v0 = float(v0)
        self.kappa = float(kappa)
        self.theta = float(theta)
        self.sigma = float(sigma)
        self.rho = float(rho)
        self.scheme = scheme
        self.config = config

        for observable in (risk_free_rate, dividend_yield, s0):
            if isinstance(observable, Observable):
                self.register_with(observable)

        self.params['v0'] = self.v0
        self.params['kappa'] = self.kappa
        self.params['theta'] = self.theta
        self.params['sigma'] = self.sigma
        self.params['rho'] = self.rho
        self.params['scheme'] = self.scheme.name

        # Feller condition: 2*kappa*theta > sigma^2 keeps v_t away from zero
        self.feller_condition = 2 * self.kappa * self.theta > self.sigma ** 2
        self.params['feller_satisfied'] = self.feller_condition
        if not self.feller_condition and scheme in (HestonDiscretization.PARTIAL_TRUNCATION,
                                                    HestonDiscretization.FULL_TRUNCATION,
                                                    HestonDiscretization.REFLECTION):
            warnings.warn(
                f"Feller condition violated (2*kappa*theta={2 * self.kappa * self.theta:.4g} "
                f"<= sigma^2={self.sigma ** 2:.4g}); {scheme.name} will hit the zero boundary"
            )

    @property
    def s0(self) -> float:
        return quote_value(self._s0)

    def size(self) -> int:
        return 2

    def factors(self) -> int:
        return 3 if self.scheme.is_broadie_kaya else 2

    def initial_values(self) -> np.ndarray:
        return np.array([self.s0, self.v0])

    def time(self, d) -> float:
        return self.risk_free_rate.time_from_reference(d)

    def _carry(self, t0: float, t1: float) -> float:
        return self.risk_free_rate.forward_rate(t0, t1) - self.dividend_yield.forward_rate(t0, t1)

    def _signed_vol(self, v: float, floor: float) -> float:
        if v > 0.0:
            return np.sqrt(v)
        if self.scheme == HestonDiscretization.REFLECTION:
            return -np.sqrt(-v)
        return floor

    def drift(self, t, x):
        x = self._check_state(x)
        vol = self._signed_vol(x[1], 0.0)
        variance_term = x[1] if self.scheme == HestonDiscretization.PARTIAL_TRUNCATION else vol * vol
        return np.array([
            self._carry(t, t) - 0.5 * vol * vol,
            self.kappa * (self.theta - variance_term),
        ])

    def diffusion(self, t, x):
        x = self._check_state(x)
        # almost zero, but still exposing the correlation structure
        vol = self._signed_vol(x[1], 1e-8)
        sigma2 = self.sigma * vol
        sqrhov = np.sqrt(1.0 - self.rho * self.rho)
        result = np.zeros((2, self.factors()))
        result[0, 0] = vol
        result[1, 0] = self.rho * sigma2
        result[1, 1] = sqrhov * sigma2
        return result

    def apply(self, x0, dx):
        return np.array([x0[0] * np.exp(dx[0]), x0[1] + dx[1]])

    def variance_distribution(self, v: float, dw: float, dt: float) -> float:
        """Exact draw of v(t0+dt) given v(t0) = v."""
        return sample_square_root_exact(v, self.kappa, self.theta, self.sigma, dt, dw, self.config)

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)

        return self._evolve_diffusive(t0, x0, dt, dw)

    def _evolve_diffusive(self, t0, x0, dt, dw):
        s, v = x0
        sdt = np.sqrt(dt)
        sqrhov = np.sqrt(1.0 - self.rho * self.rho)
        carry = self._carry(t0, t0 + dt)
        scheme = self.scheme

        if scheme in (HestonDiscretization.PARTIAL_TRUNCATION, HestonDiscretization.FULL_TRUNCATION):
            vol = np.sqrt(v) if v > 0.0 else 0.0
            mu = carry - 0.5 * vol * vol
            nu = self.kappa * (self.theta - (v if scheme == HestonDiscretization.PARTIAL_TRUNCATION
                                             else vol * vol))
            s1 = s * np.exp(mu * dt + vol * dw[0] * sdt)
            v1 = v + nu * dt + self.sigma * vol * sdt * (self.rho * dw[0] + sqrhov * dw[1])
            if scheme == HestonDiscretization.FULL_TRUNCATION:
                v1 = max(v1, 0.0)
            return np.array([s1, v1])

        if scheme == HestonDiscretization.REFLECTION:
            vol = np.sqrt(abs(v))
            mu = carry - 0.5 * vol * vol
            nu = self.kappa * (self.theta - vol * vol)
            s1 = s * np.exp(mu * dt + vol * dw[0] * sdt)
            v1 = vol * vol + nu * dt + self.sigma * vol * sdt * (self.rho * dw[0] + sqrhov * dw[1])
            return np.array([s1, abs(v1)])

        if scheme == HestonDiscretization.NON_CENTRAL_CHI_SQUARE_VARIANCE:
            # Lewis: y = log S - rho/sigma v is driven by the independent factor only
            vol = np.sqrt(v) if v > 0.0 else 0.0
            mu = carry - 0.5 * vol * vol
            v1 = self.variance_distribution(v, dw[1], dt)
            dy = ((mu - self.rho / self.sigma * self.kappa * (self.theta - vol * vol)) * dt
                  + vol * sqrhov * dw[0] * sdt)
            return np.array([s * np.exp(dy + self.rho / self.sigma * (v1 - v)), v1])

        if scheme in (HestonDiscretization.QUADRATIC_EXPONENTIAL,
                      HestonDiscretization.QUADRATIC_EXPONENTIAL_MARTINGALE):
            return self._evolve_quadratic_exponential(s, v, dt, dw, carry)

        return self._evolve_broadie_kaya(s, v, dt, dw, carry)

    def _evolve_quadratic_exponential(self, s, v, dt, dw, carry):
        kappa, theta, sigma, rho = self.kappa, self.theta, self.sigma, self.rho
        m, s2 = square_root_moments(v, kappa, theta, sigma, dt)
        v1, psi, branch = quadratic_exponential_step(m, s2, dw[1])

        g1 = g2 = 0.5
        k0 = -rho * kappa * theta * dt / sigma
        k1 = g1 * dt * (kappa * rho / sigma - 0.5) - rho / sigma
        k2 = g2 * dt * (kappa * rho / sigma - 0.5) + rho / sigma
        k3 = g1 * dt * (1 - rho * rho)
        k4 = g2 * dt * (1 - rho * rho)
        A = k2 + 0.5 * k4

        martingale = self.scheme == HestonDiscretization.QUADRATIC_EXPONENTIAL_MARTINGALE
        if martingale and branch is not None:
            if psi < 1.5:
                a, b2 = branch
                if not A < 1.0 / (2.0 * a):
                    raise ValueError(
                        f"martingale correction unavailable: A={A:.6g} >= 1/(2a)={1.0 / (2.0 * a):.6g}"
                    )
                k0 = (-A * b2 * a / (1 - 2 * A * a) + 0.5 * np.log(1 - 2 * A * a)
                      - (k1 + 0.5 * k3) * v)
            else:
                p, beta = branch
                if not A < beta:
                    raise ValueError(
                        f"martingale correction unavailable: A={A:.6g} >= beta={beta:.6g}"
                    )
                k0 = -np.log(p + beta * (1 - p) / (beta - A)) - (k1 + 0.5 * k3) * v

        s1 = s * np.exp(carry * dt + k0 + k1 * v + k2 * v1
                        + np.sqrt(k3 * v + k4 * v1) * dw[0])
        return np.array([s1, v1])

    def _evolve_broadie_kaya(self, s, v, dt, dw, carry):
        if dt == 0.0:
            return np.array([s, v])
        nu_0 = v
        nu_t = self.variance_distribution(nu_0, dw[1], dt)
        x = min(1.0 - QL_EPSILON, max(0.0, float(cumulative_normal(dw[2]))))
        upper = integration_cutoff(self, nu_0, nu_t, dt, self.config.max_doublings)

        def objective(xi):
            return cdf_integrated_variance(self, xi, nu_0, nu_t, dt, self.scheme,
                                           upper=upper) - x

        vds = bounded_brent(objective, self.config.brent_accuracy,
                            self.theta * dt, 0.1 * self.theta * dt,
                            lower_bound=0.0,
                            max_evaluations=self.config.brent_max_iterations)
        logger.debug("integrated variance %.6g solved for u=%.6g", vds, x)

        vdw = (nu_t - nu_0 - self.kappa * self.theta * dt + self.kappa * vds) / self.sigma
        mu = carry * dt - 0.5 * vds + self.rho * vdw
        sig = np.sqrt((1 - self.rho * self.rho) * vds)
        return np.array([s * np.exp(mu + sig * dw[0]), nu_t])
