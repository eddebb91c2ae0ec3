"""
GJR-GARCH(1,1) Diffusion Limit

Continuous-time limit of the asymmetric GARCH model of Glosten,
Jagannathan and Runkle, as a two-factor stochastic volatility process
"""
from enum import Enum

import numpy as np

from market.observable import Observable
from market.quotes import quote_value
from utils.distributions import cumulative_normal
from .base import StochasticProcess


class GJRGARCHDiscretization(Enum):
    PARTIAL_TRUNCATION = "partial_truncation"
    FULL_TRUNCATION = "full_truncation"
    REFLECTION = "reflection"


class GJRGARCHProcess(StochasticProcess):
    """
    GJR-GARCH(1,1) diffusion

        dS = mu S dt + sqrt(v) S dW_1
        dv = (omega + (beta + alpha q2 + gamma q3 - 1) v) dt
             + (alpha s12 + gamma s13) v dW_1
             + sqrt(alpha^2 (s2 - s12^2) + gamma^2 (s3 - s13^2)
                    + 2 alpha gamma (s23 - s12 s13)) v dW_2

    with, for the market price of risk lambda, N = Phi(lambda) and
    n = phi(lambda):
        q2  = 1 + lambda^2
        q3  = lambda n + N + lambda^2 N
        s2  = 2 + 4 lambda^2
        s3  = E[(z - lambda)^4 1{z < lambda}] - q3^2
        s12 = -2 lambda
        s13 = -2 n - 2 lambda N
        s23 = 2 N + s12 s13

    Parameters are daily; time is annualised with days_per_year, so the
    variance state is daily variance times days_per_year.
    """

    def __init__(
        self,
        risk_free_rate,
        dividend_yield,
        s0,
        v0: float,
        omega: float,
        alpha: float,
        beta: float,
        gamma: float,
        lambda_: float,
        days_per_year: float = 252.0,
        scheme: GJRGARCHDiscretization = GJRGARCHDiscretization.FULL_TRUNCATION,
        name: str = "GJRGARCH"
    ):
        super().__init__(name=name)
        if not isinstance(scheme, GJRGARCHDiscretization):
            raise ValueError(f"unknown discretization scheme: {scheme}")
        if days_per_year <= 0.0:
            raise ValueError(f"days per year must be positive, got {days_per_year}")
        self.risk_free_rate = risk_free_rate
        self.dividend_yield = dividend_yield
        self._s0 = s0
        self.v0 = float(v0)
        self.omega = float(omega)
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.gamma = float(gamma)
        self.lambda_ = float(lambda_)
        self.days_per_year = float(days_per_year)
        self.scheme = scheme

        for observable in (risk_free_rate, dividend_yield, s0):
            if isinstance(observable, Observable):
                self.register_with(observable)

        self.params.update({'v0': self.v0, 'omega': self.omega, 'alpha': self.alpha,
                            'beta': self.beta, 'gamma': self.gamma, 'lambda': self.lambda_,
                            'days_per_year': self.days_per_year, 'scheme': self.scheme.name})
        self._moments = self._innovation_moments()

    def _innovation_moments(self):
        lam = self.lambda_
        N = float(cumulative_normal(lam))
        n = np.exp(-lam * lam / 2.0) / np.sqrt(2 * np.pi)
        q2 = 1.0 + lam * lam
        q3 = lam * n + N + lam * lam * N
        sigma2 = 2.0 + 4.0 * lam * lam
        eml_e4 = lam ** 3 * n + 5.0 * lam * n + 3.0 * N + lam ** 4 * N + 6.0 * lam * lam * N
        sigma3 = eml_e4 - q3 * q3
        sigma12 = -2.0 * lam
        sigma13 = -2.0 * n - 2.0 * lam * N
        sigma23 = 2.0 * N + sigma12 * sigma13
        # loadings of the variance on the two drivers, per unit of variance
        rho1 = np.sqrt(self.days_per_year) * (self.alpha * sigma12 + self.gamma * sigma13)
        rho2 = np.sqrt(self.days_per_year) * np.sqrt(
            self.alpha ** 2 * (sigma2 - sigma12 ** 2)
            + self.gamma ** 2 * (sigma3 - sigma13 ** 2)
            + 2.0 * self.alpha * self.gamma * (sigma23 - sigma12 * sigma13))
        return q2, q3, rho1, rho2

    @property
    def s0(self) -> float:
        return quote_value(self._s0)

    def size(self) -> int:
        return 2

    def initial_values(self) -> np.ndarray:
        return np.array([self.s0, self.days_per_year * self.v0])

    def time(self, d) -> float:
        return self.risk_free_rate.time_from_reference(d)

    def _carry(self, t0, t1):
        return self.risk_free_rate.forward_rate(t0, t1) - self.dividend_yield.forward_rate(t0, t1)

    def _mean_reversion(self, v):
        q2, q3, _, _ = self._moments
        d = self.days_per_year
        return d * d * self.omega + d * (self.beta + self.alpha * q2 + self.gamma * q3 - 1.0) * v

    def _signed_vol(self, v, floor):
        if v > 0.0:
            return np.sqrt(v)
        if self.scheme == GJRGARCHDiscretization.REFLECTION:
            return -np.sqrt(-v)
        return floor

    def drift(self, t, x):
        x = self._check_state(x)
        vol = self._signed_vol(x[1], 0.0)
        v = x[1] if self.scheme == GJRGARCHDiscretization.PARTIAL_TRUNCATION else vol * vol
        return np.array([self._carry(t, t) - 0.5 * vol * vol, self._mean_reversion(v)])

    def diffusion(self, t, x):
        x = self._check_state(x)
        _, _, rho1, rho2 = self._moments
        vol = self._signed_vol(x[1], 1e-8)
        return np.array([
            [vol, 0.0],
            [rho1 * vol * vol, rho2 * vol * vol],
        ])

    def apply(self, x0, dx):
        return np.array([x0[0] * np.exp(dx[0]), x0[1] + dx[1]])

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)
        _, _, rho1, rho2 = self._moments
        s, v = x0
        sdt = np.sqrt(dt)

        if self.scheme == GJRGARCHDiscretization.REFLECTION:
            vol = np.sqrt(abs(v))
            base = vol * vol
            nu = self._mean_reversion(vol * vol)
        else:
            vol = np.sqrt(v) if v > 0.0 else 0.0
            base = v
            nu = self._mean_reversion(v if self.scheme == GJRGARCHDiscretization.PARTIAL_TRUNCATION
                                      else vol * vol)

        mu = self._carry(t0, t0 + dt) - 0.5 * vol * vol
        s1 = s * np.exp(mu * dt + vol * dw[0] * sdt)
        v1 = base + nu * dt + sdt * vol * vol * (rho1 * dw[0] + rho2 * dw[1])

        if self.scheme == GJRGARCHDiscretization.FULL_TRUNCATION:
            v1 = max(v1, 0.0)
        elif self.scheme == GJRGARCHDiscretization.REFLECTION:
            v1 = abs(v1)
        return np.array([s1, v1])
