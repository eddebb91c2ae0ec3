"""
Hybrid Heston / Hull-White Process

Three-factor equity model: Heston stochastic volatility with a Hull-White
short rate under the T-forward measure
"""
from enum import Enum

import numpy as np

from .base import StochasticProcess
from .heston import HestonProcess
from .hull_white import HullWhiteForwardProcess

QL_EPSILON = np.finfo(float).eps


class HybridDiscretization(Enum):
    EULER = "euler"
    BSM_HULL_WHITE = "bsm_hull_white"


class HybridHestonHullWhiteProcess(StochasticProcess):
    """
    Heston equity with a stochastic Hull-White short rate

        dS/S = (r_t - q) dt + sqrt(v) dW_S
        dv   = kappa (theta - v) dt + sigma sqrt(v) dW_v
        dr   = Hull-White dynamics under the T-forward measure
        dW_S dW_v = rho dt,  dW_S dW_r = rho_Sr dt

    State x = [S, v, r]. The variance takes a plain Euler step. The log
    asset drift integrates the Hull-White short rate analytically over the
    step (terms m1..m5). With BSM_HULL_WHITE the equity and rate increments
    use the exact terminal correlation of the integrated rate, clamped to
    the range the Heston correlation leaves; EULER uses rho_Sr directly.

    numeraire(t, x) = P(t, T | r) / P(0, T), P the Hull-White bond on the
    equity's risk-free curve.

    Args:
        heston_process: equity and variance dynamics
        hull_white_process: short rate; its forward measure time is T
        corr_equity_short_rate: rho_Sr
        discretization: HybridDiscretization scheme
    """

    def __init__(
        self,
        heston_process: HestonProcess,
        hull_white_process: HullWhiteForwardProcess,
        corr_equity_short_rate: float,
        discretization: HybridDiscretization = HybridDiscretization.BSM_HULL_WHITE,
        name: str = "HybridHestonHullWhite"
    ):
        super().__init__(name=name)
        if not isinstance(discretization, HybridDiscretization):
            raise ValueError(f"unknown discretization scheme: {discretization}")
        rho = heston_process.rho
        if corr_equity_short_rate ** 2 + rho ** 2 > 1.0:
            raise ValueError("correlation matrix is not positive definite")
        if hull_white_process.sigma <= 0.0:
            raise ValueError("positive vol of Hull White process is required")
        if hull_white_process.a <= QL_EPSILON:
            raise ValueError("positive mean reversion of Hull White process is required")
        if hull_white_process.get_forward_measure_time() is None:
            raise ValueError("forward measure time of the Hull White process is not set")

        self.heston_process = heston_process
        self.hull_white_process = hull_white_process
        self.corr_equity_short_rate = float(corr_equity_short_rate)
        self.discretization_scheme = discretization
        # reserve for rounding errors
        self.max_rho = np.sqrt(1.0 - rho * rho) - np.sqrt(QL_EPSILON)
        self.T = hull_white_process.get_forward_measure_time()
        self.end_discount = heston_process.risk_free_rate.discount(self.T)

        self.register_with(heston_process)
        self.register_with(hull_white_process)
        self.params.update({'rho_Sr': self.corr_equity_short_rate, 'T': self.T,
                            'scheme': discretization.name})

    def invalidate_caches(self) -> None:
        self.end_discount = self.heston_process.risk_free_rate.discount(self.T)

    def size(self) -> int:
        return 3

    def initial_values(self) -> np.ndarray:
        return np.array([self.heston_process.s0, self.heston_process.v0,
                         self.hull_white_process.x0()])

    def drift(self, t, x):
        x = self._check_state(x)
        y = self.heston_process.drift(t, x[:2])
        return np.array([y[0], y[1], self.hull_white_process.drift(t, x[2])])

    def diffusion(self, t, x):
        x = self._check_state(x)
        m = self.heston_process.diffusion(t, x[:2])
        sigma = self.hull_white_process.sigma
        result = np.zeros((3, 3))
        result[0, 0] = m[0, 0]
        result[1, 0] = m[1, 0]
        result[1, 1] = m[1, 1]
        result[2, 0] = self.corr_equity_short_rate * sigma
        result[2, 1] = -result[2, 0] * result[1, 0] / result[1, 1]
        result[2, 2] = np.sqrt(sigma * sigma - result[2, 1] ** 2 - result[2, 0] ** 2)
        return result

    def apply(self, x0, dx):
        x0 = self._check_state(x0)
        dx = np.asarray(dx, dtype=float)
        y = self.heston_process.apply(x0[:2], dx[:2])
        return np.array([y[0], y[1], self.hull_white_process.apply(x0[2], dx[2])])

    def _log_drift(self, t0, r, eta, dt) -> float:
        hw = self.hull_white_process
        a, sigma, rho = hw.a, hw.sigma, self.corr_equity_short_rate
        s, t, T = t0, t0 + dt, self.T
        curve = self.heston_process.risk_free_rate

        dy = self.heston_process.dividend_yield.forward_rate(s, t)
        df = np.log(curve.discount(t) / curve.discount(s))
        eaT, eat, eas = np.exp(-a * T), np.exp(-a * t), np.exp(-a * s)
        iat, ias = 1.0 / eat, 1.0 / eas

        m1 = -(dy + 0.5 * eta * eta) * dt - df
        m2 = -rho * sigma * eta / a * (dt - 1 / a * eaT * (iat - ias))
        m3 = (r - hw.alpha(s)) * hw.B(s, t)
        m4 = sigma * sigma / (2 * a * a) * (dt + 2 / a * (eat - eas) - 1 / (2 * a) * (eat * eat - eas * eas))
        m5 = -sigma * sigma / (a * a) * (dt - 1 / a * (1 - eat * ias)
                                         - 1 / (2 * a) * eaT * (iat - 2 * ias + eat * ias * ias))
        return m1 + m2 + m3 + m4 + m5

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)
        heston = self.heston_process
        hw = self.hull_white_process

        r = x0[2]
        a, sigma, rho = hw.a, hw.sigma, self.corr_equity_short_rate
        xi = heston.rho
        eta = np.sqrt(x0[1]) if x0[1] > 0.0 else 0.0
        eat_ias = np.exp(-a * dt)

        mu = self._log_drift(t0, r, eta, dt)

        nu = heston.kappa * (heston.theta - eta * eta)
        v1 = x0[1] + nu * dt + heston.sigma * eta * np.sqrt(dt) * (
            xi * dw[0] + np.sqrt(1 - xi * xi) * dw[1])

        if self.discretization_scheme == HybridDiscretization.BSM_HULL_WHITE:
            var_s = (eta * eta * dt
                     + sigma * sigma / (a * a) * (dt - 2 / a * (1 - eat_ias) + 1 / (2 * a) * (1 - eat_ias ** 2))
                     + 2 * sigma * eta / a * rho * (dt - 1 / a * (1 - eat_ias)))
            var_r = hw.variance(t0, r, dt)
            cov_sr = ((1 - eat_ias) * (sigma * eta / a * rho + sigma * sigma / (a * a))
                      - sigma * sigma / (2 * a * a) * (1 - eat_ias ** 2))
            if var_s <= 0.0 or var_r <= 0.0:
                raise ValueError("zero or negative variance given")
            # terminal correlation must stay within +-max_rho
            rho_t = min(self.max_rho, max(-self.max_rho, cov_sr / np.sqrt(var_s * var_r)))
            if not (-1.0 <= rho_t <= 1.0 and 1 - rho_t * rho_t / (1 - xi * xi) >= 0.0):
                raise ValueError("invalid terminal correlation")
            dw_r = (rho_t * dw[0] - rho_t * xi / np.sqrt(1 - xi * xi) * dw[1]
                    + np.sqrt(1 - rho_t * rho_t / (1 - xi * xi)) * dw[2])
            s1 = x0[0] * np.exp(mu + np.sqrt(var_s) * dw[0])
        else:
            dw_r = (rho * dw[0] - rho * xi / np.sqrt(1 - xi * xi) * dw[1]
                    + np.sqrt(1 - rho * rho / (1 - xi * xi)) * dw[2])
            s1 = x0[0] * np.exp(mu + eta * np.sqrt(dt) * dw[0])

        r1 = hw.evolve(t0, r, dt, dw_r)
        return np.array([s1, v1, r1])

    def _discount_bond(self, t: float, T: float, r: float) -> float:
        """Hull-White zero bond P(t, T) given the short rate r at t."""
        curve = self.heston_process.risk_free_rate
        hw = self.hull_white_process
        B = hw.B(t, T)
        temp = hw.sigma * B
        value = B * curve.forward_rate(t, t) - 0.25 * temp * temp * hw.B(0.0, 2.0 * t)
        A = np.exp(value) * curve.discount(T) / curve.discount(t)
        return A * np.exp(-B * r)

    def numeraire(self, t, x) -> float:
        self.refresh()
        x = self._check_state(x)
        return self._discount_bond(t, self.T, x[2]) / self.end_discount

    def eta(self) -> float:
        return self.corr_equity_short_rate

    def time(self, d) -> float:
        return self.heston_process.time(d)
