"""
Bates Model

Heston stochastic volatility with log-normal jumps in the asset price
"""
import numpy as np

from utils.distributions import cumulative_normal, inverse_cumulative_poisson
from .heston import HestonDiscretization, HestonProcess

QL_EPSILON = np.finfo(float).eps


class BatesProcess(HestonProcess):
    """
    Bates (1996) model

        dS_t = (r - q - lambda m) S_t dt + sqrt(v_t) S_t dW_1 + (e^J - 1) S_t dN_t
        dv_t = kappa (theta - v_t) dt + sigma sqrt(v_t) dW_2
        dW_1 dW_2 = rho dt,   J ~ N(nu, delta^2),   N ~ Poisson(lambda)

    where m = E[e^J] - 1 = exp(nu + delta^2/2) - 1 compensates the jumps.

    Two factors beyond the Heston ones drive the jumps: the first is mapped
    to a Poisson jump count by inversion, the second to the Gaussian jump
    size. The diffusive part uses the chosen Heston scheme.
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
        lambda_: float,
        nu: float,
        delta: float,
        scheme: HestonDiscretization = HestonDiscretization.FULL_TRUNCATION,
        name: str = "Bates",
        **kwargs
    ):
        """
        Args:
            lambda_: jump intensity (lambda >= 0)
            nu: mean log jump size
            delta: log jump size volatility (delta >= 0)
            remaining arguments as HestonProcess
        """
        super().__init__(risk_free_rate, dividend_yield, s0, v0, kappa, theta, sigma, rho,
                         scheme=scheme, name=name, **kwargs)
        if lambda_ < 0.0:
            raise ValueError(f"negative jump intensity given: {lambda_}")
        if delta < 0.0:
            raise ValueError(f"negative jump volatility given: {delta}")
        self.lambda_ = float(lambda_)
        self.nu = float(nu)
        self.delta = float(delta)
        self.m = np.exp(nu + 0.5 * delta * delta) - 1.0

        self.params['lambda'] = self.lambda_
        self.params['nu'] = self.nu
        self.params['delta'] = self.delta

    def factors(self) -> int:
        return super().factors() + 2

    def drift(self, t, x):
        result = super().drift(t, x)
        result[0] -= self.lambda_ * self.m
        return result

    def evolve(self, t0, x0, dt, dw):
        dw = self._check_increment(dw)
        self._check_step(dt)
        heston_factors = super().factors()

        p = float(cumulative_normal(dw[heston_factors]))
        p = min(max(p, 0.0), 1.0 - QL_EPSILON)
        n = inverse_cumulative_poisson(p, self.lambda_ * dt)

        result = self._evolve_diffusive(t0, self._check_state(x0), dt, dw[:heston_factors])
        result[0] *= np.exp(-self.lambda_ * self.m * dt + self.nu * n
                            + self.delta * np.sqrt(n) * dw[heston_factors + 1])
        return result

