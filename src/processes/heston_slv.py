"""
Heston Stochastic Local Volatility

Heston variance dynamics with a leverage function L(t, S) scaling the
asset volatility, and a mixing factor damping the vol-of-vol
"""
import numpy as np

from .base import StochasticProcess
from .heston import HestonProcess
from .square_root import quadratic_exponential_step, square_root_moments


class HestonSLVProcess(StochasticProcess):
    """
    Heston stochastic local volatility process

        dS_t = (r - q) S_t dt + L(t, S_t) sqrt(v_t) S_t dW_1
        dv_t = kappa (theta - v_t) dt + eta sigma sqrt(v_t) dW_2
        dW_1 dW_2 = rho dt

    where eta is the mixing factor (eta = 0 gives a pure local volatility
    model, eta = 1 the full Heston dynamics).

    The variance is evolved with the quadratic-exponential scheme; the log
    asset uses the trapezoidal average of the variance over the step and
    the Andersen drift correction from the variance increment.

    Parameters are read from the wrapped HestonProcess and refreshed when
    it notifies a change.
    """

    def __init__(self, heston_process: HestonProcess, leverage_function, mixing_factor: float = 1.0,
                 name: str = "HestonSLV"):
        super().__init__(name=name)
        self.heston_process = heston_process
        self.leverage_function = leverage_function
        self.mixing_factor = float(mixing_factor)
        self.register_with(heston_process)
        self._set_parameters()

    def _set_parameters(self):
        self.v0 = self.heston_process.v0
        self.kappa = self.heston_process.kappa
        self.theta = self.heston_process.theta
        self.sigma = self.heston_process.sigma
        self.rho = self.heston_process.rho
        self.mixed_sigma = self.mixing_factor * self.sigma
        self.params.update({'kappa': self.kappa, 'theta': self.theta, 'sigma': self.sigma,
                            'rho': self.rho, 'mixing_factor': self.mixing_factor})

    def update(self) -> None:
        self._set_parameters()
        super().update()

    def size(self) -> int:
        return 2

    def factors(self) -> int:
        return 2

    def initial_values(self) -> np.ndarray:
        return self.heston_process.initial_values()

    def apply(self, x0, dx):
        return self.heston_process.apply(x0, dx)

    def time(self, d) -> float:
        return self.heston_process.time(d)

    def _leverage(self, t, s):
        return float(self.leverage_function.local_vol(t, s))

    def drift(self, t, x):
        x = self._check_state(x)
        vol = max(1e-8, np.sqrt(x[1]) * self._leverage(t, x[0]))
        return np.array([
            self.heston_process._carry(t, t) - 0.5 * vol * vol,
            self.kappa * (self.theta - x[1]),
        ])

    def diffusion(self, t, x):
        x = self._check_state(x)
        vol = max(1e-8, np.sqrt(x[1]) * self._leverage(t, x[0]))
        sigma2 = self.mixed_sigma * np.sqrt(x[1])
        sqrhov = np.sqrt(1.0 - self.rho * self.rho)
        return np.array([
            [vol, 0.0],
            [self.rho * sigma2, sqrhov * sigma2],
        ])

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)
        s, v = x0

        m, s2 = square_root_moments(v, self.kappa, self.theta, self.mixed_sigma, dt)
        v1, _, _ = quadratic_exponential_step(m, s2, dw[1])

        mu = self.heston_process._carry(t0, t0 + dt)
        rho1 = np.sqrt(1.0 - self.rho * self.rho)
        l_0 = self._leverage(t0, s)
        v_0 = 0.5 * (v + v1) * l_0 * l_0

        if self.mixed_sigma == 0.0:
            # deterministic variance: the asset carries the whole Brownian driver
            s1 = s * np.exp(mu * dt - 0.5 * v_0 * dt + np.sqrt(v_0 * dt) * dw[0])
            return np.array([s1, v1])

        s1 = s * np.exp(mu * dt - 0.5 * v_0 * dt
                        + self.rho / self.mixed_sigma * l_0
                        * (v1 - self.kappa * self.theta * dt + 0.5 * (v + v1) * self.kappa * dt - v)
                        + rho1 * np.sqrt(v_0 * dt) * dw[0])
        return np.array([s1, v1])
