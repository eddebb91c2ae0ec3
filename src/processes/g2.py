"""
G2++ Two-Factor Gaussian Short-Rate Process
"""
import numpy as np

from .base import StochasticProcess
from .ornstein_uhlenbeck import OrnsteinUhlenbeckProcess


class G2Process(StochasticProcess):
    """
    Two correlated zero-mean OU factors

        dx_t = -a x_t dt + sigma dW_1
        dy_t = -b y_t dt + eta dW_2
        dW_1 dW_2 = rho dt

    The short rate is r_t = x_t + y_t + phi(t); phi is the curve-fitting
    shift and is left to the pricing model. Both factors start at zero.

    The diffusion is the Cholesky root of the instantaneous covariance,
        | sigma              0                  |
        | rho eta   sqrt(1 - rho^2) eta         |
    and the step standard deviation uses the exact correlation of the two
    integrated OU factors over dt.
    """

    def __init__(self, a: float, sigma: float, b: float, eta: float, rho: float,
                 name: str = "G2"):
        super().__init__(name=name)
        if not -1.0 <= rho <= 1.0:
            raise ValueError(f"correlation must be in [-1, 1], got {rho}")
        self.a = float(a)
        self.sigma = float(sigma)
        self.b = float(b)
        self.eta = float(eta)
        self.rho = float(rho)
        self.x_process = OrnsteinUhlenbeckProcess(a, sigma, 0.0, 0.0)
        self.y_process = OrnsteinUhlenbeckProcess(b, eta, 0.0, 0.0)
        self.params.update({'a': self.a, 'sigma': self.sigma, 'b': self.b,
                            'eta': self.eta, 'rho': self.rho})

    def size(self) -> int:
        return 2

    def initial_values(self) -> np.ndarray:
        return np.zeros(2)

    def drift(self, t, x):
        x = self._check_state(x)
        return np.array([self.x_process.drift(t, x[0]), self.y_process.drift(t, x[1])])

    def diffusion(self, t, x):
        return np.array([
            [self.sigma, 0.0],
            [self.rho * self.eta, np.sqrt(1.0 - self.rho * self.rho) * self.eta],
        ])

    def expectation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.array([self.x_process.expectation(t0, x0[0], dt),
                         self.y_process.expectation(t0, x0[1], dt)])

    def _step_correlation(self, dt: float) -> float:
        if dt == 0.0:
            return self.rho
        expa = np.exp(-self.a * dt)
        expb = np.exp(-self.b * dt)
        H = self.rho * self.sigma * self.eta / (self.a + self.b) * (1.0 - expa * expb)
        den = 0.5 * self.sigma * self.eta * np.sqrt(
            (1.0 - expa * expa) * (1.0 - expb * expb) / (self.a * self.b))
        return H / den

    def std_deviation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        self._check_step(dt)
        sigma1 = self.x_process.std_deviation(t0, x0[0], dt)
        sigma2 = self.y_process.std_deviation(t0, x0[1], dt)
        new_rho = self._step_correlation(dt)
        return np.array([
            [sigma1, 0.0],
            [new_rho * sigma2, np.sqrt(1.0 - new_rho * new_rho) * sigma2],
        ])

    def covariance(self, t0, x0, dt):
        sigma = self.std_deviation(t0, x0, dt)
        return sigma @ sigma.T
