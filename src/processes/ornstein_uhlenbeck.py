"""
Ornstein-Uhlenbeck Process

Mean-reverting Gaussian process for rates, spreads and log-volatilities,
with exact step moments
"""
import numpy as np

from .base import StochasticProcess1D

QL_EPSILON = np.finfo(float).eps


class OrnsteinUhlenbeckProcess(StochasticProcess1D):
    """
    Ornstein-Uhlenbeck (OU) Process

    dX_t = a * (level - X_t) dt + sigma * dW_t

    where:
        - a: mean reversion speed
        - level: long-term mean
        - sigma: volatility (sigma >= 0)

    Exact step moments:
        E[X_{t+dt} | X_t = x] = level + (x - level) * exp(-a dt)
        Var[X_{t+dt} | X_t]   = sigma^2 / (2a) * (1 - exp(-2a dt))
    which reduce to x and sigma^2 dt as a -> 0.
    """

    def __init__(
        self,
        speed: float,
        vol: float,
        x0: float = 0.0,
        level: float = 0.0,
        name: str = "OrnsteinUhlenbeck"
    ):
        """
        Initialize Ornstein-Uhlenbeck process

        Args:
            speed: Mean reversion speed a
            vol: Volatility (vol >= 0)
            x0: Initial value
            level: Long-term mean
            name: Model name
        """
        super().__init__(name=name)
        if vol < 0.0:
            raise ValueError(f"negative volatility given: {vol}")
        self._x0 = float(x0)
        self.speed = float(speed)
        self.level = float(level)
        self.volatility = float(vol)

        self.params['speed'] = self.speed
        self.params['vol'] = self.volatility
        self.params['x0'] = self._x0
        self.params['level'] = self.level

    def x0(self) -> float:
        return self._x0

    def drift(self, t, x):
        return self.speed * (self.level - x)

    def diffusion(self, t, x):
        return self.volatility + 0.0 * np.asarray(x)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        return self.level + (x0 - self.level) * np.exp(-self.speed * dt)

    def variance(self, t0, x0, dt):
        self._check_step(dt)
        if abs(self.speed) < np.sqrt(QL_EPSILON):
            return self.volatility ** 2 * dt
        return 0.5 * self.volatility ** 2 / self.speed * (1.0 - np.exp(-2.0 * self.speed * dt))

    def std_deviation(self, t0, x0, dt):
        return np.sqrt(self.variance(t0, x0, dt))

    @property
    def half_life(self) -> float:
        return np.log(2) / self.speed
