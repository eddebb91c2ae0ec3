"""
Merton (1976) Jump-Diffusion Process

Black-Scholes-Merton diffusion with compound Poisson log-normal jumps
"""
import numpy as np

from market.observable import Observable
from market.quotes import quote_value
from utils.distributions import cumulative_normal, inverse_cumulative_poisson
from .base import StochasticProcess
from .black_scholes import BlackScholesMertonProcess

QL_EPSILON = np.finfo(float).eps


class Merton76Process(StochasticProcess):
    """
    Merton Jump-Diffusion Model

    dS_t / S_{t-} = (r - q - lambda k) dt + sigma dW_t + (e^J - 1) dN_t

    where:
        - N_t: Poisson process with intensity lambda
        - J ~ N(mu_J, sigma_J^2): log jump size
        - k = E[e^J - 1] = exp(mu_J + sigma_J^2/2) - 1 (compensator)

    One-dimensional state S with three drivers:
        dw[0]  diffusion
        dw[1]  jump count, by inverse Poisson of Phi(dw[1])
        dw[2]  jump size, n jumps aggregate to mu_J n + sigma_J sqrt(n) dw[2]

    The diffusive step is delegated to an internal BlackScholesMertonProcess
    (exact for strike-independent volatilities).
    """

    def __init__(
        self,
        x0,
        dividend_yield,
        risk_free_rate,
        black_volatility,
        jump_intensity,
        log_mean_jump,
        log_jump_volatility,
        discretization=None,
        name: str = "Merton76"
    ):
        """
        Args:
            x0: initial value (float or quote)
            dividend_yield: yield curve q(t)
            risk_free_rate: yield curve r(t)
            black_volatility: Black volatility term structure
            jump_intensity: lambda, jumps per year (float or quote)
            log_mean_jump: mu_J (float or quote)
            log_jump_volatility: sigma_J (float or quote)
            discretization: step strategy for the diffusive part
        """
        super().__init__(discretization, name=name)
        self.black_process = BlackScholesMertonProcess(
            x0, dividend_yield, risk_free_rate, black_volatility, discretization)
        self._jump_intensity = jump_intensity
        self._log_mean_jump = log_mean_jump
        self._log_jump_volatility = log_jump_volatility

        self.register_with(self.black_process)
        for q in (jump_intensity, log_mean_jump, log_jump_volatility):
            if isinstance(q, Observable):
                self.register_with(q)

        if self.jump_intensity < 0.0:
            raise ValueError(f"negative jump intensity given: {self.jump_intensity}")
        if self.log_jump_volatility < 0.0:
            raise ValueError(f"negative jump volatility given: {self.log_jump_volatility}")

        self.params['lambda'] = self.jump_intensity
        self.params['mu_J'] = self.log_mean_jump
        self.params['sigma_J'] = self.log_jump_volatility

    @property
    def jump_intensity(self) -> float:
        return quote_value(self._jump_intensity)

    @property
    def log_mean_jump(self) -> float:
        return quote_value(self._log_mean_jump)

    @property
    def log_jump_volatility(self) -> float:
        return quote_value(self._log_jump_volatility)

    @property
    def compensator(self) -> float:
        return np.exp(self.log_mean_jump + 0.5 * self.log_jump_volatility ** 2) - 1.0

    def size(self) -> int:
        return 1

    def factors(self) -> int:
        return 3

    def initial_values(self) -> np.ndarray:
        return np.array([self.black_process.x0()])

    def drift(self, t, x):
        x = self._check_state(x)
        return np.array([self.black_process.drift(t, x[0])
                         - self.jump_intensity * self.compensator])

    def diffusion(self, t, x):
        x = self._check_state(x)
        return np.array([[self.black_process.diffusion(t, x[0]), 0.0, 0.0]])

    def apply(self, x0, dx):
        return np.asarray(x0, dtype=float) * np.exp(np.asarray(dx, dtype=float))

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)

        p = min(max(float(cumulative_normal(dw[1])), 0.0), 1.0 - QL_EPSILON)
        n = inverse_cumulative_poisson(p, self.jump_intensity * dt)

        s1 = self.black_process.evolve(t0, x0[0], dt, dw[0])
        jump = (-self.jump_intensity * self.compensator * dt
                + self.log_mean_jump * n + self.log_jump_volatility * np.sqrt(n) * dw[2])
        return np.array([s1 * np.exp(jump)])

    def time(self, d) -> float:
        return self.black_process.time(d)
