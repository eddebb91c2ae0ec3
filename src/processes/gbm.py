"""
Geometric Brownian Motion

Single-factor diffusion process for modeling stock prices
"""
from .base import StochasticProcess1D


class GeometricBrownianMotionProcess(StochasticProcess1D):
    """
    Geometric Brownian Motion

    dS_t = mu * S_t dt + sigma * S_t dW_t

    Evolution uses the plugged discretization on S itself (not on log S),
    so the Euler step is S + mu S dt + sigma S sqrt(dt) dW.
    """

    def __init__(self, initial_value: float, mu: float, sigma: float, discretization=None,
                 name: str = "GBM"):
        """
        Initialize GBM

        Args:
            initial_value: S_0
            mu: Drift (expected return)
            sigma: Volatility
            discretization: step strategy (Euler by default)
            name: Model name
        """
        super().__init__(discretization, name=name)
        if sigma < 0.0:
            raise ValueError(f"negative volatility given: {sigma}")
        self.initial_value = float(initial_value)
        self.mu = float(mu)
        self.sigma = float(sigma)
        self.params['S0'] = self.initial_value
        self.params['mu'] = self.mu
        self.params['sigma'] = self.sigma

    def x0(self) -> float:
        return self.initial_value

    def drift(self, t, x):
        """Drift term: mu * S_t"""
        return self.mu * x

    def diffusion(self, t, x):
        """Diffusion term: sigma * S_t"""
        return self.sigma * x
