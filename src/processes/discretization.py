"""
Discretization strategies for stochastic processes

A strategy approximates the step moments of a process over [t0, t0 + dt]
from its instantaneous drift and diffusion. It is plugged into a process at
construction and works for both vector processes (numpy arrays / matrices)
and scalar processes (floats, or arrays of independent path values).
"""

import numpy as np


class EulerDiscretization:
    """
    Euler (start-point) discretization

        E[x(t0+dt)] - x0 = mu(t0, x0) dt
        S(t0, x0, dt)    = sigma(t0, x0) sqrt(dt)
        V(t0, x0, dt)    = sigma sigma^T dt
    """

    def _evaluation_time(self, t0: float, dt: float) -> float:
        return t0

    def drift(self, process, t0, x0, dt):
        return process.drift(self._evaluation_time(t0, dt), x0) * dt

    def diffusion(self, process, t0, x0, dt):
        return process.diffusion(self._evaluation_time(t0, dt), x0) * np.sqrt(dt)

    def covariance(self, process, t0, x0, dt):
        sigma = np.atleast_2d(process.diffusion(self._evaluation_time(t0, dt), x0))
        return sigma @ sigma.T * dt

    def variance(self, process, t0, x0, dt):
        sigma = process.diffusion(self._evaluation_time(t0, dt), x0)
        return sigma * sigma * dt

    def __repr__(self):
        return f"{type(self).__name__}()"


class EndEulerDiscretization(EulerDiscretization):
    """
    Euler end-point discretization

    Same moments as EulerDiscretization with drift and diffusion evaluated
    at (t0 + dt, x0).
    """

    def _evaluation_time(self, t0: float, dt: float) -> float:
        return t0 + dt
