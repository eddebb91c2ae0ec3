"""
Array of correlated scalar processes
"""
import logging
import warnings
from typing import List

import numpy as np

from utils.linalg import SalvagingAlgorithm, check_symmetry, pseudo_sqrt
from .base import StochasticProcess, StochasticProcess1D

logger = logging.getLogger(__name__)


class StochasticProcessArray(StochasticProcess):
    """
    n scalar processes driven by correlated Brownian motions

        dx_i = mu_i(t, x_i) dt + sigma_i(t, x_i) dZ_i,   dZ = S dW,  S S^T = C

    S is the spectral pseudo square root of the correlation C, computed once
    at construction. A correlation that is not positive semi-definite is
    salvaged (negative eigenvalues floored at zero) with a warning.
    Diffusion and step standard deviation are S with row i scaled by the
    i-th constituent's volatility; evolve() maps dw through S and evolves
    each constituent on its own correlated increment.
    """

    # eigenvalues below -tol count as a real violation, not rounding noise
    psd_tolerance = 1e-12

    def __init__(self, processes: List[StochasticProcess1D], correlation, name: str = "ProcessArray"):
        super().__init__(name=name)
        if not processes:
            raise ValueError("no processes given")
        correlation = np.asarray(correlation, dtype=float)
        if correlation.ndim != 2 or correlation.shape[0] != correlation.shape[1]:
            raise ValueError(f"correlation matrix must be square, got shape {correlation.shape}")
        if correlation.shape[0] != len(processes):
            raise ValueError(
                f"mismatch between number of processes ({len(processes)}) "
                f"and size of correlation matrix ({correlation.shape[0]})"
            )
        check_symmetry(correlation)

        self.processes = list(processes)
        for process in self.processes:
            if not isinstance(process, StochasticProcess1D):
                raise ValueError(f"not a 1-D stochastic process: {process!r}")
            self.register_with(process)

        min_eigenvalue = np.linalg.eigvalsh(correlation).min()
        if min_eigenvalue < -self.psd_tolerance:
            warnings.warn(
                f"correlation matrix is not positive semi-definite (min eigenvalue "
                f"{min_eigenvalue:.3g}); salvaged by spectral flooring",
                RuntimeWarning,
            )
        self.sqrt_correlation = pseudo_sqrt(correlation, SalvagingAlgorithm.SPECTRAL)
        logger.debug("%s built with %d constituents", self.name, len(self.processes))

    def size(self) -> int:
        return len(self.processes)

    def process(self, i: int) -> StochasticProcess1D:
        return self.processes[i]

    def initial_values(self) -> np.ndarray:
        return np.array([p.x0() for p in self.processes])

    def drift(self, t, x):
        x = self._check_state(x)
        return np.array([p.drift(t, xi) for p, xi in zip(self.processes, x)])

    def expectation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.array([p.expectation(t0, xi, dt) for p, xi in zip(self.processes, x0)])

    def diffusion(self, t, x):
        x = self._check_state(x)
        sigma = np.array([p.diffusion(t, xi) for p, xi in zip(self.processes, x)])
        return self.sqrt_correlation * sigma[:, np.newaxis]

    def std_deviation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        sigma = np.array([p.std_deviation(t0, xi, dt) for p, xi in zip(self.processes, x0)])
        return self.sqrt_correlation * sigma[:, np.newaxis]

    def covariance(self, t0, x0, dt):
        std = self.std_deviation(t0, x0, dt)
        return std @ std.T

    def apply(self, x0, dx):
        x0 = self._check_state(x0)
        dx = np.asarray(dx, dtype=float)
        return np.array([p.apply(xi, dxi) for p, xi, dxi in zip(self.processes, x0, dx)])

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        dz = self.sqrt_correlation @ dw
        return np.array([p.evolve(t0, xi, dt, dzi) for p, xi, dzi in zip(self.processes, x0, dz)])

    def time(self, d) -> float:
        return self.processes[0].time(d)

    def correlation(self) -> np.ndarray:
        return self.sqrt_correlation @ self.sqrt_correlation.T
