"""
Joint process over heterogeneous constituents
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from utils.cache import MemoTable
from utils.linalg import SalvagingAlgorithm, pseudo_sqrt, rank_reduced_sqrt
from .base import StochasticProcess, as_vector_process
from .config import DEFAULT_CONFIG, NumericalConfig

logger = logging.getLogger(__name__)


class JointStochasticProcess(StochasticProcess, ABC):
    """
    Concatenation of vector processes with a cross-model correlation

    The joint state is the concatenation of the constituent states; drift,
    initial values, expectation and apply work block by block. The joint
    covariance over a step is the block-diagonal union of the constituent
    covariances plus cross_model_correlation(t0, x0) scaled by the
    per-dimension volatilities.

    evolve() turns the `factors` joint drivers into the constituents' own
    drivers through a map M (model factors x factors):
        - each constituent's step standard deviation is row-normalized and
          its singular values inverted (values below svd_threshold dropped),
          giving the direction map D
        - the joint correlation gets a rank-reduced spectral root R,
          zero-padded to `factors` columns
        - M = D^T R
    M is memoised per (t0, dt) unless correlation_is_state_dependent().

    Subclasses supply the cross correlation, the numeraire and the
    pre_evolve / post_evolve hooks.

    Args:
        processes: constituent processes (scalar ones are wrapped)
        factors: number of joint drivers, at most size(); defaults to the
            sum of the constituents' factors
    """

    def __init__(self, processes: List, factors: Optional[int] = None,
                 config: NumericalConfig = DEFAULT_CONFIG, name: str = "JointProcess"):
        super().__init__(name=name)
        if not processes:
            raise ValueError("process list is empty")
        self.processes = [as_vector_process(p) for p in processes]
        self.config = config
        for process in self.processes:
            self.register_with(process)

        sizes = [p.size() for p in self.processes]
        model_factors = [p.factors() for p in self.processes]
        self._size_offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(int)
        self._factor_offsets = np.concatenate([[0], np.cumsum(model_factors)]).astype(int)
        self._size = int(self._size_offsets[-1])
        self.model_factors = int(self._factor_offsets[-1])

        if factors is None:
            self._factors = self.model_factors
        else:
            if factors > self._size:
                raise ValueError(f"too many factors given: {factors} > size {self._size}")
            self._factors = int(factors)

        self.correlation_cache = MemoTable(f"{self.name}.correlation")

    def constituents(self) -> List[StochasticProcess]:
        return self.processes

    def size(self) -> int:
        return self._size

    def factors(self) -> int:
        return self._factors

    def slice(self, x, i: int) -> np.ndarray:
        """State block of constituent i."""
        return np.asarray(x, dtype=float)[self._size_offsets[i]:self._size_offsets[i + 1]]

    def _factor_slice(self, dw, i: int) -> np.ndarray:
        return np.asarray(dw, dtype=float)[self._factor_offsets[i]:self._factor_offsets[i + 1]]

    def initial_values(self) -> np.ndarray:
        return np.concatenate([p.initial_values() for p in self.processes])

    def drift(self, t, x):
        x = self._check_state(x)
        return np.concatenate([p.drift(t, self.slice(x, i)) for i, p in enumerate(self.processes)])

    def expectation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.concatenate([p.expectation(t0, self.slice(x0, i), dt)
                               for i, p in enumerate(self.processes)])

    def apply(self, x0, dx):
        x0 = self._check_state(x0)
        return np.concatenate([p.apply(self.slice(x0, i), self.slice(dx, i))
                               for i, p in enumerate(self.processes)])

    def covariance(self, t0, x0, dt):
        x0 = self._check_state(x0)
        self._check_step(dt)
        cov = np.zeros((self._size, self._size))
        for i, p in enumerate(self.processes):
            lo, hi = self._size_offsets[i], self._size_offsets[i + 1]
            cov[lo:hi, lo:hi] = p.covariance(t0, self.slice(x0, i), dt)
        vol = np.sqrt(np.diag(cov))
        cross = np.asarray(self.cross_model_correlation(t0, x0), dtype=float)
        return cov + cross * np.outer(vol, vol)

    def diffusion(self, t, x):
        dt = self.config.joint_diffusion_dt
        return pseudo_sqrt(self.covariance(t, x, dt) / dt, SalvagingAlgorithm.NONE)

    def std_deviation(self, t0, x0, dt):
        return pseudo_sqrt(self.covariance(t0, x0, dt), SalvagingAlgorithm.NONE)

    def _driver_map(self, t0, x0, dt) -> np.ndarray:
        cov = self.covariance(t0, x0, dt)
        sqrt_diag = np.sqrt(np.diag(cov))
        div = np.outer(sqrt_diag, sqrt_diag)
        corr = np.divide(cov, div, out=np.zeros_like(cov), where=div > 0.0)

        diff = np.zeros((self._size, self.model_factors))
        for i, p in enumerate(self.processes):
            std = np.array(p.std_deviation(t0, self.slice(x0, i), dt), dtype=float, copy=True)
            for row in range(std.shape[0]):
                vol = np.sqrt(np.sum(std[row] ** 2))
                if vol > 0.0:
                    std[row] /= vol
                else:
                    # degenerate row, nudged off zero for the SVD
                    std[row] = 100 * row * self.config.epsilon
            U, s, Vt = np.linalg.svd(std, full_matrices=False)
            w = np.where(np.abs(s) > self.config.svd_threshold, 1.0 / np.where(s == 0.0, 1.0, s), 0.0)
            inv = U @ np.diag(w) @ Vt
            rlo, rhi = self._size_offsets[i], self._size_offsets[i + 1]
            clo, chi = self._factor_offsets[i], self._factor_offsets[i + 1]
            diff[rlo:rhi, clo:chi] = inv

        rs = rank_reduced_sqrt(corr, self._factors, 1.0, SalvagingAlgorithm.SPECTRAL)
        if rs.shape[1] < self._factors:
            # fewer eigenvalues retained than factors requested
            rs = np.hstack([rs, np.zeros((rs.shape[0], self._factors - rs.shape[1]))])
        return diff.T @ rs

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        self._check_step(dt)
        self.refresh()

        if self.correlation_is_state_dependent():
            m = self._driver_map(t0, x0, dt)
        else:
            m = self.correlation_cache.get_or_compute((t0, dt), lambda: self._driver_map(t0, x0, dt))
        dv = m @ dw

        self.pre_evolve(t0, x0, dt, dv)
        result = np.concatenate([
            p.evolve(t0, self.slice(x0, i), dt, self._factor_slice(dv, i))
            for i, p in enumerate(self.processes)
        ])
        return self.post_evolve(t0, x0, dt, dv, result)

    def invalidate_caches(self) -> None:
        self.correlation_cache.invalidate()

    def time(self, d) -> float:
        return self.processes[0].time(d)

    @abstractmethod
    def pre_evolve(self, t0, x0, dt, dw) -> None:
        pass

    @abstractmethod
    def post_evolve(self, t0, x0, dt, dw, y0) -> np.ndarray:
        pass

    @abstractmethod
    def numeraire(self, t, x) -> float:
        pass

    @abstractmethod
    def correlation_is_state_dependent(self) -> bool:
        pass

    @abstractmethod
    def cross_model_correlation(self, t0, x0) -> np.ndarray:
        pass
