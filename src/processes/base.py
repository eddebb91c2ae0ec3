"""
Base classes for stochastic processes

Every process describes a state-space SDE

    dx_t = mu(t, x_t) dt + sigma(t, x_t) . dW_t

through its drift, its diffusion matrix and the step moments derived from
them by a pluggable discretization strategy. Processes never draw random
numbers: evolve() consumes Brownian increments supplied by the caller.

Two contracts are provided:
    - StochasticProcess:   vector state (1-D numpy arrays), diffusion matrix
    - StochasticProcess1D: scalar state, algebraically identical; every
      method is elementwise so an array of independent path values can be
      evolved in one call
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from market.observable import Observable, Observer
from .discretization import EulerDiscretization

logger = logging.getLogger(__name__)


class ProcessBase(Observable, Observer):
    """
    Shared plumbing: discretization strategy, parameters, notification.

    A process observes the market objects it is built on and is itself
    observable. update() only marks the process stale; derived caches are
    dropped lazily by refresh() before the next evaluation.
    """

    def __init__(self, discretization=None, name: str = "StochasticProcess"):
        Observable.__init__(self)
        Observer.__init__(self)
        self.discretization = discretization if discretization is not None else EulerDiscretization()
        self.name = name
        self.params = {}
        self._stale = False

    def update(self) -> None:
        self._stale = True
        logger.debug("%s marked stale", self.name)
        self.notify_observers()

    def refresh(self) -> None:
        """Drop derived state if an upstream change was notified."""
        if self._stale:
            self._stale = False
            self.invalidate_caches()

    def invalidate_caches(self) -> None:
        """Override in processes that cache values derived from market data."""

    def time(self, d) -> float:
        """
        Map a calendar date onto the process time axis.

        Raises:
            NotImplementedError: processes without a day-count convention
        """
        raise NotImplementedError("date/time conversion not supported")

    @staticmethod
    def _check_step(dt) -> None:
        if np.any(np.asarray(dt) < 0.0):
            raise ValueError(f"time step must be non-negative, got {dt}")

    def __repr__(self):
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"


class StochasticProcess(ProcessBase, ABC):
    """
    Abstract multi-dimensional stochastic process.

    Subclasses implement size(), initial_values(), drift() and diffusion();
    everything else defaults to the plugged discretization and may be
    overridden with exact forms.

    Shapes:
        state x:         (size,)
        increments dw:   (factors,)
        drift:           (size,)
        diffusion:       (size, factors)
        covariance:      (size, size)
    """

    @abstractmethod
    def size(self) -> int:
        pass

    def factors(self) -> int:
        return self.size()

    @abstractmethod
    def initial_values(self) -> np.ndarray:
        pass

    @abstractmethod
    def drift(self, t: float, x: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def diffusion(self, t: float, x: np.ndarray) -> np.ndarray:
        pass

    def expectation(self, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
        x0 = self._check_state(x0)
        self._check_step(dt)
        return self.apply(x0, self.discretization.drift(self, t0, x0, dt))

    def std_deviation(self, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
        x0 = self._check_state(x0)
        self._check_step(dt)
        return self.discretization.diffusion(self, t0, x0, dt)

    def covariance(self, t0: float, x0: np.ndarray, dt: float) -> np.ndarray:
        x0 = self._check_state(x0)
        self._check_step(dt)
        return self.discretization.covariance(self, t0, x0, dt)

    def evolve(self, t0: float, x0: np.ndarray, dt: float, dw: np.ndarray) -> np.ndarray:
        """
        State after dt given Brownian increments dw (standard normals):

            x1 = apply(E(t0, x0, dt), S(t0, x0, dt) . dw)
        """
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        return self.apply(self.expectation(t0, x0, dt), self.std_deviation(t0, x0, dt) @ dw)

    def apply(self, x0: np.ndarray, dx: np.ndarray) -> np.ndarray:
        return np.asarray(x0, dtype=float) + np.asarray(dx, dtype=float)

    def _check_state(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        if x.ndim != 1 or x.shape[0] != self.size():
            raise ValueError(
                f"{self.name}: state has shape {x.shape}, expected ({self.size()},)"
            )
        return x

    def _check_increment(self, dw) -> np.ndarray:
        dw = np.asarray(dw, dtype=float)
        if dw.ndim != 1 or dw.shape[0] != self.factors():
            raise ValueError(
                f"{self.name}: increment has shape {dw.shape}, expected ({self.factors()},)"
            )
        return dw


class StochasticProcess1D(ProcessBase, ABC):
    """
    Abstract scalar stochastic process

        dx_t = mu(t, x_t) dt + sigma(t, x_t) dW_t

    Methods accept a float or an array of independent path values and work
    elementwise. Use vector_view() to plug the process into a vector
    composite.
    """

    @abstractmethod
    def x0(self) -> float:
        pass

    @abstractmethod
    def drift(self, t: float, x):
        pass

    @abstractmethod
    def diffusion(self, t: float, x):
        pass

    def size(self) -> int:
        return 1

    def factors(self) -> int:
        return 1

    def initial_values(self) -> np.ndarray:
        return np.array([self.x0()])

    def expectation(self, t0: float, x0, dt: float):
        self._check_step(dt)
        return self.apply(x0, self.discretization.drift(self, t0, x0, dt))

    def std_deviation(self, t0: float, x0, dt: float):
        self._check_step(dt)
        return self.discretization.diffusion(self, t0, x0, dt)

    def variance(self, t0: float, x0, dt: float):
        self._check_step(dt)
        return self.discretization.variance(self, t0, x0, dt)

    def covariance(self, t0: float, x0, dt: float) -> np.ndarray:
        return np.array([[float(self.variance(t0, x0, dt))]])

    def evolve(self, t0: float, x0, dt: float, dw):
        return self.apply(self.expectation(t0, x0, dt), self.std_deviation(t0, x0, dt) * dw)

    def apply(self, x0, dx):
        return x0 + dx

    def vector_view(self) -> "Process1DVectorView":
        return Process1DVectorView(self)


class Process1DVectorView(StochasticProcess):
    """
    Presents a scalar process through the vector contract.

    State and increments are length-1 arrays; moments are forwarded to the
    scalar process, so exact overrides of the scalar process are kept.
    """

    def __init__(self, process: StochasticProcess1D):
        super().__init__(process.discretization, name=f"{process.name}[vector]")
        self.process = process
        self.register_with(process)

    def size(self) -> int:
        return 1

    def initial_values(self) -> np.ndarray:
        return np.array([self.process.x0()])

    def drift(self, t, x):
        x = self._check_state(x)
        return np.array([self.process.drift(t, x[0])])

    def diffusion(self, t, x):
        x = self._check_state(x)
        return np.array([[self.process.diffusion(t, x[0])]])

    def expectation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.array([self.process.expectation(t0, x0[0], dt)])

    def std_deviation(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.array([[self.process.std_deviation(t0, x0[0], dt)]])

    def covariance(self, t0, x0, dt):
        x0 = self._check_state(x0)
        return np.array([[self.process.variance(t0, x0[0], dt)]])

    def evolve(self, t0, x0, dt, dw):
        x0 = self._check_state(x0)
        dw = self._check_increment(dw)
        return np.array([self.process.evolve(t0, x0[0], dt, dw[0])])

    def apply(self, x0, dx):
        x0 = self._check_state(x0)
        return np.array([self.process.apply(x0[0], np.asarray(dx)[0])])

    def time(self, d) -> float:
        return self.process.time(d)


def as_vector_process(process) -> StochasticProcess:
    """Return `process` itself, or its vector view if it is scalar."""
    if isinstance(process, StochasticProcess1D):
        return process.vector_view()
    if isinstance(process, StochasticProcess):
        return process
    raise TypeError(f"not a stochastic process: {process!r}")

