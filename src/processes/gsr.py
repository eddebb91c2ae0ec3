"""
Gaussian Short Rate Process under the T-forward measure
"""
import numpy as np

from .config import DEFAULT_CONFIG, NumericalConfig
from .gsr_core import GsrProcessCore
from .hull_white import ForwardMeasureProcess1D


class GsrProcess(ForwardMeasureProcess1D):
    """
    GSR state process

        dx_t = (y(t) - G(t, T) sigma(t)^2 - a(t) x_t) dt + sigma(t) dW_t,  x_0 = 0

    with piecewise constant sigma and a on the grid `times`. All moments are
    analytic and memoised by the core; changing T, the volatilities or the
    reversions flushes the memo tables.

    Process times must stay in [0, T].

    Args:
        times: increasing grid t_1 < ... < t_n
        vols: n + 1 volatilities
        reversions: n + 1 reversions, or a single one
        T: forward measure horizon
        reference_date, day_counter: date -> time mapping, both needed by time()
    """

    def __init__(self, times, vols, reversions, T: float, reference_date=None, day_counter=None,
                 config: NumericalConfig = DEFAULT_CONFIG, name: str = "Gsr"):
        super().__init__(float(T), name=name)
        self.core = GsrProcessCore(times, vols, reversions, T, config)
        self.reference_date = reference_date
        self.day_counter = day_counter
        self.params['T'] = float(T)

    def _check_time(self, t: float) -> None:
        T = self.get_forward_measure_time()
        if not 0.0 <= t <= T:
            raise ValueError(
                f"t ({t}) must not be greater than forward measure time ({T}) and non-negative"
            )

    def x0(self) -> float:
        return 0.0

    def drift(self, t, x):
        sigma = self.sigma(t)
        return (self.core.y(t) - self.core.G(t, self.get_forward_measure_time()) * sigma * sigma
                - self.reversion(t) * x)

    def diffusion(self, t, x):
        self._check_time(t)
        return self.sigma(t) + 0.0 * np.asarray(x)

    def expectation(self, t0, x0, dt):
        self._check_step(dt)
        self._check_time(t0 + dt)
        return (self.core.expectation_x0dep_part(t0, x0, dt)
                + self.core.expectation_rn_part(t0, dt)
                + self.core.expectation_tf_part(t0, dt))

    def variance(self, t0, x0, dt):
        self._check_step(dt)
        self._check_time(t0 + dt)
        return self.core.variance(t0, dt) + 0.0 * np.asarray(x0)

    def std_deviation(self, t0, x0, dt):
        return np.sqrt(self.variance(t0, x0, dt))

    def time(self, d) -> float:
        if self.reference_date is None or self.day_counter is None:
            raise NotImplementedError("time can not be computed without reference date and day counter")
        return self.day_counter.year_fraction(self.reference_date, d)

    def set_forward_measure_time(self, T: float) -> None:
        self.core.set_forward_measure_time(T)
        self.params['T'] = float(T)
        super().set_forward_measure_time(T)

    def set_volatilities(self, vols) -> None:
        self.core.set_volatilities(vols)
        self.notify_observers()

    def set_reversions(self, reversions) -> None:
        self.core.set_reversions(reversions)
        self.notify_observers()

    def flush_cache(self) -> None:
        self.core.flush_cache()

    def invalidate_caches(self) -> None:
        self.core.flush_cache()

    def sigma(self, t: float) -> float:
        return self.core.sigma(t)

    def reversion(self, t: float) -> float:
        return self.core.reversion(t)

    def y(self, t: float) -> float:
        self._check_time(t)
        return self.core.y(t)

    def G(self, t: float, w: float) -> float:
        T = self.get_forward_measure_time()
        if w < t:
            raise ValueError(f"G(t,w) should be called with w ({w}) not lesser than t ({t})")
        if t < 0.0 or w > T:
            raise ValueError(f"G(t,w) should be called with (t,w)=({t},{w}) in Range [0,{T}]")
        return self.core.G(t, w)
