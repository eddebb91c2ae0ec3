"""
Yield term structures

Only what the processes consume: continuously compounded forward rates
between two times, discount factors, and the date -> time mapping.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import numpy as np

from .day_count import Actual365Fixed
from .observable import Observable, Observer
from .quotes import quote_value


class YieldTermStructure(Observable, Observer, ABC):
    """
    Base class for yield curves

    Subclasses implement discount(t); forward and zero rates follow from it.
    A curve forwards notifications from the quotes it is built on.
    """

    # forward rates at a single instant are measured over this interval
    dt = 1e-4

    def __init__(self, reference_date: Optional[date] = None, day_counter=None):
        Observable.__init__(self)
        Observer.__init__(self)
        self.reference_date = reference_date if reference_date is not None else date.today()
        self.day_counter = day_counter if day_counter is not None else Actual365Fixed()

    @abstractmethod
    def discount(self, t: float) -> float:
        pass

    def time_from_reference(self, d: date) -> float:
        return self.day_counter.year_fraction(self.reference_date, d)

    def forward_rate(self, t1: float, t2: float) -> float:
        """Continuously compounded forward rate between t1 and t2."""
        if t2 < t1:
            raise ValueError(f"t2 ({t2}) < t1 ({t1})")
        if t2 == t1:
            t1 = max(t1 - 0.5 * self.dt, 0.0)
            t2 = t1 + self.dt
        return np.log(self.discount(t1) / self.discount(t2)) / (t2 - t1)

    def zero_rate(self, t: float) -> float:
        if t == 0.0:
            return self.forward_rate(0.0, self.dt)
        return -np.log(self.discount(t)) / t

    def update(self) -> None:
        self.notify_observers()


class FlatForward(YieldTermStructure):
    """
    Flat continuously compounded forward curve

        P(0, t) = exp(-r t)

    Args:
        rate: constant rate, float or quote object
        reference_date: date mapped to t = 0 (defaults to today)
        day_counter: date -> year fraction convention (Actual/365 Fixed)
    """

    def __init__(self, rate, reference_date: Optional[date] = None, day_counter=None):
        super().__init__(reference_date, day_counter)
        self._rate = rate
        if isinstance(rate, Observable):
            self.register_with(rate)

    @property
    def rate(self) -> float:
        return quote_value(self._rate)

    def discount(self, t):
        return np.exp(-self.rate * np.asarray(t, dtype=float))

    def forward_rate(self, t1: float, t2: float) -> float:
        if t2 < t1:
            raise ValueError(f"t2 ({t2}) < t1 ({t1})")
        return self.rate

    def zero_rate(self, t: float) -> float:
        return self.rate

    def __repr__(self):
        return f"FlatForward(rate={self.rate})"
