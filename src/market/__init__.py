"""
Market data consumed by the processes

Minimal term structures, quotes, day counters and the subscribe/notify
plumbing that lets processes invalidate cached values when market data
changes.
"""

from .observable import Observable, Observer, ObserverNotificationError
from .quotes import SimpleQuote
from .day_count import Actual365Fixed, Actual360
from .yield_curves import YieldTermStructure, FlatForward
from .volatility import (
    BlackVolTermStructure,
    BlackConstantVol,
    BlackVarianceCurve,
    LocalVolTermStructure,
    LocalConstantVol,
    LocalVolCurve,
)

__all__ = [
    'Observable',
    'Observer',
    'ObserverNotificationError',
    'SimpleQuote',
    'Actual365Fixed',
    'Actual360',
    'YieldTermStructure',
    'FlatForward',
    'BlackVolTermStructure',
    'BlackConstantVol',
    'BlackVarianceCurve',
    'LocalVolTermStructure',
    'LocalConstantVol',
    'LocalVolCurve',
]
