"""
Market quotes
"""

from .observable import Observable


class SimpleQuote(Observable):
    """
    A single market value that notifies its observers when it changes.

    Usage:
        spot = SimpleQuote(100.0)
        process = BlackScholesProcess(spot, risk_free, vol)
        spot.set_value(101.0)   # process is marked stale
    """

    def __init__(self, value: float):
        super().__init__()
        self._value = float(value)

    def value(self) -> float:
        return self._value

    def set_value(self, value: float) -> float:
        """Set a new value and return the change."""
        diff = float(value) - self._value
        if diff != 0.0:
            self._value = float(value)
            self.notify_observers()
        return diff

    def __repr__(self):
        return f"SimpleQuote({self._value})"


def quote_value(q) -> float:
    """Accept either a quote object or a plain number."""
    return q.value() if hasattr(q, "value") else float(q)
