"""
Day count conventions mapping calendar dates onto year fractions
"""

from datetime import date


class Actual365Fixed:
    """Actual/365 (Fixed)."""

    name = "Actual/365 (Fixed)"

    def day_count(self, d1: date, d2: date) -> int:
        return (d2 - d1).days

    def year_fraction(self, d1: date, d2: date) -> float:
        return self.day_count(d1, d2) / 365.0

    def __repr__(self):
        return self.name


class Actual360(Actual365Fixed):
    """Actual/360."""

    name = "Actual/360"

    def year_fraction(self, d1: date, d2: date) -> float:
        return self.day_count(d1, d2) / 360.0
