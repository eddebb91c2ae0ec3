"""Tests for quotes, curves, volatilities, notification and memo tables."""

from datetime import date, timedelta

import numpy as np
import pytest

from market import (
    Actual360,
    BlackConstantVol,
    BlackVarianceCurve,
    FlatForward,
    LocalConstantVol,
    LocalVolCurve,
    Observable,
    Observer,
    ObserverNotificationError,
    SimpleQuote,
)
from utils.cache import MemoTable

REF_DATE = date(2024, 1, 2)


class Recorder(Observer):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def update(self):
        self.calls += 1


class Broken(Observer):
    def update(self):
        raise ArithmeticError("broken observer")


class TestObservable:
    def test_every_observer_notified_despite_failure(self):
        subject = Observable()
        broken, recorder = Broken(), Recorder()
        broken.register_with(subject)
        recorder.register_with(subject)

        with pytest.raises(ObserverNotificationError) as info:
            subject.notify_observers()
        assert recorder.calls == 1
        assert len(info.value.failures) == 1
        assert info.value.failures[0][0] is broken

    def test_register_once_and_unregister(self):
        subject = Observable()
        recorder = Recorder()
        recorder.register_with(subject)
        recorder.register_with(subject)
        assert len(subject.observers) == 1

        recorder.unregister_with(subject)
        subject.notify_observers()
        assert recorder.calls == 0

    def test_unregister_with_all(self):
        a, b = Observable(), Observable()
        recorder = Recorder()
        recorder.register_with(a)
        recorder.register_with(b)
        recorder.unregister_with_all()
        a.notify_observers()
        b.notify_observers()
        assert recorder.calls == 0


class TestQuotes:
    def test_set_value_notifies_on_change(self):
        quote = SimpleQuote(1.0)
        recorder = Recorder()
        recorder.register_with(quote)
        assert quote.set_value(1.5) == pytest.approx(0.5)
        assert quote.set_value(1.5) == 0.0
        assert recorder.calls == 1
        assert quote.value() == 1.5


class TestYieldCurves:
    def test_flat_forward(self):
        curve = FlatForward(0.03, REF_DATE)
        assert curve.discount(2.0) == pytest.approx(np.exp(-0.06))
        assert curve.forward_rate(1.0, 3.0) == pytest.approx(0.03)
        assert curve.zero_rate(5.0) == pytest.approx(0.03)

    def test_time_from_reference(self):
        curve = FlatForward(0.03, REF_DATE)
        assert curve.time_from_reference(REF_DATE + timedelta(days=365)) == pytest.approx(1.0)
        curve360 = FlatForward(0.03, REF_DATE, Actual360())
        assert curve360.time_from_reference(REF_DATE + timedelta(days=180)) == pytest.approx(0.5)

    def test_forward_rate_ordering(self):
        curve = FlatForward(0.03, REF_DATE)
        with pytest.raises(ValueError):
            curve.forward_rate(2.0, 1.0)

    def test_quote_driven_curve_notifies(self):
        rate = SimpleQuote(0.01)
        curve = FlatForward(rate, REF_DATE)
        recorder = Recorder()
        recorder.register_with(curve)
        rate.set_value(0.02)
        assert recorder.calls == 1
        assert curve.forward_rate(0.0, 1.0) == pytest.approx(0.02)


class TestVolatility:
    def test_variance_curve_interpolation(self):
        curve = BlackVarianceCurve([1.0, 2.0], [0.2, 0.25])
        assert curve.black_variance(1.5) == pytest.approx(0.0825)
        assert curve.black_variance(4.0) == pytest.approx(0.25)
        assert curve.black_vol(4.0) == pytest.approx(0.25)

    def test_variance_curve_validation(self):
        with pytest.raises(ValueError):
            BlackVarianceCurve([2.0, 1.0], [0.2, 0.2])
        with pytest.raises(ValueError):
            BlackVarianceCurve([1.0, 2.0], [0.3, 0.1])

    def test_local_vol_curve(self):
        curve = BlackVarianceCurve([1.0, 2.0], [0.2, 0.25])
        local = LocalVolCurve(curve)
        assert local.local_vol(1.2, 100.0) == pytest.approx(np.sqrt(0.085), rel=1e-9)

    def test_constant_vols(self):
        vol = BlackConstantVol(SimpleQuote(0.2))
        assert vol.black_variance(2.0) == pytest.approx(0.08)
        local = LocalConstantVol(0.2)
        np.testing.assert_allclose(local.local_vol(0.5, np.array([90.0, 110.0])), 0.2)


class TestMemoTable:
    def test_get_or_compute_and_invalidate(self):
        table = MemoTable("test")
        calls = []

        def compute():
            calls.append(1)
            return 42.0

        assert table.get_or_compute((0.0, 1.0), compute) == 42.0
        assert table.get_or_compute((0.0, 1.0), compute) == 42.0
        assert len(calls) == 1
        assert (0.0, 1.0) in table

        table.invalidate()
        assert len(table) == 0
        table.get_or_compute((0.0, 1.0), compute)
        assert len(calls) == 2
