"""
Change notification between market data and the objects derived from it

An Observable keeps an explicit list of registered observers. Notification
visits every observer; failures are collected and reported to the caller
once all observers have been visited, so one broken observer neither hides
the change from the others nor disappears silently.
"""

import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


class ObserverNotificationError(RuntimeError):
    """
    Raised by Observable.notify_observers when one or more observers failed.

    Attributes:
        failures: list of (observer, exception) pairs, in notification order
    """

    def __init__(self, failures: List[Tuple["Observer", Exception]]):
        self.failures = failures
        details = "; ".join(f"{type(o).__name__}: {e!r}" for o, e in failures)
        super().__init__(f"{len(failures)} observer(s) failed during notification: {details}")


class Observable:
    """Subject side of subscribe/notify."""

    def __init__(self):
        self._observers: List["Observer"] = []

    def register_observer(self, observer: "Observer") -> None:
        if not any(o is observer for o in self._observers):
            self._observers.append(observer)

    def unregister_observer(self, observer: "Observer") -> None:
        self._observers = [o for o in self._observers if o is not observer]

    @property
    def observers(self):
        return tuple(self._observers)

    def notify_observers(self) -> None:
        """
        Call update() on every registered observer.

        Raises:
            ObserverNotificationError: after all observers were visited, if
                any of them raised
        """
        failures = []
        for observer in list(self._observers):
            try:
                observer.update()
            except Exception as exc:
                logger.warning("observer %r failed to update: %s", observer, exc)
                failures.append((observer, exc))
        if failures:
            raise ObserverNotificationError(failures)


class Observer:
    """Listener side of subscribe/notify."""

    def __init__(self):
        self._observables: List[Observable] = []

    def register_with(self, observable) -> None:
        if observable is None:
            return
        observable.register_observer(self)
        if not any(o is observable for o in self._observables):
            self._observables.append(observable)

    def unregister_with(self, observable) -> None:
        observable.unregister_observer(self)
        self._observables = [o for o in self._observables if o is not observable]

    def unregister_with_all(self) -> None:
        for observable in list(self._observables):
            observable.unregister_observer(self)
        self._observables = []

    def update(self) -> None:
        raise NotImplementedError
