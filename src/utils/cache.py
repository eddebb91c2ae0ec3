"""
Per-instance memo tables for analytic integrals
"""

import logging
import threading
from typing import Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class MemoTable:
    """
    Keyed cache owned by a single process instance.

    Exposes only get-or-compute and bulk invalidation. Writes and clears are
    guarded by a lock so a shared instance cannot observe a half-cleared
    table; the computation itself runs outside the lock.
    """

    def __init__(self, name: str = "memo"):
        self.name = name
        self._values: Dict[Hashable, float] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], float]):
        try:
            return self._values[key]
        except KeyError:
            pass
        value = compute()
        with self._lock:
            return self._values.setdefault(key, value)

    def invalidate(self) -> None:
        with self._lock:
            if self._values:
                logger.debug("flushing %s (%d entries)", self.name, len(self._values))
            self._values.clear()

    def __len__(self):
        return len(self._values)

    def __contains__(self, key):
        return key in self._values

    def __repr__(self):
        return f"MemoTable(name={self.name!r}, entries={len(self._values)})"
