from __future__ import annotations

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall clock in whole seconds since the epoch."""

    def now(self) -> int:
        return int(time.time())


class SimulatedClock:
    """Manually driven clock for tests and offline runs."""

    def __init__(self, start: Optional[int] = None):
        self._now = int(time.time()) if start is None else int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, ts: int) -> int:
        with self._lock:
            if ts < self._now:
                raise ValueError("clock cannot move backwards")
            self._now = int(ts)
            return self._now
