"""Injectable clocks so presence expiry can be tested without sleeping."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime


class Clock(ABC):
    """Abstract source of the current time, in epoch seconds."""

    @abstractmethod
    def now(self) -> float:
        """Return the current time as seconds since the epoch."""
        ...

    def format(self, fmt: str = "%H:%M:%S", at: float | None = None) -> str:
        """Render *at* (default: now) in local time using *fmt*."""
        value = self.now() if at is None else at
        return datetime.fromtimestamp(value).strftime(fmt)


class SystemClock(Clock):
    """Wall-clock time from :func:`time.time`."""

    def now(self) -> float:
        return time.time()


class ManualClock(Clock):
    """A clock that only moves when told to.

    Parameters
    ----------
    start:
        Initial epoch time.  Defaults to a fixed instant so formatted
        timestamps are reproducible.
    """

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward by *seconds* and return the new time."""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, value: float) -> None:
        """Jump to an absolute time."""
        with self._lock:
            self._now = value
