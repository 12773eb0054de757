# src/nodekeeper/core/clock.py
"""Wall clock used by the controllers, and a settable clock for tests."""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Reads the current time. Subclasses decide where the time comes from."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def since(self, t: datetime) -> timedelta:
        """Returns the time elapsed since ``t``."""
        return self.now() - t


class RealClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FakeClock(Clock):
    """
    A clock that only moves when told to. Safe to read from many tasks and
    threads while a test advances it.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._now = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set_time(self, t: datetime):
        with self._lock:
            self._now = t

    def step(self, delta: timedelta):
        with self._lock:
            self._now = self._now + delta
