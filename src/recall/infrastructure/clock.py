import time

from recall.domain.constants import MS_PER_DAY
from recall.domain.ports import Clock


class SystemClock(Clock):
    """Wall-clock time in epoch milliseconds."""

    def now(self) -> int:
        return int(time.time() * 1000)


class FixedClock(Clock):
    """A clock that only moves when told to. Used by tests and demos."""

    def __init__(self, now: int):
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        self._now = now

    def advance(self, ms: int = 0, days: int = 0) -> int:
        self._now += ms + days * MS_PER_DAY
        return self._now
