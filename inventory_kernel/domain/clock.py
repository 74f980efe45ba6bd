"""
Injectable time source for audit timestamps.

Services stamp ``created_at`` from a Clock.  Creation time is the tie-break
between same-day purchases when deciding which one sets an item's current
cost and MRP, so tests use DeterministicClock and step it explicitly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, always timezone aware."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Two settlements stamped without an ``advance()``/``tick()`` between
    them get identical ``created_at`` values.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_TIME):
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current

    def tick(self) -> datetime:
        """Advance one second."""
        return self.advance(1)
