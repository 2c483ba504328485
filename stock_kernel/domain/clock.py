"""
Injectable time source.

Services take a ``Clock`` in their constructor instead of calling
``datetime.now()``.  Movement timestamps, the date segment of order numbers
and the millisecond part of generated SKU codes all come from it, so a test
that injects a ``DeterministicClock`` gets the same numbers on every run.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware datetimes."""

    @abstractmethod
    def now(self) -> datetime: ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that stands still until told to move.

    Repeated ``now()`` calls return the same instant; ``advance`` moves it
    forward and ``set_time`` jumps to an arbitrary one.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        if time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = time

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
