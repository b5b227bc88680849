"""
Clock -- injectable business date and time.

Services and selectors take a Clock instead of calling ``date.today()``:
"today" decides whether an unpaid invoice is OVERDUE and which months the
sales trend covers, and ``now()`` stamps voids.  Tests pin both with
``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, time, timedelta


class Clock(ABC):
    """``now()`` is timezone-aware UTC; ``today()`` is its calendar date."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Business day fixed by the caller.  Defaults to 2024-01-01, noon UTC.

    Time only moves through ``move_to()`` and ``advance_days()``, so a test
    can post on one day and read statuses on another.
    """

    def __init__(self, business_day: date = date(2024, 1, 1), at: time = time(12, 0)):
        self._current = datetime.combine(business_day, at, tzinfo=UTC)

    def now(self) -> datetime:
        return self._current

    def move_to(self, business_day: date) -> None:
        self._current = datetime.combine(business_day, self._current.timetz())

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
