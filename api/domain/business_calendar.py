# SPDX-License-Identifier: Apache-2.0

"""
Business-day arithmetic for statutory terms.

Administrative terms skip Saturdays, Sundays and any configured holiday;
calendar terms count every day. The calendar never reads the clock.
"""

from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, TypeVar, Union

from models.enums import DayCountMode

DateLike = TypeVar('DateLike', date, datetime)

# Chilean public holidays, loaded on demand through KARIN_USE_CHILEAN_HOLIDAYS.
CHILEAN_HOLIDAYS = (
    date(2024, 1, 1), date(2024, 3, 29), date(2024, 3, 30), date(2024, 5, 1),
    date(2024, 5, 21), date(2024, 6, 20), date(2024, 6, 29), date(2024, 7, 16),
    date(2024, 8, 15), date(2024, 9, 18), date(2024, 9, 19), date(2024, 9, 20),
    date(2024, 10, 12), date(2024, 10, 31), date(2024, 11, 1), date(2024, 12, 8),
    date(2024, 12, 25),
    date(2025, 1, 1), date(2025, 4, 18), date(2025, 4, 19), date(2025, 5, 1),
    date(2025, 5, 21), date(2025, 6, 20), date(2025, 6, 29), date(2025, 7, 16),
    date(2025, 8, 15), date(2025, 9, 18), date(2025, 9, 19), date(2025, 10, 12),
    date(2025, 10, 31), date(2025, 11, 1), date(2025, 12, 8), date(2025, 12, 25),
)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class BusinessCalendar:
    """Adds and counts administrative or calendar days."""

    def __init__(self, holidays: Iterable[date] = ()):
        self.holidays: FrozenSet[date] = frozenset(_as_date(h) for h in holidays)

    def is_business_day(self, day: Union[date, datetime]) -> bool:
        """True for Monday to Friday unless the day is a configured holiday."""
        day = _as_date(day)
        return day.weekday() < 5 and day not in self.holidays

    def add_business_days(
        self,
        start: DateLike,
        n: int,
        mode: DayCountMode = DayCountMode.ADMINISTRATIVE
    ) -> DateLike:
        """
        Move forward from start by n days of the given kind.

        Administrative mode steps one calendar day at a time and only counts
        business days, so the result always lands on a business day when n > 0.
        The time-of-day of a datetime start is preserved.

        Args:
            start: Date or datetime the term starts on
            n: Number of days to add, must not be negative
            mode: Day-counting mode of the term

        Returns:
            Same type as start
        """
        if n < 0:
            raise ValueError(f"Day count must not be negative: {n}")

        if DayCountMode(mode) == DayCountMode.CALENDAR:
            return start + timedelta(days=n)

        current = start
        added = 0
        while added < n:
            current = current + timedelta(days=1)
            if self.is_business_day(current):
                added += 1
        return current

    def count_business_days(
        self,
        start: Union[date, datetime],
        end: Union[date, datetime],
        mode: DayCountMode = DayCountMode.ADMINISTRATIVE
    ) -> int:
        """
        Signed number of days from start to end.

        Administrative mode counts business days in the half-open range
        (start, end], so counting back over a term added with
        add_business_days returns the same n. When end is before start the
        result is the negated count from end to start.

        Args:
            start: First date (excluded from the count)
            end: Last date (included in the count)
            mode: Day-counting mode

        Returns:
            Day count, negative when end precedes start
        """
        start_day = _as_date(start)
        end_day = _as_date(end)

        if DayCountMode(mode) == DayCountMode.CALENDAR:
            return (end_day - start_day).days

        if end_day < start_day:
            return -self.count_business_days(end_day, start_day, mode)

        count = 0
        current = start_day
        while current < end_day:
            current += timedelta(days=1)
            if self.is_business_day(current):
                count += 1
        return count
