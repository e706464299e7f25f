"""Date arithmetic for recurrence schedules."""

from datetime import date, timedelta
from typing import Protocol

from dateutil.relativedelta import relativedelta

from src.taskcore.models import RecurrenceFrequency


class RecurrencePattern(Protocol):
    frequency: str | RecurrenceFrequency
    interval_value: int
    days_of_week: list[int] | None
    day_of_month: int | None
    month_of_year: int | None


def _weekday_sunday_first(value: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def next_date(current: date, pattern: RecurrencePattern) -> date:
    """The occurrence following ``current``."""
    interval = pattern.interval_value or 1
    frequency = RecurrenceFrequency(pattern.frequency)

    match frequency:
        case RecurrenceFrequency.DAILY | RecurrenceFrequency.CUSTOM:
            return current + timedelta(days=interval)
        case RecurrenceFrequency.WEEKLY:
            if not pattern.days_of_week:
                return current + timedelta(weeks=interval)
            today = _weekday_sunday_first(current)
            days = sorted(pattern.days_of_week)
            later = [day for day in days if day > today]
            if later:
                return current + timedelta(days=later[0] - today)
            return current + timedelta(days=7 - today + days[0] + (interval - 1) * 7)
        case RecurrenceFrequency.BIWEEKLY:
            return current + timedelta(weeks=2 * interval)
        case RecurrenceFrequency.MONTHLY:
            return current + relativedelta(months=interval, day=pattern.day_of_month)
        case RecurrenceFrequency.QUARTERLY:
            return current + relativedelta(months=3 * interval, day=pattern.day_of_month)
        case RecurrenceFrequency.YEARLY:
            return current + relativedelta(
                years=interval,
                month=pattern.month_of_year,
                day=pattern.day_of_month,
            )


def upcoming_dates(
    first: date,
    pattern: RecurrencePattern,
    count: int,
    end_date: date | None = None,
    remaining: int | None = None,
) -> list[date]:
    """Up to ``count`` occurrence dates starting at ``first``.

    Stops at ``end_date`` and after ``remaining`` occurrences when given.
    """
    limit = count if remaining is None else min(count, max(remaining, 0))
    dates: list[date] = []
    current = first
    while len(dates) < limit:
        if end_date is not None and current > end_date:
            break
        dates.append(current)
        current = next_date(current, pattern)
    return dates
