"""Calendar helpers for week-based scheduling and trend grouping.

All values are naive datetimes in local server time. Weeks start on Sunday
and days are indexed 0-6 from Sunday, matching plan templates.
"""

import calendar
import math
from datetime import date, datetime, time, timedelta


WEEK = timedelta(days=7)
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    # Millisecond precision, the resolution MongoDB stores dates with.
    return datetime.combine(value.date(), time(23, 59, 59, 999000))


def day_index(value: date) -> int:
    """Sunday=0 ... Saturday=6."""
    return (value.weekday() + 1) % 7


def start_of_week(value: datetime) -> datetime:
    return start_of_day(value) - timedelta(days=day_index(value))


def end_of_week(value: datetime) -> datetime:
    return end_of_day(start_of_week(value) + timedelta(days=6))


def week_days(week_start: datetime) -> list[datetime]:
    first = start_of_week(week_start)
    return [first + timedelta(days=offset) for offset in range(7)]


def weeks_elapsed(reference: datetime, since: datetime) -> int:
    """Whole weeks from ``since`` to ``reference`` (negative if ``since`` is later)."""
    return math.floor((reference - since) / WEEK)


def week_key(value: datetime | date) -> str:
    """ISO date of the Sunday that opens the week containing ``value``."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    return start_of_week(value).date().isoformat()


def subtract_months(value: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` calendar months earlier, day clamped to month end."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
