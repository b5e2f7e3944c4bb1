"""Expansion of recurring event patterns into concrete occurrence dates."""

from __future__ import annotations

import calendar
from datetime import datetime, time, timedelta
from typing import Iterator

from running_diary.domain.errors import InvalidArgument

MAX_OCCURRENCES = 366
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
PATTERNS = ("daily", "biweekly", "monthly", *(f"weekly-{day}" for day in WEEKDAYS))


def _add_months(value: datetime, months: int, anchor_day: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor_day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def validate_pattern(pattern: str | None) -> str:
    if pattern not in PATTERNS:
        raise InvalidArgument("invalid_recurring_pattern")
    return pattern


def iter_occurrences(start: datetime, pattern: str, end_date: datetime) -> Iterator[datetime]:
    """Yield occurrence datetimes from ``start`` through the end of ``end_date``'s day.

    ``weekly-<day>`` repeats every seven days from ``start``; the day name is a
    label and the start date is expected to fall on it. Monthly occurrences keep
    the start's day of month, clamped to shorter months.
    """
    pattern = validate_pattern(pattern)
    limit = datetime.combine(end_date.date(), time.max, tzinfo=end_date.tzinfo)
    if limit.tzinfo is None and start.tzinfo is not None:
        limit = limit.replace(tzinfo=start.tzinfo)
    elif limit.tzinfo is not None and start.tzinfo is None:
        limit = limit.replace(tzinfo=None)

    current = start
    produced = 0
    while current <= limit:
        if produced >= MAX_OCCURRENCES:
            raise InvalidArgument("too_many_occurrences")
        yield current
        produced += 1
        if pattern == "daily":
            current = current + timedelta(days=1)
        elif pattern == "biweekly":
            current = current + timedelta(days=14)
        elif pattern == "monthly":
            current = _add_months(start, produced, start.day)
        else:
            current = current + timedelta(days=7)


def expand(start: datetime, pattern: str, end_date: datetime) -> list[datetime]:
    dates = list(iter_occurrences(start, pattern, end_date))
    if not dates:
        raise InvalidArgument("recurring_end_before_start")
    return dates
