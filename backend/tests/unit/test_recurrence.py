from datetime import datetime, timezone

import pytest

from running_diary.domain import recurrence
from running_diary.domain.errors import InvalidArgument


def _dt(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_weekly_runs_through_end_of_end_day():
    dates = recurrence.expand(_dt(2024, 3, 2, 8, 0), "weekly-saturday", _dt(2024, 3, 30))
    assert [d.day for d in dates] == [2, 9, 16, 23, 30]
    assert all(d.hour == 8 for d in dates)


def test_daily_and_biweekly():
    assert len(recurrence.expand(_dt(2024, 1, 1, 6), "daily", _dt(2024, 1, 7))) == 7
    biweekly = recurrence.expand(_dt(2024, 1, 1, 6), "biweekly", _dt(2024, 2, 15))
    assert [d.date().isoformat() for d in biweekly] == ["2024-01-01", "2024-01-15", "2024-01-29", "2024-02-12"]


def test_monthly_clamps_short_months():
    dates = recurrence.expand(_dt(2024, 1, 31, 7), "monthly", _dt(2024, 4, 30))
    assert [d.date().isoformat() for d in dates] == ["2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30"]


def test_unknown_pattern_rejected():
    with pytest.raises(InvalidArgument):
        recurrence.expand(_dt(2024, 1, 1), "fortnightly", _dt(2024, 2, 1))


def test_end_before_start_rejected():
    with pytest.raises(InvalidArgument):
        recurrence.expand(_dt(2024, 2, 1), "daily", _dt(2024, 1, 1))


def test_occurrence_cap():
    assert len(recurrence.expand(_dt(2024, 1, 1), "daily", _dt(2024, 12, 31))) == 366
    with pytest.raises(InvalidArgument):
        recurrence.expand(_dt(2024, 1, 1), "daily", _dt(2025, 1, 1))
