"""Summary: Tests for period cutoffs and timezone bucketing.

Importance: Every report window is derived from these helpers.
Alternatives: Exercise time handling only through metrics tests.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from responsetime.models import TimeRange
from responsetime.stats import linear_regression, median, nearest_rank, quartiles
from responsetime.timeframes import (
    LocalCalendar,
    parse_weekday,
    previous_period,
    range_start,
    shift_months,
)

NOW = datetime(2026, 3, 31, 15, 0, tzinfo=timezone.utc)


def test_parse_weekday_accepts_names_and_indices() -> None:
    assert parse_weekday("monday") == 0
    assert parse_weekday("Sun") == 6
    assert parse_weekday("4") == 4
    assert parse_weekday(2) == 2
    with pytest.raises(ValueError):
        parse_weekday("someday")
    with pytest.raises(ValueError):
        parse_weekday(9)


def test_calendar_rejects_invalid_settings() -> None:
    with pytest.raises(ValueError):
        LocalCalendar(timezone_name="Mars/Olympus")
    with pytest.raises(ValueError):
        LocalCalendar(working_hours_start=18, working_hours_end=9)


def test_shift_months_clamps_day() -> None:
    assert shift_months(NOW, -1).day == 28
    assert shift_months(NOW, -1).month == 2
    assert shift_months(NOW, -12).year == 2025


def test_range_start_and_previous_period_do_not_overlap() -> None:
    """Summary: Verify each previous period ends where the current one starts.

    Importance: Overlapping periods would bias trend percentages toward zero.
    Alternatives: Use fixed 30-day blocks for every range.
    """

    calendar = LocalCalendar()
    for time_range in TimeRange:
        start = range_start(time_range, NOW, calendar)
        previous_start, previous_end = previous_period(time_range, NOW, calendar)
        assert previous_start < previous_end == start < NOW


def test_today_uses_local_midnight() -> None:
    calendar = LocalCalendar(timezone_name="America/New_York")
    start = range_start(TimeRange.TODAY, NOW, calendar)
    assert start.hour == 0
    assert start.astimezone(timezone.utc).hour == 4


def test_week_order_follows_week_start() -> None:
    assert LocalCalendar(week_start=6).week_order() == [6, 0, 1, 2, 3, 4, 5]


def test_stat_helpers() -> None:
    assert median([3, 1, 2]) == 2
    assert median([600, 7200]) == 7200
    assert nearest_rank([10, 20, 30, 40, 50], 0.9) == 50
    assert quartiles([1, 2, 3, 4, 5, 6, 7, 8]) == (3, 7)
    regression = linear_regression([1.0, 3.0, 5.0])
    assert regression is not None
    assert regression.slope == pytest.approx(2.0)
    assert regression.intercept == pytest.approx(1.0)
    assert regression.r_squared == pytest.approx(1.0)
    assert linear_regression([4.0]) is None
