"""Summary: Timezone-aware bucketing and reporting-period arithmetic.

Importance: Day-of-week, working-hours, and daily grouping must not depend on the host clock.
Alternatives: Use the process-local timezone implicitly.
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from responsetime.models import TimeRange

WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_weekday(value: str | int) -> int:
    """Summary: Resolve a weekday name or index to 0 (Monday) through 6 (Sunday).

    Importance: Lets configuration use readable names for working days and week start.
    Alternatives: Require numeric weekday indices everywhere.
    """

    if isinstance(value, int):
        index = value
    else:
        cleaned = value.strip().lower()
        if cleaned.isdigit():
            index = int(cleaned)
        else:
            matches = [i for i, key in enumerate(WEEKDAY_KEYS) if key.startswith(cleaned[:3])]
            if not cleaned or len(matches) != 1:
                raise ValueError(f"Unknown weekday: {value}")
            index = matches[0]
    if not 0 <= index <= 6:
        raise ValueError(f"Weekday index out of range: {value}")
    return index


@dataclass(frozen=True)
class LocalCalendar:
    """Summary: Explicit timezone, week start, and working-hours definition.

    Importance: Makes every time bucket deterministic for a given configuration.
    Alternatives: Read the timezone from the operating system at call time.
    """

    timezone_name: str = "UTC"
    working_hours_start: int = 9
    working_hours_end: int = 17
    working_days: frozenset[int] = frozenset({0, 1, 2, 3, 4})
    week_start: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.working_hours_start < self.working_hours_end <= 24:
            raise ValueError(
                f"Invalid working hours {self.working_hours_start}-{self.working_hours_end}"
            )
        if not 0 <= self.week_start <= 6:
            raise ValueError(f"Invalid week start: {self.week_start}")
        try:
            ZoneInfo(self.timezone_name)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {self.timezone_name}") from exc

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone_name)

    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.tz)

    def day_of_week(self, value: datetime) -> int:
        return self.localize(value).weekday()

    def hour_of_day(self, value: datetime) -> int:
        return self.localize(value).hour

    def local_date(self, value: datetime) -> date:
        return self.localize(value).date()

    def is_working_hours(self, value: datetime) -> bool:
        local = self.localize(value)
        return (
            local.weekday() in self.working_days
            and self.working_hours_start <= local.hour < self.working_hours_end
        )

    def start_of_day(self, value: datetime) -> datetime:
        local = self.localize(value)
        return datetime.combine(local.date(), time.min, tzinfo=self.tz)

    def week_order(self) -> list[int]:
        return [(self.week_start + offset) % 7 for offset in range(7)]


def shift_months(value: datetime, months: int) -> datetime:
    """Summary: Move a datetime by whole calendar months, clamping the day.

    Importance: Month, quarter, and year periods follow the calendar, not 30-day blocks.
    Alternatives: Approximate months as fixed day counts.
    """

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


_RANGE_MONTHS = {TimeRange.MONTH: 1, TimeRange.QUARTER: 3, TimeRange.YEAR: 12}


def range_start(time_range: TimeRange, now: datetime, calendar: LocalCalendar) -> datetime:
    """Summary: Return the inclusive cutoff for the current period."""

    if time_range is TimeRange.TODAY:
        return calendar.start_of_day(now)
    if time_range is TimeRange.WEEK:
        return calendar.localize(now) - timedelta(days=7)
    return shift_months(calendar.localize(now), -_RANGE_MONTHS[time_range])


def previous_period(
    time_range: TimeRange, now: datetime, calendar: LocalCalendar
) -> tuple[datetime, datetime]:
    """Summary: Return [start, end) of the period immediately before the current one.

    Importance: Trend comparisons must use a non-overlapping, equal-length window.
    Alternatives: Compare against an all-time baseline.
    """

    local_now = calendar.localize(now)
    if time_range is TimeRange.TODAY:
        today = calendar.start_of_day(now)
        yesterday = datetime.combine(today.date() - timedelta(days=1), time.min, tzinfo=calendar.tz)
        return yesterday, today
    if time_range is TimeRange.WEEK:
        return local_now - timedelta(days=14), local_now - timedelta(days=7)
    months = _RANGE_MONTHS[time_range]
    return shift_months(local_now, -2 * months), shift_months(local_now, -months)
