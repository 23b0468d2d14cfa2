"""Summary: Tests for goal creation and daily streak tracking."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from responsetime.models import MatchingMethod, Platform, ResponseWindow
from responsetime.services import GoalService
from responsetime.storage.sqlite_store import SqliteStore
from responsetime.timeframes import LocalCalendar

DAY_ONE = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


def _service(tmp_path: Path) -> GoalService:
    store = SqliteStore(str(tmp_path / "goals.db"))
    store.initialize()
    return GoalService(store=store, calendar=LocalCalendar())


def _record(service: GoalService, day: datetime, latency: float, platform: Platform) -> None:
    inbound_at = day.replace(hour=10)
    key = f"{platform.value}-{inbound_at.date().isoformat()}-{int(latency)}"
    window = ResponseWindow(
        id=f"w-{key}",
        inbound_event_id=f"in-{key}",
        outbound_event_id=f"out-{key}",
        latency_seconds=latency,
        confidence=1.0,
        matching_method=MatchingMethod.TIME_WINDOW,
        inbound_at=inbound_at,
        day_of_week=inbound_at.weekday(),
        hour_of_day=inbound_at.hour,
        is_working_hours=True,
        is_valid_for_analytics=True,
        participant_id="sarah@company.com",
        conversation_id=f"conv-{key}",
        platform=platform,
    )
    with service.store.transaction() as session:
        session.insert_windows([window])


def test_add_goal_rejects_non_positive_target(tmp_path: Path) -> None:
    service = _service(tmp_path)
    with pytest.raises(ValueError):
        service.add_goal(0)
    goal_id = service.add_goal(3600, Platform.SLACK)
    assert [goal.id for goal in service.list_goals()] == [goal_id]


def test_streak_extends_holds_and_resets(tmp_path: Path) -> None:
    """Summary: Walk a goal through met, repeated, consecutive, and missed days.

    Importance: Streaks only grow on consecutive local days and never double count a day.
    Alternatives: Recount the whole history on each update.
    """

    service = _service(tmp_path)
    service.add_goal(3600)

    _record(service, DAY_ONE, 1200, Platform.GMAIL)
    (goal,) = service.update_streaks(DAY_ONE)
    assert (goal.current_streak, goal.longest_streak) == (1, 1)
    assert goal.last_streak_date == DAY_ONE.date()

    (goal,) = service.update_streaks(DAY_ONE + timedelta(hours=2))
    assert goal.current_streak == 1

    day_two = DAY_ONE + timedelta(days=1)
    _record(service, day_two, 1800, Platform.GMAIL)
    (goal,) = service.update_streaks(day_two)
    assert (goal.current_streak, goal.longest_streak) == (2, 2)

    # A missed day keeps the streak until the gap exceeds one day.
    day_three = DAY_ONE + timedelta(days=2)
    _record(service, day_three, 9000, Platform.GMAIL)
    (goal,) = service.update_streaks(day_three)
    assert goal.current_streak == 2

    day_five = DAY_ONE + timedelta(days=4)
    (goal,) = service.update_streaks(day_five)
    assert (goal.current_streak, goal.longest_streak) == (0, 2)

    _record(service, day_five + timedelta(days=1), 600, Platform.GMAIL)
    (goal,) = service.update_streaks(day_five + timedelta(days=1))
    assert (goal.current_streak, goal.longest_streak) == (1, 2)


def test_platform_goal_ignores_other_platforms(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.add_goal(600, Platform.SLACK)
    _record(service, DAY_ONE, 300, Platform.GMAIL)
    (goal,) = service.update_streaks(DAY_ONE)
    assert goal.current_streak == 0
    assert goal.last_streak_date is None

    _record(service, DAY_ONE, 400, Platform.SLACK)
    (goal,) = service.update_streaks(DAY_ONE)
    assert goal.current_streak == 1
