"""Summary: Tests for the response matcher.

Importance: Every metric depends on pairing inbound messages with the right reply.
Alternatives: Validate matching only through end-to-end sync tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from responsetime.matcher import ResponseMatcher
from responsetime.models import Direction, MatchingMethod, MessageEvent, Platform
from responsetime.timeframes import LocalCalendar

BASE = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def _event(
    event_id: str, offset_seconds: float, direction: Direction, excluded: bool = False
) -> MessageEvent:
    return MessageEvent(
        id=event_id,
        conversation_id="conv-1",
        timestamp=BASE + timedelta(seconds=offset_seconds),
        direction=direction,
        participant_id="sarah@company.com",
        excluded=excluded,
    )


def test_single_reply_creates_window() -> None:
    """Summary: Verify one inbound and one reply 30 minutes later form one window.

    Importance: The basic pairing contract.
    Alternatives: Assert only the window count.
    """

    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("out-1", 1800, Direction.OUTBOUND),
    ]
    windows = ResponseMatcher().match_conversation(events, platform=Platform.GMAIL)
    assert len(windows) == 1
    window = windows[0]
    assert window.inbound_event_id == "in-1"
    assert window.outbound_event_id == "out-1"
    assert window.latency_seconds == 1800
    assert window.confidence == 1.0
    assert window.is_valid_for_analytics
    assert window.matching_method is MatchingMethod.TIME_WINDOW
    assert window.platform is Platform.GMAIL
    assert window.day_of_week == 0
    assert window.hour_of_day == 10
    assert window.is_working_hours


def test_most_recent_inbound_wins() -> None:
    """Summary: Verify a second inbound supersedes the first before the reply.

    Importance: Documents the single pending-slot policy.
    Alternatives: Pair the reply with the earliest unanswered inbound.
    """

    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("in-2", 10, Direction.INBOUND),
        _event("out-1", 3600, Direction.OUTBOUND),
    ]
    windows = ResponseMatcher().match_conversation(events)
    assert len(windows) == 1
    assert windows[0].inbound_event_id == "in-2"
    assert windows[0].latency_seconds == 3590


def test_reply_without_inbound_and_late_reply_are_ignored() -> None:
    events = [
        _event("out-0", 0, Direction.OUTBOUND),
        _event("in-1", 10, Direction.INBOUND),
        _event("out-1", 10 + 8 * 86400, Direction.OUTBOUND),
    ]
    assert ResponseMatcher().match_conversation(events) == []


def test_zero_latency_reply_is_not_matched() -> None:
    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("out-1", 0, Direction.OUTBOUND),
    ]
    assert ResponseMatcher().match_conversation(events) == []


def test_excluded_events_are_skipped() -> None:
    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("in-2", 600, Direction.INBOUND, excluded=True),
        _event("out-1", 1200, Direction.OUTBOUND),
    ]
    windows = ResponseMatcher().match_conversation(events)
    assert [window.inbound_event_id for window in windows] == ["in-1"]
    assert windows[0].latency_seconds == 1200


def test_slow_reply_is_stored_but_not_valid() -> None:
    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("out-1", 200000, Direction.OUTBOUND),
    ]
    windows = ResponseMatcher().match_conversation(events)
    assert len(windows) == 1
    assert windows[0].confidence == 0.6
    assert not windows[0].is_valid_for_analytics


def test_matching_is_idempotent_with_existing_windows() -> None:
    """Summary: Verify inbound events that already own a window are skipped.

    Importance: Re-running sync must never duplicate windows.
    Alternatives: Deduplicate in storage only.
    """

    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("out-1", 600, Direction.OUTBOUND),
        _event("in-2", 1200, Direction.INBOUND),
        _event("out-2", 2400, Direction.OUTBOUND),
    ]
    matcher = ResponseMatcher()
    first = matcher.match_conversation(events)
    assert len(first) == 2
    again = matcher.match_conversation(
        events, existing_inbound_ids={window.inbound_event_id for window in first}
    )
    assert again == []


def test_window_count_never_exceeds_inbound_count() -> None:
    events = [
        _event("in-1", 0, Direction.INBOUND),
        _event("out-1", 60, Direction.OUTBOUND),
        _event("out-2", 120, Direction.OUTBOUND),
        _event("out-3", 180, Direction.OUTBOUND),
    ]
    windows = ResponseMatcher().match_conversation(events)
    assert len(windows) == 1


def test_unsorted_events_are_rejected() -> None:
    events = [
        _event("out-1", 600, Direction.OUTBOUND),
        _event("in-1", 0, Direction.INBOUND),
    ]
    with pytest.raises(ValueError):
        ResponseMatcher().match_conversation(events)


def test_configured_timezone_drives_buckets() -> None:
    """Summary: Verify day and hour buckets use the configured timezone.

    Importance: 23:30 UTC Sunday is Monday morning in Tokyo.
    Alternatives: Bucket in UTC and convert at display time.
    """

    sunday_late = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
    events = [
        MessageEvent("in-1", "conv-1", sunday_late, Direction.INBOUND, "a@example.com"),
        MessageEvent(
            "out-1", "conv-1", sunday_late + timedelta(minutes=20), Direction.OUTBOUND, "a@example.com"
        ),
    ]
    matcher = ResponseMatcher(calendar=LocalCalendar(timezone_name="Asia/Tokyo"))
    window = matcher.match_conversation(events)[0]
    assert window.day_of_week == 0
    assert window.hour_of_day == 8
    assert not window.is_working_hours
