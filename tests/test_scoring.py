"""Summary: Tests for the five-factor response score.

Importance: The score is the headline number users track over time.
Alternatives: Snapshot the whole ResponseScore for fixed fixtures.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from responsetime.models import MatchingMethod, ResponseScore, ResponseWindow, TimeRange
from responsetime.scoring import (
    ScoreEngine,
    color_from_grade,
    grade_from_score,
    improvement_score,
    trend_score,
)

NOW = datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)


def _window(index: int, latency: float, inbound_at: datetime, valid: bool = True) -> ResponseWindow:
    return ResponseWindow(
        id=f"w-{index}",
        inbound_event_id=f"in-{index}",
        outbound_event_id=f"out-{index}",
        latency_seconds=latency,
        confidence=1.0 if valid else 0.4,
        matching_method=MatchingMethod.TIME_WINDOW,
        inbound_at=inbound_at,
        day_of_week=inbound_at.weekday(),
        hour_of_day=inbound_at.hour,
        is_working_hours=True,
        is_valid_for_analytics=valid,
        participant_id=f"contact-{index % 4}@example.com",
        conversation_id=f"conv-{index}",
    )


def _spread(latencies: list[float], days: int = 6) -> list[ResponseWindow]:
    return [
        _window(index, latency, NOW - timedelta(days=index % days, hours=1))
        for index, latency in enumerate(latencies)
    ]


def test_empty_input_returns_sentinel() -> None:
    engine = ScoreEngine()
    assert engine.compute_score([]) == ResponseScore.empty()
    invalid = [_window(0, 600, NOW, valid=False)]
    assert engine.compute_score(invalid).grade == "--"


def test_fast_consistent_responder_scores_high() -> None:
    """Summary: Verify uniform ten-minute replies earn top sub-scores.

    Importance: Anchors the upper end of the scale.
    Alternatives: Assert only the letter grade.
    """

    score = ScoreEngine().compute_score(_spread([600.0] * 30), TimeRange.WEEK)
    assert score.speed_score == 100
    assert score.consistency_score == 100
    assert score.coverage_score == 100
    assert score.trend_score == 70
    assert score.improvement_score == 70
    assert score.overall >= 90
    assert score.grade.startswith("A")
    assert score.grade_color == "green"
    assert score.total_responses == 30
    assert score.trend_slope == 0
    assert "Lightning-fast responses" in score.strengths
    assert score.weaknesses == ()


def test_slow_responder_lists_weaknesses() -> None:
    latencies = [20000.0, 30000.0, 40000.0, 50000.0]
    score = ScoreEngine().compute_score(_spread(latencies, days=2), TimeRange.MONTH)
    assert score.speed_score < 60
    assert score.trend_slope is None
    assert score.trend_score == 70
    assert "Median response exceeds 2 hours" in score.weaknesses
    assert "Limited data for full analysis" in score.weaknesses


def test_score_is_invariant_to_input_order() -> None:
    """Summary: Verify shuffling windows never changes the score.

    Importance: Storage order must not leak into results.
    Alternatives: Sort windows at the storage layer only.
    """

    rng = random.Random(7)
    windows = _spread([rng.uniform(60, 20000) for _ in range(40)])
    shuffled = list(windows)
    rng.shuffle(shuffled)
    engine = ScoreEngine()
    assert engine.compute_score(windows) == engine.compute_score(shuffled)


def test_previous_period_improvement() -> None:
    current = _spread([1800.0] * 10)
    previous = [
        _window(100 + index, 7200.0, NOW - timedelta(days=10 + index % 3)) for index in range(10)
    ]
    score = ScoreEngine().compute_score(current, TimeRange.WEEK, previous)
    assert score.improvement_score == 100
    assert "Significant progress vs previous period" in score.strengths


def test_trend_score_is_monotonic() -> None:
    slopes = [-1000, -600, -300, -250, -100, -50, 0, 50, 100, 150, 300, 600, 1200]
    scores = [trend_score(slope) for slope in slopes]
    assert scores == sorted(scores, reverse=True)
    assert trend_score(None) == 70
    assert trend_score(0) == 70
    assert all(0 <= value <= 100 for value in scores)


def test_improvement_score_bands() -> None:
    assert improvement_score([3600], [7200]) == 100
    assert improvement_score([7200], [3600]) == 40
    assert improvement_score([3600], [3600]) == 80
    assert improvement_score([3600], []) == 70


def test_grades_and_colors() -> None:
    assert grade_from_score(100) == "A+"
    assert grade_from_score(95) == "A"
    assert grade_from_score(85) == "B"
    assert grade_from_score(70) == "C-"
    assert grade_from_score(61) == "D-"
    assert grade_from_score(10) == "F"
    assert color_from_grade("A-") == "green"
    assert color_from_grade("B+") == "blue"
    assert color_from_grade("C") == "yellow"
    assert color_from_grade("D") == "orange"
    assert color_from_grade("F") == "red"
