"""Summary: Five-factor response score with letter grade.

Importance: Gives users a single number to track alongside the raw metrics.
Alternatives: The simpler three-factor 40/30/30 score, which ignores trend and history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from responsetime.models import ResponseScore, ResponseWindow, TimeRange
from responsetime.stats import coefficient_of_variation, daily_points, linear_regression, median
from responsetime.timeframes import LocalCalendar

WEIGHTS = {
    "speed": 0.40,
    "consistency": 0.25,
    "coverage": 0.15,
    "trend": 0.10,
    "improvement": 0.10,
}

DEFAULT_EXPECTED_VOLUME: dict[TimeRange, int] = {
    TimeRange.TODAY: 5,
    TimeRange.WEEK: 30,
    TimeRange.MONTH: 100,
    TimeRange.QUARTER: 300,
    TimeRange.YEAR: 1000,
}

# (latency threshold in seconds, score), ascending.
MEDIAN_LADDER: tuple[tuple[float, int], ...] = ((1800, 100), (3600, 80), (7200, 60), (14400, 40))
P90_LADDER: tuple[tuple[float, int], ...] = ((3600, 100), (7200, 80), (14400, 60), (28800, 40))

NEUTRAL_SCORE = 70
MIN_TREND_DAYS = 5

GRADE_BANDS: tuple[tuple[int, str], ...] = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)
GRADE_COLORS = {"A": "green", "B": "blue", "C": "yellow", "D": "orange"}


@dataclass(frozen=True)
class ScoreEngine:
    """Summary: Combines speed, consistency, coverage, trend, and improvement.

    Importance: Weighted 40/25/15/10/10 and invariant to input order.
    Alternatives: Rank users against each other instead of absolute targets.
    """

    calendar: LocalCalendar = field(default_factory=LocalCalendar)
    expected_volume: Mapping[TimeRange, int] = field(
        default_factory=lambda: dict(DEFAULT_EXPECTED_VOLUME)
    )

    def compute_score(
        self,
        windows: Iterable[ResponseWindow],
        time_range: TimeRange = TimeRange.WEEK,
        previous_period_windows: Iterable[ResponseWindow] = (),
    ) -> ResponseScore:
        """Summary: Score the valid windows of a period.

        Importance: Returns the empty sentinel instead of raising on no data.
        Alternatives: Return None when there is nothing to score.
        """

        valid = [window for window in windows if window.is_valid_for_analytics]
        if not valid:
            return ResponseScore.empty()
        previous = [w for w in previous_period_windows if w.is_valid_for_analytics]

        latencies = sorted(window.latency_seconds for window in valid)
        median_latency = latencies[len(latencies) // 2]
        p90_latency = latencies[int(len(latencies) * 0.9)]
        cv = coefficient_of_variation(latencies)
        slope = self.trend_slope(valid)

        speed = speed_score(median_latency, p90_latency)
        consistency = consistency_score(cv)
        coverage = coverage_score(len(valid), self._expected(time_range))
        trend = trend_score(slope)
        improvement = improvement_score(latencies, [w.latency_seconds for w in previous])

        overall = int(
            speed * WEIGHTS["speed"]
            + consistency * WEIGHTS["consistency"]
            + coverage * WEIGHTS["coverage"]
            + trend * WEIGHTS["trend"]
            + improvement * WEIGHTS["improvement"]
        )
        grade = grade_from_score(overall)

        return ResponseScore(
            overall=overall,
            grade=grade,
            grade_color=color_from_grade(grade),
            speed_score=speed,
            consistency_score=consistency,
            coverage_score=coverage,
            trend_score=trend,
            improvement_score=improvement,
            total_responses=len(valid),
            median_latency=median_latency,
            p90_latency=p90_latency,
            coefficient_of_variation=cv,
            trend_slope=slope,
            strengths=tuple(_strengths(speed, consistency, trend, improvement)),
            weaknesses=tuple(_weaknesses(speed, consistency, coverage, trend, median_latency)),
        )

    def trend_slope(self, windows: Sequence[ResponseWindow]) -> float | None:
        """Summary: OLS slope of daily medians in seconds per day, or None below five days."""

        points = daily_points(windows, self.calendar)
        if len(points) < MIN_TREND_DAYS:
            return None
        regression = linear_regression([point.median for point in points])
        return regression.slope if regression else None

    def _expected(self, time_range: TimeRange) -> int:
        return self.expected_volume.get(time_range, DEFAULT_EXPECTED_VOLUME[time_range])


def score_from_latency(latency: float, ladder: Sequence[tuple[float, int]]) -> int:
    """Summary: Walk an ascending ladder; past the last rung lose 5 points per hour."""

    for threshold, score in ladder:
        if latency <= threshold:
            return score
    worst_threshold, worst_score = ladder[-1]
    penalty = int((latency - worst_threshold) / 3600) * 5
    return max(0, worst_score - penalty)


def speed_score(median_latency: float, p90_latency: float) -> int:
    median_score = score_from_latency(median_latency, MEDIAN_LADDER)
    p90_score = score_from_latency(p90_latency, P90_LADDER)
    return int(median_score * 0.7 + p90_score * 0.3)


def consistency_score(cv: float) -> int:
    if cv < 0.3:
        return 95 + int((0.3 - cv) / 0.3 * 5)
    if cv < 0.5:
        return 80 + int((0.5 - cv) / 0.2 * 15)
    if cv < 1.0:
        return 60 + int((1.0 - cv) / 0.5 * 20)
    if cv < 1.5:
        return 40 + int((1.5 - cv) / 0.5 * 20)
    return max(0, 40 - int((cv - 1.5) * 10))


def coverage_score(window_count: int, expected: int) -> int:
    ratio = window_count / max(expected, 1)
    if ratio >= 1.0:
        return 100
    if ratio >= 0.7:
        return 85 + int((ratio - 0.7) / 0.3 * 15)
    if ratio >= 0.4:
        return 70 + int((ratio - 0.4) / 0.3 * 15)
    if ratio >= 0.2:
        return 50 + int((ratio - 0.2) / 0.2 * 20)
    return int(ratio / 0.2 * 50)


def trend_score(slope: float | None) -> int:
    """Summary: Map a daily-median slope to 0-100; negative slopes mean faster replies.

    Importance: Bands are continuous so a slightly steeper slope never scores worse.
    Alternatives: A binary improving/declining flag.
    """

    if slope is None:
        return NEUTRAL_SCORE
    if slope <= -300:
        return min(100, 85 + int((abs(slope) - 300) / 300 * 15))
    if slope <= -100:
        return 75 + int((abs(slope) - 100) / 200 * 10)
    if slope >= 300:
        return max(0, 55 - int((slope - 300) / 300 * 15))
    if slope >= 100:
        return 65 - int((slope - 100) / 200 * 10)
    return NEUTRAL_SCORE


def improvement_score(current: Sequence[float], previous: Sequence[float]) -> int:
    if not current or not previous:
        return NEUTRAL_SCORE
    current_median = median(current)
    previous_median = median(previous)
    change = (current_median - previous_median) / max(previous_median, 1) * 100

    if change < -20:
        return 100
    if change < -10:
        return 90 + int(abs(change + 10) / 10 * 10)
    if change < -5:
        return 80 + int(abs(change + 5) / 5 * 10)
    if change > 20:
        return 40
    if change > 10:
        return 50 + int((20 - change) / 10 * 10)
    if change > 5:
        return 60 + int((10 - change) / 5 * 10)
    return 70 + int((5 - abs(change)) / 5 * 10)


def grade_from_score(score: int) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "F"


def color_from_grade(grade: str) -> str:
    return GRADE_COLORS.get(grade[:1], "red")


def _strengths(speed: int, consistency: int, trend: int, improvement: int) -> list[str]:
    strengths: list[str] = []
    if speed >= 85:
        strengths.append("Lightning-fast responses")
    if consistency >= 85:
        strengths.append("Highly consistent timing")
    if trend >= 80:
        strengths.append("Strong improvement trend")
    if improvement >= 85:
        strengths.append("Significant progress vs previous period")
    return strengths


def _weaknesses(
    speed: int, consistency: int, coverage: int, trend: int, median_latency: float
) -> list[str]:
    weaknesses: list[str] = []
    if speed < 60:
        weaknesses.append("Response times could be faster")
    if consistency < 60:
        weaknesses.append("High variability in response times")
    if coverage < 60:
        weaknesses.append("Limited data for full analysis")
    if trend < 60:
        weaknesses.append("Response times are increasing")
    if median_latency > 7200:
        weaknesses.append("Median response exceeds 2 hours")
    return weaknesses
