"""Summary: Aggregates response windows into percentile and trend metrics.

Importance: Supplies the headline numbers and chart breakdowns for a period.
Alternatives: Compute aggregates in SQL with window functions.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from responsetime.models import (
    DailyMetrics,
    HourlyMetrics,
    LatencyBucket,
    Platform,
    PlatformMetrics,
    ResponseGoal,
    ResponseMetrics,
    ResponseWindow,
    TimeRange,
)
from responsetime.stats import daily_points, median, nearest_rank
from responsetime.timeframes import LocalCalendar, previous_period, range_start

# (label, exclusive upper bound in seconds); the last bucket is open ended.
LATENCY_BUCKETS: tuple[tuple[str, float], ...] = (
    ("<1h", 3600),
    ("1-2h", 7200),
    ("2-4h", 14400),
    ("4-8h", 28800),
    (">8h", float("inf")),
)


@dataclass(frozen=True)
class MetricsAggregator:
    """Summary: Pure aggregation over a window snapshot.

    Importance: Results depend only on windows, filters, range, and the supplied now.
    Alternatives: Cache metrics per period and invalidate on sync.
    """

    calendar: LocalCalendar = field(default_factory=LocalCalendar)

    def compute_metrics(
        self,
        windows: Iterable[ResponseWindow],
        time_range: TimeRange,
        now: datetime,
        platform: Platform | None = None,
    ) -> ResponseMetrics:
        """Summary: Compute nearest-rank percentiles and period-over-period trend.

        Importance: Core metrics contract; an empty selection yields the sentinel.
        Alternatives: Raise when no data is available.
        """

        snapshot = list(windows)
        start = range_start(time_range, now, self.calendar)
        current = [
            window
            for window in _eligible(snapshot, platform)
            if window.inbound_at >= start
        ]
        if not current:
            return ResponseMetrics.empty(time_range, platform)

        latencies = sorted(window.latency_seconds for window in current)
        count = len(latencies)
        median_latency = latencies[count // 2]
        working = [w.latency_seconds for w in current if w.is_working_hours]
        non_working = [w.latency_seconds for w in current if not w.is_working_hours]

        previous_median = self._previous_period_median(snapshot, time_range, now, platform)
        trend_percentage = None
        if previous_median is not None and previous_median > 0:
            trend_percentage = (median_latency - previous_median) / previous_median * 100

        return ResponseMetrics(
            time_range=time_range,
            sample_count=count,
            median_latency=median_latency,
            mean_latency=sum(latencies) / count,
            p90_latency=nearest_rank(latencies, 0.9),
            p95_latency=nearest_rank(latencies, 0.95),
            min_latency=latencies[0],
            max_latency=latencies[-1],
            platform=platform,
            working_hours_median=median(working) if working else None,
            non_working_hours_median=median(non_working) if non_working else None,
            previous_period_median=previous_median,
            trend_percentage=trend_percentage,
        )

    def daily_metrics(
        self,
        windows: Iterable[ResponseWindow],
        time_range: TimeRange,
        now: datetime,
        platform: Platform | None = None,
    ) -> list[DailyMetrics]:
        start = range_start(time_range, now, self.calendar)
        selected = [w for w in _eligible(windows, platform) if w.inbound_at >= start]
        return [
            DailyMetrics(date=point.date, median_latency=point.median, response_count=point.count)
            for point in daily_points(selected, self.calendar)
        ]

    def hourly_metrics(self, windows: Iterable[ResponseWindow]) -> list[HourlyMetrics]:
        by_hour: dict[int, list[float]] = defaultdict(list)
        for window in _eligible(windows, None):
            by_hour[window.hour_of_day].append(window.latency_seconds)
        return [
            HourlyMetrics(
                hour=hour,
                median_latency=median(by_hour[hour]) if by_hour[hour] else 0,
                response_count=len(by_hour[hour]),
            )
            for hour in range(24)
        ]

    def platform_metrics(
        self,
        windows: Iterable[ResponseWindow],
        time_range: TimeRange,
        now: datetime,
        goals: Sequence[ResponseGoal] = (),
    ) -> list[PlatformMetrics]:
        """Summary: Per-platform median with progress toward a matching goal.

        Importance: Lets users compare channels side by side.
        Alternatives: Call compute_metrics once per platform.
        """

        start = range_start(time_range, now, self.calendar)
        by_platform: dict[Platform, list[float]] = defaultdict(list)
        for window in _eligible(windows, None):
            if window.platform is not None and window.inbound_at >= start:
                by_platform[window.platform].append(window.latency_seconds)

        results: list[PlatformMetrics] = []
        for platform in Platform:
            latencies = by_platform.get(platform)
            if not latencies:
                continue
            platform_median = median(latencies)
            goal = _goal_for(goals, platform)
            progress = None
            if goal is not None:
                progress = min(1.0, goal.target_latency_seconds / max(platform_median, 1))
            results.append(
                PlatformMetrics(
                    platform=platform,
                    median_latency=platform_median,
                    sample_count=len(latencies),
                    goal_progress=progress,
                )
            )
        return results

    def latency_distribution(self, windows: Iterable[ResponseWindow]) -> list[LatencyBucket]:
        counts = [0] * len(LATENCY_BUCKETS)
        for window in _eligible(windows, None):
            for index, (_, upper) in enumerate(LATENCY_BUCKETS):
                if window.latency_seconds < upper:
                    counts[index] += 1
                    break
        return [
            LatencyBucket(label=label, count=count)
            for (label, _), count in zip(LATENCY_BUCKETS, counts)
        ]

    def _previous_period_median(
        self,
        windows: Sequence[ResponseWindow],
        time_range: TimeRange,
        now: datetime,
        platform: Platform | None,
    ) -> float | None:
        start, end = previous_period(time_range, now, self.calendar)
        latencies = [
            window.latency_seconds
            for window in _eligible(windows, platform)
            if start <= window.inbound_at < end
        ]
        if not latencies:
            return None
        return median(latencies)


def _eligible(
    windows: Iterable[ResponseWindow], platform: Platform | None
) -> list[ResponseWindow]:
    return [
        window
        for window in windows
        if window.is_valid_for_analytics and (platform is None or window.platform == platform)
    ]


def _goal_for(goals: Sequence[ResponseGoal], platform: Platform) -> ResponseGoal | None:
    enabled = [goal for goal in goals if goal.is_enabled]
    for goal in enabled:
        if goal.platform == platform:
            return goal
    for goal in enabled:
        if goal.platform is None:
            return goal
    return None
