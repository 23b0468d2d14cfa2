"""Summary: Statistical helpers shared by the aggregator, scoring, and insights engines.

Importance: Guarantees one nearest-rank definition and one regression everywhere.
Alternatives: Use numpy percentiles, which interpolate and break index parity.
"""

from __future__ import annotations

import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from responsetime.models import ResponseWindow
from responsetime.timeframes import LocalCalendar


@dataclass(frozen=True)
class DailyPoint:
    date: date
    median: float
    count: int


@dataclass(frozen=True)
class Regression:
    slope: float
    intercept: float
    r_squared: float


def nearest_rank(sorted_values: Sequence[float], fraction: float) -> float:
    """Summary: Pick the value at index floor(n * fraction) without interpolation.

    Importance: Reproduces the exact percentile indices used by every report.
    Alternatives: statistics.quantiles with interpolation.
    """

    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[index]


def median(values: Iterable[float]) -> float:
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def quartiles(sorted_values: Sequence[float]) -> tuple[float, float]:
    count = len(sorted_values)
    return sorted_values[count // 4], sorted_values[3 * count // 4]


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Summary: Population standard deviation divided by the mean (mean floored at 1s)."""

    if not values:
        return 0.0
    mean = statistics.fmean(values)
    return statistics.pstdev(values, mu=mean) / max(mean, 1)


def linear_regression(ys: Sequence[float]) -> Regression | None:
    """Summary: Ordinary least squares of ys against their index 0..n-1.

    Importance: Trend scoring, trend insights, and projections share this fit.
    Alternatives: statistics.linear_regression, which lacks R-squared.
    """

    n = len(ys)
    if n < 2:
        return None
    xs = range(n)
    sum_x = float(sum(xs))
    sum_y = float(sum(ys))
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_x2 = float(sum(x * x for x in xs))
    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    y_mean = sum_y / n
    ss_total = sum((y - y_mean) ** 2 for y in ys)
    ss_residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
    r_squared = 1 - ss_residual / max(ss_total, 0.001)
    return Regression(slope=slope, intercept=intercept, r_squared=r_squared)


def daily_points(windows: Iterable[ResponseWindow], calendar: LocalCalendar) -> list[DailyPoint]:
    """Summary: Group windows by local inbound date and take each day's median."""

    groups: dict[date, list[float]] = defaultdict(list)
    for window in windows:
        groups[calendar.local_date(window.inbound_at)].append(window.latency_seconds)
    return [
        DailyPoint(date=day, median=median(latencies), count=len(latencies))
        for day, latencies in sorted(groups.items())
    ]
