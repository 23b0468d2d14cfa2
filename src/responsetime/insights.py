"""Summary: Statistical insight mining over response windows.

Importance: Turns metrics into ranked, actionable findings for the user.
Alternatives: Ask an LLM to describe the charts.
"""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence

from responsetime.formatting import (
    WEEKDAY_NAMES,
    WEEKDAY_SHORT,
    format_contact_name,
    format_date,
    format_duration,
    format_hour,
)
from responsetime.models import Insight, InsightType, ResponseWindow, TimeRange
from responsetime.stats import (
    coefficient_of_variation,
    daily_points,
    linear_regression,
    median,
    quartiles,
)
from responsetime.timeframes import LocalCalendar

MIN_GROUP_SAMPLES = 3
PROJECTION_DAYS = 14

Windows = Sequence[ResponseWindow]
Analyzer = Callable[[Windows, TimeRange], "Insight | None"]


def getting_started_insight() -> Insight:
    return Insight(
        type=InsightType.RECOMMENDATION,
        icon="info",
        color="blue",
        title="Getting Started",
        description="Sync your messages to see personalized insights about your response patterns.",
        actionable=None,
        confidence=1.0,
        data_points=0,
    )


@dataclass(frozen=True)
class InsightsEngine:
    """Summary: Runs nine independent analyzers and keeps the most confident findings.

    Importance: Analyzers share no state, so they may run on a thread pool.
    Alternatives: A single monolithic report builder.
    """

    calendar: LocalCalendar = field(default_factory=LocalCalendar)
    minimum_sample_size: int = 5
    max_insights: int = 8
    parallel: bool = False

    def generate_insights(
        self, windows: Sequence[ResponseWindow], time_range: TimeRange
    ) -> list[Insight]:
        """Summary: Produce up to max_insights findings sorted by confidence.

        Importance: Below the minimum sample size a single onboarding insight is returned.
        Alternatives: Return an empty list when data is scarce.
        """

        valid = [window for window in windows if window.is_valid_for_analytics]
        if len(valid) < self.minimum_sample_size:
            return [getting_started_insight()]

        analyzers = self.analyzers()
        if self.parallel:
            with ThreadPoolExecutor(max_workers=len(analyzers)) as pool:
                results = list(pool.map(lambda analyze: analyze(valid, time_range), analyzers))
        else:
            results = [analyze(valid, time_range) for analyze in analyzers]

        found = [insight for insight in results if insight is not None]
        found.sort(key=lambda insight: insight.confidence, reverse=True)
        return found[: self.max_insights]

    def analyzers(self) -> list[Analyzer]:
        return [
            self.analyze_trend,
            self.analyze_day_of_week,
            self.analyze_hour_of_day,
            self.analyze_working_hours,
            self.analyze_speed_tier,
            self.analyze_consistency,
            self.detect_anomalies,
            self.analyze_contacts,
            self.predict,
        ]

    def analyze_trend(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        """Summary: Regress daily medians to detect improving, declining, or stable replies."""

        points = daily_points(windows, self.calendar)
        if len(points) < 5:
            return None
        ys = [point.median for point in points]
        regression = linear_regression(ys)
        if regression is None:
            return None
        relative_change = regression.slope * len(ys) / max(median(ys), 1)
        r_squared = regression.r_squared
        period = time_range.period_label

        if abs(relative_change) > 0.1 and r_squared > 0.3:
            if relative_change < -0.15:
                return Insight(
                    type=InsightType.TREND,
                    icon="trend-down",
                    color="green",
                    title="Response Times Improving!",
                    description=(
                        f"Your response time has decreased approximately "
                        f"{int(abs(relative_change) * 100)}% over the past {period}."
                    ),
                    actionable="Keep up the momentum by maintaining your current habits.",
                    confidence=r_squared,
                    data_points=len(points),
                )
            if relative_change > 0.15:
                return Insight(
                    type=InsightType.WARNING,
                    icon="trend-up",
                    color="orange",
                    title="Response Times Increasing",
                    description=(
                        f"Your response time has increased approximately "
                        f"{int(relative_change * 100)}% over the past {period}."
                    ),
                    actionable="Consider reviewing your message handling habits or setting tighter goals.",
                    confidence=r_squared,
                    data_points=len(points),
                )
            return None
        if r_squared > 0.6:
            return Insight(
                type=InsightType.ACHIEVEMENT,
                icon="equal",
                color="blue",
                title="Consistent Response Times",
                description=f"Your response times have remained stable over the past {period}.",
                actionable=None,
                confidence=r_squared,
                data_points=len(points),
            )
        return None

    def analyze_day_of_week(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        by_day: dict[int, list[float]] = defaultdict(list)
        for window in windows:
            by_day[window.day_of_week].append(window.latency_seconds)

        best_day = worst_day = None
        best_median = float("inf")
        worst_median = 0.0
        for day in self.calendar.week_order():
            latencies = by_day.get(day, [])
            if len(latencies) < MIN_GROUP_SAMPLES:
                continue
            day_median = median(latencies)
            if day_median < best_median:
                best_median, best_day = day_median, day
            if day_median > worst_median:
                worst_median, worst_day = day_median, day

        if best_day is None or worst_day is None or best_day == worst_day:
            return None

        ratio = worst_median / max(best_median, 1)
        data_points = len(by_day[best_day]) + len(by_day[worst_day])
        best_short, worst_short = WEEKDAY_SHORT[best_day], WEEKDAY_SHORT[worst_day]
        if ratio > 2.0:
            return Insight(
                type=InsightType.PATTERN,
                icon="calendar-clock",
                color="green",
                title=f"You respond {ratio:.1f}x faster on {WEEKDAY_NAMES[best_day]}s",
                description=(
                    f"Median {format_duration(best_median)} on {best_short} vs "
                    f"{format_duration(worst_median)} on {worst_short}."
                ),
                actionable=f"Consider batching messages for {worst_short} to improve consistency.",
                confidence=0.85,
                data_points=data_points,
            )
        if ratio > 1.5:
            return Insight(
                type=InsightType.PATTERN,
                icon="calendar",
                color="blue",
                title=f"{WEEKDAY_NAMES[best_day]}s are your fastest day",
                description=(
                    f"Median {format_duration(best_median)} on {best_short} compared to "
                    f"{format_duration(worst_median)} on {worst_short}."
                ),
                actionable=None,
                confidence=0.75,
                data_points=data_points,
            )
        return None

    def analyze_hour_of_day(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        by_hour: dict[int, list[float]] = defaultdict(list)
        for window in windows:
            by_hour[window.hour_of_day].append(window.latency_seconds)

        peak_hour = None
        peak_median = float("inf")
        for hour in range(24):
            latencies = by_hour.get(hour, [])
            if len(latencies) < MIN_GROUP_SAMPLES:
                continue
            hour_median = median(latencies)
            if hour_median < peak_median:
                peak_median, peak_hour = hour_median, hour
        if peak_hour is None:
            return None

        overall_median = median(window.latency_seconds for window in windows)
        ratio = overall_median / max(peak_median, 1)
        if ratio < 1.8:
            return None
        label = format_hour(peak_hour)
        return Insight(
            type=InsightType.PATTERN,
            icon="clock-check",
            color="blue",
            title=f"Peak Response Hour: {label}",
            description=(
                f"Messages around {label} get your fastest replies: median "
                f"{format_duration(peak_median)} vs overall {format_duration(overall_median)}."
            ),
            actionable="Consider scheduling important communications during this window.",
            confidence=0.8,
            data_points=len(by_hour[peak_hour]),
        )

    def analyze_working_hours(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        work = [w.latency_seconds for w in windows if w.is_working_hours]
        off = [w.latency_seconds for w in windows if not w.is_working_hours]
        if len(work) < MIN_GROUP_SAMPLES or len(off) < MIN_GROUP_SAMPLES:
            return None

        work_median = median(work)
        off_median = median(off)
        ratio = off_median / max(work_median, 1)
        if ratio > 2.0:
            return Insight(
                type=InsightType.PATTERN,
                icon="moon",
                color="purple",
                title="Off-Hours Significantly Slower",
                description=(
                    f"You respond {ratio:.1f}x slower outside working hours "
                    f"({format_duration(off_median)} vs {format_duration(work_median)})."
                ),
                actionable="This is healthy work-life balance. Keep maintaining boundaries!",
                confidence=0.8,
                data_points=len(work) + len(off),
            )
        if ratio < 0.7:
            return Insight(
                type=InsightType.PATTERN,
                icon="moon-stars",
                color="orange",
                title="Faster Responses Off-Hours",
                description=(
                    f"You actually respond faster outside working hours: "
                    f"{format_duration(off_median)} vs {format_duration(work_median)} during work."
                ),
                actionable="Consider setting boundaries to protect off-hours time.",
                confidence=0.75,
                data_points=len(work) + len(off),
            )
        return None

    def analyze_speed_tier(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        total = len(windows)
        if total == 0:
            return None
        latencies = [window.latency_seconds for window in windows]
        pct_30m = sum(1 for value in latencies if value < 1800) / total * 100
        pct_1h = sum(1 for value in latencies if value < 3600) / total * 100

        if pct_30m > 70:
            return Insight(
                type=InsightType.ACHIEVEMENT,
                icon="bolt",
                color="yellow",
                title="Lightning Fast Responder",
                description=(
                    f"{int(pct_30m)}% of your responses are under 30 minutes. "
                    "You're in the top tier!"
                ),
                actionable=None,
                confidence=0.9,
                data_points=total,
            )
        if pct_30m > 50:
            return Insight(
                type=InsightType.ACHIEVEMENT,
                icon="hare",
                color="green",
                title="Fast Responder",
                description=(
                    f"{int(pct_30m)}% of your responses are under 30 minutes. "
                    "Great responsiveness!"
                ),
                actionable=None,
                confidence=0.85,
                data_points=total,
            )
        if pct_1h < 30:
            return Insight(
                type=InsightType.RECOMMENDATION,
                icon="tortoise",
                color="orange",
                title="Room for Improvement",
                description=(
                    f"Only {int(pct_1h)}% of responses under 1 hour. "
                    f"Median is {format_duration(median(latencies))}."
                ),
                actionable="Set a goal to respond within 2 hours for new messages.",
                confidence=0.8,
                data_points=total,
            )
        return None

    def analyze_consistency(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        latencies = sorted(window.latency_seconds for window in windows)
        if len(latencies) < 10:
            return None
        q1, q3 = quartiles(latencies)
        cv = coefficient_of_variation(latencies)
        if cv < 0.5:
            return Insight(
                type=InsightType.ACHIEVEMENT,
                icon="metronome",
                color="teal",
                title="Highly Consistent Responder",
                description=(
                    f"Your response times are tightly clustered. Most fall between "
                    f"{format_duration(q1)} and {format_duration(q3)}."
                ),
                actionable=None,
                confidence=0.85,
                data_points=len(latencies),
            )
        if cv > 1.5:
            return Insight(
                type=InsightType.PATTERN,
                icon="waveform",
                color="orange",
                title="Variable Response Times",
                description=(
                    f"Your responses range widely, from {format_duration(q1)} to "
                    f"{format_duration(q3)}. High variability detected."
                ),
                actionable="Identify what causes delays: specific contacts, times, or message types.",
                confidence=0.8,
                data_points=len(latencies),
            )
        return None

    def detect_anomalies(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        """Summary: Flag the most recent day whose median falls outside the 1.5 IQR fences."""

        points = daily_points(windows, self.calendar)
        if len(points) < 7:
            return None
        q1, q3 = quartiles(sorted(point.median for point in points))
        iqr = q3 - q1
        lower, upper = q1 - 1.5 * iqr, q3 + 1.5 * iqr

        for point in reversed(points):
            if point.median < lower:
                return Insight(
                    type=InsightType.ANOMALY,
                    icon="bolt-badge",
                    color="green",
                    title="Exceptional Performance Detected",
                    description=(
                        f"On {format_date(point.date)}, you responded unusually fast "
                        f"(median {format_duration(point.median)})."
                    ),
                    actionable="What did you do differently? Replicate that pattern!",
                    confidence=0.75,
                    data_points=point.count,
                )
            if point.median > upper:
                return Insight(
                    type=InsightType.ANOMALY,
                    icon="warning-triangle",
                    color="red",
                    title="Unusual Delay Detected",
                    description=(
                        f"On {format_date(point.date)}, response times were unusually slow "
                        f"(median {format_duration(point.median)})."
                    ),
                    actionable="Review what caused the delay to prevent future occurrences.",
                    confidence=0.7,
                    data_points=point.count,
                )
        return None

    def analyze_contacts(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        by_contact: dict[str, list[float]] = defaultdict(list)
        for window in windows:
            if window.participant_id:
                by_contact[window.participant_id].append(window.latency_seconds)

        vip = None
        vip_median = float("inf")
        for participant_id in sorted(by_contact):
            latencies = by_contact[participant_id]
            if len(latencies) < MIN_GROUP_SAMPLES:
                continue
            contact_median = median(latencies)
            if contact_median < vip_median:
                vip_median, vip = contact_median, participant_id

        if vip is None or vip_median >= 1800:
            return None
        name = format_contact_name(vip)
        return Insight(
            type=InsightType.PATTERN,
            icon="star",
            color="yellow",
            title=f"VIP Contact: {name}",
            description=f"You respond fastest to {name}: median {format_duration(vip_median)}.",
            actionable=None,
            confidence=0.75,
            data_points=len(by_contact[vip]),
        )

    def predict(self, windows: Windows, time_range: TimeRange) -> Insight | None:
        """Summary: Project the last seven daily medians forward and warn or encourage."""

        points = daily_points(windows, self.calendar)
        if len(points) < 7:
            return None
        recent = [point.median for point in points[-7:]]
        regression = linear_regression(recent)
        if regression is None:
            return None
        projected = regression.slope * PROJECTION_DAYS + regression.intercept
        current = recent[-1]
        change = (projected - current) / max(current, 1) * 100

        if regression.slope < -100 and change < -20:
            return Insight(
                type=InsightType.TREND,
                icon="arrow-down-forward",
                color="green",
                title="On Track to Improve",
                description=(
                    f"Based on recent trends, your response time could decrease by "
                    f"{int(abs(change))}% over the next two weeks."
                ),
                actionable="Maintain your current habits to hit this projection!",
                confidence=0.6,
                data_points=len(recent),
            )
        if regression.slope > 100 and change > 20:
            return Insight(
                type=InsightType.WARNING,
                icon="arrow-up-forward",
                color="orange",
                title="Trend Warning",
                description=(
                    f"If the current trend continues, response time may increase by "
                    f"{int(change)}% over the next two weeks."
                ),
                actionable="Consider setting stricter goals or reviewing habits.",
                confidence=0.55,
                data_points=len(recent),
            )
        return None
