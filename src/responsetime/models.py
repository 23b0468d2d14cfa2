"""Summary: Domain model dataclasses for Response Time.

Importance: Defines the entities shared by the engines, services, and storage.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Platform(str, Enum):
    """Summary: Communication platforms an account can belong to."""

    GMAIL = "gmail"
    OUTLOOK = "outlook"
    SLACK = "slack"
    IMESSAGE = "imessage"

    @property
    def display_name(self) -> str:
        return {
            Platform.GMAIL: "Gmail",
            Platform.OUTLOOK: "Outlook",
            Platform.SLACK: "Slack",
            Platform.IMESSAGE: "iMessage",
        }[self]


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MatchingMethod(str, Enum):
    """Summary: Signal used to pair an inbound message with its reply.

    Importance: Records how trustworthy the pairing is for later auditing.
    Alternatives: Store only a confidence value without the method.
    """

    MESSAGE_ID = "message-id"
    THREAD_ID = "thread-id"
    REFERENCES = "references"
    SUBJECT_MATCH = "subject-match"
    TIME_WINDOW = "time-window"


class TimeRange(str, Enum):
    """Summary: Reporting periods supported by metrics, scores, and insights.

    Importance: Drives cutoffs, previous-period comparisons, and expected volume.
    Alternatives: Accept arbitrary start and end dates from callers.
    """

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def display_name(self) -> str:
        return {
            TimeRange.TODAY: "Today",
            TimeRange.WEEK: "This Week",
            TimeRange.MONTH: "This Month",
            TimeRange.QUARTER: "This Quarter",
            TimeRange.YEAR: "This Year",
        }[self]

    @property
    def period_label(self) -> str:
        return "day" if self is TimeRange.TODAY else self.value


class InsightType(str, Enum):
    TREND = "trend"
    PATTERN = "pattern"
    ANOMALY = "anomaly"
    COMPARISON = "comparison"
    RECOMMENDATION = "recommendation"
    ACHIEVEMENT = "achievement"
    WARNING = "warning"


@dataclass(frozen=True)
class Account:
    """Summary: A connected source account on one platform.

    Importance: Scopes conversations, checkpoints, and sync failures.
    Alternatives: Treat every platform as a single implicit account.
    """

    id: str
    platform: Platform
    display_name: str
    is_enabled: bool = True
    checkpoint: str | None = None
    last_sync_error: str | None = None


@dataclass(frozen=True)
class Conversation:
    """Summary: A thread, channel, or chat holding message events.

    Importance: Matching runs per conversation so replies never cross threads.
    Alternatives: Match across the whole mailbox by participant only.
    """

    id: str
    account_id: str
    subject: str | None = None
    excluded: bool = False


@dataclass(frozen=True)
class MessageEvent:
    """Summary: A single inbound or outbound message occurrence.

    Importance: The raw input of the response matcher.
    Alternatives: Store full message bodies and derive direction later.
    """

    id: str
    conversation_id: str
    timestamp: datetime
    direction: Direction
    participant_id: str
    excluded: bool = False


@dataclass(frozen=True)
class ResponseWindow:
    """Summary: A matched inbound to outbound pair with its latency.

    Importance: Every metric, score, and insight is computed from windows.
    Alternatives: Recompute pairs from raw events on every query.
    """

    id: str
    inbound_event_id: str
    outbound_event_id: str
    latency_seconds: float
    confidence: float
    matching_method: MatchingMethod
    inbound_at: datetime
    day_of_week: int
    hour_of_day: int
    is_working_hours: bool
    is_valid_for_analytics: bool
    participant_id: str
    conversation_id: str
    platform: Platform | None = None
    computed_at: datetime | None = None


@dataclass(frozen=True)
class ResponseGoal:
    """Summary: A target latency with streak tracking.

    Importance: Turns metrics into daily goals users can keep up with.
    Alternatives: Show raw metrics without any target.
    """

    id: int
    target_latency_seconds: float
    platform: Platform | None = None
    is_enabled: bool = True
    current_streak: int = 0
    longest_streak: int = 0
    last_streak_date: date | None = None


@dataclass(frozen=True)
class ResponseMetrics:
    """Summary: Aggregate latency statistics for a period.

    Importance: Primary dashboard numbers; recomputed on demand, never stored.
    Alternatives: Persist pre-aggregated rollups per day.
    """

    time_range: TimeRange
    sample_count: int
    median_latency: float
    mean_latency: float
    p90_latency: float
    p95_latency: float
    min_latency: float
    max_latency: float
    platform: Platform | None = None
    working_hours_median: float | None = None
    non_working_hours_median: float | None = None
    previous_period_median: float | None = None
    trend_percentage: float | None = None

    @property
    def trend_direction(self) -> str:
        if self.trend_percentage is None:
            return "flat"
        if self.trend_percentage < -5:
            return "improving"
        if self.trend_percentage > 5:
            return "declining"
        return "flat"

    @staticmethod
    def empty(time_range: TimeRange, platform: Platform | None = None) -> "ResponseMetrics":
        return ResponseMetrics(
            time_range=time_range,
            sample_count=0,
            median_latency=0,
            mean_latency=0,
            p90_latency=0,
            p95_latency=0,
            min_latency=0,
            max_latency=0,
            platform=platform,
        )


@dataclass(frozen=True)
class DailyMetrics:
    date: date
    median_latency: float
    response_count: int


@dataclass(frozen=True)
class HourlyMetrics:
    hour: int
    median_latency: float
    response_count: int


@dataclass(frozen=True)
class PlatformMetrics:
    platform: Platform
    median_latency: float
    sample_count: int
    goal_progress: float | None = None


@dataclass(frozen=True)
class LatencyBucket:
    label: str
    count: int


@dataclass(frozen=True)
class ResponseScore:
    """Summary: Composite 0-100 performance score with letter grade.

    Importance: Condenses speed, consistency, coverage, and trend into one number.
    Alternatives: Present each sub-metric without combining them.
    """

    overall: int
    grade: str
    grade_color: str
    speed_score: int
    consistency_score: int
    coverage_score: int
    trend_score: int
    improvement_score: int
    total_responses: int
    median_latency: float
    p90_latency: float
    coefficient_of_variation: float
    trend_slope: float | None = None
    strengths: tuple[str, ...] = field(default_factory=tuple)
    weaknesses: tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def empty() -> "ResponseScore":
        return ResponseScore(
            overall=0,
            grade="--",
            grade_color="secondary",
            speed_score=0,
            consistency_score=0,
            coverage_score=0,
            trend_score=0,
            improvement_score=0,
            total_responses=0,
            median_latency=0,
            p90_latency=0,
            coefficient_of_variation=0,
        )


@dataclass(frozen=True)
class Insight:
    """Summary: A ranked natural-language finding about response behavior.

    Importance: Explains the numbers and suggests concrete actions.
    Alternatives: Let users interpret charts on their own.
    """

    type: InsightType
    icon: str
    color: str
    title: str
    description: str
    actionable: str | None
    confidence: float
    data_points: int


@dataclass(frozen=True)
class PendingConversation:
    conversation_id: str
    participant_id: str
    waiting_since: datetime
    platform: Platform | None = None
