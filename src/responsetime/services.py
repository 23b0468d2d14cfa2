"""Summary: Core application services for Response Time.

Importance: Orchestrates sync, matching, analytics, exclusions, and goals over storage.
Alternatives: Build a full service layer with dependency injection framework.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from responsetime.errors import NoAccountsError, PartialSyncError, SyncError
from responsetime.insights import InsightsEngine
from responsetime.matcher import ResponseMatcher
from responsetime.metrics import MetricsAggregator
from responsetime.models import (
    Account,
    DailyMetrics,
    HourlyMetrics,
    Insight,
    LatencyBucket,
    PendingConversation,
    Platform,
    PlatformMetrics,
    ResponseGoal,
    ResponseMetrics,
    ResponseScore,
    ResponseWindow,
    TimeRange,
)
from responsetime.scoring import ScoreEngine
from responsetime.sources import MessageSource
from responsetime.stats import median
from responsetime.storage.sqlite_store import SqliteStore, StoreSession
from responsetime.timeframes import LocalCalendar, previous_period, range_start

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class AccountService:
    """Summary: Manages connected source accounts.

    Importance: Accounts scope checkpoints, platforms, and sync failures.
    Alternatives: Configure accounts statically in the defaults file.
    """

    store: SqliteStore

    def add_account(self, account_id: str, platform: Platform, display_name: str) -> Account:
        if not account_id.strip():
            raise ValueError("Account id must not be empty")
        account = Account(id=account_id, platform=platform, display_name=display_name)
        with self.store.transaction() as session:
            session.upsert_account(account)
            stored = session.get_account(account_id)
        logger.info("Added account %s (%s).", account_id, platform.value)
        return stored or account

    def list_accounts(self) -> list[Account]:
        with self.store.transaction() as session:
            return session.list_accounts()

    def get_account(self, account_id: str) -> Account:
        with self.store.transaction() as session:
            account = session.get_account(account_id)
        if account is None:
            raise ValueError(f"Account {account_id} not found")
        return account

    def set_enabled(self, account_id: str, enabled: bool) -> None:
        with self.store.transaction() as session:
            if not session.set_account_enabled(account_id, enabled):
                raise ValueError(f"Account {account_id} not found")
        logger.info("Account %s %s.", account_id, "enabled" if enabled else "disabled")


@dataclass(frozen=True)
class MatchingService:
    """Summary: Runs the response matcher over stored conversations.

    Importance: Turns stored events into windows without ever duplicating one.
    Alternatives: Match inside the storage layer with SQL.
    """

    store: SqliteStore
    matcher: ResponseMatcher

    def match_conversations(
        self,
        session: StoreSession,
        conversation_ids: Iterable[str],
        platform: Platform | None,
        now: datetime,
    ) -> int:
        """Summary: Match the given conversations inside an open session.

        Importance: Sync calls this so events and windows commit together.
        Alternatives: Match after the sync transaction commits.
        """

        created = 0
        for conversation_id in sorted(set(conversation_ids)):
            events = session.list_events(conversation_id)
            existing = session.inbound_ids_with_windows(conversation_id)
            windows = self.matcher.match_conversation(
                events, existing_inbound_ids=existing, platform=platform, computed_at=now
            )
            created += session.insert_windows(windows)
        return created

    def match_all(self, now: datetime) -> int:
        """Summary: Rematch every stored conversation; already matched inbound events are kept."""

        with self.store.transaction() as session:
            platforms = {account.id: account.platform for account in session.list_accounts()}
            created = 0
            for conversation in session.list_conversations():
                created += self.match_conversations(
                    session, [conversation.id], platforms.get(conversation.account_id), now
                )
        logger.info("Created %s response windows.", created)
        return created


@dataclass(frozen=True)
class AccountSyncResult:
    account_id: str
    events_stored: int
    windows_created: int


@dataclass(frozen=True)
class SyncReport:
    """Summary: Outcome of a multi-account sync.

    Importance: Successful accounts stay committed even when others fail.
    Alternatives: Raise on the first failing account.
    """

    results: list[AccountSyncResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def events_stored(self) -> int:
        return sum(result.events_stored for result in self.results)

    @property
    def windows_created(self) -> int:
        return sum(result.windows_created for result in self.results)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialSyncError(self.failures)


@dataclass(frozen=True)
class SyncService:
    """Summary: Pulls events from sources and matches them per account.

    Importance: Each account commits in its own transaction and fails in isolation.
    Alternatives: One transaction for the whole sync.
    """

    store: SqliteStore
    matching: MatchingService

    def sync_account(self, account_id: str, source: MessageSource, now: datetime) -> AccountSyncResult:
        """Summary: Sync one account; a SyncError is recorded on the account and re-raised."""

        with self.store.transaction() as session:
            account = session.get_account(account_id)
        if account is None:
            raise ValueError(f"Account {account_id} not found")
        try:
            return self._sync(account, source, now)
        except SyncError as exc:
            self._record_failure(account, exc)
            raise

    def sync_all(
        self,
        source_for: Callable[[Account], MessageSource],
        now: datetime,
        progress: ProgressCallback | None = None,
    ) -> SyncReport:
        """Summary: Sync every enabled account, reporting progress after each one.

        Importance: Progress fractions only increase and finish at 1.0. Any error from
        one account's source is recorded on that account and never stops the others.
        Alternatives: Sync accounts concurrently and report completion only.
        """

        with self.store.transaction() as session:
            accounts = session.list_accounts(enabled_only=True)
        if not accounts:
            raise NoAccountsError()

        report = SyncReport()
        for index, account in enumerate(accounts, start=1):
            try:
                report.results.append(self._sync(account, source_for(account), now))
            except SyncError as exc:
                self._record_failure(account, exc)
                report.failures[account.id] = str(exc)
            except Exception as exc:
                logger.exception("Unexpected sync failure for account %s", account.id)
                message = f"{type(exc).__name__}: {exc}"
                self._record_failure(account, message)
                report.failures[account.id] = message
            if progress is not None:
                progress(index / len(accounts))
        return report

    def _sync(self, account: Account, source: MessageSource, now: datetime) -> AccountSyncResult:
        batch = source.fetch_since(account.checkpoint)
        with self.store.transaction() as session:
            session.upsert_conversations(batch.conversations)
            stored = session.upsert_events(batch.events)
            touched = {event.conversation_id for event in batch.events}
            created = self.matching.match_conversations(session, touched, account.platform, now)
            session.update_account_sync(account.id, batch.checkpoint, None)
        logger.info(
            "Synced account %s: %s events stored, %s windows created.", account.id, stored, created
        )
        return AccountSyncResult(account_id=account.id, events_stored=stored, windows_created=created)

    def _record_failure(self, account: Account, error: SyncError | str) -> None:
        with self.store.transaction() as session:
            session.update_account_sync(account.id, account.checkpoint, str(error))
        logger.warning("Sync failed for account %s: %s", account.id, error)


@dataclass(frozen=True)
class AnalyticsService:
    """Summary: Loads windows and feeds the aggregator, scoring, and insights engines.

    Importance: Every report is computed from one snapshot and an explicit now.
    Alternatives: Precompute and cache reports after each sync.
    """

    store: SqliteStore
    aggregator: MetricsAggregator
    scoring: ScoreEngine
    insights_engine: InsightsEngine

    @property
    def calendar(self) -> LocalCalendar:
        return self.aggregator.calendar

    def metrics(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> ResponseMetrics:
        start, _ = previous_period(time_range, now, self.calendar)
        windows = self._load(start, platform)
        return self.aggregator.compute_metrics(windows, time_range, now, platform)

    def daily(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> list[DailyMetrics]:
        return self.aggregator.daily_metrics(self.windows(time_range, now, platform), time_range, now)

    def hourly(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> list[HourlyMetrics]:
        return self.aggregator.hourly_metrics(self.windows(time_range, now, platform))

    def platforms(self, time_range: TimeRange, now: datetime) -> list[PlatformMetrics]:
        with self.store.transaction() as session:
            goals = session.list_goals()
        windows = self.windows(time_range, now)
        return self.aggregator.platform_metrics(windows, time_range, now, goals)

    def distribution(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> list[LatencyBucket]:
        return self.aggregator.latency_distribution(self.windows(time_range, now, platform))

    def score(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> ResponseScore:
        """Summary: Score the current period against the one before it."""

        previous_start, previous_end = previous_period(time_range, now, self.calendar)
        loaded = self._load(previous_start, platform)
        current_start = range_start(time_range, now, self.calendar)
        current = [window for window in loaded if window.inbound_at >= current_start]
        previous = [window for window in loaded if window.inbound_at < previous_end]
        return self.scoring.compute_score(current, time_range, previous)

    def insights(
        self, time_range: TimeRange, now: datetime, platform: Platform | None = None
    ) -> list[Insight]:
        return self.insights_engine.generate_insights(
            self.windows(time_range, now, platform), time_range
        )

    def windows(
        self,
        time_range: TimeRange,
        now: datetime,
        platform: Platform | None = None,
        include_excluded: bool = False,
    ) -> list[ResponseWindow]:
        start = range_start(time_range, now, self.calendar)
        return self._load(start, platform, include_excluded)

    def pending(self) -> list[PendingConversation]:
        with self.store.transaction() as session:
            return session.list_pending()

    def _load(
        self, since: datetime, platform: Platform | None, include_excluded: bool = False
    ) -> list[ResponseWindow]:
        with self.store.transaction() as session:
            return session.list_windows(
                since=since, platform=platform, include_excluded=include_excluded
            )


@dataclass(frozen=True)
class ExclusionService:
    """Summary: Hides participants, conversations, or single events from analytics.

    Importance: Newsletters and bots should not drag down the user's numbers.
    Alternatives: Delete the offending data outright.
    """

    store: SqliteStore

    def set_participant_excluded(
        self, participant_id: str, excluded: bool = True, now: datetime | None = None
    ) -> None:
        if not participant_id.strip():
            raise ValueError("Participant id must not be empty")
        with self.store.transaction() as session:
            session.set_participant_excluded(
                participant_id, excluded, now or datetime.now(timezone.utc)
            )
        logger.info("Participant %s %s.", participant_id, "excluded" if excluded else "included")

    def list_excluded_participants(self) -> list[str]:
        with self.store.transaction() as session:
            return session.list_excluded_participants()

    def set_conversation_excluded(self, conversation_id: str, excluded: bool = True) -> None:
        with self.store.transaction() as session:
            if not session.set_conversation_excluded(conversation_id, excluded):
                raise ValueError(f"Conversation {conversation_id} not found")
        logger.info("Conversation %s %s.", conversation_id, "excluded" if excluded else "included")

    def set_event_excluded(self, event_id: str, excluded: bool = True) -> None:
        """Summary: Toggle one event; only matching runs after this call see the change."""

        with self.store.transaction() as session:
            if not session.set_event_excluded(event_id, excluded):
                raise ValueError(f"Event {event_id} not found")
        logger.info("Event %s %s.", event_id, "excluded" if excluded else "included")


@dataclass(frozen=True)
class GoalService:
    """Summary: Stores latency goals and keeps their daily streaks current.

    Importance: Gives users a concrete daily target to keep up with.
    Alternatives: Show goals without any streak tracking.
    """

    store: SqliteStore
    calendar: LocalCalendar

    def add_goal(self, target_latency_seconds: float, platform: Platform | None = None) -> int:
        if target_latency_seconds <= 0:
            raise ValueError("Goal target must be positive")
        with self.store.transaction() as session:
            goal_id = session.add_goal(
                ResponseGoal(id=0, target_latency_seconds=target_latency_seconds, platform=platform)
            )
        logger.info("Added goal %s.", goal_id)
        return goal_id

    def list_goals(self) -> list[ResponseGoal]:
        with self.store.transaction() as session:
            return session.list_goals()

    def update_streaks(self, now: datetime) -> list[ResponseGoal]:
        """Summary: Extend, keep, or reset each enabled goal's streak for today.

        Importance: A day counts when its median latency is at or under the target.
        Alternatives: Count streaks over rolling 24-hour windows.
        """

        today = self.calendar.local_date(now)
        yesterday = today - timedelta(days=1)
        start = self.calendar.start_of_day(now)
        updated: list[ResponseGoal] = []
        with self.store.transaction() as session:
            windows = [w for w in session.list_windows(since=start) if w.is_valid_for_analytics]
            for goal in session.list_goals():
                if not goal.is_enabled:
                    updated.append(goal)
                    continue
                latencies = [
                    w.latency_seconds
                    for w in windows
                    if goal.platform is None or w.platform == goal.platform
                ]
                met = bool(latencies) and median(latencies) <= goal.target_latency_seconds
                current = goal.current_streak
                last_date = goal.last_streak_date
                if met:
                    if last_date == yesterday:
                        current += 1
                    elif last_date != today:
                        current = 1
                    last_date = today
                elif last_date is None or last_date < yesterday:
                    current = 0
                longest = max(goal.longest_streak, current)
                session.update_goal_streak(goal.id, current, longest, last_date)
                updated.append(
                    ResponseGoal(
                        id=goal.id,
                        target_latency_seconds=goal.target_latency_seconds,
                        platform=goal.platform,
                        is_enabled=goal.is_enabled,
                        current_streak=current,
                        longest_streak=longest,
                        last_streak_date=last_date,
                    )
                )
        logger.info("Updated streaks for %s goals.", len(updated))
        return updated
