"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from responsetime.config import AppConfig
from responsetime.insights import InsightsEngine
from responsetime.matcher import ResponseMatcher
from responsetime.metrics import MetricsAggregator
from responsetime.scoring import ScoreEngine
from responsetime.services import (
    AccountService,
    AnalyticsService,
    ExclusionService,
    GoalService,
    MatchingService,
    SyncService,
)
from responsetime.storage.sqlite_store import SqliteStore


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for Response Time.

    Importance: Simplifies passing dependencies to CLI or API layers.
    Alternatives: Use a dependency injection container.
    """

    accounts: AccountService
    sync: SyncService
    matching: MatchingService
    analytics: AnalyticsService
    exclusions: ExclusionService
    goals: GoalService
    store: SqliteStore
    config: AppConfig


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Engines are constructed once here and injected; nothing is global.
    Alternatives: Instantiate engines lazily as module-level singletons.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    calendar = config.calendar()
    matcher = ResponseMatcher(
        calendar=calendar,
        matching_window_days=config.matching_window_days,
        confidence_threshold=config.confidence_threshold,
    )
    matching = MatchingService(store=store, matcher=matcher)
    analytics = AnalyticsService(
        store=store,
        aggregator=MetricsAggregator(calendar=calendar),
        scoring=ScoreEngine(calendar=calendar, expected_volume=dict(config.expected_volume)),
        insights_engine=InsightsEngine(
            calendar=calendar,
            minimum_sample_size=config.minimum_sample_size,
            parallel=config.parallel_insights,
        ),
    )
    return AppServices(
        accounts=AccountService(store=store),
        sync=SyncService(store=store, matching=matching),
        matching=matching,
        analytics=analytics,
        exclusions=ExclusionService(store=store),
        goals=GoalService(store=store, calendar=calendar),
        store=store,
        config=config,
    )
