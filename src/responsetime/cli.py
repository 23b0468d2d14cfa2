"""Summary: Command-line interface for Response Time.

Importance: Provides a local-first entry point for sync and analytics workflows.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path

from responsetime.app import build_services
from responsetime.config import AppConfig
from responsetime.formatting import format_duration, format_hour
from responsetime.models import Platform, TimeRange
from responsetime.sources import DemoMessageSource, FixtureMessageSource

PLATFORM_CHOICES = [platform.value for platform in Platform]
RANGE_CHOICES = [time_range.value for time_range in TimeRange]


def _add_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--range", dest="time_range", choices=RANGE_CHOICES, default="week")


def _add_platform(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--platform", choices=PLATFORM_CHOICES, default=None)


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="Response Time CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_account = subparsers.add_parser("add-account", help="Register a source account")
    add_account.add_argument("account_id", type=str)
    add_account.add_argument("platform", choices=PLATFORM_CHOICES)
    add_account.add_argument("--name", type=str, default=None)

    subparsers.add_parser("list-accounts", help="List source accounts")

    ingest_fixture = subparsers.add_parser("ingest-fixture", help="Sync an account from a JSON fixture")
    ingest_fixture.add_argument("account_id", type=str)
    ingest_fixture.add_argument("path", type=str)

    ingest_demo = subparsers.add_parser("ingest-demo", help="Sync an account with demo data")
    ingest_demo.add_argument("account_id", type=str)
    ingest_demo.add_argument("--days", type=int, default=30)
    ingest_demo.add_argument("--seed", type=str, default=None)

    sync_demo = subparsers.add_parser("sync-demo", help="Sync all enabled accounts with demo data")
    sync_demo.add_argument("--days", type=int, default=30)

    subparsers.add_parser("match", help="Rematch all stored conversations")

    metrics = subparsers.add_parser("metrics", help="Show response time metrics")
    _add_range(metrics)
    _add_platform(metrics)

    score = subparsers.add_parser("score", help="Show the response score")
    _add_range(score)
    _add_platform(score)

    insights = subparsers.add_parser("insights", help="Show insights")
    _add_range(insights)
    _add_platform(insights)

    daily = subparsers.add_parser("daily", help="Show daily medians")
    _add_range(daily)
    _add_platform(daily)

    hourly = subparsers.add_parser("hourly", help="Show medians by hour of day")
    _add_range(hourly)
    _add_platform(hourly)

    subparsers.add_parser("pending", help="List conversations awaiting a reply")

    exclude_participant = subparsers.add_parser(
        "exclude-participant", help="Hide a participant from analytics"
    )
    exclude_participant.add_argument("participant_id", type=str)
    exclude_participant.add_argument("--include", action="store_true")

    add_goal = subparsers.add_parser("add-goal", help="Add a response time goal")
    add_goal.add_argument("target_minutes", type=float)
    _add_platform(add_goal)

    subparsers.add_parser("list-goals", help="List goals and streaks")
    subparsers.add_parser("update-streaks", help="Update goal streaks for today")

    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives the user experience without a UI.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    services = build_services(config)
    now = datetime.now(timezone.utc)
    platform = Platform(args.platform) if getattr(args, "platform", None) else None
    time_range = TimeRange(args.time_range) if hasattr(args, "time_range") else TimeRange.WEEK

    if args.command == "add-account":
        account = services.accounts.add_account(
            args.account_id, Platform(args.platform), args.name or args.account_id
        )
        print(f"Added account {account.id} ({account.platform.display_name}).")
        return

    if args.command == "list-accounts":
        for account in services.accounts.list_accounts():
            state = "enabled" if account.is_enabled else "disabled"
            error = f" error: {account.last_sync_error}" if account.last_sync_error else ""
            print(f"{account.id}: {account.display_name} [{account.platform.value}, {state}]{error}")
        return

    if args.command == "ingest-fixture":
        source = FixtureMessageSource(Path(args.path), args.account_id)
        result = services.sync.sync_account(args.account_id, source, now)
        print(f"Stored {result.events_stored} events, created {result.windows_created} windows.")
        return

    if args.command == "ingest-demo":
        account = services.accounts.get_account(args.account_id)
        source = DemoMessageSource(
            account_id=account.id, platform=account.platform, now=now, days=args.days, seed=args.seed
        )
        result = services.sync.sync_account(account.id, source, now)
        print(f"Stored {result.events_stored} events, created {result.windows_created} windows.")
        return

    if args.command == "sync-demo":
        report = services.sync.sync_all(
            lambda account: DemoMessageSource(
                account_id=account.id, platform=account.platform, now=now, days=args.days
            ),
            now,
            progress=lambda fraction: print(f"Progress: {int(fraction * 100)}%"),
        )
        print(f"Stored {report.events_stored} events, created {report.windows_created} windows.")
        report.raise_for_failures()
        return

    if args.command == "match":
        created = services.matching.match_all(now)
        print(f"Created {created} response windows.")
        return

    if args.command == "metrics":
        result = services.analytics.metrics(time_range, now, platform)
        print(f"{time_range.display_name}: {result.sample_count} responses")
        if result.sample_count == 0:
            return
        print(f"Median: {format_duration(result.median_latency)}")
        print(f"Mean: {format_duration(result.mean_latency)}")
        print(f"P90: {format_duration(result.p90_latency)}")
        print(f"P95: {format_duration(result.p95_latency)}")
        if result.working_hours_median is not None:
            print(f"Working hours median: {format_duration(result.working_hours_median)}")
        if result.non_working_hours_median is not None:
            print(f"Off hours median: {format_duration(result.non_working_hours_median)}")
        if result.trend_percentage is not None:
            print(f"Trend: {result.trend_percentage:+.1f}% ({result.trend_direction})")
        return

    if args.command == "score":
        result = services.analytics.score(time_range, now, platform)
        print(f"Score: {result.overall} ({result.grade})")
        print(
            f"Speed {result.speed_score}, consistency {result.consistency_score}, "
            f"coverage {result.coverage_score}, trend {result.trend_score}, "
            f"improvement {result.improvement_score}"
        )
        for strength in result.strengths:
            print(f"+ {strength}")
        for weakness in result.weaknesses:
            print(f"- {weakness}")
        return

    if args.command == "insights":
        for insight in services.analytics.insights(time_range, now, platform):
            print(f"[{insight.type.value}] {insight.title}")
            print(f"  {insight.description}")
            if insight.actionable:
                print(f"  -> {insight.actionable}")
        return

    if args.command == "daily":
        for day in services.analytics.daily(time_range, now, platform):
            median_label = format_duration(day.median_latency)
            print(f"{day.date.isoformat()}: {median_label} ({day.response_count})")
        return

    if args.command == "hourly":
        for hour in services.analytics.hourly(time_range, now, platform):
            if hour.response_count:
                median_label = format_duration(hour.median_latency)
                print(f"{format_hour(hour.hour)}: {median_label} ({hour.response_count})")
        return

    if args.command == "pending":
        for item in services.analytics.pending():
            waited = format_duration((now - item.waiting_since).total_seconds())
            print(f"{item.conversation_id}: {item.participant_id} waiting {waited}")
        return

    if args.command == "exclude-participant":
        services.exclusions.set_participant_excluded(args.participant_id, not args.include, now)
        print(f"Participant {args.participant_id} {'included' if args.include else 'excluded'}.")
        return

    if args.command == "add-goal":
        goal_id = services.goals.add_goal(args.target_minutes * 60, platform)
        print(f"Added goal {goal_id}.")
        return

    if args.command == "list-goals":
        for goal in services.goals.list_goals():
            scope = goal.platform.display_name if goal.platform else "All platforms"
            print(
                f"{goal.id}: {scope} under {format_duration(goal.target_latency_seconds)} "
                f"(streak {goal.current_streak}, best {goal.longest_streak})"
            )
        return

    if args.command == "update-streaks":
        for goal in services.goals.update_streaks(now):
            print(f"{goal.id}: streak {goal.current_streak}, best {goal.longest_streak}")
        return


if __name__ == "__main__":
    run_cli()
