"""Summary: Tests for sources, sync, matching, and exclusion services.

Importance: Validates the path from raw events to stored response windows.
Alternatives: Test the matcher alone and trust the wiring.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from responsetime.app import AppServices, build_services
from responsetime.config import AppConfig
from responsetime.errors import (
    AuthExpiredError,
    NetworkError,
    NoAccountsError,
    PartialSyncError,
    PermissionDeniedError,
    RateLimitedError,
    SyncError,
)
from responsetime.models import Account, Platform, TimeRange
from responsetime.sources import DemoMessageSource, FixtureMessageSource, MessageSource, SyncBatch

NOW = datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)


def _services(tmp_path: Path) -> AppServices:
    return build_services(AppConfig(db_path=str(tmp_path / "test.db")))


def _fixture(path: Path, events: list[tuple[str, str, str, str]]) -> Path:
    payload = {
        "conversations": [{"id": "conv-1", "subject": "Budget"}],
        "events": [
            {
                "id": event_id,
                "conversation_id": "conv-1",
                "timestamp": timestamp,
                "direction": direction,
                "participant_id": participant,
            }
            for event_id, timestamp, direction, participant in events
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class FailingSource(MessageSource):
    def __init__(self, account_id: str) -> None:
        self._account_id = account_id

    def fetch_since(self, checkpoint: str | None) -> SyncBatch:
        raise NetworkError(self._account_id, "connection reset")


def test_fixture_sync_creates_windows_once(tmp_path: Path) -> None:
    """Summary: Verify a fixture sync stores events and matches them exactly once.

    Importance: Re-running sync must be a no-op.
    Alternatives: Clear and rebuild windows on every sync.
    """

    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.GMAIL, "Work")
    fixture = _fixture(
        tmp_path / "fixture.json",
        [
            ("in-1", "2026-03-09T09:00:00+00:00", "inbound", "sarah@company.com"),
            ("out-1", "2026-03-09T09:30:00+00:00", "outbound", "sarah@company.com"),
        ],
    )
    source = FixtureMessageSource(fixture, "acct-1")
    first = services.sync.sync_account("acct-1", source, NOW)
    assert first.events_stored == 2
    assert first.windows_created == 1
    second = services.sync.sync_account("acct-1", source, NOW)
    assert second.events_stored == 0
    assert second.windows_created == 0
    assert services.matching.match_all(NOW) == 0

    windows = services.analytics.windows(TimeRange.WEEK, NOW)
    assert len(windows) == 1
    assert windows[0].latency_seconds == 1800
    assert windows[0].platform is Platform.GMAIL
    account = services.accounts.get_account("acct-1")
    assert account.checkpoint is not None
    assert account.last_sync_error is None


def test_reply_in_later_sync_matches_stored_inbound(tmp_path: Path) -> None:
    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.SLACK, "Team")
    inbound = [("in-1", "2026-03-09T09:00:00+00:00", "inbound", "U024BE7LH")]
    first = _fixture(tmp_path / "first.json", inbound)
    services.sync.sync_account("acct-1", FixtureMessageSource(first, "acct-1"), NOW)
    assert [item.conversation_id for item in services.analytics.pending()] == ["conv-1"]

    second = _fixture(
        tmp_path / "second.json",
        inbound + [("out-1", "2026-03-09T09:10:00+00:00", "outbound", "U024BE7LH")],
    )
    result = services.sync.sync_account("acct-1", FixtureMessageSource(second, "acct-1"), NOW)
    assert result.events_stored == 1
    assert result.windows_created == 1
    assert services.analytics.pending() == []


def test_excluding_event_affects_future_matching_only(tmp_path: Path) -> None:
    """Summary: Verify toggling exclusion skips the event in later matching runs.

    Importance: Past windows are never rewritten by an exclusion.
    Alternatives: Retroactively delete windows that used the event.
    """

    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.GMAIL, "Work")
    inbound = [("in-1", "2026-03-09T09:00:00+00:00", "inbound", "bot@service.com")]
    first = _fixture(tmp_path / "first.json", inbound)
    services.sync.sync_account("acct-1", FixtureMessageSource(first, "acct-1"), NOW)
    services.exclusions.set_event_excluded("in-1")

    second = _fixture(
        tmp_path / "second.json",
        inbound + [("out-1", "2026-03-09T09:05:00+00:00", "outbound", "bot@service.com")],
    )
    result = services.sync.sync_account("acct-1", FixtureMessageSource(second, "acct-1"), NOW)
    assert result.windows_created == 0
    with pytest.raises(ValueError):
        services.exclusions.set_event_excluded("missing")


def test_participant_exclusion_hides_windows(tmp_path: Path) -> None:
    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.GMAIL, "Work")
    fixture = _fixture(
        tmp_path / "fixture.json",
        [
            ("in-1", "2026-03-09T09:00:00+00:00", "inbound", "news@company.com"),
            ("out-1", "2026-03-09T09:30:00+00:00", "outbound", "news@company.com"),
        ],
    )
    services.sync.sync_account("acct-1", FixtureMessageSource(fixture, "acct-1"), NOW)
    services.exclusions.set_participant_excluded("news@company.com", True, NOW)
    assert services.analytics.metrics(TimeRange.WEEK, NOW).sample_count == 0
    assert len(services.analytics.windows(TimeRange.WEEK, NOW, include_excluded=True)) == 1
    services.exclusions.set_participant_excluded("news@company.com", False, NOW)
    assert services.analytics.metrics(TimeRange.WEEK, NOW).sample_count == 1


def test_sync_all_isolates_failures(tmp_path: Path) -> None:
    """Summary: Verify one failing account does not roll back another.

    Importance: Partial failure must keep successful data and report progress.
    Alternatives: Abort the whole sync on the first error.
    """

    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.GMAIL, "Work")
    services.accounts.add_account("acct-2", Platform.OUTLOOK, "Legacy")

    def source_for(account: Account) -> MessageSource:
        if account.id == "acct-2":
            return FailingSource(account.id)
        return DemoMessageSource(account_id=account.id, platform=account.platform, now=NOW, days=10)

    progress: list[float] = []
    report = services.sync.sync_all(source_for, NOW, progress=progress.append)
    assert progress == [0.5, 1.0]
    assert [result.account_id for result in report.results] == ["acct-1"]
    assert report.windows_created > 0
    assert "acct-2" in report.failures
    with pytest.raises(PartialSyncError) as excinfo:
        report.raise_for_failures()
    assert "acct-2" in excinfo.value.failures

    failed = services.accounts.get_account("acct-2")
    assert failed.last_sync_error is not None
    assert "network error" in failed.last_sync_error
    assert services.analytics.metrics(TimeRange.MONTH, NOW).sample_count > 0


def test_sync_all_continues_after_unexpected_source_error(tmp_path: Path) -> None:
    """Summary: Verify a broken fixture on one account does not skip the next account.

    Importance: Any source error, typed or not, must stay isolated to its account.
    Alternatives: Let unexpected errors abort the whole sync.
    """

    services = _services(tmp_path)
    services.accounts.add_account("a-broken", Platform.GMAIL, "Broken")
    services.accounts.add_account("b-ok", Platform.SLACK, "Team")

    def source_for(account: Account) -> MessageSource:
        if account.id == "a-broken":
            return FixtureMessageSource(tmp_path / "missing.json", account.id)
        return DemoMessageSource(account_id=account.id, platform=account.platform, now=NOW, days=7)

    progress: list[float] = []
    report = services.sync.sync_all(source_for, NOW, progress=progress.append)
    assert progress == [0.5, 1.0]
    assert [result.account_id for result in report.results] == ["b-ok"]
    assert report.failures["a-broken"].startswith("FileNotFoundError")
    broken = services.accounts.get_account("a-broken")
    assert broken.last_sync_error is not None
    assert broken.checkpoint is None
    assert services.accounts.get_account("b-ok").checkpoint is not None


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (AuthExpiredError("acct-1"), "authentication expired for account acct-1"),
        (
            PermissionDeniedError("acct-1", "scope missing"),
            "permission denied for account acct-1: scope missing",
        ),
        (
            RateLimitedError("acct-1", retry_after_seconds=30),
            "rate limited for account acct-1: retry after 30s",
        ),
    ],
)
def test_typed_sync_errors_are_recorded(tmp_path: Path, error: SyncError, expected: str) -> None:
    services = _services(tmp_path)
    services.accounts.add_account("acct-1", Platform.OUTLOOK, "Work")

    class RaisingSource(MessageSource):
        def fetch_since(self, checkpoint: str | None) -> SyncBatch:
            raise error

    with pytest.raises(SyncError) as excinfo:
        services.sync.sync_account("acct-1", RaisingSource(), NOW)
    assert str(excinfo.value) == expected
    assert services.accounts.get_account("acct-1").last_sync_error == expected
    if isinstance(error, RateLimitedError):
        assert excinfo.value.retry_after_seconds == 30


def test_sync_all_without_accounts(tmp_path: Path) -> None:
    services = _services(tmp_path)
    with pytest.raises(NoAccountsError):
        services.sync.sync_all(lambda account: FailingSource(account.id), NOW)


def test_unknown_account_is_rejected(tmp_path: Path) -> None:
    services = _services(tmp_path)
    with pytest.raises(ValueError):
        services.sync.sync_account("missing", FailingSource("missing"), NOW)


def test_demo_source_is_deterministic() -> None:
    first = DemoMessageSource(account_id="acct-1", platform=Platform.SLACK, now=NOW, days=14)
    second = DemoMessageSource(account_id="acct-1", platform=Platform.SLACK, now=NOW, days=14)
    batch = first.fetch_since(None)
    assert batch == second.fetch_since(None)
    assert batch.events
    assert all(event.timestamp <= NOW for event in batch.events)
    assert batch.events == sorted(batch.events, key=lambda event: (event.timestamp, event.id))
    assert first.fetch_since(batch.checkpoint).events == []
