"""Summary: Typed failures raised by ingestion sources and the sync service.

Importance: Lets sync record a readable reason per account instead of a traceback.
Alternatives: Catch every Exception and store its repr.
"""

from __future__ import annotations

from typing import Mapping


class SyncError(Exception):
    """Summary: Base class for recoverable per-account ingestion failures."""

    reason = "sync failed"

    def __init__(self, account_id: str, detail: str | None = None) -> None:
        self.account_id = account_id
        self.detail = detail
        message = f"{self.reason} for account {account_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AuthExpiredError(SyncError):
    reason = "authentication expired"


class PermissionDeniedError(SyncError):
    reason = "permission denied"


class RateLimitedError(SyncError):
    reason = "rate limited"

    def __init__(
        self, account_id: str, retry_after_seconds: int | None = None, detail: str | None = None
    ) -> None:
        self.retry_after_seconds = retry_after_seconds
        if retry_after_seconds is not None and detail is None:
            detail = f"retry after {retry_after_seconds}s"
        super().__init__(account_id, detail)


class NetworkError(SyncError):
    reason = "network error"


class NoAccountsError(Exception):
    """Summary: Raised when a sync is requested with no enabled accounts."""

    def __init__(self) -> None:
        super().__init__("No enabled accounts to sync")


class PartialSyncError(Exception):
    """Summary: Some accounts failed while the others stayed committed.

    Importance: Callers can surface failures without discarding successful work.
    Alternatives: Abort and roll back the whole sync on the first failure.
    """

    def __init__(self, failures: Mapping[str, str]) -> None:
        self.failures = dict(failures)
        names = ", ".join(sorted(self.failures))
        super().__init__(f"Sync failed for {len(self.failures)} account(s): {names}")
