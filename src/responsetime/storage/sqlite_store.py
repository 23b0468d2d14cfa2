"""Summary: SQLite storage implementation for Response Time.

Importance: Provides local-first persistence with duplicate prevention in the schema.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from responsetime.models import (
    Account,
    Conversation,
    Direction,
    MatchingMethod,
    MessageEvent,
    PendingConversation,
    Platform,
    ResponseGoal,
    ResponseWindow,
)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id TEXT PRIMARY KEY,
        platform TEXT NOT NULL,
        display_name TEXT NOT NULL,
        is_enabled INTEGER NOT NULL DEFAULT 1,
        checkpoint TEXT,
        last_sync_error TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        subject TEXT,
        excluded INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS message_events (
        id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        direction TEXT NOT NULL,
        participant_id TEXT NOT NULL,
        excluded INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_events_conversation
    ON message_events (conversation_id, timestamp)
    """,
    """
    CREATE TABLE IF NOT EXISTS response_windows (
        id TEXT PRIMARY KEY,
        inbound_event_id TEXT NOT NULL,
        outbound_event_id TEXT NOT NULL,
        latency_seconds REAL NOT NULL,
        confidence REAL NOT NULL,
        matching_method TEXT NOT NULL,
        inbound_at TEXT NOT NULL,
        day_of_week INTEGER NOT NULL,
        hour_of_day INTEGER NOT NULL,
        is_working_hours INTEGER NOT NULL,
        is_valid_for_analytics INTEGER NOT NULL,
        participant_id TEXT NOT NULL,
        conversation_id TEXT NOT NULL,
        platform TEXT,
        computed_at TEXT,
        UNIQUE(inbound_event_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS excluded_participants (
        participant_id TEXT PRIMARY KEY,
        excluded_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS goals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        platform TEXT,
        target_latency_seconds REAL NOT NULL,
        is_enabled INTEGER NOT NULL DEFAULT 1,
        current_streak INTEGER NOT NULL DEFAULT 0,
        longest_streak INTEGER NOT NULL DEFAULT 0,
        last_streak_date TEXT
    )
    """,
)

WINDOW_COLUMNS = (
    "id, inbound_event_id, outbound_event_id, latency_seconds, confidence, matching_method, "
    "inbound_at, day_of_week, hour_of_day, is_working_hours, is_valid_for_analytics, "
    "participant_id, conversation_id, platform, computed_at"
)


def format_timestamp(value: datetime) -> str:
    """Summary: Serialize a datetime as fixed-width UTC ISO text.

    Importance: Fixed width keeps lexical ORDER BY equal to chronological order.
    Alternatives: Store epoch seconds as REAL.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class StoreSession:
    """Summary: Storage operations bound to one open connection.

    Importance: Lets a sync write events and windows for one account atomically.
    Alternatives: Open a new connection per statement and accept partial writes.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def upsert_account(self, account: Account) -> None:
        self._connection.execute(
            """
            INSERT INTO accounts (id, platform, display_name, is_enabled, checkpoint, last_sync_error)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                platform = excluded.platform,
                display_name = excluded.display_name,
                is_enabled = excluded.is_enabled
            """,
            (
                account.id,
                account.platform.value,
                account.display_name,
                int(account.is_enabled),
                account.checkpoint,
                account.last_sync_error,
            ),
        )

    def get_account(self, account_id: str) -> Account | None:
        row = self._connection.execute(
            """
            SELECT id, platform, display_name, is_enabled, checkpoint, last_sync_error
            FROM accounts WHERE id = ?
            """,
            (account_id,),
        ).fetchone()
        return _account_from_row(row) if row else None

    def list_accounts(self, enabled_only: bool = False) -> list[Account]:
        query = (
            "SELECT id, platform, display_name, is_enabled, checkpoint, last_sync_error "
            "FROM accounts"
        )
        if enabled_only:
            query += " WHERE is_enabled = 1"
        rows = self._connection.execute(query + " ORDER BY id").fetchall()
        return [_account_from_row(row) for row in rows]

    def update_account_sync(
        self, account_id: str, checkpoint: str | None, error: str | None
    ) -> None:
        self._connection.execute(
            "UPDATE accounts SET checkpoint = ?, last_sync_error = ? WHERE id = ?",
            (checkpoint, error, account_id),
        )

    def set_account_enabled(self, account_id: str, enabled: bool) -> bool:
        cursor = self._connection.execute(
            "UPDATE accounts SET is_enabled = ? WHERE id = ?", (int(enabled), account_id)
        )
        return cursor.rowcount > 0

    def upsert_conversations(self, conversations: Iterable[Conversation]) -> int:
        """Summary: Insert conversations, refreshing the subject of known ones.

        Importance: Never resets the user's exclusion choice on resync.
        Alternatives: Replace rows wholesale with INSERT OR REPLACE.
        """

        count = 0
        for conversation in conversations:
            self._connection.execute(
                """
                INSERT INTO conversations (id, account_id, subject, excluded)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET subject = COALESCE(excluded.subject, subject)
                """,
                (
                    conversation.id,
                    conversation.account_id,
                    conversation.subject,
                    int(conversation.excluded),
                ),
            )
            count += 1
        return count

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        row = self._connection.execute(
            "SELECT id, account_id, subject, excluded FROM conversations WHERE id = ?",
            (conversation_id,),
        ).fetchone()
        return _conversation_from_row(row) if row else None

    def list_conversations(self, account_id: str | None = None) -> list[Conversation]:
        if account_id is None:
            rows = self._connection.execute(
                "SELECT id, account_id, subject, excluded FROM conversations ORDER BY id"
            ).fetchall()
        else:
            rows = self._connection.execute(
                """
                SELECT id, account_id, subject, excluded FROM conversations
                WHERE account_id = ? ORDER BY id
                """,
                (account_id,),
            ).fetchall()
        return [_conversation_from_row(row) for row in rows]

    def upsert_events(self, events: Iterable[MessageEvent]) -> int:
        """Summary: Insert events by id; existing events are left untouched.

        Importance: Events are immutable once stored, so a resync cannot rewrite history.
        Alternatives: Overwrite events on every sync.
        """

        inserted = 0
        for event in events:
            cursor = self._connection.execute(
                """
                INSERT OR IGNORE INTO message_events (
                    id, conversation_id, timestamp, direction, participant_id, excluded
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.conversation_id,
                    format_timestamp(event.timestamp),
                    event.direction.value,
                    event.participant_id,
                    int(event.excluded),
                ),
            )
            inserted += cursor.rowcount
        return inserted

    def list_events(self, conversation_id: str) -> list[MessageEvent]:
        rows = self._connection.execute(
            """
            SELECT id, conversation_id, timestamp, direction, participant_id, excluded
            FROM message_events
            WHERE conversation_id = ?
            ORDER BY timestamp, id
            """,
            (conversation_id,),
        ).fetchall()
        return [_event_from_row(row) for row in rows]

    def set_event_excluded(self, event_id: str, excluded: bool) -> bool:
        cursor = self._connection.execute(
            "UPDATE message_events SET excluded = ? WHERE id = ?", (int(excluded), event_id)
        )
        return cursor.rowcount > 0

    def set_conversation_excluded(self, conversation_id: str, excluded: bool) -> bool:
        cursor = self._connection.execute(
            "UPDATE conversations SET excluded = ? WHERE id = ?",
            (int(excluded), conversation_id),
        )
        return cursor.rowcount > 0

    def set_participant_excluded(self, participant_id: str, excluded: bool, now: datetime) -> None:
        if excluded:
            self._connection.execute(
                """
                INSERT OR IGNORE INTO excluded_participants (participant_id, excluded_at)
                VALUES (?, ?)
                """,
                (participant_id, format_timestamp(now)),
            )
        else:
            self._connection.execute(
                "DELETE FROM excluded_participants WHERE participant_id = ?", (participant_id,)
            )

    def list_excluded_participants(self) -> list[str]:
        rows = self._connection.execute(
            "SELECT participant_id FROM excluded_participants ORDER BY participant_id"
        ).fetchall()
        return [row[0] for row in rows]

    def inbound_ids_with_windows(self, conversation_id: str) -> set[str]:
        rows = self._connection.execute(
            "SELECT inbound_event_id FROM response_windows WHERE conversation_id = ?",
            (conversation_id,),
        ).fetchall()
        return {row[0] for row in rows}

    def insert_windows(self, windows: Iterable[ResponseWindow]) -> int:
        """Summary: Insert windows, ignoring any whose inbound event already owns one.

        Importance: The UNIQUE constraint makes duplicate prevention atomic.
        Alternatives: Check for an existing window before each insert.
        """

        inserted = 0
        for window in windows:
            cursor = self._connection.execute(
                f"INSERT OR IGNORE INTO response_windows ({WINDOW_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    window.id,
                    window.inbound_event_id,
                    window.outbound_event_id,
                    window.latency_seconds,
                    window.confidence,
                    window.matching_method.value,
                    format_timestamp(window.inbound_at),
                    window.day_of_week,
                    window.hour_of_day,
                    int(window.is_working_hours),
                    int(window.is_valid_for_analytics),
                    window.participant_id,
                    window.conversation_id,
                    window.platform.value if window.platform else None,
                    format_timestamp(window.computed_at) if window.computed_at else None,
                ),
            )
            inserted += cursor.rowcount
        return inserted

    def list_windows(
        self,
        since: datetime | None = None,
        platform: Platform | None = None,
        include_excluded: bool = False,
    ) -> list[ResponseWindow]:
        """Summary: Load windows ordered by inbound time.

        Importance: Hides excluded conversations and participants from analytics
        without deleting their windows.
        Alternatives: Delete windows when the user excludes a contact.
        """

        clauses: list[str] = []
        params: list[object] = []
        if not include_excluded:
            clauses.append("COALESCE(c.excluded, 0) = 0")
            clauses.append(
                "w.participant_id NOT IN (SELECT participant_id FROM excluded_participants)"
            )
        if since is not None:
            clauses.append("w.inbound_at >= ?")
            params.append(format_timestamp(since))
        if platform is not None:
            clauses.append("w.platform = ?")
            params.append(platform.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        columns = ", ".join(f"w.{column.strip()}" for column in WINDOW_COLUMNS.split(","))
        rows = self._connection.execute(
            f"""
            SELECT {columns}
            FROM response_windows w
            LEFT JOIN conversations c ON c.id = w.conversation_id
            {where}
            ORDER BY w.inbound_at, w.id
            """,
            params,
        ).fetchall()
        return [_window_from_row(row) for row in rows]

    def list_pending(self) -> list[PendingConversation]:
        """Summary: Conversations whose latest non-excluded event is inbound."""

        rows = self._connection.execute(
            """
            SELECT e.conversation_id, e.participant_id, e.timestamp, e.direction, a.platform
            FROM message_events e
            JOIN conversations c ON c.id = e.conversation_id
            LEFT JOIN accounts a ON a.id = c.account_id
            WHERE c.excluded = 0
              AND e.excluded = 0
            ORDER BY e.conversation_id, e.timestamp, e.id
            """
        ).fetchall()
        excluded = set(self.list_excluded_participants())
        latest: dict[str, tuple] = {}
        for row in rows:
            latest[row[0]] = row
        pending = [
            PendingConversation(
                conversation_id=row[0],
                participant_id=row[1],
                waiting_since=parse_timestamp(row[2]),
                platform=Platform(row[4]) if row[4] else None,
            )
            for row in latest.values()
            if row[3] == Direction.INBOUND.value and row[1] not in excluded
        ]
        pending.sort(key=lambda item: item.waiting_since)
        return pending

    def add_goal(self, goal: ResponseGoal) -> int:
        cursor = self._connection.execute(
            """
            INSERT INTO goals (
                platform, target_latency_seconds, is_enabled,
                current_streak, longest_streak, last_streak_date
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                goal.platform.value if goal.platform else None,
                goal.target_latency_seconds,
                int(goal.is_enabled),
                goal.current_streak,
                goal.longest_streak,
                goal.last_streak_date.isoformat() if goal.last_streak_date else None,
            ),
        )
        return int(cursor.lastrowid)

    def list_goals(self) -> list[ResponseGoal]:
        rows = self._connection.execute(
            """
            SELECT id, target_latency_seconds, platform, is_enabled,
                   current_streak, longest_streak, last_streak_date
            FROM goals ORDER BY id
            """
        ).fetchall()
        return [_goal_from_row(row) for row in rows]

    def update_goal_streak(
        self, goal_id: int, current_streak: int, longest_streak: int, last_streak_date: date | None
    ) -> None:
        self._connection.execute(
            """
            UPDATE goals SET current_streak = ?, longest_streak = ?, last_streak_date = ?
            WHERE id = ?
            """,
            (
                current_streak,
                longest_streak,
                last_streak_date.isoformat() if last_streak_date else None,
                goal_id,
            ),
        )


class SqliteStore:
    """Summary: SQLite-backed storage for Response Time.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready for ingestion and queries.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            for statement in SCHEMA:
                connection.execute(statement)
            connection.commit()

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Summary: Run several operations in one commit-or-rollback unit.

        Importance: A failed account sync leaves no half-written events or windows.
        Alternatives: Rely on SQLite autocommit per statement.
        """

        with self._connection() as connection:
            try:
                yield StoreSession(connection)
            except BaseException:
                connection.rollback()
                raise
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _account_from_row(row: tuple) -> Account:
    return Account(
        id=row[0],
        platform=Platform(row[1]),
        display_name=row[2],
        is_enabled=bool(row[3]),
        checkpoint=row[4],
        last_sync_error=row[5],
    )


def _conversation_from_row(row: tuple) -> Conversation:
    return Conversation(id=row[0], account_id=row[1], subject=row[2], excluded=bool(row[3]))


def _event_from_row(row: tuple) -> MessageEvent:
    return MessageEvent(
        id=row[0],
        conversation_id=row[1],
        timestamp=parse_timestamp(row[2]),
        direction=Direction(row[3]),
        participant_id=row[4],
        excluded=bool(row[5]),
    )


def _window_from_row(row: tuple) -> ResponseWindow:
    return ResponseWindow(
        id=row[0],
        inbound_event_id=row[1],
        outbound_event_id=row[2],
        latency_seconds=float(row[3]),
        confidence=float(row[4]),
        matching_method=MatchingMethod(row[5]),
        inbound_at=parse_timestamp(row[6]),
        day_of_week=int(row[7]),
        hour_of_day=int(row[8]),
        is_working_hours=bool(row[9]),
        is_valid_for_analytics=bool(row[10]),
        participant_id=row[11],
        conversation_id=row[12],
        platform=Platform(row[13]) if row[13] else None,
        computed_at=parse_timestamp(row[14]) if row[14] else None,
    )


def _goal_from_row(row: tuple) -> ResponseGoal:
    return ResponseGoal(
        id=int(row[0]),
        target_latency_seconds=float(row[1]),
        platform=Platform(row[2]) if row[2] else None,
        is_enabled=bool(row[3]),
        current_streak=int(row[4]),
        longest_streak=int(row[5]),
        last_streak_date=date.fromisoformat(row[6]) if row[6] else None,
    )
