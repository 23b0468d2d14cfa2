"""Summary: Message source interfaces and implementations.

Importance: Encapsulates read-only ingestion of conversations and message events.
Alternatives: Rely solely on provider SDKs with vendor lock-in.
"""

from __future__ import annotations

import json
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Any

from responsetime.models import Conversation, Direction, MessageEvent, Platform
from responsetime.storage.sqlite_store import format_timestamp, parse_timestamp


@dataclass(frozen=True)
class SyncBatch:
    """Summary: Everything a source returned for one account since a checkpoint."""

    conversations: list[Conversation] = field(default_factory=list)
    events: list[MessageEvent] = field(default_factory=list)
    checkpoint: str | None = None


class MessageSource(ABC):
    """Summary: Abstract interface for message ingestion.

    Importance: Standardizes retrieval across fixtures, demo data, and future connectors.
    Alternatives: Use provider-specific classes directly in sync flows.
    """

    @abstractmethod
    def fetch_since(self, checkpoint: str | None) -> SyncBatch:
        """Summary: Fetch conversations and events newer than the checkpoint.

        Importance: Drives incremental sync; implementations raise SyncError subclasses
        for auth, permission, rate-limit, and network failures.
        Alternatives: Fetch everything on every sync.
        """


def _newer_than(events: list[MessageEvent], checkpoint: str | None) -> list[MessageEvent]:
    if not checkpoint:
        return events
    cutoff = parse_timestamp(checkpoint)
    return [event for event in events if event.timestamp > cutoff]


def _batch(
    conversations: list[Conversation], events: list[MessageEvent], checkpoint: str | None
) -> SyncBatch:
    fresh = _newer_than(events, checkpoint)
    touched = {event.conversation_id for event in fresh}
    latest = max((event.timestamp for event in fresh), default=None)
    return SyncBatch(
        conversations=[c for c in conversations if c.id in touched],
        events=sorted(fresh, key=lambda event: (event.timestamp, event.id)),
        checkpoint=format_timestamp(latest) if latest else checkpoint,
    )


class FixtureMessageSource(MessageSource):
    """Summary: Loads conversations and events from a local JSON fixture.

    Importance: Supports offline testing and demos.
    Alternatives: Use SQLite fixtures or generate synthetic messages.
    """

    def __init__(self, fixture_path: Path, account_id: str) -> None:
        self._fixture_path = fixture_path
        self._account_id = account_id

    def fetch_since(self, checkpoint: str | None) -> SyncBatch:
        """Summary: Load the fixture and keep events after the checkpoint.

        Importance: Provides predictable data for tests and demos.
        Alternatives: Return an empty batch when no fixture is present.
        """

        data = json.loads(self._fixture_path.read_text(encoding="utf-8"))
        conversations = [self._conversation(item) for item in data.get("conversations", [])]
        known = {conversation.id for conversation in conversations}
        events = [_event_from_item(item) for item in data.get("events", [])]
        for event in events:
            if event.conversation_id not in known:
                conversations.append(
                    Conversation(id=event.conversation_id, account_id=self._account_id)
                )
                known.add(event.conversation_id)
        return _batch(conversations, events, checkpoint)

    def _conversation(self, item: dict[str, Any]) -> Conversation:
        return Conversation(
            id=item["id"],
            account_id=self._account_id,
            subject=item.get("subject"),
            excluded=bool(item.get("excluded", False)),
        )


def _event_from_item(item: dict[str, Any]) -> MessageEvent:
    timestamp = datetime.fromisoformat(item["timestamp"])
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return MessageEvent(
        id=item["id"],
        conversation_id=item["conversation_id"],
        timestamp=timestamp,
        direction=Direction(item["direction"]),
        participant_id=item["participant_id"],
        excluded=bool(item.get("excluded", False)),
    )


# Median reply range in seconds per platform; chat is faster than email.
DEMO_LATENCY_RANGES: dict[Platform, tuple[float, float]] = {
    Platform.GMAIL: (2400, 4800),
    Platform.OUTLOOK: (2700, 5400),
    Platform.SLACK: (600, 1800),
    Platform.IMESSAGE: (300, 900),
}

DEMO_CONTACTS: dict[Platform, tuple[str, ...]] = {
    Platform.GMAIL: (
        "sarah@company.com",
        "john.smith@client.org",
        "support@service.com",
        "boss@company.com",
        "newsletter-team@company.com",
    ),
    Platform.OUTLOOK: (
        "finance@partner.net",
        "alex.morgan@company.com",
        "it-desk@company.com",
        "priya@vendor.io",
    ),
    Platform.SLACK: ("U024BE7LH", "U0G9QF9C6", "U1HK8DSA2", "U07QCRPA4"),
    Platform.IMESSAGE: ("+15551230001", "+15551230002", "+15551230003"),
}


@dataclass(frozen=True)
class DemoMessageSource(MessageSource):
    """Summary: Generates realistic synthetic conversations for an account.

    Importance: Lets users explore metrics, scores, and insights before connecting
    real accounts; each day is seeded so reruns produce identical events.
    Alternatives: Ship static demo fixtures.
    """

    account_id: str
    platform: Platform
    now: datetime
    days: int = 30
    seed: str | None = None

    def fetch_since(self, checkpoint: str | None) -> SyncBatch:
        conversations: list[Conversation] = []
        events: list[MessageEvent] = []
        today = self.now.astimezone(timezone.utc).date()
        for offset in range(self.days, -1, -1):
            day = today - timedelta(days=offset)
            day_conversations, day_events = self._generate_day(day, offset)
            conversations.extend(day_conversations)
            events.extend(event for event in day_events if event.timestamp <= self.now)
        return _batch(conversations, events, checkpoint)

    def _generate_day(
        self, day: date, offset: int
    ) -> tuple[list[Conversation], list[MessageEvent]]:
        rng = random.Random(f"{self.seed or self.account_id}:{day.isoformat()}")
        weekend = day.weekday() >= 5
        count = rng.randint(1, 3) if weekend else rng.randint(3, 7)
        low, high = DEMO_LATENCY_RANGES[self.platform]
        # Older days are slower so the demo shows an improving trend.
        trend_factor = 1.0 + offset / max(self.days, 1) * 0.15
        weekend_factor = 1.3 if weekend else 1.0

        is_email = self.platform in (Platform.GMAIL, Platform.OUTLOOK)

        conversations: list[Conversation] = []
        events: list[MessageEvent] = []
        for index in range(count):
            conversation_id = f"{self.account_id}-{day.isoformat()}-{index}"
            contact = rng.choice(DEMO_CONTACTS[self.platform])
            conversations.append(
                Conversation(
                    id=conversation_id,
                    account_id=self.account_id,
                    subject=f"Thread with {contact}" if is_email else None,
                )
            )
            inbound_at = datetime.combine(day, time(hour=rng.randint(7, 21)), tzinfo=timezone.utc)
            inbound_at += timedelta(minutes=rng.randint(0, 59))
            events.append(
                MessageEvent(
                    id=f"{conversation_id}-in",
                    conversation_id=conversation_id,
                    timestamp=inbound_at,
                    direction=Direction.INBOUND,
                    participant_id=contact,
                )
            )
            if rng.random() < 0.15:
                inbound_at += timedelta(minutes=rng.randint(5, 20))
                events.append(
                    MessageEvent(
                        id=f"{conversation_id}-in2",
                        conversation_id=conversation_id,
                        timestamp=inbound_at,
                        direction=Direction.INBOUND,
                        participant_id=contact,
                    )
                )
            if rng.random() < 0.08:
                continue
            latency = rng.uniform(low, high) * rng.uniform(0.7, 1.3) * trend_factor * weekend_factor
            events.append(
                MessageEvent(
                    id=f"{conversation_id}-out",
                    conversation_id=conversation_id,
                    timestamp=inbound_at + timedelta(seconds=round(latency)),
                    direction=Direction.OUTBOUND,
                    participant_id=contact,
                )
            )
        return conversations, events
