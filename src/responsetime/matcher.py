"""Summary: Pairs inbound messages with the replies that answer them.

Importance: Produces the response windows every downstream engine consumes.
Alternatives: Match on Message-ID/In-Reply-To headers only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Collection, Sequence

from responsetime.confidence import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    compute_confidence,
    is_valid_for_analytics,
)
from responsetime.models import Direction, MatchingMethod, MessageEvent, Platform, ResponseWindow
from responsetime.timeframes import LocalCalendar

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class ResponseMatcher:
    """Summary: Forward-scan matcher with a single pending-inbound slot.

    Importance: Encodes the "most recent unanswered inbound wins" policy.
    Alternatives: Pair every inbound with the next outbound independently.
    """

    calendar: LocalCalendar = field(default_factory=LocalCalendar)
    matching_window_days: int = 7
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    matching_method: MatchingMethod = MatchingMethod.TIME_WINDOW

    def match_conversation(
        self,
        events: Sequence[MessageEvent],
        existing_inbound_ids: Collection[str] = frozenset(),
        platform: Platform | None = None,
        computed_at: datetime | None = None,
    ) -> list[ResponseWindow]:
        """Summary: Scan one conversation's sorted events and emit new windows.

        Importance: Idempotent when existing_inbound_ids lists inbound events that
        already own a window.
        Alternatives: Delete and rebuild all windows on every sync.
        """

        _require_sorted(events)
        max_latency = self.matching_window_days * SECONDS_PER_DAY
        stamp = computed_at or datetime.now(timezone.utc)
        owned = set(existing_inbound_ids)
        windows: list[ResponseWindow] = []
        pending: MessageEvent | None = None

        for event in events:
            if event.excluded:
                continue
            if event.direction is Direction.INBOUND:
                # Earlier unanswered inbound events are superseded without a record.
                pending = event
                continue
            if pending is None:
                continue
            latency = (event.timestamp - pending.timestamp).total_seconds()
            if 0 < latency < max_latency and pending.id not in owned:
                windows.append(self._build_window(pending, event, latency, platform, stamp))
                owned.add(pending.id)
            pending = None

        return windows

    def _build_window(
        self,
        inbound: MessageEvent,
        outbound: MessageEvent,
        latency: float,
        platform: Platform | None,
        computed_at: datetime,
    ) -> ResponseWindow:
        confidence = compute_confidence(latency)
        return ResponseWindow(
            id=uuid.uuid4().hex,
            inbound_event_id=inbound.id,
            outbound_event_id=outbound.id,
            latency_seconds=latency,
            confidence=confidence,
            matching_method=self.matching_method,
            inbound_at=inbound.timestamp,
            day_of_week=self.calendar.day_of_week(inbound.timestamp),
            hour_of_day=self.calendar.hour_of_day(inbound.timestamp),
            is_working_hours=self.calendar.is_working_hours(inbound.timestamp),
            is_valid_for_analytics=is_valid_for_analytics(confidence, self.confidence_threshold),
            participant_id=inbound.participant_id,
            conversation_id=inbound.conversation_id,
            platform=platform,
            computed_at=computed_at,
        )


def _require_sorted(events: Sequence[MessageEvent]) -> None:
    for previous, current in zip(events, events[1:]):
        if current.timestamp < previous.timestamp:
            raise ValueError(
                f"Events must be sorted by timestamp: {current.id} precedes {previous.id}"
            )
