"""Summary: Match confidence as a function of reply latency.

Importance: Longer gaps make it likelier that a reply is unrelated to the message.
Alternatives: Use header-based threading signals exclusively.
"""

from __future__ import annotations

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

# (upper bound in hours, confidence), checked in order.
_CONFIDENCE_STEPS: tuple[tuple[float, float], ...] = (
    (24, 1.0),
    (48, 0.8),
    (72, 0.6),
)
_FLOOR_CONFIDENCE = 0.4


def compute_confidence(latency_seconds: float) -> float:
    """Summary: Map a latency to a confidence step in [0.4, 1.0].

    Importance: Shared by the matcher and any caller re-scoring stored pairs.
    Alternatives: Decay confidence continuously instead of in steps.
    """

    hours = latency_seconds / 3600
    for upper_hours, confidence in _CONFIDENCE_STEPS:
        if hours <= upper_hours:
            return confidence
    return _FLOOR_CONFIDENCE


def is_valid_for_analytics(
    confidence: float, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
) -> bool:
    return confidence >= threshold
