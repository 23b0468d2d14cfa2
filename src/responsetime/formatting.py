"""Summary: Human-readable labels for durations, hours, dates, and contacts.

Importance: Keeps insight text and CLI output consistent.
Alternatives: Format values ad hoc inside every caller.
"""

from __future__ import annotations

from datetime import date

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
WEEKDAY_SHORT = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def format_duration(seconds: float) -> str:
    """Summary: Convert seconds to a compact string such as "1h 30m".

    Importance: The only formatting contract exposed to presentation layers.
    Alternatives: Return raw seconds and let clients format them.
    """

    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m"
    if seconds < 86400:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h" if minutes == 0 else f"{hours}h {minutes}m"
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    return f"{days}d" if hours == 0 else f"{days}d {hours}h"


def format_hour(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


def format_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def format_contact_name(participant_id: str) -> str:
    """Summary: Shorten an email address to its local part."""

    if "@" in participant_id:
        return participant_id.split("@", 1)[0] or participant_id
    return participant_id
