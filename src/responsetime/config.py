"""Summary: Application configuration for Response Time.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from responsetime.models import TimeRange
from responsetime.scoring import DEFAULT_EXPECTED_VOLUME
from responsetime.timeframes import LocalCalendar, parse_weekday

ENV_PREFIX = "RESPONSETIME_"


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds storage, API, and analytics tuning values.

    Importance: Ensures every engine derives settings from a single source of truth.
    Alternatives: Pass tuning values as arguments at each call site.
    """

    db_path: str
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_key: str = ""
    matching_window_days: int = 7
    confidence_threshold: float = 0.7
    working_hours_start: int = 9
    working_hours_end: int = 17
    working_days: tuple[int, ...] = (0, 1, 2, 3, 4)
    timezone: str = "UTC"
    week_start: int = 0
    expected_volume: dict[TimeRange, int] = field(
        default_factory=lambda: dict(DEFAULT_EXPECTED_VOLUME)
    )
    minimum_sample_size: int = 5
    parallel_insights: bool = False

    def calendar(self) -> LocalCalendar:
        """Summary: Build the timezone and working-hours calendar for the engines.

        Importance: Raises ValueError for an unknown timezone or inverted hours.
        Alternatives: Let each engine read timezone settings independently.
        """

        return LocalCalendar(
            timezone_name=self.timezone,
            working_hours_start=self.working_hours_start,
            working_hours_end=self.working_hours_end,
            working_days=frozenset(self.working_days),
            week_start=self.week_start,
        )

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))

        def setting(name: str) -> str:
            return os.getenv(ENV_PREFIX + name.upper(), str(defaults[name]))

        config = AppConfig(
            db_path=setting("db_path"),
            api_host=setting("api_host"),
            api_port=int(setting("api_port")),
            api_key=setting("api_key"),
            matching_window_days=int(setting("matching_window_days")),
            confidence_threshold=float(setting("confidence_threshold")),
            working_hours_start=int(setting("working_hours_start")),
            working_hours_end=int(setting("working_hours_end")),
            working_days=parse_working_days(setting("working_days")),
            timezone=setting("timezone"),
            week_start=parse_weekday(setting("week_start")),
            expected_volume=parse_expected_volume(setting("expected_volume")),
            minimum_sample_size=int(setting("minimum_sample_size")),
            parallel_insights=parse_flag(setting("parallel_insights")),
        )
        if config.matching_window_days <= 0:
            raise ValueError("matching_window_days must be positive")
        if not 0.0 <= config.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")
        config.calendar()
        return config


def parse_working_days(raw: str) -> tuple[int, ...]:
    """Summary: Parse a comma-separated list of weekday names or indices."""

    days = [parse_weekday(part) for part in raw.split(",") if part.strip()]
    return tuple(sorted(set(days)))


def parse_expected_volume(raw: str) -> dict[TimeRange, int]:
    """Summary: Parse "week:30,month:100" overrides on top of the built-in volumes.

    Importance: Coverage scoring depends on what a normal period looks like for the user.
    Alternatives: Hardcode one expected volume per range.
    """

    volume = dict(DEFAULT_EXPECTED_VOLUME)
    for part in raw.split(","):
        if not part.strip():
            continue
        if ":" not in part:
            raise ValueError(f"Invalid expected volume entry: {part}")
        key, value = part.split(":", 1)
        volume[TimeRange(key.strip().lower())] = int(value)
    return volume


def parse_flag(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())
