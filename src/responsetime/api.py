"""Summary: FastAPI application for Response Time.

Importance: Exposes sync, metrics, score, and insight endpoints for dashboards and widgets.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from responsetime.app import build_services
from responsetime.config import AppConfig
from responsetime.errors import NoAccountsError, SyncError
from responsetime.models import Platform, TimeRange
from responsetime.sources import DemoMessageSource, FixtureMessageSource


class AccountCreateRequest(BaseModel):
    """Summary: Request payload for registering a source account.

    Importance: Keeps account inputs explicit for API clients.
    Alternatives: Derive accounts implicitly from ingested data.
    """

    id: str = Field(min_length=1, max_length=200)
    platform: Platform
    display_name: str | None = None


class FixtureIngestRequest(BaseModel):
    """Summary: Request payload for fixture ingestion into one account."""

    account_id: str
    fixture_path: str


class DemoIngestRequest(BaseModel):
    """Summary: Request payload for demo data ingestion into one account.

    Importance: Allows exploring analytics without real connectors.
    Alternatives: Ship a static demo database.
    """

    account_id: str
    days: int = Field(default=30, ge=1, le=365)
    seed: str | None = None


class SyncRequest(BaseModel):
    days: int = Field(default=30, ge=1, le=365)


class ParticipantExcludeRequest(BaseModel):
    participant_id: str = Field(min_length=1)
    excluded: bool = True


class EventExcludeRequest(BaseModel):
    event_id: str
    excluded: bool = True


class ConversationExcludeRequest(BaseModel):
    conversation_id: str
    excluded: bool = True


class GoalCreateRequest(BaseModel):
    """Summary: Request payload for a response time goal.

    Importance: Targets are given in minutes, the unit users think in.
    Alternatives: Accept raw seconds.
    """

    target_minutes: float = Field(gt=0, le=60 * 24 * 7)
    platform: Platform | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(config: AppConfig) -> FastAPI:
    """Summary: Create a FastAPI app wired to Response Time services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="Response Time API", version="0.1.0")
    services = build_services(config)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/accounts", dependencies=[Depends(require_api_key)])
    def add_account(payload: AccountCreateRequest) -> dict[str, Any]:
        try:
            account = services.accounts.add_account(
                payload.id, payload.platform, payload.display_name or payload.id
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return jsonable_encoder(account)

    @app.get("/accounts", dependencies=[Depends(require_api_key)])
    def list_accounts() -> list[dict[str, Any]]:
        return jsonable_encoder(services.accounts.list_accounts())

    @app.post("/ingest/fixture", dependencies=[Depends(require_api_key)])
    def ingest_fixture(payload: FixtureIngestRequest) -> dict[str, Any]:
        """Summary: Sync one account from a JSON fixture on the server.

        Importance: Enables deterministic demos and integration tests.
        Alternatives: Accept raw event payloads over the API.
        """

        fixture_path = Path(payload.fixture_path)
        if not fixture_path.exists():
            raise HTTPException(status_code=404, detail="Fixture not found")
        try:
            services.accounts.get_account(payload.account_id)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        source = FixtureMessageSource(fixture_path, payload.account_id)
        try:
            result = services.sync.sync_account(payload.account_id, source, _now())
        except (ValueError, KeyError) as exc:
            # json.JSONDecodeError is a ValueError; KeyError marks a missing event field.
            raise HTTPException(status_code=400, detail=f"Invalid fixture: {exc}") from exc
        except SyncError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return jsonable_encoder(result)

    @app.post("/ingest/demo", dependencies=[Depends(require_api_key)])
    def ingest_demo(payload: DemoIngestRequest) -> dict[str, Any]:
        now = _now()
        try:
            account = services.accounts.get_account(payload.account_id)
            source = DemoMessageSource(
                account_id=account.id,
                platform=account.platform,
                now=now,
                days=payload.days,
                seed=payload.seed,
            )
            result = services.sync.sync_account(account.id, source, now)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return jsonable_encoder(result)

    @app.post("/sync", dependencies=[Depends(require_api_key)])
    def sync(payload: SyncRequest) -> dict[str, Any]:
        """Summary: Sync all enabled accounts with demo sources.

        Importance: Reports failed accounts alongside committed results.
        Alternatives: Fail the whole request when one account fails.
        """

        now = _now()
        try:
            report = services.sync.sync_all(
                lambda account: DemoMessageSource(
                    account_id=account.id, platform=account.platform, now=now, days=payload.days
                ),
                now,
            )
        except NoAccountsError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "events_stored": report.events_stored,
            "windows_created": report.windows_created,
            "results": jsonable_encoder(report.results),
            "failures": report.failures,
        }

    @app.post("/match", dependencies=[Depends(require_api_key)])
    def match() -> dict[str, int]:
        return {"windows_created": services.matching.match_all(_now())}

    @app.get("/metrics", dependencies=[Depends(require_api_key)])
    def metrics(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> dict[str, Any]:
        """Summary: Return percentile metrics for a period.

        Importance: Powers the headline numbers of any dashboard.
        Alternatives: Return raw windows and let clients aggregate.
        """

        result = services.analytics.metrics(time_range, _now(), platform)
        payload = jsonable_encoder(result)
        payload["trend_direction"] = result.trend_direction
        return payload

    @app.get("/metrics/daily", dependencies=[Depends(require_api_key)])
    def daily_metrics(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.daily(time_range, _now(), platform))

    @app.get("/metrics/hourly", dependencies=[Depends(require_api_key)])
    def hourly_metrics(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.hourly(time_range, _now(), platform))

    @app.get("/metrics/platforms", dependencies=[Depends(require_api_key)])
    def platform_metrics(time_range: TimeRange = TimeRange.WEEK) -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.platforms(time_range, _now()))

    @app.get("/metrics/distribution", dependencies=[Depends(require_api_key)])
    def distribution(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.distribution(time_range, _now(), platform))

    @app.get("/score", dependencies=[Depends(require_api_key)])
    def score(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> dict[str, Any]:
        return jsonable_encoder(services.analytics.score(time_range, _now(), platform))

    @app.get("/insights", dependencies=[Depends(require_api_key)])
    def insights(
        time_range: TimeRange = TimeRange.WEEK, platform: Platform | None = None
    ) -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.insights(time_range, _now(), platform))

    @app.get("/windows", dependencies=[Depends(require_api_key)])
    def windows(
        time_range: TimeRange = TimeRange.WEEK,
        platform: Platform | None = None,
        include_excluded: bool = False,
    ) -> list[dict[str, Any]]:
        return jsonable_encoder(
            services.analytics.windows(time_range, _now(), platform, include_excluded)
        )

    @app.get("/pending", dependencies=[Depends(require_api_key)])
    def pending() -> list[dict[str, Any]]:
        return jsonable_encoder(services.analytics.pending())

    @app.post("/participants/exclude", dependencies=[Depends(require_api_key)])
    def exclude_participant(payload: ParticipantExcludeRequest) -> dict[str, Any]:
        try:
            services.exclusions.set_participant_excluded(
                payload.participant_id, payload.excluded, _now()
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"participant_id": payload.participant_id, "excluded": payload.excluded}

    @app.post("/events/exclude", dependencies=[Depends(require_api_key)])
    def exclude_event(payload: EventExcludeRequest) -> dict[str, Any]:
        try:
            services.exclusions.set_event_excluded(payload.event_id, payload.excluded)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"event_id": payload.event_id, "excluded": payload.excluded}

    @app.post("/conversations/exclude", dependencies=[Depends(require_api_key)])
    def exclude_conversation(payload: ConversationExcludeRequest) -> dict[str, Any]:
        try:
            services.exclusions.set_conversation_excluded(payload.conversation_id, payload.excluded)
        except ValueError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"conversation_id": payload.conversation_id, "excluded": payload.excluded}

    @app.post("/goals", dependencies=[Depends(require_api_key)])
    def add_goal(payload: GoalCreateRequest) -> dict[str, int]:
        goal_id = services.goals.add_goal(payload.target_minutes * 60, payload.platform)
        return {"id": goal_id}

    @app.get("/goals", dependencies=[Depends(require_api_key)])
    def list_goals() -> list[dict[str, Any]]:
        return jsonable_encoder(services.goals.list_goals())

    @app.post("/goals/streaks", dependencies=[Depends(require_api_key)])
    def update_streaks() -> list[dict[str, Any]]:
        """Summary: Recompute today's streak for every enabled goal.

        Importance: Lets a scheduler outside this service advance streaks daily.
        Alternatives: Update streaks implicitly on every read.
        """

        return jsonable_encoder(services.goals.update_streaks(_now()))

    return app
