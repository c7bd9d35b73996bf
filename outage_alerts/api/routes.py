from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field, field_validator

from outage_alerts.core.constants import VALID_QUEUES
from outage_alerts.core.serialization import cached_schedule_to_payload, subscriber_to_payload

router = APIRouter()


class SubscriberUpdate(BaseModel):
    queues: list[str] | None = None
    timers: list[int] | None = None
    notifications_enabled: bool | None = Field(default=None, alias="notificationsEnabled")

    @field_validator("queues")
    @classmethod
    def _known_queues(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        unknown = [queue for queue in value if queue not in VALID_QUEUES]
        if unknown:
            raise ValueError(f"Unknown queues: {', '.join(unknown)}")
        return value

    @field_validator("timers")
    @classmethod
    def _positive_timers(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(timer <= 0 for timer in value):
            raise ValueError("Timers must be positive minutes")
        return value


def _cycle_payload(state) -> dict:
    return {
        "lastRunStatus": state.last_run_status,
        "lastRunStartedAt": state.last_run_started_at.isoformat() if state.last_run_started_at else None,
        "lastRunFinishedAt": state.last_run_finished_at.isoformat() if state.last_run_finished_at else None,
        "lastError": state.last_error,
    }


@router.get("/healthz")
async def healthz(request: Request) -> dict:
    worker = request.app.state.worker
    return {
        "status": "ok",
        "scheduler": {
            "enabled": request.app.state.settings.enable_scheduler,
            "running": worker.is_running(),
            "cycles": {name: _cycle_payload(state) for name, state in worker.cycles.items()},
        },
    }


@router.get("/livez")
async def livez() -> dict:
    return {"status": "alive"}


@router.get("/readyz")
async def readyz(request: Request) -> dict:
    repository = request.app.state.repository
    try:
        repository.ping()
    except Exception as exc:  # pragma: no cover
        raise HTTPException(status_code=503, detail=f"database not ready: {exc}") from exc

    return {"status": "ready"}


@router.get("/v1/schedule/{queue}")
async def cached_schedule(request: Request, queue: str) -> dict:
    if queue not in VALID_QUEUES:
        raise HTTPException(status_code=404, detail=f"Unknown queue {queue}")
    cache = request.app.state.repository.get_cached_schedule(queue)
    if cache is None:
        raise HTTPException(status_code=404, detail="No schedule cached for queue")
    return cached_schedule_to_payload(cache)


@router.get("/v1/subscribers/{subscriber_id}")
async def get_subscriber(request: Request, subscriber_id: str) -> dict:
    subscriber = request.app.state.repository.get_subscriber(subscriber_id)
    if subscriber is None:
        raise HTTPException(status_code=404, detail="Subscriber not found")
    return subscriber_to_payload(subscriber)


@router.put("/v1/subscribers/{subscriber_id}")
async def put_subscriber(request: Request, subscriber_id: str, update: SubscriberUpdate) -> dict:
    subscriber = request.app.state.repository.upsert_subscriber(
        subscriber_id,
        queues=update.queues,
        timers=update.timers,
        notifications_enabled=update.notifications_enabled,
    )
    return subscriber_to_payload(subscriber)


@router.get("/v1/cycles/{cycle}/runs")
async def cycle_runs(
    request: Request,
    cycle: str,
    limit: int = Query(default=10, ge=1, le=200),
) -> dict:
    runs = request.app.state.repository.get_recent_cycle_runs(cycle, limit)
    return {"cycle": cycle, "count": len(runs), "items": runs}


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    payload, content_type = request.app.state.metrics.render()
    return Response(content=payload, media_type=content_type)
