from __future__ import annotations

import httpx
import pytest

from outage_alerts.core.models import CachedSchedule
from outage_alerts.main import create_app
from tests.helpers import TODAY, day, local, make_settings, outage


def _client(app) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest.mark.asyncio
async def test_schedule_endpoint_returns_cached_schedule(tmp_path) -> None:
    app = create_app(make_settings(tmp_path))
    app.state.repository.upsert_cached_schedule(
        CachedSchedule("3.1", "hash-1", [day(TODAY, "3.1", outage("14:00", "18:00"))], local(9, 0))
    )

    async with _client(app) as client:
        response = await client.get("/v1/schedule/3.1")
        missing = await client.get("/v1/schedule/1.1")
        unknown = await client.get("/v1/schedule/9.9")

    assert response.status_code == 200
    body = response.json()
    assert body["queue"] == "3.1"
    assert body["hash"] == "hash-1"
    assert body["schedule"][0]["eventDate"] == "19.10.2026"
    assert missing.status_code == 404
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_subscriber_can_be_created_and_updated(tmp_path) -> None:
    app = create_app(make_settings(tmp_path))

    async with _client(app) as client:
        created = await client.put("/v1/subscribers/42", json={"queues": ["3.1", "1.2"]})
        toggled = await client.put("/v1/subscribers/42", json={"notificationsEnabled": False, "timers": [15, 5]})
        fetched = await client.get("/v1/subscribers/42")

    assert created.status_code == 200
    assert created.json()["queues"] == ["1.2", "3.1"]
    assert created.json()["timers"] == [5, 10, 15, 30]
    assert toggled.json()["notificationsEnabled"] is False
    assert fetched.json()["timers"] == [5, 15]
    assert fetched.json()["queues"] == ["1.2", "3.1"]


@pytest.mark.asyncio
async def test_subscriber_rejects_unknown_queue(tmp_path) -> None:
    app = create_app(make_settings(tmp_path))

    async with _client(app) as client:
        response = await client.put("/v1/subscribers/42", json={"queues": ["7.1"]})
        missing = await client.get("/v1/subscribers/42")

    assert response.status_code == 422
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_health_endpoints(tmp_path) -> None:
    app = create_app(make_settings(tmp_path))

    async with _client(app) as client:
        health = await client.get("/healthz")
        ready = await client.get("/readyz")
        metrics = await client.get("/metrics")

    assert health.status_code == 200
    cycles = health.json()["scheduler"]["cycles"]
    assert set(cycles) == {"refresh", "upcoming_outage", "power_return", "retention"}
    assert cycles["refresh"]["lastRunStatus"] == "never"
    assert ready.json() == {"status": "ready"}
    assert metrics.status_code == 200
