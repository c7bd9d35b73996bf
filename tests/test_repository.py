from __future__ import annotations

from datetime import datetime, timedelta, timezone

from outage_alerts.core.models import CachedSchedule, OutageStatus
from outage_alerts.storage.repository import CycleRunResult, Repository
from tests.helpers import TODAY, day, local, outage


def _repository(tmp_path) -> Repository:
    repo = Repository(str(tmp_path / "test.db"))
    repo.init_db()
    return repo


def test_cached_schedule_roundtrip(tmp_path) -> None:
    repo = _repository(tmp_path)
    schedule = [
        day(
            TODAY,
            "3.1",
            outage("14:00", "18:00"),
            outage("20:00", "21:00", OutageStatus.NO_OUTAGE),
            approved="19.10.2026 07:41",
        ),
        day(None, "3.1", outage("08:00", "09:00")),
    ]
    repo.upsert_cached_schedule(
        CachedSchedule(queue="3.1", canonical_hash="abc123", raw_schedule=schedule, updated_at=local(9, 0))
    )

    cached = repo.get_cached_schedule("3.1")

    assert cached is not None
    assert cached.canonical_hash == "abc123"
    assert cached.raw_schedule == schedule
    assert cached.updated_at == local(9, 0)
    assert repo.get_cached_schedule("1.1") is None


def test_upsert_cached_schedule_replaces_row(tmp_path) -> None:
    repo = _repository(tmp_path)
    first = CachedSchedule("3.1", "h1", [day(TODAY, "3.1")], local(9, 0))
    second = CachedSchedule("3.1", "h2", [day(TODAY, "3.1", outage("14:00", "18:00"))], local(9, 15))

    repo.upsert_cached_schedule(first)
    repo.upsert_cached_schedule(second)

    cached = repo.get_cached_schedule("3.1")
    assert cached.canonical_hash == "h2"
    assert cached.updated_at == local(9, 15)


def test_new_subscriber_gets_default_timers(tmp_path) -> None:
    repo = _repository(tmp_path)

    subscriber = repo.upsert_subscriber("100")

    assert subscriber.queues == []
    assert subscriber.timers == [5, 10, 15, 30]
    assert subscriber.notifications_enabled is True


def test_enabled_subscribers_filtered_by_queue(tmp_path) -> None:
    repo = _repository(tmp_path)
    repo.upsert_subscriber("100", queues=["3.1", "1.1"])
    repo.upsert_subscriber("200", queues=["2.2"])
    repo.upsert_subscriber("300", queues=["3.1"], notifications_enabled=False)

    assert [s.id for s in repo.get_enabled_subscribers()] == ["100", "200"]
    assert [s.id for s in repo.get_enabled_subscribers(["3.1"])] == ["100"]


def test_append_notified_event_is_add_if_absent(tmp_path) -> None:
    repo = _repository(tmp_path)
    repo.upsert_subscriber("100", queues=["3.1"])

    assert repo.append_notified_event("100", "3.1_14:00_19.10.2026") is True
    assert repo.append_notified_event("100", "3.1_14:00_19.10.2026") is False
    assert repo.get_subscriber("100").notified_events == frozenset({"3.1_14:00_19.10.2026"})

    assert repo.remove_notified_event("100", "3.1_14:00_19.10.2026") is True
    assert repo.get_subscriber("100").notified_events == frozenset()


def test_bulk_clear_only_touches_inactive_subscribers(tmp_path) -> None:
    repo = _repository(tmp_path)
    old = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)
    recent = datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc)
    repo.upsert_subscriber("stale", queues=["3.1"], now=old)
    repo.append_notified_event("stale", "a", now=old)
    repo.append_notified_event("stale", "b", now=old)
    repo.upsert_subscriber("active", queues=["3.1"], now=recent)
    repo.append_notified_event("active", "c", now=recent)
    repo.upsert_subscriber("quiet", queues=["3.1"], now=old)

    cleared = repo.bulk_clear_notified_events(recent - timedelta(hours=48))

    assert cleared == 1
    assert repo.get_subscriber("stale").notified_events == frozenset()
    assert repo.get_subscriber("active").notified_events == frozenset({"c"})


def test_repository_records_cycle_runs(tmp_path) -> None:
    repo = _repository(tmp_path)

    now = datetime.now(tz=timezone.utc)
    repo.record_cycle_run(
        cycle="refresh",
        started_at_utc=now,
        finished_at_utc=now,
        result=CycleRunResult(status="success"),
    )

    assert repo.ping() is True
    assert repo.get_recent_cycle_runs("refresh")[0]["status"] == "success"
