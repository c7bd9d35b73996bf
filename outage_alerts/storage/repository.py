from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from outage_alerts.core.constants import DEFAULT_TIMERS
from outage_alerts.core.models import CachedSchedule, Subscriber
from outage_alerts.core.serialization import schedule_to_payload
from outage_alerts.parsers.oe_schedule_parser import parse_schedule_payload


@dataclass(frozen=True)
class CycleRunResult:
    status: str
    error_message: str | None = None


def _utc(value: datetime | None) -> str:
    moment = value or datetime.now(tz=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


class Repository:
    def __init__(self, database_path: str) -> None:
        self.database_path = database_path
        self._lock = threading.Lock()
        self._ensure_parent_dir()

    def _ensure_parent_dir(self) -> None:
        path = Path(self.database_path)
        path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.database_path)
        connection.row_factory = sqlite3.Row
        return connection

    def init_db(self) -> None:
        with self._lock, self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS schedule_cache (
                    queue TEXT PRIMARY KEY,
                    canonical_hash TEXT NOT NULL,
                    raw_json TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS subscribers (
                    id TEXT PRIMARY KEY,
                    queues_json TEXT NOT NULL,
                    timers_json TEXT NOT NULL,
                    notifications_enabled INTEGER NOT NULL DEFAULT 1,
                    created_at_utc TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_subscribers_enabled
                    ON subscribers(notifications_enabled);

                CREATE TABLE IF NOT EXISTS subscriber_events (
                    subscriber_id TEXT NOT NULL,
                    event_id TEXT NOT NULL,
                    created_at_utc TEXT NOT NULL,
                    PRIMARY KEY (subscriber_id, event_id)
                );

                CREATE TABLE IF NOT EXISTS cycle_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    cycle TEXT NOT NULL,
                    started_at_utc TEXT NOT NULL,
                    finished_at_utc TEXT NOT NULL,
                    status TEXT NOT NULL,
                    error_message TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_cycle_runs_cycle_started
                    ON cycle_runs(cycle, started_at_utc DESC);
                """
            )
            conn.commit()

    def ping(self) -> bool:
        with self._lock, self._connect() as conn:
            conn.execute("SELECT 1")
        return True

    # Schedule cache

    def get_cached_schedule(self, queue: str) -> CachedSchedule | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT queue, canonical_hash, raw_json, updated_at_utc FROM schedule_cache WHERE queue = ?",
                (queue,),
            ).fetchone()
        if row is None:
            return None
        return CachedSchedule(
            queue=str(row["queue"]),
            canonical_hash=str(row["canonical_hash"]),
            raw_schedule=parse_schedule_payload(json.loads(str(row["raw_json"])), str(row["queue"])),
            updated_at=datetime.fromisoformat(str(row["updated_at_utc"])),
        )

    def upsert_cached_schedule(self, cache: CachedSchedule) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO schedule_cache(queue, canonical_hash, raw_json, updated_at_utc)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(queue) DO UPDATE SET
                    canonical_hash = excluded.canonical_hash,
                    raw_json = excluded.raw_json,
                    updated_at_utc = excluded.updated_at_utc
                """,
                (
                    cache.queue,
                    cache.canonical_hash,
                    json.dumps(schedule_to_payload(cache.raw_schedule), ensure_ascii=False),
                    _utc(cache.updated_at),
                ),
            )
            conn.commit()

    # Subscribers

    def _events_for(self, conn: sqlite3.Connection, subscriber_id: str) -> frozenset[str]:
        rows = conn.execute(
            "SELECT event_id FROM subscriber_events WHERE subscriber_id = ?",
            (subscriber_id,),
        ).fetchall()
        return frozenset(str(row["event_id"]) for row in rows)

    def _to_subscriber(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Subscriber:
        subscriber_id = str(row["id"])
        return Subscriber(
            id=subscriber_id,
            queues=list(json.loads(str(row["queues_json"]))),
            timers=[int(timer) for timer in json.loads(str(row["timers_json"]))],
            notifications_enabled=bool(row["notifications_enabled"]),
            notified_events=self._events_for(conn, subscriber_id),
            updated_at=datetime.fromisoformat(str(row["updated_at_utc"])),
        )

    def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        with self._lock, self._connect() as conn:
            row = conn.execute("SELECT * FROM subscribers WHERE id = ?", (subscriber_id,)).fetchone()
            if row is None:
                return None
            return self._to_subscriber(conn, row)

    def get_enabled_subscribers(self, queues: list[str] | None = None) -> list[Subscriber]:
        """Subscribers with notifications on, optionally only those on any of ``queues``."""
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subscribers WHERE notifications_enabled = 1 ORDER BY id"
            ).fetchall()
            subscribers = [self._to_subscriber(conn, row) for row in rows]

        if queues is None:
            return subscribers
        wanted = set(queues)
        return [subscriber for subscriber in subscribers if wanted.intersection(subscriber.queues)]

    def upsert_subscriber(
        self,
        subscriber_id: str,
        *,
        queues: list[str] | None = None,
        timers: list[int] | None = None,
        notifications_enabled: bool | None = None,
        now: datetime | None = None,
    ) -> Subscriber:
        stamp = _utc(now)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO subscribers(
                    id, queues_json, timers_json, notifications_enabled, created_at_utc, updated_at_utc
                ) VALUES (?, '[]', ?, 1, ?, ?)
                """,
                (subscriber_id, json.dumps(DEFAULT_TIMERS), stamp, stamp),
            )

            assignments = ["updated_at_utc = ?"]
            params: list = [stamp]
            if queues is not None:
                assignments.append("queues_json = ?")
                params.append(json.dumps(sorted(set(queues))))
            if timers is not None:
                assignments.append("timers_json = ?")
                params.append(json.dumps(sorted(set(timers))))
            if notifications_enabled is not None:
                assignments.append("notifications_enabled = ?")
                params.append(int(notifications_enabled))

            conn.execute(
                f"UPDATE subscribers SET {', '.join(assignments)} WHERE id = ?",
                (*params, subscriber_id),
            )
            conn.commit()

            row = conn.execute("SELECT * FROM subscribers WHERE id = ?", (subscriber_id,)).fetchone()
            return self._to_subscriber(conn, row)

    def append_notified_event(self, subscriber_id: str, event_id: str, *, now: datetime | None = None) -> bool:
        """Add ``event_id`` unless present. True when this call added it."""
        stamp = _utc(now)
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO subscriber_events(subscriber_id, event_id, created_at_utc) VALUES (?, ?, ?)",
                (subscriber_id, event_id, stamp),
            )
            added = cursor.rowcount == 1
            if added:
                conn.execute("UPDATE subscribers SET updated_at_utc = ? WHERE id = ?", (stamp, subscriber_id))
            conn.commit()
        return added

    def remove_notified_event(self, subscriber_id: str, event_id: str) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM subscriber_events WHERE subscriber_id = ? AND event_id = ?",
                (subscriber_id, event_id),
            )
            conn.commit()
            return cursor.rowcount == 1

    def bulk_clear_notified_events(self, older_than: datetime) -> int:
        """Drop every marker of subscribers not updated since ``older_than``."""
        stale = "SELECT id FROM subscribers WHERE updated_at_utc < ?"
        cutoff = _utc(older_than)
        with self._lock, self._connect() as conn:
            row = conn.execute(
                f"SELECT COUNT(DISTINCT subscriber_id) AS cleared FROM subscriber_events WHERE subscriber_id IN ({stale})",
                (cutoff,),
            ).fetchone()
            conn.execute(f"DELETE FROM subscriber_events WHERE subscriber_id IN ({stale})", (cutoff,))
            conn.commit()
        return int(row["cleared"])

    # Bookkeeping

    def record_cycle_run(
        self,
        *,
        cycle: str,
        started_at_utc: datetime,
        finished_at_utc: datetime,
        result: CycleRunResult,
    ) -> int:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO cycle_runs(
                    cycle,
                    started_at_utc,
                    finished_at_utc,
                    status,
                    error_message
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    cycle,
                    _utc(started_at_utc),
                    _utc(finished_at_utc),
                    result.status,
                    result.error_message,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def get_recent_cycle_runs(self, cycle: str, limit: int = 10) -> list[dict]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                """
                SELECT cycle, started_at_utc, finished_at_utc, status, error_message
                FROM cycle_runs
                WHERE cycle = ?
                ORDER BY started_at_utc DESC
                LIMIT ?
                """,
                (cycle, limit),
            ).fetchall()
        return [
            {
                "cycle": str(row["cycle"]),
                "startedAt": str(row["started_at_utc"]),
                "finishedAt": str(row["finished_at_utc"]),
                "status": str(row["status"]),
                "error": row["error_message"],
            }
            for row in rows
        ]
