from __future__ import annotations

from datetime import timezone

from outage_alerts.core.constants import DATE_FORMAT
from outage_alerts.core.models import CachedSchedule, DaySchedule, Period, Schedule, Subscriber


def period_to_payload(period: Period) -> dict:
    return {
        "from": period.start,
        "to": period.end,
        "shutdownHours": period.time_range,
        "status": int(period.status),
    }


def day_to_payload(day: DaySchedule) -> dict:
    payload: dict = {
        "eventDate": day.event_date.strftime(DATE_FORMAT) if day.event_date else None,
        "queues": {
            queue: [period_to_payload(period) for period in periods]
            for queue, periods in day.queues.items()
        },
    }
    if day.approved_since is not None:
        payload["scheduleApprovedSince"] = day.approved_since
    return payload


def schedule_to_payload(schedule: Schedule) -> list[dict]:
    """Render a schedule in the upstream array-of-days shape."""
    return [day_to_payload(day) for day in schedule]


def cached_schedule_to_payload(cache: CachedSchedule) -> dict:
    return {
        "queue": cache.queue,
        "hash": cache.canonical_hash,
        "updatedAt": cache.updated_at.astimezone(timezone.utc).isoformat(),
        "schedule": schedule_to_payload(cache.raw_schedule),
    }


def subscriber_to_payload(subscriber: Subscriber) -> dict:
    return {
        "id": subscriber.id,
        "queues": list(subscriber.queues),
        "timers": list(subscriber.timers),
        "notificationsEnabled": subscriber.notifications_enabled,
        "notifiedEvents": sorted(subscriber.notified_events),
        "updatedAt": subscriber.updated_at.isoformat() if subscriber.updated_at else None,
    }
