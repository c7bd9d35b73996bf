from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date

from outage_alerts.core.constants import DATE_FORMAT
from outage_alerts.core.models import DaySchedule, Schedule
from outage_alerts.core.serialization import period_to_payload

logger = logging.getLogger("outage_alerts.canonical")


class ExtractionError(RuntimeError):
    """Date filtering discarded every day of a non-empty schedule."""


@dataclass(frozen=True)
class CanonicalSchedule:
    days: list[dict]
    digest: str


def filter_future_days(schedule: Schedule, today: date) -> Schedule:
    """Keep today's and future days; undated days are always kept."""
    kept = [day for day in schedule if day.event_date is None or day.event_date >= today]

    if schedule and not kept:
        raise ExtractionError(
            "All days were filtered out for today=%s, original dates: %s"
            % (
                today.isoformat(),
                [day.event_date.isoformat() for day in schedule if day.event_date is not None],
            )
        )

    logger.debug("Filtered %d days to %d days (today=%s)", len(schedule), len(kept), today)
    return kept


def strip_day(day: DaySchedule) -> dict:
    return {
        "eventDate": day.event_date.strftime(DATE_FORMAT) if day.event_date else None,
        "queues": {
            queue: [period_to_payload(period) for period in periods]
            for queue, periods in day.queues.items()
        },
    }


def digest(days: list[dict]) -> str:
    encoded = json.dumps(days, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def canonicalize(schedule: Schedule, today: date) -> CanonicalSchedule:
    """Reduce a schedule to the outage data relevant from ``today`` onwards.

    Approval markers and any other display-only metadata are dropped so that
    they never influence the digest. Raises ``ExtractionError`` when a
    non-empty schedule has no day left after date filtering.
    """
    days = [strip_day(day) for day in filter_future_days(schedule, today)]
    return CanonicalSchedule(days=days, digest=digest(days))
