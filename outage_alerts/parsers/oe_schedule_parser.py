from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from outage_alerts.core.models import DaySchedule, OutageStatus, Period, Schedule
from outage_alerts.parsers.errors import ParseError

_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")
_DATE_FORMATS = ("%d.%m.%Y", "%Y-%m-%d")


def parse_event_date(raw: Any) -> date | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ParseError(f"eventDate must be a string, got {type(raw).__name__}")

    value = raw.strip()
    if not value:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    raise ParseError(f"Unrecognized eventDate: {raw!r}")


def _as_time(raw: Any) -> str | None:
    if not isinstance(raw, str):
        return None
    value = raw.strip()
    if not _TIME_RE.match(value):
        return None
    return value.zfill(5)


def _as_status(raw: Any) -> OutageStatus:
    if raw is None:
        return OutageStatus.SCHEDULED_OUTAGE
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Unknown period status: {raw!r}") from exc
    # Only 1 means an outage; other codes are treated as power on.
    if value == OutageStatus.SCHEDULED_OUTAGE:
        return OutageStatus.SCHEDULED_OUTAGE
    return OutageStatus.NO_OUTAGE


def _parse_period(raw: Any) -> Period:
    if not isinstance(raw, dict):
        raise ParseError(f"Period must be an object, got {type(raw).__name__}")

    time_range = raw.get("shutdownHours")
    return Period(
        start=_as_time(raw.get("from")),
        end=_as_time(raw.get("to")),
        status=_as_status(raw.get("status")),
        time_range=time_range.strip() if isinstance(time_range, str) and time_range.strip() else None,
    )


def _parse_periods(raw: Any) -> list[Period]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ParseError(f"Period list expected, got {type(raw).__name__}")
    return [_parse_period(item) for item in raw]


def _parse_day(raw: Any) -> DaySchedule:
    if not isinstance(raw, dict):
        raise ParseError(f"Day entry must be an object, got {type(raw).__name__}")

    raw_queues = raw.get("queues") or {}
    if not isinstance(raw_queues, dict):
        raise ParseError("Day entry 'queues' must be an object")

    approved = raw.get("scheduleApprovedSince")
    return DaySchedule(
        event_date=parse_event_date(raw.get("eventDate")),
        queues={str(queue): _parse_periods(periods) for queue, periods in raw_queues.items()},
        approved_since=str(approved) if approved is not None else None,
    )


class OeSchedulePayloadParser:
    """Parser for the `schedule-by-queue` response.

    Two shapes are in circulation: the current one is a list of day objects
    keyed by queue, the legacy one is ``{"data": [...]}`` with the periods of a
    single queue and no date. Both come out as a list of ``DaySchedule``.
    """

    def parse(self, payload: Any, *, queue: str) -> Schedule:
        if isinstance(payload, list):
            return [_parse_day(day) for day in payload]

        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            return [DaySchedule(event_date=None, queues={queue: _parse_periods(payload["data"])})]

        raise ParseError(f"Unsupported schedule payload for queue {queue}: {type(payload).__name__}")


def parse_schedule_payload(payload: Any, queue: str) -> Schedule:
    return OeSchedulePayloadParser().parse(payload, queue=queue)
