from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum

_RANGE_RE = re.compile(r"^\s*(\d{1,2}:\d{2})\s*-\s*(\d{1,2}:\d{2})\s*$")


class OutageStatus(IntEnum):
    NO_OUTAGE = 0
    SCHEDULED_OUTAGE = 1


class ChangeStatus(str, Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FIRST_SEEN = "first_seen"


@dataclass(frozen=True)
class Period:
    start: str | None = None
    end: str | None = None
    status: OutageStatus = OutageStatus.SCHEDULED_OUTAGE
    time_range: str | None = None

    @property
    def start_time(self) -> str | None:
        if self.start:
            return self.start
        match = _RANGE_RE.match(self.time_range or "")
        return match.group(1) if match else None

    @property
    def end_time(self) -> str | None:
        if self.end:
            return self.end
        match = _RANGE_RE.match(self.time_range or "")
        return match.group(2) if match else None

    @property
    def label(self) -> str:
        if self.time_range:
            return self.time_range
        return f"{self.start_time or '?'}-{self.end_time or '?'}"


@dataclass(frozen=True)
class DaySchedule:
    event_date: date | None
    queues: dict[str, list[Period]]
    approved_since: str | None = None


Schedule = list[DaySchedule]


@dataclass(frozen=True)
class CachedSchedule:
    queue: str
    canonical_hash: str
    raw_schedule: Schedule
    updated_at: datetime


@dataclass(frozen=True)
class Subscriber:
    id: str
    queues: list[str] = field(default_factory=list)
    timers: list[int] = field(default_factory=list)
    notifications_enabled: bool = True
    notified_events: frozenset[str] = frozenset()
    updated_at: datetime | None = None


@dataclass(frozen=True)
class TaggedPeriod:
    """A period together with the calendar day it belongs to."""

    queue: str
    event_date: date
    period: Period
