from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from outage_alerts.core.constants import EARLY_MORNING_CUTOFF_MINUTES, MINUTES_PER_DAY
from outage_alerts.core.models import OutageStatus, Schedule, TaggedPeriod


def parse_time_to_minutes(value: str | None) -> int | None:
    """Minutes since midnight for ``HH:MM``; ``24:00`` is the end of the day."""
    if not value or not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    if len(parts) != 2:
        return None

    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None

    if hour == 24 and minute == 0:
        return MINUTES_PER_DAY
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def tag_periods(
    schedule: Schedule,
    queue: str,
    dates: set[date],
    *,
    today: date,
    outages_only: bool = True,
) -> list[TaggedPeriod]:
    """Collect the queue's periods whose day is one of ``dates``.

    Days without a date are attributed to ``today``.
    """
    tagged: list[TaggedPeriod] = []
    for day in schedule:
        event_date = day.event_date or today
        if event_date not in dates:
            continue
        for period in day.queues.get(queue, []):
            if outages_only and period.status is not OutageStatus.SCHEDULED_OUTAGE:
                continue
            tagged.append(TaggedPeriod(queue=queue, event_date=event_date, period=period))
    return tagged


def upcoming_outage_periods(schedule: Schedule, queue: str, now: datetime) -> list[TaggedPeriod]:
    today = now.date()
    return tag_periods(schedule, queue, {today}, today=today)


def power_return_periods(schedule: Schedule, queue: str, now: datetime) -> list[TaggedPeriod]:
    today = now.date()
    dates = {today}
    if now.hour == 0:
        dates.add(today - timedelta(days=1))
    return tag_periods(schedule, queue, dates, today=today)


def _floor_minute(now: datetime) -> datetime:
    return now.replace(second=0, microsecond=0, tzinfo=None)


def _at(day: date, minutes: int) -> datetime:
    return datetime(day.year, day.month, day.day) + timedelta(minutes=minutes)


@dataclass(frozen=True)
class EventTiming:
    minutes_until_start: int | None
    minutes_since_end: int | None


class EventClock:
    """Signed minute offsets between ``now`` and a tagged period's boundaries.

    Offsets are wall-clock minutes in the local day. The day an end time falls
    on comes from the period's tag: an end at or before ``early_morning_cutoff``
    on a period tagged yesterday is this morning, not yesterday's morning.
    """

    def __init__(self, early_morning_cutoff: int = EARLY_MORNING_CUTOFF_MINUTES) -> None:
        self.early_morning_cutoff = early_morning_cutoff

    def minutes_until_start(self, tagged: TaggedPeriod, now: datetime) -> int | None:
        start = parse_time_to_minutes(tagged.period.start_time)
        if start is None:
            return None
        delta = _at(tagged.event_date, start) - _floor_minute(now)
        return int(delta.total_seconds() // 60)

    def minutes_since_end(self, tagged: TaggedPeriod, now: datetime) -> int | None:
        end = parse_time_to_minutes(tagged.period.end_time)
        if end is None:
            return None

        end_day = tagged.event_date
        if end_day < now.date() and end <= self.early_morning_cutoff:
            end_day = now.date()

        delta = _floor_minute(now) - _at(end_day, end)
        return int(delta.total_seconds() // 60)

    def timing(self, tagged: TaggedPeriod, now: datetime) -> EventTiming:
        return EventTiming(
            minutes_until_start=self.minutes_until_start(tagged, now),
            minutes_since_end=self.minutes_since_end(tagged, now),
        )
