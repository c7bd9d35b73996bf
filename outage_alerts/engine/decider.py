from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from outage_alerts.core.constants import DATE_FORMAT, POWER_RETURN_EVENT_PREFIX, POWER_RETURN_WINDOW_MINUTES
from outage_alerts.core.models import Subscriber, TaggedPeriod
from outage_alerts.engine.clock import EventClock


class EventKind(str, Enum):
    OUTAGE_START = "outage_start"
    POWER_RETURN = "power_return"


def build_event_id(kind: EventKind, queue: str, time_of_day: str, event_date: date) -> str:
    event_id = f"{queue}_{time_of_day}_{event_date.strftime(DATE_FORMAT)}"
    if kind is EventKind.POWER_RETURN:
        return POWER_RETURN_EVENT_PREFIX + event_id
    return event_id


@dataclass(frozen=True)
class OutageEvent:
    kind: EventKind
    queue: str
    event_date: date
    time_of_day: str
    minutes: int

    @property
    def event_id(self) -> str:
        return build_event_id(self.kind, self.queue, self.time_of_day, self.event_date)


class NotificationDecider:
    def __init__(
        self,
        clock: EventClock | None = None,
        power_return_window: int = POWER_RETURN_WINDOW_MINUTES,
    ) -> None:
        self.clock = clock or EventClock()
        self.power_return_window = power_return_window

    def should_notify(self, subscriber: Subscriber, event: OutageEvent) -> bool:
        if event.event_id in subscriber.notified_events:
            return False

        if event.kind is EventKind.OUTAGE_START:
            if not subscriber.queues or not subscriber.timers:
                return False
            return event.minutes in subscriber.timers

        if not subscriber.queues:
            return False
        return 0 <= event.minutes <= self.power_return_window

    def outage_start_event(self, tagged: TaggedPeriod, now: datetime) -> OutageEvent | None:
        minutes = self.clock.minutes_until_start(tagged, now)
        if minutes is None:
            return None
        return OutageEvent(
            kind=EventKind.OUTAGE_START,
            queue=tagged.queue,
            event_date=tagged.event_date,
            time_of_day=tagged.period.start_time or "",
            minutes=minutes,
        )

    def power_return_event(self, tagged: TaggedPeriod, now: datetime) -> OutageEvent | None:
        minutes = self.clock.minutes_since_end(tagged, now)
        if minutes is None:
            return None
        return OutageEvent(
            kind=EventKind.POWER_RETURN,
            queue=tagged.queue,
            event_date=tagged.event_date,
            time_of_day=tagged.period.end_time or "",
            minutes=minutes,
        )

    def due_outage_starts(
        self, subscriber: Subscriber, periods: list[TaggedPeriod], now: datetime
    ) -> list[OutageEvent]:
        due: list[OutageEvent] = []
        for tagged in periods:
            event = self.outage_start_event(tagged, now)
            if event is not None and self.should_notify(subscriber, event):
                due.append(event)
        return due

    def due_power_returns(
        self, subscriber: Subscriber, periods: list[TaggedPeriod], now: datetime
    ) -> list[OutageEvent]:
        due: list[OutageEvent] = []
        for tagged in periods:
            event = self.power_return_event(tagged, now)
            if event is not None and self.should_notify(subscriber, event):
                due.append(event)
        return due
