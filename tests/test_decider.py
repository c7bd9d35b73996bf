from __future__ import annotations

import pytest

from outage_alerts.core.models import Subscriber, TaggedPeriod
from outage_alerts.engine.decider import EventKind, NotificationDecider, OutageEvent, build_event_id
from tests.helpers import TODAY, local, outage

PERIOD = TaggedPeriod("3.1", TODAY, outage("14:00", "18:00"))


def _subscriber(**overrides) -> Subscriber:
    values = {"id": "100", "queues": ["3.1"], "timers": [5, 10, 15, 30]}
    values.update(overrides)
    return Subscriber(**values)


def test_event_ids_for_start_and_return_never_collide() -> None:
    start = build_event_id(EventKind.OUTAGE_START, "3.1", "14:00", TODAY)
    back = build_event_id(EventKind.POWER_RETURN, "3.1", "14:00", TODAY)

    assert start == "3.1_14:00_19.10.2026"
    assert back == "power_return_3.1_14:00_19.10.2026"


@pytest.mark.parametrize(("minute", "expected"), [(50, 1), (49, 0), (45, 1), (59, 0)])
def test_lead_time_must_match_exactly(minute: int, expected: int) -> None:
    due = NotificationDecider().due_outage_starts(_subscriber(), [PERIOD], local(13, minute))

    assert len(due) == expected


def test_already_notified_event_does_not_fire() -> None:
    subscriber = _subscriber(notified_events=frozenset({"3.1_14:00_19.10.2026"}))

    assert NotificationDecider().due_outage_starts(subscriber, [PERIOD], local(13, 50)) == []


def test_subscriber_without_timers_gets_no_reminders() -> None:
    subscriber = _subscriber(timers=[])

    assert NotificationDecider().due_outage_starts(subscriber, [PERIOD], local(13, 50)) == []


def test_subscriber_without_queues_gets_nothing() -> None:
    subscriber = _subscriber(queues=[])
    decider = NotificationDecider()

    assert decider.due_outage_starts(subscriber, [PERIOD], local(13, 50)) == []
    assert decider.due_power_returns(subscriber, [PERIOD], local(18, 1)) == []


@pytest.mark.parametrize(
    ("hour", "minute", "expected"),
    [(18, 0, 1), (18, 2, 1), (18, 3, 0), (17, 59, 0)],
)
def test_power_return_window(hour: int, minute: int, expected: int) -> None:
    due = NotificationDecider().due_power_returns(_subscriber(timers=[]), [PERIOD], local(hour, minute))

    assert len(due) == expected


def test_should_notify_uses_configured_window() -> None:
    event = OutageEvent(EventKind.POWER_RETURN, "3.1", TODAY, "18:00", minutes=4)

    assert NotificationDecider(power_return_window=5).should_notify(_subscriber(), event) is True
    assert NotificationDecider().should_notify(_subscriber(), event) is False


def test_due_event_carries_timing() -> None:
    [event] = NotificationDecider().due_outage_starts(_subscriber(), [PERIOD], local(13, 30))

    assert event.kind is EventKind.OUTAGE_START
    assert event.minutes == 30
    assert event.time_of_day == "14:00"
    assert event.event_id == "3.1_14:00_19.10.2026"
