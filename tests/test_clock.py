from __future__ import annotations

import pytest

from outage_alerts.core.models import OutageStatus, Period, TaggedPeriod
from outage_alerts.engine.clock import (
    EventClock,
    parse_time_to_minutes,
    power_return_periods,
    upcoming_outage_periods,
)
from tests.helpers import TODAY, TOMORROW, YESTERDAY, day, local, outage


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("14:00", 840), ("00:05", 5), ("24:00", 1440), ("24:30", None), ("12:60", None), ("bad", None), (None, None)],
)
def test_parse_time_to_minutes(raw, expected) -> None:
    assert parse_time_to_minutes(raw) == expected


def test_minutes_until_start_ignores_seconds() -> None:
    tagged = TaggedPeriod("3.1", TODAY, outage("14:00", "18:00"))

    assert EventClock().minutes_until_start(tagged, local(13, 50, second=42)) == 10


def test_start_falls_back_to_combined_range() -> None:
    tagged = TaggedPeriod("3.1", TODAY, Period(time_range="14:00-18:00"))

    timing = EventClock().timing(tagged, local(13, 30))

    assert timing.minutes_until_start == 30
    assert timing.minutes_since_end == -270


def test_missing_times_yield_none() -> None:
    tagged = TaggedPeriod("3.1", TODAY, Period())

    timing = EventClock().timing(tagged, local(13, 30))

    assert timing.minutes_until_start is None
    assert timing.minutes_since_end is None


def test_end_of_day_on_yesterdays_period_counts_from_midnight() -> None:
    tagged = TaggedPeriod("3.1", YESTERDAY, outage("22:00", "24:00"))

    assert EventClock().minutes_since_end(tagged, local(0, 1)) == 1


def test_early_morning_end_on_yesterdays_period_is_this_morning() -> None:
    tagged = TaggedPeriod("3.1", YESTERDAY, outage("22:00", "00:15"))

    assert EventClock().minutes_since_end(tagged, local(0, 16)) == 1


def test_end_smaller_than_start_is_not_wrapped() -> None:
    tagged = TaggedPeriod("3.1", TODAY, outage("23:00", "00:30"))

    # The end is read on the tagged day, so by the evening it is long past.
    assert EventClock().minutes_since_end(tagged, local(23, 10)) == 1360


def test_future_end_is_negative() -> None:
    tagged = TaggedPeriod("3.1", TODAY, outage("14:00", "18:00"))

    assert EventClock().minutes_since_end(tagged, local(17, 59)) == -1


def test_upcoming_window_is_today_only() -> None:
    schedule = [
        day(YESTERDAY, "3.1", outage("20:00", "22:00")),
        day(TODAY, "3.1", outage("14:00", "18:00"), outage("19:00", "20:00", OutageStatus.NO_OUTAGE)),
        day(TOMORROW, "3.1", outage("00:05", "02:00")),
    ]

    periods = upcoming_outage_periods(schedule, "3.1", local(23, 58))

    assert [(p.event_date, p.period.start) for p in periods] == [(TODAY, "14:00")]


def test_undated_periods_belong_to_today() -> None:
    schedule = [day(None, "3.1", outage("14:00", "18:00"))]

    periods = upcoming_outage_periods(schedule, "3.1", local(9, 0))

    assert periods[0].event_date == TODAY


def test_power_return_window_reaches_yesterday_only_in_first_hour() -> None:
    schedule = [
        day(YESTERDAY, "3.1", outage("22:00", "24:00")),
        day(TODAY, "3.1", outage("14:00", "18:00")),
    ]

    at_half_past_midnight = power_return_periods(schedule, "3.1", local(0, 30))
    at_one = power_return_periods(schedule, "3.1", local(1, 0))

    assert {p.event_date for p in at_half_past_midnight} == {YESTERDAY, TODAY}
    assert {p.event_date for p in at_one} == {TODAY}


def test_other_queues_are_ignored() -> None:
    schedule = [day(TODAY, "1.1", outage("14:00", "18:00"))]

    assert upcoming_outage_periods(schedule, "3.1", local(9, 0)) == []
