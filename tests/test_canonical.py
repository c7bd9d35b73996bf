from __future__ import annotations

import pytest

from outage_alerts.engine.canonical import ExtractionError, canonicalize, filter_future_days
from tests.helpers import TODAY, TOMORROW, YESTERDAY, day, outage


def test_canonicalize_is_stable() -> None:
    schedule = [day(TODAY, "3.1", outage("14:00", "18:00"))]

    assert canonicalize(schedule, TODAY) == canonicalize(schedule, TODAY)


def test_approval_marker_does_not_change_digest() -> None:
    first = [day(TODAY, "3.1", outage("14:00", "18:00"), approved="19.10.2026 08:00")]
    second = [day(TODAY, "3.1", outage("14:00", "18:00"), approved="19.10.2026 11:45")]

    assert canonicalize(first, TODAY).digest == canonicalize(second, TODAY).digest


def test_past_days_are_dropped_before_hashing() -> None:
    with_yesterday = [
        day(YESTERDAY, "3.1", outage("10:00", "12:00")),
        day(TODAY, "3.1", outage("14:00", "18:00")),
    ]
    today_only = [day(TODAY, "3.1", outage("14:00", "18:00"))]

    assert canonicalize(with_yesterday, TODAY).digest == canonicalize(today_only, TODAY).digest


def test_different_periods_change_digest() -> None:
    before = [day(TODAY, "3.1", outage("14:00", "18:00"))]
    after = [day(TODAY, "3.1", outage("15:00", "18:00"))]

    assert canonicalize(before, TODAY).digest != canonicalize(after, TODAY).digest


def test_all_days_in_the_past_is_an_extraction_failure() -> None:
    schedule = [day(YESTERDAY, "3.1", outage("10:00", "12:00"))]

    with pytest.raises(ExtractionError):
        canonicalize(schedule, TODAY)


def test_empty_schedule_is_not_an_extraction_failure() -> None:
    assert canonicalize([], TODAY).days == []


def test_undated_days_are_kept() -> None:
    schedule = [day(None, "3.1", outage("14:00", "18:00")), day(TOMORROW, "3.1")]

    assert len(filter_future_days(schedule, TODAY)) == 2


def test_canonical_form_keeps_only_outage_fields() -> None:
    schedule = [day(TODAY, "3.1", outage("14:00", "18:00"), approved="19.10.2026 08:00")]

    canonical = canonicalize(schedule, TODAY)

    assert canonical.days == [
        {
            "eventDate": "19.10.2026",
            "queues": {
                "3.1": [{"from": "14:00", "to": "18:00", "shutdownHours": "14:00-18:00", "status": 1}]
            },
        }
    ]
