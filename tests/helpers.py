from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from outage_alerts.config import Settings
from outage_alerts.core.models import DaySchedule, OutageStatus, Period

KYIV = ZoneInfo("Europe/Kyiv")
TODAY = date(2026, 10, 19)
YESTERDAY = date(2026, 10, 18)
TOMORROW = date(2026, 10, 20)


def local(hour: int = 12, minute: int = 0, *, day: date = TODAY, second: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, second, tzinfo=KYIV)


def outage(start: str, end: str, status: OutageStatus = OutageStatus.SCHEDULED_OUTAGE) -> Period:
    return Period(start=start, end=end, status=status, time_range=f"{start}-{end}")


def day(event_date: date | None, queue: str, *periods: Period, approved: str | None = None) -> DaySchedule:
    return DaySchedule(event_date=event_date, queues={queue: list(periods)}, approved_since=approved)


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "enable_scheduler": False,
        "database_path": str(tmp_path / "alerts.db"),
        "request_delay_seconds": 0,
        "notification_delay_seconds": 0,
    }
    values.update(overrides)
    return Settings(**values)


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now
