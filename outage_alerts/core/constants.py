from __future__ import annotations

from typing import Final

VALID_QUEUES: Final[list[str]] = [
    "1.1",
    "1.2",
    "2.1",
    "2.2",
    "3.1",
    "3.2",
    "4.1",
    "4.2",
    "5.1",
    "5.2",
    "6.1",
    "6.2",
]

DEFAULT_TIMERS: Final[list[int]] = [5, 10, 15, 30]

POWER_RETURN_WINDOW_MINUTES: Final[int] = 2
MIDNIGHT_WINDOW_MINUTES: Final[int] = 20
NOTIFICATION_RETENTION_HOURS: Final[int] = 48
EARLY_MORNING_CUTOFF_MINUTES: Final[int] = 60

MINUTES_PER_DAY: Final[int] = 24 * 60

DATE_FORMAT: Final[str] = "%d.%m.%Y"

POWER_RETURN_EVENT_PREFIX: Final[str] = "power_return_"
