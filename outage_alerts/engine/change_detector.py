from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from outage_alerts.core.constants import MIDNIGHT_WINDOW_MINUTES
from outage_alerts.core.models import CachedSchedule, ChangeStatus, Schedule
from outage_alerts.engine.canonical import ExtractionError, canonicalize

logger = logging.getLogger("outage_alerts.detector")


@dataclass(frozen=True)
class Detection:
    status: ChangeStatus
    cache: CachedSchedule
    suppressed: bool = False

    @property
    def notify(self) -> bool:
        return self.status is ChangeStatus.CHANGED


def in_midnight_window(now: datetime, window_minutes: int = MIDNIGHT_WINDOW_MINUTES) -> bool:
    return now.hour == 0 and now.minute < window_minutes


class ChangeDetector:
    def __init__(self, midnight_window_minutes: int = MIDNIGHT_WINDOW_MINUTES) -> None:
        self.midnight_window_minutes = midnight_window_minutes

    def detect(
        self,
        queue: str,
        fresh: Schedule,
        previous: CachedSchedule | None,
        *,
        now: datetime,
    ) -> Detection:
        """Classify a freshly fetched schedule against the cached one.

        ``now`` is the local wall-clock time. Raises ``ExtractionError`` when
        the fresh schedule has no today/future day; the caller must then leave
        the cache untouched.
        """
        today = now.date()
        new_hash = canonicalize(fresh, today).digest

        if previous is None:
            logger.info("Schedule initialized for queue %s (hash %s)", queue, new_hash[:8])
            return Detection(
                status=ChangeStatus.FIRST_SEEN,
                cache=CachedSchedule(queue=queue, canonical_hash=new_hash, raw_schedule=fresh, updated_at=now),
            )

        # The old schedule is re-filtered with today's date so that a day
        # dropping out of the window since it was cached is not a change.
        try:
            old_hash: str | None = canonicalize(previous.raw_schedule, today).digest
        except ExtractionError:
            logger.info("Cached schedule for queue %s has no current days left", queue)
            old_hash = None

        if old_hash == new_hash:
            logger.info("No changes for queue %s (hash match after filtering)", queue)
            return Detection(
                status=ChangeStatus.UNCHANGED,
                cache=CachedSchedule(
                    queue=queue,
                    canonical_hash=previous.canonical_hash,
                    raw_schedule=fresh,
                    updated_at=now,
                ),
            )

        cache = CachedSchedule(queue=queue, canonical_hash=new_hash, raw_schedule=fresh, updated_at=now)
        logger.info(
            "Schedule CHANGED for queue %s: %s... -> %s...",
            queue,
            previous.canonical_hash[:8],
            new_hash[:8],
        )

        if in_midnight_window(now, self.midnight_window_minutes):
            logger.info("Midnight window (%s) - suppressing change notification for queue %s", now.strftime("%H:%M"), queue)
            return Detection(status=ChangeStatus.UNCHANGED, cache=cache, suppressed=True)

        return Detection(status=ChangeStatus.CHANGED, cache=cache)
