from __future__ import annotations

from typing import Protocol

from outage_alerts.core.models import Schedule


class ScheduleProvider(Protocol):
    async def fetch_schedule(self, queue: str) -> Schedule:
        """Fetch and normalize the current schedule for one queue."""
