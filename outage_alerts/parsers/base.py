from __future__ import annotations

from typing import Any, Protocol

from outage_alerts.core.models import Schedule


class SchedulePayloadParser(Protocol):
    def parse(self, payload: Any, *, queue: str) -> Schedule:
        """Normalize a raw provider payload into the canonical schedule shape."""
