from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    async def send(self, subscriber_id: str, text: str, *, parse_mode: str | None = None) -> bool:
        """Deliver one message; returns False instead of raising on failure."""
