from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter

import httpx

from outage_alerts.core.models import Schedule
from outage_alerts.parsers.errors import ParseError
from outage_alerts.parsers.oe_schedule_parser import OeSchedulePayloadParser


class ProviderError(RuntimeError):
    pass


@dataclass
class OeScheduleProvider:
    base_url: str
    timeout_seconds: float = 10
    user_agent: str = "outage-alerts/0.1"
    parser: OeSchedulePayloadParser = field(default_factory=OeSchedulePayloadParser)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger("outage_alerts.provider")

    @property
    def schedule_url(self) -> str:
        return self.base_url.rstrip("/") + "/schedule-by-queue"

    async def fetch_schedule(self, queue: str) -> Schedule:
        if not self.base_url:
            raise ProviderError("PROVIDER_BASE_URL is empty")

        timeout = httpx.Timeout(self.timeout_seconds)
        started = perf_counter()

        async with httpx.AsyncClient(timeout=timeout, headers={"User-Agent": self.user_agent}) as client:
            response = await client.get(self.schedule_url, params={"queue": queue})
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as exc:
                raise ParseError(f"Response for queue {queue} is not JSON") from exc

        self._logger.info(
            "Schedule for queue %s received in %.0fms (status %s)",
            queue,
            (perf_counter() - started) * 1000,
            response.status_code,
        )

        if payload is None:
            raise ProviderError(f"Empty schedule payload for queue {queue}")

        return self.parser.parse(payload, queue=queue)
