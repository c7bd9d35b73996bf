from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger("outage_alerts.notify")

TELEGRAM_API_URL = "https://api.telegram.org"


@dataclass
class TelegramNotifier:
    token: str
    timeout_seconds: int = 10
    api_url: str = TELEGRAM_API_URL

    @property
    def send_message_url(self) -> str:
        return f"{self.api_url}/bot{self.token}/sendMessage"

    async def send(self, subscriber_id: str, text: str, *, parse_mode: str | None = None) -> bool:
        body: dict = {"chat_id": subscriber_id, "text": text}
        if parse_mode:
            body["parse_mode"] = parse_mode

        timeout = httpx.Timeout(self.timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(self.send_message_url, json=body)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send message to %s: %s", subscriber_id, exc)
            return False

        return True


class LogNotifier:
    async def send(self, subscriber_id: str, text: str, *, parse_mode: str | None = None) -> bool:
        logger.info("Message for %s:\n%s", subscriber_id, text)
        return True
