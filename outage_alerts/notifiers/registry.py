from __future__ import annotations

import logging

from outage_alerts.config import Settings
from outage_alerts.notifiers.base import Notifier
from outage_alerts.notifiers.telegram import LogNotifier, TelegramNotifier


def build_notifier(settings: Settings) -> Notifier:
    if settings.telegram_bot_token:
        return TelegramNotifier(
            token=settings.telegram_bot_token,
            timeout_seconds=settings.notifier_timeout_seconds,
        )

    logging.getLogger("outage_alerts.notify").warning(
        "TELEGRAM_BOT_TOKEN is not set, notifications will only be logged"
    )
    return LogNotifier()
