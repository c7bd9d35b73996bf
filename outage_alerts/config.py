from __future__ import annotations

import os
from dataclasses import dataclass

from outage_alerts.core.constants import (
    MIDNIGHT_WINDOW_MINUTES,
    NOTIFICATION_RETENTION_HOURS,
    POWER_RETURN_WINDOW_MINUTES,
)


@dataclass(frozen=True)
class Settings:
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    database_path: str = "./data/outage_alerts.db"
    timezone_name: str = "Europe/Kyiv"

    enable_scheduler: bool = True
    refresh_interval_minutes: int = 15
    upcoming_check_interval_minutes: int = 1
    power_return_check_interval_minutes: int = 1
    cleanup_hour: int = 0
    align_clock: bool = True
    initial_refresh_delay_seconds: float = 5.0

    request_delay_seconds: float = 0.5
    notification_delay_seconds: float = 0.1

    retention_hours: int = NOTIFICATION_RETENTION_HOURS
    midnight_window_minutes: int = MIDNIGHT_WINDOW_MINUTES
    power_return_window_minutes: int = POWER_RETURN_WINDOW_MINUTES

    provider_kind: str = "oe_json"
    provider_base_url: str = "https://be-svitlo.oe.if.ua"
    provider_timeout_seconds: int = 10
    provider_user_agent: str = "Ukraine-Power-Outage-Bot/1.0"

    telegram_bot_token: str = ""
    notifier_timeout_seconds: int = 10


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    return int(raw)


def _as_float(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    return float(raw)


def load_settings() -> Settings:
    return Settings(
        app_host=os.getenv("APP_HOST", "0.0.0.0"),
        app_port=_as_int(os.getenv("APP_PORT"), 8000),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=os.getenv("DATABASE_PATH", "./data/outage_alerts.db"),
        timezone_name=os.getenv("TIMEZONE", "Europe/Kyiv"),
        enable_scheduler=_as_bool(os.getenv("ENABLE_SCHEDULER"), True),
        refresh_interval_minutes=_as_int(os.getenv("REFRESH_INTERVAL_MINUTES"), 15),
        upcoming_check_interval_minutes=_as_int(os.getenv("UPCOMING_CHECK_INTERVAL_MINUTES"), 1),
        power_return_check_interval_minutes=_as_int(os.getenv("POWER_RETURN_CHECK_INTERVAL_MINUTES"), 1),
        cleanup_hour=_as_int(os.getenv("CLEANUP_HOUR"), 0),
        align_clock=_as_bool(os.getenv("ALIGN_CLOCK"), True),
        initial_refresh_delay_seconds=_as_float(os.getenv("INITIAL_REFRESH_DELAY_SECONDS"), 5.0),
        request_delay_seconds=_as_float(os.getenv("REQUEST_DELAY_SECONDS"), 0.5),
        notification_delay_seconds=_as_float(os.getenv("NOTIFICATION_DELAY_SECONDS"), 0.1),
        retention_hours=_as_int(os.getenv("RETENTION_HOURS"), NOTIFICATION_RETENTION_HOURS),
        midnight_window_minutes=_as_int(os.getenv("MIDNIGHT_WINDOW_MINUTES"), MIDNIGHT_WINDOW_MINUTES),
        power_return_window_minutes=_as_int(
            os.getenv("POWER_RETURN_WINDOW_MINUTES"), POWER_RETURN_WINDOW_MINUTES
        ),
        provider_kind=os.getenv("PROVIDER_KIND", "oe_json"),
        provider_base_url=os.getenv("PROVIDER_BASE_URL", "https://be-svitlo.oe.if.ua"),
        provider_timeout_seconds=_as_int(os.getenv("PROVIDER_TIMEOUT_SECONDS"), 10),
        provider_user_agent=os.getenv("PROVIDER_USER_AGENT", "Ukraine-Power-Outage-Bot/1.0"),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        notifier_timeout_seconds=_as_int(os.getenv("NOTIFIER_TIMEOUT_SECONDS"), 10),
    )
