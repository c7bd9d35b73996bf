from __future__ import annotations

from outage_alerts.config import Settings
from outage_alerts.providers.base import ScheduleProvider
from outage_alerts.providers.oe_api import OeScheduleProvider


class UnknownProviderError(RuntimeError):
    pass


def build_provider(settings: Settings) -> ScheduleProvider:
    if settings.provider_kind == "oe_json":
        return OeScheduleProvider(
            base_url=settings.provider_base_url,
            timeout_seconds=settings.provider_timeout_seconds,
            user_agent=settings.provider_user_agent,
        )

    raise UnknownProviderError(f"Unsupported provider kind: {settings.provider_kind}")
