from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

import httpx

from outage_alerts.config import Settings
from outage_alerts.core.constants import VALID_QUEUES
from outage_alerts.core.models import CachedSchedule, ChangeStatus, Schedule, Subscriber
from outage_alerts.engine.canonical import ExtractionError, filter_future_days
from outage_alerts.engine.change_detector import ChangeDetector
from outage_alerts.engine.clock import EventClock, power_return_periods, upcoming_outage_periods
from outage_alerts.engine.decider import NotificationDecider, OutageEvent
from outage_alerts.engine.formatting import (
    compare_schedules,
    format_schedule,
    power_return_message,
    schedule_update_message,
    upcoming_outage_message,
)
from outage_alerts.notifiers.base import Notifier
from outage_alerts.observability.metrics import Metrics
from outage_alerts.parsers.errors import ParseError
from outage_alerts.providers.base import ScheduleProvider
from outage_alerts.providers.oe_api import ProviderError
from outage_alerts.storage.repository import Repository

HTML = "HTML"


@dataclass(frozen=True)
class QueueError:
    queue: str
    kind: str
    message: str


@dataclass(frozen=True)
class QueueOutcome:
    queue: str
    status: ChangeStatus | None
    suppressed: bool = False
    previous: CachedSchedule | None = None
    current: CachedSchedule | None = None
    error: QueueError | None = None
    checked_at: datetime | None = None


@dataclass
class RefreshReport:
    changed_queues: list[str] = field(default_factory=list)
    errors: list[QueueError] = field(default_factory=list)
    outcomes: list[QueueOutcome] = field(default_factory=list)
    notifications_sent: int = 0


@dataclass
class NotificationReport:
    notifications_sent: int = 0


@dataclass
class SweepReport:
    cleared_count: int = 0


class Dispatcher:
    """Runs the refresh, reminder, power-return and retention cycles.

    Each cycle is self-contained and safe to run concurrently with the
    others: a failure for one queue or one subscriber is logged and the
    cycle moves on.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        provider: ScheduleProvider,
        notifier: Notifier,
        repository: Repository,
        metrics: Metrics | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.notifier = notifier
        self.repository = repository
        self.metrics = metrics or Metrics()
        self._clock = clock
        self._sleep = sleep
        self._tz = ZoneInfo(settings.timezone_name)

        self.detector = ChangeDetector(settings.midnight_window_minutes)
        self.decider = NotificationDecider(EventClock(), settings.power_return_window_minutes)

        self._refresh_logger = logging.getLogger("outage_alerts.refresh")
        self._notify_logger = logging.getLogger("outage_alerts.notify")

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(tz=self._tz)

    # Refresh

    async def run_refresh_cycle(self) -> RefreshReport:
        report = RefreshReport()
        self._refresh_logger.info("Starting update cycle for %d queues", len(VALID_QUEUES))

        for index, queue in enumerate(VALID_QUEUES):
            if index:
                await self._sleep(self.settings.request_delay_seconds)

            outcome = await self._refresh_queue(queue)
            report.outcomes.append(outcome)
            if outcome.error is not None:
                report.errors.append(outcome.error)
                self.metrics.mark_queue(queue, outcome.error.kind)
            elif outcome.status is not None:
                self.metrics.mark_queue(queue, "suppressed" if outcome.suppressed else outcome.status.value)

        report.changed_queues = [o.queue for o in report.outcomes if o.status is ChangeStatus.CHANGED]

        if report.changed_queues:
            self._refresh_logger.info(
                "Notifying users about %d changed queues: %s",
                len(report.changed_queues),
                report.changed_queues,
            )
            report.notifications_sent = await self._notify_changes(
                [o for o in report.outcomes if o.status is ChangeStatus.CHANGED]
            )
        else:
            self._refresh_logger.info("No schedule changes detected")

        return report

    async def _refresh_queue(self, queue: str) -> QueueOutcome:
        try:
            fresh = await asyncio.wait_for(
                self.provider.fetch_schedule(queue),
                timeout=self.settings.provider_timeout_seconds,
            )
        except (httpx.HTTPError, ParseError, ProviderError, TimeoutError) as exc:
            self._refresh_logger.warning("Failed to fetch schedule for queue %s: %r", queue, exc)
            return QueueOutcome(queue=queue, status=None, error=QueueError(queue, "fetch_error", repr(exc)))

        try:
            previous = self.repository.get_cached_schedule(queue)
            checked_at = self.now()
            detection = self.detector.detect(queue, fresh, previous, now=checked_at)
            self.repository.upsert_cached_schedule(detection.cache)
        except ExtractionError as exc:
            self._refresh_logger.warning("No current days in schedule for queue %s: %s", queue, exc)
            return QueueOutcome(queue=queue, status=None, error=QueueError(queue, "extraction_error", str(exc)))
        except sqlite3.Error as exc:
            self._refresh_logger.exception("Cache access failed for queue %s", queue)
            return QueueOutcome(queue=queue, status=None, error=QueueError(queue, "persistence_error", str(exc)))
        except Exception as exc:  # pragma: no cover
            self._refresh_logger.exception("Error processing queue %s", queue)
            return QueueOutcome(queue=queue, status=None, error=QueueError(queue, "error", str(exc)))

        return QueueOutcome(
            queue=queue,
            status=detection.status,
            suppressed=detection.suppressed,
            previous=previous,
            current=detection.cache,
            checked_at=checked_at,
        )

    def _change_message(self, outcome: QueueOutcome) -> str:
        # Same day as the detection, even if the cycle has crossed midnight.
        today = outcome.checked_at.date()
        current = filter_future_days(outcome.current.raw_schedule, today)
        previous: Schedule = []
        if outcome.previous is not None:
            try:
                previous = filter_future_days(outcome.previous.raw_schedule, today)
            except ExtractionError:
                previous = []
        changes = compare_schedules(previous, current, outcome.queue)
        return schedule_update_message(format_schedule(current, outcome.queue, changes))

    async def _notify_changes(self, changed: list[QueueOutcome]) -> int:
        messages: dict[str, str] = {}
        for outcome in changed:
            try:
                messages[outcome.queue] = self._change_message(outcome)
            except Exception:
                self._notify_logger.exception("Failed to build update message for queue %s", outcome.queue)

        subscribers = self.repository.get_enabled_subscribers(list(messages))
        self._notify_logger.info("Found %d subscribers of changed queues", len(subscribers))

        sent = 0
        for subscriber in subscribers:
            for queue in VALID_QUEUES:
                if queue not in messages or queue not in subscriber.queues:
                    continue
                ok = await self._send(subscriber.id, messages[queue])
                self.metrics.mark_notification("schedule_update", ok)
                if ok:
                    sent += 1
                    self._notify_logger.info("Sent update notification to %s for queue %s", subscriber.id, queue)
                await self._sleep(self.settings.notification_delay_seconds)

        self._notify_logger.info("Sent %d schedule update notifications", sent)
        return sent

    # Reminders

    async def run_upcoming_outage_cycle(self) -> NotificationReport:
        now = self.now()
        subscribers = self.repository.get_enabled_subscribers()
        self._notify_logger.debug("Checking upcoming outages for %d subscribers", len(subscribers))

        caches: dict[str, CachedSchedule | None] = {}
        sent = 0
        for subscriber in subscribers:
            if not subscriber.queues or not subscriber.timers:
                continue
            try:
                for queue in subscriber.queues:
                    cache = self._cached(queue, caches)
                    if cache is None:
                        continue
                    periods = upcoming_outage_periods(cache.raw_schedule, queue, now)
                    for event in self.decider.due_outage_starts(subscriber, periods, now):
                        text = upcoming_outage_message(queue, event.time_of_day, event.minutes, event.event_date)
                        if await self._deliver(subscriber, event, text):
                            sent += 1
            except Exception:
                self._notify_logger.exception("Upcoming outage check failed for subscriber %s", subscriber.id)

        if sent:
            self._notify_logger.info("Sent %d upcoming outage notifications", sent)
        return NotificationReport(notifications_sent=sent)

    async def run_power_return_cycle(self) -> NotificationReport:
        now = self.now()
        subscribers = self.repository.get_enabled_subscribers()
        self._notify_logger.debug("Checking power returns for %d subscribers", len(subscribers))

        caches: dict[str, CachedSchedule | None] = {}
        sent = 0
        for subscriber in subscribers:
            if not subscriber.queues:
                continue
            try:
                for queue in subscriber.queues:
                    cache = self._cached(queue, caches)
                    if cache is None:
                        continue
                    periods = power_return_periods(cache.raw_schedule, queue, now)
                    for event in self.decider.due_power_returns(subscriber, periods, now):
                        text = power_return_message(queue, event.time_of_day, event.event_date)
                        if await self._deliver(subscriber, event, text):
                            sent += 1
            except Exception:
                self._notify_logger.exception("Power return check failed for subscriber %s", subscriber.id)

        if sent:
            self._notify_logger.info("Sent %d power return notifications", sent)
        return NotificationReport(notifications_sent=sent)

    # Retention

    async def run_retention_sweep(self, retention_hours: int | None = None) -> SweepReport:
        hours = self.settings.retention_hours if retention_hours is None else retention_hours
        cutoff = self.now() - timedelta(hours=hours)
        cleared = self.repository.bulk_clear_notified_events(cutoff)
        self._notify_logger.info("Cleaned old notifications for %d subscribers", cleared)
        return SweepReport(cleared_count=cleared)

    # Helpers

    def _cached(self, queue: str, caches: dict[str, CachedSchedule | None]) -> CachedSchedule | None:
        if queue not in caches:
            caches[queue] = self.repository.get_cached_schedule(queue)
        return caches[queue]

    async def _deliver(self, subscriber: Subscriber, event: OutageEvent, text: str) -> bool:
        # Claim first: a crash after this point loses the message rather than
        # sending it twice.
        if not self.repository.append_notified_event(subscriber.id, event.event_id):
            return False

        ok = await self._send(subscriber.id, text)
        self.metrics.mark_notification(event.kind.value, ok)
        if ok:
            self._notify_logger.info(
                "Sent %s notification to %s for queue %s at %s",
                event.kind.value,
                subscriber.id,
                event.queue,
                event.time_of_day,
            )
        else:
            self.repository.remove_notified_event(subscriber.id, event.event_id)

        await self._sleep(self.settings.notification_delay_seconds)
        return ok

    async def _send(self, subscriber_id: str, text: str) -> bool:
        try:
            return await asyncio.wait_for(
                self.notifier.send(subscriber_id, text, parse_mode=HTML),
                timeout=self.settings.notifier_timeout_seconds,
            )
        except TimeoutError:
            self._notify_logger.error("Timed out sending message to %s", subscriber_id)
        except Exception:
            self._notify_logger.exception("Error sending message to %s", subscriber_id)
        return False
