from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from outage_alerts.config import Settings
from outage_alerts.observability.metrics import Metrics
from outage_alerts.scheduler.dispatcher import Dispatcher
from outage_alerts.storage.repository import CycleRunResult, Repository

REFRESH = "refresh"
UPCOMING_OUTAGE = "upcoming_outage"
POWER_RETURN = "power_return"
RETENTION = "retention"


@dataclass
class CycleState:
    name: str
    interval_seconds: float
    runner: Callable[[], Awaitable[Any]]
    daily_hour: int | None = None
    initial_delay_seconds: float | None = None

    last_run_status: str = "never"
    last_run_started_at: datetime | None = None
    last_run_finished_at: datetime | None = None
    last_error: str | None = None
    last_result: Any = field(default=None, repr=False)


class CycleWorker:
    def __init__(
        self,
        *,
        settings: Settings,
        dispatcher: Dispatcher,
        repository: Repository,
        metrics: Metrics,
    ) -> None:
        self.settings = settings
        self.dispatcher = dispatcher
        self.repository = repository
        self.metrics = metrics

        self._tasks: list[asyncio.Task[None]] = []
        self._stop_event = asyncio.Event()
        self._logger = logging.getLogger("outage_alerts.scheduler")
        self._tz = ZoneInfo(settings.timezone_name)

        self.cycles: dict[str, CycleState] = {
            REFRESH: CycleState(
                name=REFRESH,
                interval_seconds=max(settings.refresh_interval_minutes, 1) * 60,
                runner=dispatcher.run_refresh_cycle,
                initial_delay_seconds=settings.initial_refresh_delay_seconds,
            ),
            UPCOMING_OUTAGE: CycleState(
                name=UPCOMING_OUTAGE,
                interval_seconds=max(settings.upcoming_check_interval_minutes, 1) * 60,
                runner=dispatcher.run_upcoming_outage_cycle,
            ),
            POWER_RETURN: CycleState(
                name=POWER_RETURN,
                interval_seconds=max(settings.power_return_check_interval_minutes, 1) * 60,
                runner=dispatcher.run_power_return_cycle,
            ),
            RETENTION: CycleState(
                name=RETENTION,
                interval_seconds=24 * 60 * 60,
                runner=dispatcher.run_retention_sweep,
                daily_hour=settings.cleanup_hour,
            ),
        }

    async def start(self) -> None:
        if self._tasks:
            return
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self._run_loop(state), name=f"cycle-{state.name}")
            for state in self.cycles.values()
        ]

    async def stop(self) -> None:
        if not self._tasks:
            return

        self._stop_event.set()
        await asyncio.gather(*self._tasks)
        self._tasks = []

    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def run_once(self, name: str) -> CycleState:
        state = self.cycles[name]
        started = datetime.now(tz=timezone.utc)
        state.last_run_started_at = started
        status = "success"
        error: str | None = None
        timer_start = perf_counter()

        try:
            state.last_result = await state.runner()
        except Exception as exc:
            status = "error"
            error = str(exc)
            self._logger.exception("Unhandled error in %s cycle", name)
        finally:
            duration = perf_counter() - timer_start
            finished = datetime.now(tz=timezone.utc)
            state.last_run_finished_at = finished
            state.last_run_status = status
            state.last_error = error

            self.metrics.mark_cycle(name, status, duration)
            if state.daily_hour is None and duration > state.interval_seconds:
                self.metrics.mark_overrun(name)
                self._logger.warning(
                    "%s cycle took %.1fs, longer than its %.0fs interval",
                    name,
                    duration,
                    state.interval_seconds,
                )

            try:
                self.repository.record_cycle_run(
                    cycle=name,
                    started_at_utc=started,
                    finished_at_utc=finished,
                    result=CycleRunResult(status=status, error_message=error),
                )
            except Exception:
                self._logger.exception("Could not record %s cycle run", name)

        return state

    async def _run_loop(self, state: CycleState) -> None:
        if state.initial_delay_seconds is not None:
            if await self._wait(state.initial_delay_seconds):
                return
            await self.run_once(state.name)

        while not self._stop_event.is_set():
            if await self._wait(self._next_sleep_seconds(state)):
                break
            await self.run_once(state.name)

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; True when the worker is stopping."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass
        return self._stop_event.is_set()

    def _next_sleep_seconds(self, state: CycleState, now: datetime | None = None) -> float:
        current = now or datetime.now(tz=self._tz)

        if state.daily_hour is not None:
            target = current.replace(hour=state.daily_hour, minute=0, second=0, microsecond=0)
            if target <= current:
                target += timedelta(days=1)
            return max((target - current).total_seconds(), 1.0)

        interval_seconds = int(state.interval_seconds)
        if not self.settings.align_clock:
            return float(interval_seconds)

        timestamp = current.timestamp()
        next_tick = ((int(timestamp) // interval_seconds) + 1) * interval_seconds
        return max(next_tick - timestamp, 1.0)
