from __future__ import annotations

import logging

from fastapi import FastAPI

from outage_alerts.api.routes import router as api_router
from outage_alerts.config import Settings, load_settings
from outage_alerts.notifiers.registry import build_notifier
from outage_alerts.observability.metrics import Metrics
from outage_alerts.providers.registry import build_provider
from outage_alerts.scheduler.dispatcher import Dispatcher
from outage_alerts.scheduler.worker import CycleWorker
from outage_alerts.storage.repository import Repository


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(settings: Settings | None = None) -> FastAPI:
    app_settings = settings or load_settings()
    configure_logging(app_settings.log_level)

    repository = Repository(app_settings.database_path)
    repository.init_db()

    metrics = Metrics()
    dispatcher = Dispatcher(
        settings=app_settings,
        provider=build_provider(app_settings),
        notifier=build_notifier(app_settings),
        repository=repository,
        metrics=metrics,
    )
    worker = CycleWorker(
        settings=app_settings,
        dispatcher=dispatcher,
        repository=repository,
        metrics=metrics,
    )

    app = FastAPI(title="outage-alerts", version="0.1.0")
    app.state.settings = app_settings
    app.state.repository = repository
    app.state.metrics = metrics
    app.state.dispatcher = dispatcher
    app.state.worker = worker

    @app.on_event("startup")
    async def _on_startup() -> None:
        if app_settings.enable_scheduler:
            await worker.start()

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        await worker.stop()

    app.include_router(api_router)
    return app
