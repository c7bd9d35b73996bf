from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class Metrics:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry(auto_describe=True)
        self.cycle_runs_total = Counter(
            "outage_alerts_cycle_runs_total",
            "Total cycle runs by cycle and status",
            labelnames=("cycle", "status"),
            registry=self.registry,
        )
        self.cycle_duration_seconds = Histogram(
            "outage_alerts_cycle_duration_seconds",
            "Duration of cycle runs in seconds",
            labelnames=("cycle",),
            registry=self.registry,
        )
        self.cycle_overruns_total = Counter(
            "outage_alerts_cycle_overruns_total",
            "Cycle runs that took longer than their interval",
            labelnames=("cycle",),
            registry=self.registry,
        )
        self.notifications_total = Counter(
            "outage_alerts_notifications_total",
            "Outbound notifications by kind and result",
            labelnames=("kind", "result"),
            registry=self.registry,
        )
        self.queue_fetch_total = Counter(
            "outage_alerts_queue_fetch_total",
            "Per-queue refresh outcomes",
            labelnames=("queue", "outcome"),
            registry=self.registry,
        )

    def mark_cycle(self, cycle: str, status: str, duration_seconds: float) -> None:
        self.cycle_runs_total.labels(cycle=cycle, status=status).inc()
        self.cycle_duration_seconds.labels(cycle=cycle).observe(duration_seconds)

    def mark_overrun(self, cycle: str) -> None:
        self.cycle_overruns_total.labels(cycle=cycle).inc()

    def mark_notification(self, kind: str, sent: bool) -> None:
        self.notifications_total.labels(kind=kind, result="sent" if sent else "failed").inc()

    def mark_queue(self, queue: str, outcome: str) -> None:
        self.queue_fetch_total.labels(queue=queue, outcome=outcome).inc()

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
