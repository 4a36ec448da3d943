"""
Prometheus metrics collection.

In-memory counters for inbound requests and sheet logging outcomes.
"""

from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for SheetLog.

    Each collector owns its registry so several apps (tests) can coexist
    in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # Service info
        self.service_info = Info(
            "sheetlog_service",
            "SheetLog service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "sheetlog",
        })

        # Request metrics
        self.requests_total = Counter(
            "sheetlog_requests_total",
            "Total inbound requests answered with the greeting",
            ["method"],
            registry=self.registry,
        )

        # Sheet logging metrics
        self.log_attempts_total = Counter(
            "sheetlog_log_attempts_total",
            "Total sheet logging attempts by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.log_failures_total = Counter(
            "sheetlog_log_failures_total",
            "Total sheet logging failures by stage and error type",
            ["stage", "error_type"],
            registry=self.registry,
        )

        self.log_duration = Histogram(
            "sheetlog_log_duration_seconds",
            "Sheet logging duration in seconds (sign + exchange + append)",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        # Background work
        self.background_tasks_inflight = Gauge(
            "sheetlog_background_tasks_inflight",
            "Background logging tasks not yet settled",
            registry=self.registry,
        )

    def record_request(self, method: str) -> None:
        """Record an inbound request."""
        self.requests_total.labels(method=method).inc()

    def record_log_result(
        self,
        success: bool,
        duration_seconds: float,
        stage: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        """Record the outcome of one logging attempt."""
        self.log_attempts_total.labels(outcome="success" if success else "failure").inc()
        self.log_duration.observe(duration_seconds)

        if not success:
            self.log_failures_total.labels(
                stage=stage or "unknown",
                error_type=error_type or "unknown",
            ).inc()

    def update_inflight(self, count: int) -> None:
        """Update the in-flight background task gauge."""
        self.background_tasks_inflight.set(count)

    def render(self) -> bytes:
        """Prometheus text exposition for this collector's registry."""
        return generate_latest(self.registry)
