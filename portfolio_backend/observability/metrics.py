from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    Info,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from portfolio_backend import __version__

UNMATCHED_ROUTE = "unmatched"

_LABELS = ("method", "route", "status")


class HttpMetrics:
    """Process-local Prometheus registry for HTTP traffic (resets on restart).

    Each instance owns its own registry so tests can start from zero without
    unregistering collectors from the global default registry.
    """

    def __init__(self, app_name: str = "portfolio-backend", version: str = __version__) -> None:
        self.registry = CollectorRegistry()

        ProcessCollector(registry=self.registry)
        PlatformCollector(registry=self.registry)
        GCCollector(registry=self.registry)

        self.info = Info(
            "portfolio_backend",
            "Static service information",
            registry=self.registry,
        )
        self.info.info({"app": app_name, "version": version})

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            _LABELS,
            registry=self.registry,
        )
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            _LABELS,
            registry=self.registry,
        )
        self.active_connections = Gauge(
            "http_active_connections",
            "Number of active HTTP connections",
            registry=self.registry,
        )

    def on_request_start(self) -> None:
        self.active_connections.inc()

    def on_request_finish(self, *, method: str, route: str, status: int, elapsed_s: float) -> None:
        labels = (method, route or UNMATCHED_ROUTE, str(status))
        try:
            self.request_duration.labels(*labels).observe(max(elapsed_s, 0.0))
            self.requests_total.labels(*labels).inc()
        finally:
            self.active_connections.dec()

    def render(self) -> tuple[str, bytes]:
        return CONTENT_TYPE_LATEST, generate_latest(self.registry)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        return self.registry.get_sample_value(name, labels or {})


_METRICS: HttpMetrics | None = None


def get_metrics() -> HttpMetrics:
    global _METRICS
    if _METRICS is None:
        _METRICS = HttpMetrics()
    return _METRICS


def reset_metrics() -> None:
    """Drop the current registry and start from zero (used by tests)."""

    global _METRICS
    _METRICS = None
