from __future__ import annotations

from threading import Lock

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)


UNMATCHED_ROUTE = "unmatched"


class MetricsRegistry:
    """Process-local Prometheus registry (resets on restart).

    Each instance owns its own `CollectorRegistry`, so tests can build a fresh
    one per application without colliding with the global default registry.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, *, default_metrics: bool = True) -> None:
        self._lock = Lock()
        self.registry = CollectorRegistry(auto_describe=True)

        if default_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            labelnames=("method", "route", "status_code"),
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            labelnames=("method", "route", "status_code"),
            registry=self.registry,
        )

    def record_request(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        labels = {"method": method, "route": route or UNMATCHED_ROUTE, "status_code": str(status_code)}
        with self._lock:
            self.http_request_duration.labels(**labels).observe(max(0.0, float(duration_seconds)))
            self.http_requests_total.labels(**labels).inc()

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")

    def get_sample(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        return self.registry.get_sample_value(name, labels or {})
