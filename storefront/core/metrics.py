from __future__ import annotations

from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from storefront.core.config import Settings


class _NoOpMetric:
    def labels(self, *args: Any, **kwargs: Any) -> "_NoOpMetric":
        return self

    def observe(self, *_: Any, **__: Any) -> None:
        return None

    def inc(self, *_: Any, **__: Any) -> None:
        return None


def normalize_path(request) -> str:
    """Route template for the request, including any router prefix.

    Depending on the framework version the matched route reports either the
    full template (`/api/items/{id}`) or only the part below its router
    (`/items/{id}`). The missing prefix is recovered from the concrete URL,
    which has the same number of segments as the template below it.
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    actual = request.url.path
    if not template:
        return actual
    parts = actual.rsplit("/", template.count("/"))
    prefix = parts[0] if len(parts) > template.count("/") else ""
    return f"{prefix}{template}"


class Metrics:
    """Prometheus collectors owned by one application instance."""

    def __init__(self, settings: Settings):
        self.enabled = settings.METRICS_ENABLED
        self.registry = CollectorRegistry()
        ns = settings.METRICS_NAMESPACE

        if not self.enabled:
            noop = _NoOpMetric()
            self.request_latency = self.request_count = self.request_errors = noop
            self.login_attempts = self.orders_placed = self.cart_lines_added = noop
            return

        self.request_latency = Histogram(
            f"{ns}_http_request_duration_seconds",
            "HTTP request latency in seconds.",
            ["method", "path", "status_code"],
            buckets=settings.METRICS_LATENCY_BUCKETS,
            registry=self.registry,
        )
        self.request_count = Counter(
            f"{ns}_http_requests_total",
            "Total HTTP requests processed.",
            ["method", "path", "status_code"],
            registry=self.registry,
        )
        self.request_errors = Counter(
            f"{ns}_http_errors_total",
            "Total HTTP requests resulting in 4xx/5xx.",
            ["method", "path", "status_code"],
            registry=self.registry,
        )
        self.login_attempts = Counter(
            f"{ns}_auth_login_attempts_total",
            "Authentication attempts partitioned by outcome.",
            ["outcome"],
            registry=self.registry,
        )
        self.orders_placed = Counter(
            f"{ns}_orders_placed_total",
            "Orders created from active carts.",
            registry=self.registry,
        )
        self.cart_lines_added = Counter(
            f"{ns}_cart_lines_added_total",
            "Add-to-cart calls partitioned by identity kind.",
            ["identity"],
            registry=self.registry,
        )

    def record_request(self, request, status_code: int, elapsed: float) -> None:
        labels = (request.method, normalize_path(request), str(status_code))
        self.request_count.labels(*labels).inc()
        self.request_latency.labels(*labels).observe(elapsed)
        if status_code >= 400:
            self.request_errors.labels(*labels).inc()

    def record_login_attempt(self, outcome: str) -> None:
        self.login_attempts.labels(outcome=outcome).inc()

    def record_order_placed(self) -> None:
        self.orders_placed.inc()

    def record_cart_line_added(self, identity_kind: str) -> None:
        self.cart_lines_added.labels(identity=identity_kind).inc()

    def export(self) -> tuple[bytes, str]:
        if not self.enabled:
            return b"", "text/plain; charset=utf-8"
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
