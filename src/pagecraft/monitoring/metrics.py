"""
Metrics Collection
Prometheus metrics for canvas editing, data-source fetches and persistence
"""

import time
from contextlib import contextmanager
from typing import Callable

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, REGISTRY, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for the page builder.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry

        # Canvas metrics
        self.canvas_operations_total = Counter(
            "pagecraft_canvas_operations_total",
            "Total number of canvas mutation operations",
            ["operation", "status"],
            registry=registry,
        )
        self.canvas_nodes = Gauge(
            "pagecraft_canvas_nodes",
            "Number of nodes in the current canvas document",
            registry=registry,
        )

        # Data source metrics
        self.datasource_fetches_total = Counter(
            "pagecraft_datasource_fetches_total",
            "Total number of data-source fetches",
            ["status"],
            registry=registry,
        )
        self.datasource_duration = Histogram(
            "pagecraft_datasource_duration_seconds",
            "Data-source fetch duration in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        # Persistence metrics
        self.document_saves_total = Counter(
            "pagecraft_document_saves_total",
            "Total number of canvas document saves",
            ["mode"],
            registry=registry,
        )

        # Error metrics
        self.errors_total = Counter(
            "pagecraft_errors_total",
            "Total number of errors",
            ["error_type", "component"],
            registry=registry,
        )

    def record_operation(self, operation: str, status: str) -> None:
        """Record a canvas operation (status: applied, rejected, noop)."""
        self.canvas_operations_total.labels(operation=operation, status=status).inc()

    def set_node_count(self, count: int) -> None:
        """Set the current document size."""
        self.canvas_nodes.set(count)

    def record_fetch(self, status: str, duration: float) -> None:
        """Record a data-source fetch (status: success, error, breaker_open)."""
        self.datasource_fetches_total.labels(status=status).inc()
        self.datasource_duration.observe(duration)

    def record_save(self, mode: str) -> None:
        """Record a document save (mode: full, summary, unchanged)."""
        self.document_saves_total.labels(mode=mode).inc()

    def record_error(self, error_type: str, component: str) -> None:
        """Record an error."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    @contextmanager
    def measure_duration(self, callback: Callable[[float], None]):
        """Context manager to measure operation duration."""
        start = time.perf_counter()
        try:
            yield
        finally:
            callback(time.perf_counter() - start)

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        return generate_latest(self.registry)


# Global metrics collector instance
metrics_collector = MetricsCollector()
