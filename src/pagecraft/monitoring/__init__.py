"""
Performance Monitoring
Prometheus-based metrics collection for the page builder
"""

from .metrics import MetricsCollector, metrics_collector

__all__ = [
    "MetricsCollector",
    "metrics_collector",
]
