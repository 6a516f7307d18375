"""Metrics collection for search indexing.

Provides a thin convenience wrapper around ``prometheus_client`` so the
indexer and the update processor record index lifecycle and bulk write
metrics consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected if needed)
- ``measure_time`` gives long-running operations a duration log line
"""

import time
from functools import wraps
from typing import Any, Callable, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for indexing.

    Parameters
    - service_name: Logical name of the process owning the collector
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.index_operations = Counter(
            'search_index_operations_total',
            'Index lifecycle operations performed against the backend',
            ['operation'],
            registry=self.registry
        )

        self.documents_written = Counter(
            'search_documents_written_total',
            'Document actions submitted through bulk writes',
            ['index'],
            registry=self.registry
        )

        self.bulk_requests = Counter(
            'search_bulk_requests_total',
            'Bulk write round trips',
            registry=self.registry
        )

        self.bulk_duration = Histogram(
            'search_bulk_duration_seconds',
            'Bulk write duration',
            registry=self.registry
        )

        self.populate_batches = Counter(
            'search_populate_batches_total',
            'Batches handed to the update pipeline during population',
            ['handler'],
            registry=self.registry
        )

    def record_index_operation(self, operation: str, count: int = 1) -> None:
        """Record ``count`` lifecycle operations (create, delete, swap, ...)."""
        self.index_operations.labels(operation=operation).inc(count)

    def record_bulk(self, documents_by_index: dict, duration: float) -> None:
        """Record one bulk round trip.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.bulk_requests.inc()
        self.bulk_duration.observe(duration)
        for index, count in documents_by_index.items():
            self.documents_written.labels(index=index).inc(count)

    def record_populate_batch(self, handler_key: str) -> None:
        """Record a batch handed over during population."""
        self.populate_batches.labels(handler=handler_key).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str = "search-indexer") -> MetricsCollector:
    """Get or create the process-wide metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector


def measure_time(operation: str, **labels: Any) -> Callable:
    """Decorator to log function execution time.

    Example
    >>> @measure_time("clean")
    ... def clean(handlers):
    ...     ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.info(
                    f"Operation {operation} completed",
                    operation=operation,
                    duration_ms=duration * 1000,
                    **labels
                )
                return result
            except Exception as e:
                duration = time.time() - start_time
                logger.error(
                    f"Operation {operation} failed",
                    operation=operation,
                    duration_ms=duration * 1000,
                    error=str(e),
                    **labels
                )
                raise
        return wrapper
    return decorator
