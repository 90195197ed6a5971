"""
Prometheus metrics module for slotkeeper.

Service timings come from the @measure_operation decorator; scheduling
specific counters (lock outcomes, conflicts, transitions) are recorded by
the services that own those decisions.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "slotkeeper_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "slotkeeper_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "slotkeeper_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

provider_lock_total = Counter(
    "slotkeeper_provider_lock_total",
    "Provider schedule lock outcomes",
    ["backend", "outcome"],  # backend: local | redis; outcome: acquired | timeout | error
    registry=REGISTRY,
)

provider_lock_wait_seconds = Histogram(
    "slotkeeper_provider_lock_wait_seconds",
    "Time spent waiting for the provider schedule lock",
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

scheduling_conflicts_total = Counter(
    "slotkeeper_scheduling_conflicts_total",
    "Booking requests rejected because the slot overlapped an active booking",
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "slotkeeper_booking_transitions_total",
    "Applied booking status transitions",
    ["action", "outcome"],  # outcome: applied | rejected
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_provider_lock(backend: str, outcome: str, waited: Optional[float] = None) -> None:
        """Record the outcome of a provider lock attempt."""
        provider_lock_total.labels(backend=backend, outcome=outcome).inc()
        if waited is not None:
            provider_lock_wait_seconds.observe(max(waited, 0.0))
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_scheduling_conflict() -> None:
        scheduling_conflicts_total.inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_transition(action: str, outcome: str) -> None:
        booking_transitions_total.labels(action=action, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > PrometheusMetrics._cache_ttl_seconds:
                payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._cache_payload = payload
                PrometheusMetrics._cache_ts = now
        return payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        """Invalidate cached metrics so next scrape refreshes."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
