"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total seat booking attempts',
    ['status']  # success, conflict, duplicate, invalid, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Seat booking latency, lock wait included',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Seat bookings cancelled'
)

# Concurrency metrics
trip_lock_wait = Histogram(
    'trip_lock_wait_seconds',
    'Time spent waiting for the per-trip booking lock',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

db_retries = Counter(
    'db_retry_attempts_total',
    'Database retry attempts due to trip version conflicts'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)

# HTTP metrics
http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration',
    ['method', 'status'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, duplicate, invalid, error"""
    booking_attempts.labels(status=status).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
