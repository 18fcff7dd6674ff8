"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, replayed, conflict, invalid, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Booking cancellation attempts',
    ['result']  # cancelled, not_found, already_cancelled
)

# Hold metrics
seat_hold_attempts = Counter(
    'seat_hold_attempts_total',
    'Seat hold (block) attempts',
    ['result']  # granted, conflict, invalid
)

seat_releases = Counter(
    'seat_releases_total',
    'Seats returned to available',
    ['reason']  # user, admin, sweep, cancellation
)

# HTTP
request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'status'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, replayed, conflict, invalid, error"""
    booking_attempts.labels(status=status).inc()


def record_hold_attempt(result: str):
    seat_hold_attempts.labels(result=result).inc()


def record_seat_release(reason: str, count: int = 1):
    if count > 0:
        seat_releases.labels(reason=reason).inc(count)


def record_cancellation(result: str):
    booking_cancellations.labels(result=result).inc()
