"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking create attempts',
    ['status']  # success, conflict, invalid, not_found, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking create latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

booking_transitions = Counter(
    'booking_transitions_total',
    'Booking state changes outside of create',
    ['action']  # cancel, status, reschedule, delete
)

# Slot lock retries (deadlock, busy database, serialization failure)
slot_lock_retries = Counter(
    'slot_lock_retries_total',
    'Slot transaction retries caused by store-level conflicts'
)

# Notification metrics
notifications = Counter(
    'notifications_total',
    'Outbound notifications',
    ['kind', 'result']  # confirmation/reminder, sent/failed
)

reminder_sweeps = Counter(
    'reminder_sweep_bookings_total',
    'Bookings processed by the reminder sweep',
    ['result']  # sent, failed, skipped
)

# HTTP
http_request_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    ['method', 'status_code'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, invalid, not_found, error"""
    booking_attempts.labels(status=status).inc()


def record_transition(action: str):
    booking_transitions.labels(action=action).inc()


def record_notification(kind: str, sent: bool):
    result = "sent" if sent else "failed"
    notifications.labels(kind=kind, result=result).inc()


def record_reminder(result: str):
    reminder_sweeps.labels(result=result).inc()
