"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking admission
booking_attempts = Counter(
    'eventhub_booking_attempts_total',
    'Booking admission attempts',
    ['outcome']  # created, duplicate, full, contention, missing
)

booking_latency = Histogram(
    'eventhub_booking_latency_seconds',
    'Booking admission latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

admission_retries = Counter(
    'eventhub_admission_retries_total',
    'Admission retries caused by a concurrent booking on the same event'
)

# Role-gated mutations
admin_actions = Counter(
    'eventhub_admin_actions_total',
    'Administrative mutations',
    ['action']  # promote, demote, delete_event
)

# Event list cache
cache_operations = Counter(
    'eventhub_cache_operations_total',
    'Event list cache lookups',
    ['result']  # hit, miss, error
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    """Outcome: created, duplicate, full, contention, missing"""
    booking_attempts.labels(outcome=outcome).inc()


def record_admin_action(action: str):
    admin_actions.labels(action=action).inc()


def record_cache_lookup(result: str):
    cache_operations.labels(result=result).inc()
