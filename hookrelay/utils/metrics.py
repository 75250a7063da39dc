from __future__ import annotations

from prometheus_client import Counter, Histogram

# Queue metrics
WEBHOOK_QUEUED_COUNT = Counter(
    "hookrelay_webhook_queued_total",
    "Total number of payloads queued for webhook delivery",
)

WEBHOOK_ENQUEUE_FAILURES = Counter(
    "hookrelay_webhook_enqueue_failures_total",
    "Total number of payloads that could not be queued",
)

# Delivery metrics
WEBHOOK_DELIVERY_COUNT = Counter(
    "hookrelay_webhook_deliveries_total",
    "Total number of webhook delivery attempts",
    ["status_class"],
)

WEBHOOK_DELIVERY_LATENCY = Histogram(
    "hookrelay_webhook_delivery_duration_seconds",
    "Webhook HTTP delivery latency in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

WEBHOOK_BATCH_SIZE = Histogram(
    "hookrelay_webhook_batch_size",
    "Number of payloads sent in a single webhook delivery",
    buckets=[0, 1, 5, 10, 50, 100, 500, 1000],
)


def status_class(status_code: int) -> str:
    """Bucket a status code into "2xx"/"4xx"/... or "transport_error" for 0."""
    if status_code <= 0:
        return "transport_error"
    return f"{status_code // 100}xx"
