"""Prometheus metrics for the WhatsApp gateway.

Provides metrics for monitoring send outcomes, media downloads and
client readiness.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

MESSAGES_TOTAL = Counter(
    "whatsapp_gateway_messages_total",
    "Outbound operations handled by the gateway",
    ["operation", "outcome"],
)

MEDIA_FETCH_TOTAL = Counter(
    "whatsapp_gateway_media_fetch_total",
    "Remote media download attempts by strategy",
    ["strategy", "outcome"],
)

LIFECYCLE_EVENTS_TOTAL = Counter(
    "whatsapp_gateway_lifecycle_events_total",
    "Lifecycle notifications received from the WhatsApp client",
    ["event"],
)

# =============================================================================
# Gauges
# =============================================================================

CLIENT_READY = Gauge(
    "whatsapp_gateway_client_ready",
    "1 when the WhatsApp client is ready to send, 0 otherwise",
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_operation(operation: str, success: bool) -> None:
    """Record the outcome of one dispatched operation.

    Args:
        operation: send_message, send_media, forward_message, start_typing, stop_typing
        success: Whether the backend accepted the operation
    """
    MESSAGES_TOTAL.labels(operation=operation, outcome="success" if success else "error").inc()


def record_media_fetch(strategy: str, success: bool) -> None:
    """Record one media download attempt."""
    MEDIA_FETCH_TOTAL.labels(strategy=strategy, outcome="success" if success else "error").inc()


def record_lifecycle_event(event: str) -> None:
    LIFECYCLE_EVENTS_TOTAL.labels(event=event).inc()


def set_client_ready(ready: bool) -> None:
    CLIENT_READY.set(1 if ready else 0)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics.

    Returns:
        Content-Type header value for Prometheus metrics.
    """
    return CONTENT_TYPE_LATEST
