"""Observability module for metrics."""

from src.observability.metrics import (
    CLIENT_READY,
    LIFECYCLE_EVENTS_TOTAL,
    MEDIA_FETCH_TOTAL,
    MESSAGES_TOTAL,
    record_lifecycle_event,
    record_media_fetch,
    record_operation,
    set_client_ready,
)

__all__ = [
    "MESSAGES_TOTAL",
    "MEDIA_FETCH_TOTAL",
    "LIFECYCLE_EVENTS_TOTAL",
    "CLIENT_READY",
    "record_operation",
    "record_media_fetch",
    "record_lifecycle_event",
    "set_client_ready",
]
