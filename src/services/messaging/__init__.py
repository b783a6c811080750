"""Messaging backend (WhatsApp Web through Playwright).

Provides:
- MessagingBackend: capability protocol consumed by the gateway
- WhatsAppWebBackend: Playwright-driven implementation
"""

from src.services.messaging.exceptions import (
    BackendNotInitializedError,
    ChatNotFoundError,
    MediaFetchError,
    MessagingBackendError,
)
from src.services.messaging.protocol import (
    DEFAULT_MIMETYPE,
    Chat,
    LifecycleCallback,
    LifecycleEvent,
    MediaHints,
    MediaPayload,
    MessagingBackend,
    PairingChallenge,
    SendOptions,
    SentMessage,
    StoredMessage,
)
from src.services.messaging.whatsapp_web import WhatsAppWebBackend

__all__ = [
    # Backends
    "MessagingBackend",
    "WhatsAppWebBackend",
    # Data types
    "Chat",
    "LifecycleCallback",
    "LifecycleEvent",
    "MediaHints",
    "MediaPayload",
    "PairingChallenge",
    "SendOptions",
    "SentMessage",
    "StoredMessage",
    "DEFAULT_MIMETYPE",
    # Exceptions
    "MessagingBackendError",
    "BackendNotInitializedError",
    "ChatNotFoundError",
    "MediaFetchError",
]
