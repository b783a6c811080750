"""Core gateway components.

This module provides the readiness-gated dispatch model:
- SessionTracker: Owns the WhatsApp client handle and its readiness state
- Dispatcher: Funnels normalized requests into the messaging backend
"""

from src.core.dispatcher import (
    DispatchResult,
    Dispatcher,
    ErrorKind,
    ForwardRequest,
    MediaReference,
    OutboundRequest,
    TextPayload,
)
from src.core.session import PairingImageRenderer, Readiness, SessionTracker

__all__ = [
    # Session management
    "SessionTracker",
    "Readiness",
    "PairingImageRenderer",
    # Dispatch
    "Dispatcher",
    "DispatchResult",
    "ErrorKind",
    "OutboundRequest",
    "ForwardRequest",
    "TextPayload",
    "MediaReference",
]
