"""WhatsApp client session lifecycle tracking.

One SessionTracker exists per process. It owns the messaging backend handle
and an authoritative readiness state driven only by the backend's lifecycle
notifications. There is no automatic reconnect: after a disconnect or a
fatal error the process has to be restarted.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from src.logging_config import get_logger
from src.observability.metrics import record_lifecycle_event
from src.services.messaging.protocol import LifecycleEvent, MessagingBackend, PairingChallenge

logger: Any = get_logger(__name__)


class Readiness(str, Enum):
    """Readiness of the messaging backend."""

    UNINITIALIZED = "uninitialized"
    AWAITING_PAIRING = "awaiting_pairing"
    READY = "ready"
    DISCONNECTED = "disconnected"
    ERRORED = "errored"


# The backend handle stays usable (if stale) after a disconnect
HANDLE_STATES = frozenset({Readiness.READY, Readiness.DISCONNECTED})

ReadinessListener = Callable[[Readiness, Readiness], None]
PairingRenderer = Callable[[PairingChallenge], None]


class PairingImageRenderer:
    """Show the pairing challenge to the operator.

    Logs the raw pairing code and writes the QR image to disk so it can be
    opened or scanned from a remote host.
    """

    def __init__(self, image_path: Path | None = None) -> None:
        self._image_path = image_path

    def __call__(self, challenge: PairingChallenge) -> None:
        logger.info("QR code received, scan it with the WhatsApp mobile app")
        logger.info(f"Pairing code: {challenge.code}")
        if self._image_path is not None and challenge.image_png:
            self._image_path.parent.mkdir(parents=True, exist_ok=True)
            self._image_path.write_bytes(challenge.image_png)
            logger.info(f"QR code image written to {self._image_path}")
        logger.info("Waiting for QR code scan...")


class SessionTracker:
    """Readiness state machine around a single messaging backend."""

    def __init__(
        self,
        backend: MessagingBackend,
        *,
        pairing_renderer: PairingRenderer | None = None,
    ) -> None:
        self._backend = backend
        self._readiness = Readiness.UNINITIALIZED
        self._listeners: list[ReadinessListener] = []
        self._render_pairing = pairing_renderer or PairingImageRenderer()
        backend.on_lifecycle_event(self.handle_event)

    @property
    def readiness(self) -> Readiness:
        return self._readiness

    @property
    def is_ready(self) -> bool:
        return self._readiness is Readiness.READY

    def handle(self) -> MessagingBackend | None:
        """The backend, when it has reached READY at least once and not errored."""
        if self._readiness in HANDLE_STATES:
            return self._backend
        return None

    def subscribe(self, listener: ReadinessListener) -> None:
        """Register ``listener(old, new)`` for readiness changes."""
        self._listeners.append(listener)

    def _transition(self, new: Readiness) -> None:
        old = self._readiness
        if old is new:
            return
        self._readiness = new
        logger.debug(f"Readiness {old.value} -> {new.value}")
        for listener in self._listeners:
            listener(old, new)

    def handle_event(self, event: LifecycleEvent, payload: Any = None) -> None:
        """Apply one lifecycle notification from the backend."""
        record_lifecycle_event(event.value)

        if event is LifecycleEvent.QR:
            self._transition(Readiness.AWAITING_PAIRING)
            self._render_pairing(payload)
        elif event is LifecycleEvent.AUTHENTICATED:
            logger.info("Authentication successful")
        elif event is LifecycleEvent.READY:
            logger.info("WhatsApp Web client is ready")
            self._transition(Readiness.READY)
        elif event is LifecycleEvent.DISCONNECTED:
            logger.warning(f"Client was logged out: {payload}")
            self._transition(Readiness.DISCONNECTED)
        elif event is LifecycleEvent.AUTH_FAILURE:
            logger.error(f"Authentication failed: {payload}")
            self._transition(Readiness.ERRORED)
        elif event is LifecycleEvent.ERROR:
            logger.error(f"WhatsApp client error: {payload}")
            self._transition(Readiness.ERRORED)
        elif event is LifecycleEvent.LOADING_SCREEN:
            percent, message = payload
            logger.info(f"Loading screen: {percent} {message}")
        elif event is LifecycleEvent.CHANGE_STATE:
            logger.info(f"State changed: {payload}")
        elif event is LifecycleEvent.REMOTE_SESSION_SAVED:
            logger.info("Remote session saved")

    async def start(self) -> None:
        """Initialize the backend. Failures leave the tracker ERRORED."""
        logger.info("Initializing WhatsApp client...")
        try:
            await self._backend.initialize()
        except Exception as e:
            logger.exception(f"Client initialization failed: {e}")
            self._transition(Readiness.ERRORED)
            return
        logger.info("Client initialization started successfully")

    async def close(self) -> None:
        """Destroy the backend and release the handle."""
        logger.info("Shutting down WhatsApp client...")
        try:
            await self._backend.destroy()
        finally:
            self._transition(Readiness.UNINITIALIZED)
