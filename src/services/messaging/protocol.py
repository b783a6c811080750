"""Messaging backend protocol and data types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Protocol
from urllib.parse import unquote, urlsplit

DEFAULT_MIMETYPE = "application/octet-stream"


class LifecycleEvent(str, Enum):
    """Lifecycle notifications emitted by a messaging backend."""

    QR = "qr"  # payload: PairingChallenge
    AUTHENTICATED = "authenticated"
    AUTH_FAILURE = "auth_failure"  # payload: str
    READY = "ready"
    DISCONNECTED = "disconnected"  # payload: reason str
    ERROR = "error"  # payload: Exception
    LOADING_SCREEN = "loading_screen"  # payload: (percent, message)
    CHANGE_STATE = "change_state"  # payload: str
    REMOTE_SESSION_SAVED = "remote_session_saved"


LifecycleCallback = Callable[[LifecycleEvent, Any], None]


@dataclass(frozen=True, slots=True)
class PairingChallenge:
    """QR pairing challenge shown to the operator.

    ``code`` is the raw string encoded in the QR code, ``image_png`` a
    rendering of it when the backend can provide one.
    """

    code: str
    image_png: bytes | None = None


@dataclass(frozen=True, slots=True)
class Chat:
    """A chat as resolved by the backend."""

    id: str
    name: str | None = None
    is_group: bool = False


@dataclass(frozen=True, slots=True)
class SentMessage:
    """Handle of a message the backend just sent."""

    id: str
    timestamp: int
    type: str = "chat"


@dataclass(frozen=True, slots=True)
class StoredMessage:
    """A message looked up by its serialized id."""

    id: str
    type: str
    timestamp: int | None = None
    chat_id: str | None = None
    has_media: bool = False


@dataclass(frozen=True, slots=True)
class MediaHints:
    """Caller-supplied hints for remote media."""

    mimetype: str | None = None
    filename: str | None = None


@dataclass(frozen=True, slots=True)
class MediaPayload:
    """Normalized media content, whatever its source (URL or upload)."""

    mimetype: str
    data: bytes
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


def filename_from_url(url: str) -> str | None:
    """Last path segment of a URL, or None when the path ends with a slash."""
    path = unquote(urlsplit(url).path)
    if path.endswith("/"):
        return None
    return PurePosixPath(path).name or None


def strip_mime_parameters(content_type: str | None) -> str | None:
    """'image/png; charset=binary' -> 'image/png'."""
    if not content_type:
        return None
    mimetype = content_type.split(";", 1)[0].strip().lower()
    return mimetype or None


@dataclass(frozen=True, slots=True)
class SendOptions:
    """Options for a single send."""

    caption: str | None = None
    quoted_message_id: str | None = None


class MessagingBackend(Protocol):
    """Protocol for messaging backend implementations.

    The backend owns the connection to the messaging network, session
    persistence and pairing. Consumers only see this capability surface.
    """

    def is_ready(self) -> bool:
        """Check if the backend finished pairing and can send."""
        ...

    def on_lifecycle_event(self, callback: LifecycleCallback) -> None:
        """Register a callback for lifecycle notifications."""
        ...

    async def initialize(self) -> None:
        """Start the client. Returns once startup has been kicked off."""
        ...

    async def destroy(self) -> None:
        """Release the client and every resource it holds."""
        ...

    async def get_chat_by_id(self, chat_id: str) -> Chat:
        """Resolve a chat, raising ChatNotFoundError when unknown."""
        ...

    async def send_state_typing(self, chat: Chat) -> None:
        """Show the "composing" presence in a chat."""
        ...

    async def clear_state(self, chat: Chat) -> None:
        """Reset the presence in a chat to idle."""
        ...

    async def send_message(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: SendOptions | None = None,
    ) -> SentMessage:
        """Send text or media to a chat."""
        ...

    async def get_message_by_id(self, message_id: str) -> StoredMessage | None:
        """Look up a message, returning None when it does not exist."""
        ...

    async def forward(self, message: StoredMessage, chat_id: str) -> None:
        """Forward an existing message. No new message handle is returned."""
        ...

    async def fetch_media_from_url(self, url: str, hints: MediaHints) -> MediaPayload:
        """Download remote media, inferring the mime-type unless hinted."""
        ...
