"""Outbound request dispatch.

Every send endpoint is normalized into one OutboundRequest and goes through
Dispatcher.send, which runs the optional typing bracket, resolves media
references and calls the messaging backend exactly once. Failures are
returned as a DispatchResult carrying the backend's original exception;
nothing is retried.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from src.logging_config import get_logger, mask_chat_id
from src.observability.metrics import record_operation
from src.services.messaging.protocol import MediaHints, MediaPayload, SendOptions
from src.services.presence import PresenceOptions, clear_composing, set_composing, typing_bracket

if TYPE_CHECKING:
    from src.services.media import MediaFetcher
    from src.services.messaging.protocol import MessagingBackend

logger: Any = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TextPayload:
    body: str


@dataclass(frozen=True, slots=True)
class MediaReference:
    """Remote media that still has to be downloaded."""

    url: str
    hints: MediaHints


@dataclass(frozen=True, slots=True)
class OutboundRequest:
    """A validated, normalized description of one send action."""

    target_chat: str
    payload: TextPayload | MediaPayload | MediaReference
    caption: str | None = None
    reply_to: str | None = None
    presence: PresenceOptions | None = None

    @property
    def operation(self) -> str:
        return "send_message" if isinstance(self.payload, TextPayload) else "send_media"


@dataclass(frozen=True, slots=True)
class ForwardRequest:
    source_message_id: str
    target_chat: str


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    BACKEND = "backend"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one dispatched operation."""

    success: bool
    message_id: str | None = None
    timestamp: int | None = None
    message_type: str | None = None
    error_kind: ErrorKind | None = None
    error: Exception | None = None

    @classmethod
    def ok(
        cls,
        message_id: str | None = None,
        timestamp: int | None = None,
        message_type: str | None = None,
    ) -> DispatchResult:
        return cls(True, message_id=message_id, timestamp=timestamp, message_type=message_type)

    @classmethod
    def failed(cls, kind: ErrorKind, error: Exception) -> DispatchResult:
        return cls(False, error_kind=kind, error=error)


class Dispatcher:
    """Funnels normalized requests into the messaging backend."""

    def __init__(self, backend: MessagingBackend, media_fetcher: MediaFetcher) -> None:
        self._backend = backend
        self._media_fetcher = media_fetcher

    async def _resolve_payload(
        self, payload: TextPayload | MediaPayload | MediaReference
    ) -> str | MediaPayload:
        if isinstance(payload, TextPayload):
            return payload.body
        if isinstance(payload, MediaReference):
            logger.info(f"Downloading media from URL: {payload.url}")
            return await self._media_fetcher.fetch(payload.url, payload.hints)
        return payload

    async def send(self, request: OutboundRequest) -> DispatchResult:
        """Send text or media, bracketed by typing when requested."""
        operation = request.operation
        chat = mask_chat_id(request.target_chat)
        options = SendOptions(caption=request.caption, quoted_message_id=request.reply_to)

        try:
            async with typing_bracket(self._backend, request.target_chat, request.presence):
                content = await self._resolve_payload(request.payload)
                sent = await self._backend.send_message(request.target_chat, content, options)
        except Exception as e:
            record_operation(operation, success=False)
            logger.error(f"{operation} to {chat} failed: {e}")
            return DispatchResult.failed(ErrorKind.BACKEND, e)

        record_operation(operation, success=True)
        logger.info(f"{operation} to {chat} succeeded: {sent.id}")
        return DispatchResult.ok(sent.id, sent.timestamp, sent.type)

    async def forward(self, request: ForwardRequest) -> DispatchResult:
        """Forward an existing message.

        The backend returns no handle for forwarded messages, so the result
        echoes the original id with a fresh timestamp.
        """
        try:
            message = await self._backend.get_message_by_id(request.source_message_id)
            if message is None:
                record_operation("forward_message", success=False)
                return DispatchResult.failed(
                    ErrorKind.NOT_FOUND,
                    LookupError(f"Message {request.source_message_id} not found"),
                )
            await self._backend.forward(message, request.target_chat)
        except Exception as e:
            record_operation("forward_message", success=False)
            logger.error(f"Forward to {mask_chat_id(request.target_chat)} failed: {e}")
            return DispatchResult.failed(ErrorKind.BACKEND, e)

        record_operation("forward_message", success=True)
        logger.info(f"Forwarded {message.type} message to {mask_chat_id(request.target_chat)}")
        return DispatchResult.ok(message.id, int(time.time()), message.type)

    async def start_typing(self, chat_id: str) -> DispatchResult:
        return await self._presence("start_typing", chat_id, set_composing)

    async def stop_typing(self, chat_id: str) -> DispatchResult:
        return await self._presence("stop_typing", chat_id, clear_composing)

    async def _presence(self, operation: str, chat_id: str, signal: Any) -> DispatchResult:
        try:
            chat = await self._backend.get_chat_by_id(chat_id)
            await signal(self._backend, chat)
        except Exception as e:
            record_operation(operation, success=False)
            logger.error(f"{operation} in {mask_chat_id(chat_id)} failed: {e}")
            return DispatchResult.failed(ErrorKind.BACKEND, e)

        record_operation(operation, success=True)
        return DispatchResult.ok()
