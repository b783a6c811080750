"""Typing-presence signalling around a send."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from src.logging_config import get_logger, mask_chat_id

if TYPE_CHECKING:
    from src.services.messaging.protocol import Chat, MessagingBackend

logger: Any = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PresenceOptions:
    """Caller's request to show "composing" before a send."""

    show: bool
    duration_ms: int

    @property
    def active(self) -> bool:
        """Non-positive durations skip the indicator entirely."""
        return self.show and self.duration_ms > 0


async def set_composing(backend: MessagingBackend, chat: Chat) -> None:
    await backend.send_state_typing(chat)
    logger.debug(f"Typing started in {mask_chat_id(chat.id)}")


async def clear_composing(backend: MessagingBackend, chat: Chat) -> None:
    await backend.clear_state(chat)
    logger.debug(f"Typing cleared in {mask_chat_id(chat.id)}")


@asynccontextmanager
async def typing_bracket(
    backend: MessagingBackend,
    chat_id: str,
    presence: PresenceOptions | None,
) -> AsyncIterator[None]:
    """Show "composing" for ``presence.duration_ms`` then run the body.

    The indicator is cleared on every exit path, but only if it was set.
    Errors from either signal propagate like any send error. When the body
    fails and clearing fails too, the body's error wins.
    """
    if presence is None or not presence.active:
        yield
        return

    chat = await backend.get_chat_by_id(chat_id)
    await set_composing(backend, chat)

    try:
        await asyncio.sleep(presence.duration_ms / 1000)
        yield
    except BaseException:
        try:
            await clear_composing(backend, chat)
        except Exception as clear_error:
            logger.warning(f"Failed to clear typing in {mask_chat_id(chat_id)}: {clear_error}")
        raise

    await clear_composing(backend, chat)
