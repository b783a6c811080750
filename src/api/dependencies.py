"""FastAPI dependencies shared by the messaging routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from src.api.errors import NotReadyError
from src.config import Settings
from src.core.dispatcher import Dispatcher
from src.core.session import SessionTracker


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_tracker(request: Request) -> SessionTracker:
    """The process-wide SessionTracker created by the application factory."""
    return request.app.state.tracker


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


async def require_ready(
    tracker: SessionTracker = Depends(get_tracker),  # noqa: B008
    dispatcher: Dispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Dispatcher:
    """Reject with 503 unless the WhatsApp client is READY.

    Requests received before readiness are rejected, never queued.
    """
    if not tracker.is_ready:
        raise NotReadyError(tracker.readiness.value)
    return dispatcher


ReadyDispatcher = Annotated[Dispatcher, Depends(require_ready)]
