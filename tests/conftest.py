"""Shared pytest fixtures for gateway tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest

from src.config import Settings
from src.services.media import FetchStrategy, MediaFetcher, RawDownloader
from src.services.messaging.exceptions import ChatNotFoundError
from src.services.messaging.protocol import (
    Chat,
    LifecycleCallback,
    LifecycleEvent,
    MediaHints,
    MediaPayload,
    SendOptions,
    SentMessage,
    StoredMessage,
)

TEST_API_KEY = "test-api-key"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def build_settings(**overrides) -> Settings:
    """Create a Settings object with safe test defaults."""
    base = {
        "api_key": TEST_API_KEY,
        "environment": "development",
        "log_level": "DEBUG",
        "default_typing_duration_ms": 10,
        "max_upload_bytes": 1024,
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[call-arg]


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a factory to build Settings with overrides."""
    return build_settings


@pytest.fixture
def settings(settings_factory: Callable[..., Settings], tmp_path) -> Settings:
    """Default Settings fixture."""
    return settings_factory(
        session_dir=tmp_path / "sessions",
        qr_image_path=tmp_path / "sessions" / "qr.png",
    )


# =============================================================================
# Messaging Backend Fake
# =============================================================================


class FakeBackend:
    """In-memory MessagingBackend that records every call."""

    def __init__(self) -> None:
        self.callbacks: list[LifecycleCallback] = []
        self.calls: list[tuple[Any, ...]] = []
        self.ready = False
        self.initialized = False
        self.destroyed = False

        self.messages: dict[str, StoredMessage] = {}
        self.fetched_media = MediaPayload(mimetype="image/png", data=PNG_BYTES, filename="a.png")

        self.send_error: Exception | None = None
        self.fetch_error: Exception | None = None
        self.typing_error: Exception | None = None
        self.clear_error: Exception | None = None
        self.forward_error: Exception | None = None
        self.unknown_chats: set[str] = set()
        self._sent = 0

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def emit(self, event: LifecycleEvent, payload: Any = None) -> None:
        if event is LifecycleEvent.READY:
            self.ready = True
        elif event in (LifecycleEvent.DISCONNECTED, LifecycleEvent.ERROR):
            self.ready = False
        for callback in self.callbacks:
            callback(event, payload)

    def is_ready(self) -> bool:
        return self.ready

    def on_lifecycle_event(self, callback: LifecycleCallback) -> None:
        self.callbacks.append(callback)

    async def initialize(self) -> None:
        self.initialized = True

    async def destroy(self) -> None:
        self.destroyed = True

    async def get_chat_by_id(self, chat_id: str) -> Chat:
        self.calls.append(("get_chat_by_id", chat_id))
        if chat_id in self.unknown_chats:
            raise ChatNotFoundError(chat_id)
        return Chat(id=chat_id)

    async def send_state_typing(self, chat: Chat) -> None:
        self.calls.append(("send_state_typing", chat.id))
        if self.typing_error:
            raise self.typing_error

    async def clear_state(self, chat: Chat) -> None:
        self.calls.append(("clear_state", chat.id))
        if self.clear_error:
            raise self.clear_error

    async def send_message(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: SendOptions | None = None,
    ) -> SentMessage:
        self.calls.append(("send_message", chat_id, content, options))
        if self.send_error:
            raise self.send_error
        self._sent += 1
        kind = "chat" if isinstance(content, str) else content.mimetype.split("/")[0]
        return SentMessage(
            id=f"true_{chat_id}_3EB0{self._sent:04d}",
            timestamp=1_700_000_000 + self._sent,
            type=kind,
        )

    async def get_message_by_id(self, message_id: str) -> StoredMessage | None:
        self.calls.append(("get_message_by_id", message_id))
        return self.messages.get(message_id)

    async def forward(self, message: StoredMessage, chat_id: str) -> None:
        self.calls.append(("forward", message.id, chat_id))
        if self.forward_error:
            raise self.forward_error

    async def fetch_media_from_url(self, url: str, hints: MediaHints) -> MediaPayload:
        self.calls.append(("fetch_media_from_url", url, hints))
        if self.fetch_error:
            raise self.fetch_error
        return self.fetched_media


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


# =============================================================================
# Raw Media Download Fake
# =============================================================================


class RawMediaServer:
    """httpx.MockTransport handler standing in for remote media hosts."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.content = b"%PDF-1.4 fake"
        self.headers = {"content-type": "application/pdf"}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


@pytest.fixture
def raw_media_server() -> RawMediaServer:
    return RawMediaServer()


@pytest.fixture
def media_fetcher(fake_backend: FakeBackend, raw_media_server: RawMediaServer) -> MediaFetcher:
    """Default strategy order with the network replaced by fakes."""
    return MediaFetcher(
        [
            FetchStrategy("browser", fake_backend.fetch_media_from_url),
            FetchStrategy("raw", RawDownloader(transport=httpx.MockTransport(raw_media_server))),
        ]
    )


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": TEST_API_KEY}


@pytest.fixture
def test_client(settings, fake_backend, media_fetcher) -> Generator:
    """TestClient whose WhatsApp client never became ready."""
    from fastapi.testclient import TestClient

    from src.main import create_app

    app = create_app(settings=settings, backend=fake_backend, media_fetcher=media_fetcher)

    with TestClient(app) as client:
        yield client


@pytest.fixture
def ready_client(test_client, fake_backend) -> Generator:
    """TestClient after the WhatsApp client signalled READY."""
    fake_backend.emit(LifecycleEvent.AUTHENTICATED)
    fake_backend.emit(LifecycleEvent.READY)
    yield test_client
