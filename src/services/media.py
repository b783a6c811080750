"""Remote media acquisition.

Media URLs are fetched with an ordered list of strategies. The first one to
succeed wins; if all fail, one MediaFetchError carries every failure reason.

Default order:
- browser: the messaging backend's own download (mime-type must be known)
- raw: plain httpx download, falling back to a generic binary mime-type
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from src.logging_config import get_logger
from src.observability.metrics import record_media_fetch
from src.services.messaging.exceptions import MediaFetchError
from src.services.messaging.protocol import (
    DEFAULT_MIMETYPE,
    MediaHints,
    MediaPayload,
    filename_from_url,
    strip_mime_parameters,
)

if TYPE_CHECKING:
    from src.config import Settings
    from src.services.messaging.protocol import MessagingBackend

logger: Any = get_logger(__name__)

CONTENT_DISPOSITION_FILENAME_RE = re.compile(
    r"filename\*?=(?:UTF-8'')?\"?(?P<name>[^\";]+)\"?", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class FetchStrategy:
    """A named way of turning a URL into a MediaPayload."""

    name: str
    fetch: Callable[[str, MediaHints], Awaitable[MediaPayload]]


class MediaFetcher:
    """Try each strategy in order, aggregating errors only if all fail."""

    def __init__(self, strategies: Sequence[FetchStrategy]) -> None:
        if not strategies:
            raise ValueError("MediaFetcher needs at least one strategy")
        self._strategies = list(strategies)

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    async def fetch(self, url: str, hints: MediaHints | None = None) -> MediaPayload:
        hints = hints or MediaHints()
        failures: list[tuple[str, Exception]] = []

        for strategy in self._strategies:
            try:
                payload = await strategy.fetch(url, hints)
            except Exception as e:
                record_media_fetch(strategy.name, success=False)
                logger.warning(f"Media download via {strategy.name} failed: {e}")
                failures.append((strategy.name, e))
                continue

            record_media_fetch(strategy.name, success=True)
            if failures:
                logger.info(f"Media downloaded via fallback strategy '{strategy.name}'")
            logger.debug(
                f"Downloaded {payload.size} bytes ({payload.mimetype}) via {strategy.name}"
            )
            return payload

        reasons = "; ".join(f"{name} download failed: {error}" for name, error in failures)
        raise MediaFetchError(f"Failed to download media from {url}. {reasons}")


def filename_from_content_disposition(header: str | None) -> str | None:
    if not header:
        return None
    match = CONTENT_DISPOSITION_FILENAME_RE.search(header)
    return match.group("name").strip() if match else None


class RawDownloader:
    """Download raw bytes and build the payload from headers and hints."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def __call__(self, url: str, hints: MediaHints) -> MediaPayload:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()

        mimetype = (
            hints.mimetype
            or strip_mime_parameters(response.headers.get("content-type"))
            or DEFAULT_MIMETYPE
        )
        filename = (
            hints.filename
            or filename_from_content_disposition(response.headers.get("content-disposition"))
            or filename_from_url(url)
        )
        return MediaPayload(mimetype=mimetype, data=response.content, filename=filename)


def build_media_fetcher(backend: MessagingBackend, settings: Settings) -> MediaFetcher:
    """Default strategy list: backend download first, raw download second."""
    return MediaFetcher(
        [
            FetchStrategy("browser", backend.fetch_media_from_url),
            FetchStrategy(
                "raw",
                RawDownloader(timeout_seconds=settings.media_download_timeout_seconds),
            ),
        ]
    )
