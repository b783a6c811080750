"""FastAPI application entry point.

WhatsApp Web Gateway - REST facade over a single WhatsApp Web session.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any

import pydantic
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.errors import register_error_handlers
from src.api.routes import health, messages, metrics, presence
from src.config import Settings, get_settings
from src.core.dispatcher import Dispatcher
from src.core.session import PairingImageRenderer, Readiness, SessionTracker
from src.logging_config import get_logger, setup_logging
from src.observability.metrics import set_client_ready
from src.services.media import MediaFetcher, build_media_fetcher
from src.services.messaging import MessagingBackend, WhatsAppWebBackend

logger: Any = get_logger(__name__)


def publish_readiness(old: Readiness, new: Readiness) -> None:
    """Mirror readiness changes into the client_ready gauge."""
    set_client_ready(new is Readiness.READY)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup:
    - Initialize logging
    - Start the WhatsApp client in the background, so the HTTP listener is
      up (and answering 503) while the browser boots and pairs

    Shutdown:
    - Destroy the WhatsApp client (closes the browser)
    """
    settings: Settings = app.state.settings
    tracker: SessionTracker = app.state.tracker

    # Startup
    setup_logging(
        level=settings.log_level,
        enable_file=settings.is_production,
    )
    logger.info(f"Running in {settings.environment} mode")
    logger.info(
        "Browser visibility: "
        + ("VISIBLE (headless: false)" if not settings.headless else "HIDDEN (headless: true)")
    )
    start_task = asyncio.create_task(tracker.start())

    yield

    # Shutdown
    if not start_task.done():
        start_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await start_task
    await tracker.close()


def create_app(
    settings: Settings | None = None,
    backend: MessagingBackend | None = None,
    media_fetcher: MediaFetcher | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Building Settings fails when API_KEY is missing, which aborts startup.
    """
    settings = settings or get_settings()
    backend = backend or WhatsAppWebBackend(settings)
    media_fetcher = media_fetcher or build_media_fetcher(backend, settings)

    app = FastAPI(
        title="WhatsApp Web Gateway",
        description="REST API for sending WhatsApp messages through WhatsApp Web",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    tracker = SessionTracker(
        backend,
        pairing_renderer=PairingImageRenderer(settings.qr_image_path),
    )
    set_client_ready(tracker.is_ready)
    tracker.subscribe(publish_readiness)

    app.state.settings = settings
    app.state.tracker = tracker
    app.state.dispatcher = Dispatcher(backend, media_fetcher)

    # CORS middleware (open, callers authenticate with the API key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # Message routes, served at both / and /api
    app.include_router(messages.router, tags=["Messages"])
    app.include_router(messages.router, prefix="/api", tags=["Messages"])

    # Typing indicator routes
    app.include_router(presence.router, tags=["Presence"])

    # Metrics endpoint for Prometheus scraping
    app.include_router(metrics.router, tags=["Observability"])

    return app


def run() -> None:
    """Console entry point: validate configuration and serve with uvicorn."""
    try:
        settings = get_settings()
    except pydantic.ValidationError as e:
        setup_logging(enable_file=False)
        logger.error(f"Invalid configuration, refusing to start: {e}")
        raise SystemExit(1) from e

    logger.info(f"API server running on http://{settings.host}:{settings.port}")
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
