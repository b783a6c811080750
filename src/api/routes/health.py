"""Health check endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with client lifecycle state (GET /health/detailed)

Neither requires an API key.
"""

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_app_settings, get_tracker
from src.config import Settings
from src.core.session import SessionTracker

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    whatsapp: Literal["connected", "disconnected"]
    timestamp: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    tracker: SessionTracker = Depends(get_tracker),  # noqa: B008
) -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        "ok" while the HTTP server runs, plus whether WhatsApp is usable.
    """
    return HealthResponse(
        status="ok",
        whatsapp="connected" if tracker.is_ready else "disconnected",
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    tracker: SessionTracker = Depends(get_tracker),  # noqa: B008
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> DetailedHealthResponse:
    """Detailed health check including the client lifecycle state.

    Checks:
    - WhatsApp client readiness state
    - Whether a (possibly stale) client handle is attached
    - Browser mode and proxy configuration

    Returns:
        Status with individual component checks.
    """
    checks = {
        "whatsapp": tracker.readiness.value,
        "session": "attached" if tracker.handle() is not None else "detached",
        "browser": "headless" if settings.headless else "visible",
        "proxy": "configured" if settings.proxy_url else "none",
    }
    status = "healthy" if tracker.is_ready else "degraded"

    return DetailedHealthResponse(status=status, checks=checks, version="0.1.0")
