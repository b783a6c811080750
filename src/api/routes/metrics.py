"""Prometheus scrape endpoint for gateway counters and client readiness."""

from __future__ import annotations

from fastapi import APIRouter, Response

from src.observability.metrics import get_content_type, get_metrics

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose send outcomes, media download strategies and readiness.

    Unauthenticated, like /health, so scrapers need no API key.
    """
    return Response(content=get_metrics(), media_type=get_content_type())
