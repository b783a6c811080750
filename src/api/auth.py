"""API key authentication.

Callers pass the shared secret in the ``X-API-Key`` header or the
``api_key`` query parameter. Runs before every other check.
"""

import hmac
from typing import Annotated

from fastapi import Depends, Header, Query

from src.api.dependencies import get_app_settings
from src.api.errors import AuthError
from src.config import Settings


def verify_api_key(provided: str | None, expected: str) -> bool:
    """Exact, constant-time comparison of the caller's key."""
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
    x_api_key: Annotated[str | None, Header()] = None,
    api_key: Annotated[str | None, Query()] = None,
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> None:
    """Reject the request with 401 unless a valid API key was supplied.

    A non-empty header wins over the query parameter.
    """
    provided = x_api_key or api_key
    if not verify_api_key(provided, settings.api_key.get_secret_value()):
        raise AuthError()


RequireApiKey = Depends(require_api_key)
