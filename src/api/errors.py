"""API error taxonomy and its JSON rendering.

Every failure answers ``{"error": ..., "message": ...}``. Backend failures
keep the backend's message verbatim so operators can diagnose them.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.core.dispatcher import DispatchResult, ErrorKind
from src.logging_config import get_logger

logger: Any = get_logger(__name__)


class ApiError(Exception):
    """Base exception for errors returned to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, error: str | None = None) -> None:
        super().__init__(message or error or self.error)
        self.message = message
        if error is not None:
            self.error = error

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class AuthError(ApiError):
    """Missing or wrong API key."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"

    def __init__(self) -> None:
        super().__init__("Valid API key required")


class NotReadyError(ApiError):
    """WhatsApp client has not reached READY."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "WhatsApp client not ready"

    def __init__(self, readiness: str) -> None:
        super().__init__(f"Client state is {readiness}")
        self.readiness = readiness


class ValidationError(ApiError):
    """Required field missing or malformed request body."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"

    def __init__(self, message: str) -> None:
        super().__init__(message, error=message)


class NotFoundError(ApiError):
    """Looked-up entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "Not Found"


class BackendError(ApiError):
    """Anything the messaging backend raised while handling a request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, action: str, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__, error=f"Failed to {action}")
        self.cause = cause


def raise_for_result(result: DispatchResult, action: str) -> None:
    """Turn a failed DispatchResult into the matching ApiError."""
    if result.success:
        return
    if result.error_kind is ErrorKind.NOT_FOUND:
        raise NotFoundError(str(result.error), error="Message not found")
    raise BackendError(action, result.error or RuntimeError("unknown backend failure"))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
