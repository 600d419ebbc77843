"""
Error Taxonomy and Response Envelope

Every failure that reaches the HTTP boundary is rendered as:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

Services raise the typed errors below; the handlers registered by
`register_exception_handlers` map them to status codes. Unexpected
exceptions become INTERNAL_ERROR and their text is only exposed in
development.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all expected application errors."""

    default_code = "APP_ERROR"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.status_code = status_code or self.default_status
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code}: {self.message})"


class ValidationError(AppError):
    """Missing or malformed input."""

    default_code = "VALIDATION_ERROR"
    default_status = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    default_code = "UNAUTHORIZED"
    default_status = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AppError):
    """Caller is not allowed to perform the operation on the record."""

    default_code = "FORBIDDEN"
    default_status = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Referenced record does not exist or is soft-deleted."""

    default_code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Record exists but is not in the state the operation requires."""

    default_code = "CONFLICT"
    default_status = status.HTTP_409_CONFLICT


class RateLimitExceededError(AppError):
    default_code = "RATE_LIMIT_EXCEEDED"
    default_status = status.HTTP_429_TOO_MANY_REQUESTS


class InternalError(AppError):
    default_code = "INTERNAL_ERROR"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Build the error envelope."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        details = exc.details if settings.is_development else None
    else:
        logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        details = exc.details

    headers = None
    if isinstance(exc, RateLimitExceededError) and isinstance(exc.details, dict):
        retry_after = exc.details.get("retry_after_seconds")
        if retry_after is not None:
            headers = {"Retry-After": str(retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.error_code, exc.message, details)),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(
            error_body("VALIDATION_ERROR", "Invalid request data.", details)
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Routers and dependencies raise HTTPException with {"error", "message"} details
    if isinstance(exc.detail, dict):
        code = exc.detail.get("error") or exc.detail.get("code") or "HTTP_ERROR"
        message = exc.detail.get("message", "")
    else:
        code = "HTTP_ERROR"
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    details = str(exc) if settings.is_development else None
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_ERROR", "An unexpected error occurred.", details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "AppError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitExceededError",
    "InternalError",
    "error_body",
    "register_exception_handlers",
]
