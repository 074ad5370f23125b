"""Mapping of two-factor errors to HTTP responses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse

from ...exceptions import (
    NotFoundError,
    ResendCooldownError,
    TwoFactorError,
    TwoFactorServiceError,
    UnauthorizedError,
    ValidationError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)


def status_code_for(error: TwoFactorError) -> int:
    match error:
        case UnauthorizedError():
            return 401
        case NotFoundError():
            return 404
        case ResendCooldownError():
            return 429
        case TwoFactorServiceError():
            return 500
        case _:
            return 400


def error_response(error: TwoFactorError) -> JSONResponse:
    """Render ``error`` as ``{"error", "code"}`` using its public message."""
    body: dict[str, Any] = {"error": error.public_message, "code": error.code}
    headers: dict[str, str] = {}
    if isinstance(error, ValidationError):
        body["details"] = error.errors
    if isinstance(error, ResendCooldownError):
        body["retryAfter"] = error.retry_after
        headers["Retry-After"] = str(error.retry_after)
    return JSONResponse(body, status_code=status_code_for(error), headers=headers)


async def two_factor_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    assert isinstance(exc, TwoFactorError)
    logger.debug("%s %s -> %s", request.method, request.url.path, exc.code)
    return error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TwoFactorError, two_factor_exception_handler)


__all__: list[str] = [
    "status_code_for",
    "error_response",
    "two_factor_exception_handler",
    "register_exception_handlers",
]
