"""Structured error types and handlers for API responses."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def build_error_payload(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "Internal"

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message
        self.details = details
        self.headers = headers

    @property
    def payload(self) -> Dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)


class ValidationAppError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ValidationError"


class InvalidCredentialsError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "InvalidCredentials"


class InvalidTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "InvalidToken"


class ExpiredTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "ExpiredToken"


class PrincipalNotFoundError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "PrincipalNotFound"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NotFound"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "Conflict"


class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RateLimited"


_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    headers = dict(exc.headers or {})
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers.update(_BEARER_CHALLENGE)
    return JSONResponse(status_code=exc.status_code, content=exc.payload, headers=headers or None)


async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies/queries as 400 ValidationError."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=build_error_payload("ValidationError", "Validation failed", details),
    )


def build_unhandled_error_handler(debug: bool):
    """Catch-all 500 handler; exception detail only leaks in debug mode."""

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        details = {"exception": repr(exc)} if debug else None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=build_error_payload("Internal", "Internal server error", details),
        )

    return unhandled_error_handler


def register_error_handlers(app: FastAPI, debug: bool = False) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, build_unhandled_error_handler(debug))
