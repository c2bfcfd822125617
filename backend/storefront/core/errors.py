"""API error types and the JSON error envelope.

Every failure leaves the service as ``{"success": false, "message": ...}``.
Route and service code raises the :class:`ApiError` subclasses below;
:func:`register_exception_handlers` renders them (and framework/database
errors) into that envelope.
"""

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config.config import settings
from storefront.core.logging import logger


class ApiError(HTTPException):
    """HTTP error carrying a client-facing message and optional details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message
        self.details = details


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT


class AccountLocked(ApiError):
    status_code = status.HTTP_423_LOCKED


class TooManyRequests(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers producing the ``{success, message}`` error envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = getattr(exc, "message", None) or str(exc.detail)
        details = getattr(exc, "details", None)
        if exc.status_code >= 500:
            logger.error(
                "{} {} -> {} {}", request.method, request.url.path, exc.status_code, message
            )
        else:
            logger.debug(
                "{} {} -> {} {}", request.method, request.url.path, exc.status_code, message
            )
        return error_response(
            exc.status_code, message, headers=exc.headers, details=details
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        logger.debug("Validation failed on {} {}: {}", request.method, request.url.path, errors)
        return error_response(
            status.HTTP_400_BAD_REQUEST, "Validation failed", errors=errors
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.warning(
            "Integrity error on {} {}: {}", request.method, request.url.path, exc.orig
        )
        return error_response(status.HTTP_409_CONFLICT, "Resource already exists")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        # NOTE: log details server-side and surface a generic error to clients
        logger.exception("Unhandled error on {} {}", request.method, request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            error=None if settings.is_production else str(exc),
        )
