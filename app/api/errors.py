"""Centralized exception handlers: map service errors to HTTP responses.

Error response format:
    {"detail": "Client-safe message", "code": "MACHINE_READABLE_CODE", "errors": {...}}

"errors" is only present when the error carries a per-field map.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import ServiceError

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    message: str,
    code: str,
    errors: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"detail": message, "code": code}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _field_name(loc: tuple[Any, ...]) -> str:
    # Drop the leading "body"/"query"/"path" segment.
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers for ServiceError, request validation errors and unexpected exceptions."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Server fault on %s %s: %s (code=%s)",
                request.method,
                request.url.path,
                exc.message,
                exc.code,
                exc_info=exc.__cause__ or exc,
            )
        else:
            logger.warning(
                "Request rejected on %s %s: %s (code=%s, details=%s)",
                request.method,
                request.url.path,
                exc.message,
                exc.code,
                exc.details,
            )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _error_response(exc.status_code, exc.message, exc.code, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors: dict[str, str] = {}
        for err in exc.errors():
            errors.setdefault(_field_name(tuple(err.get("loc", ()))), err.get("msg", "Invalid value"))
        logger.warning(
            "Invalid request body on %s %s: fields=%s",
            request.method,
            request.url.path,
            sorted(errors),
        )
        return _error_response(
            status.HTTP_400_BAD_REQUEST, "Invalid request.", "VALIDATION_ERROR", errors
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error while processing your request.",
            "INTERNAL_ERROR",
        )
