"""Global exception handlers for consistent error responses.

Every error leaves the API in one envelope::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

- AppError subclasses map to 400, 401, 404, 410, 500 or 502
- RequestValidationError becomes 400 ``validation_error``
- Anything else becomes a generic 500 with nothing internal exposed
"""

import logging
from typing import Any, Mapping

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from arqsite.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    ExpiredAppError,
    ExternalServiceAppError,
    LLMAppError,
    NotFoundAppError,
)
from arqsite.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 401),
    (NotFoundAppError, 404),
    (ExpiredAppError, 410),
    (ExternalServiceAppError, 502),
    (ConfigurationAppError, 500),
    (LLMAppError, 500),
)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 when unlisted)."""
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 400


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Build the common error envelope, stamped with the current request id."""
    error: dict[str, Any] = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        error["details"] = dict(details)
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error.

    Configuration errors are logged at CRITICAL so they stand apart from
    ordinary request failures. Details reach the client only for 4xx errors;
    server-side failures keep them in the logs.
    """
    status_code = status_code_for(exc)

    if isinstance(exc, ConfigurationAppError):
        log_level = logging.CRITICAL
    elif status_code >= 500:
        log_level = logging.ERROR
    else:
        log_level = logging.WARNING

    logger.log(
        log_level,
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    return error_response(
        status_code,
        exc.code,
        exc.message,
        details=exc.details if status_code < 500 else None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return malformed bodies and parameters as 400 with the offending fields."""
    fields = [
        ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        for error in exc.errors()
    ]
    logger.warning("request_validation_failed", extra={"request_path": request.url.path, "fields": fields})
    return error_response(400, "validation_error", "Invalid request body", details={"fields": fields})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net: log the failure, answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return error_response(500, "internal_server_error", "Internal server error")


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
