"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500)
- Starlette HTTPException (unknown route, bad method) → same error shape
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ratelimit_api.core.errors import (
    AppError,
    ConfigurationAppError,
    RateLimitExceededAppError,
)
from ratelimit_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


def _request_id(request: Request) -> str | None:
    # The middleware clears the contextvar before ServerErrorMiddleware runs.
    return get_request_id() or getattr(request.state, "request_id", None)


def _error_body(exc: AppError) -> dict:
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details
    return {"error": error_content}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - ValidationAppError (and other client faults) → 400 Bad Request
    - ConfigurationAppError → 500 Internal Server Error (server fault)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = 500 if isinstance(exc, ConfigurationAppError) else 400

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    return JSONResponse(status_code=status_code, content=_error_body(exc))


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceededAppError
) -> JSONResponse:
    """Turn a rejected request into 429 (or the configured status).

    The body mirrors the other error responses and adds a top-level
    ``retry_after`` (seconds) so clients without header access can back off.
    """
    content = _error_body(exc)
    retry_after = (exc.details or {}).get("retry_after")
    if retry_after is not None:
        content["retry_after"] = retry_after

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers or None,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render routing and framework HTTP errors in the common error shape.

    Unknown routes get ``not_found`` with the method and path in the message.
    """
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    if exc.status_code == 404:
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "request_id": _request_id(request),
            }
        },
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": _request_id(request),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    rate limit handler wins over the generic AppError one.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceededAppError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
