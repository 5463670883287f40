"""Example API routes protected by the global and strict rate limiters."""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response

from ratelimit_api.core.config import settings
from ratelimit_api.core.errors import ValidationAppError
from ratelimit_api.core.rate_limit import (
    GLOBAL_LIMITER,
    STRICT_LIMITER,
    build_rate_limit_headers,
    create_rate_limit_dependency,
    get_client_identifier,
    get_limiter,
)
from ratelimit_api.schemas.rate_limit import (
    ApiHealthResponse,
    EchoResponse,
    RateLimitStatusResponse,
)

_STARTED_AT = time.monotonic()

global_limit = create_rate_limit_dependency(GLOBAL_LIMITER)
strict_limit = create_rate_limit_dependency(STRICT_LIMITER)

router = APIRouter(tags=["API"])


@router.get("", dependencies=[Depends(global_limit)])
def hello() -> dict:
    return {"message": f"Hello from {settings.app.name}"}


@router.get("/health", response_model=ApiHealthResponse, dependencies=[Depends(global_limit)])
def api_health() -> ApiHealthResponse:
    """Health check that counts toward the caller's global quota."""

    return ApiHealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - _STARTED_AT, 3),
    )


@router.post("/echo", response_model=EchoResponse, dependencies=[Depends(global_limit)])
async def echo(request: Request) -> EchoResponse:
    """Return the JSON object sent in the request body.

    Raises:
        ValidationAppError: If the body is not a JSON object.
    """

    raw = await request.body()
    if not raw:
        return EchoResponse(received={})

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON",
        ) from exc

    if not isinstance(payload, dict):
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be a JSON object",
            details={"context": {"received_type": type(payload).__name__}},
        )
    return EchoResponse(received=payload)


@router.post("/sensitive", dependencies=[Depends(global_limit), Depends(strict_limit)])
def sensitive() -> dict:
    return {"message": "This is a sensitive endpoint with strict rate limiting"}


@router.get("/error")
def error_example() -> dict:
    """Always fails; exercises the error handlers."""

    raise ValidationAppError(code="test_error", message="This is a test error")


@router.get("/rate-limit/status", response_model=RateLimitStatusResponse)
def rate_limit_status(
    request: Request,
    response: Response,
    limiter: Literal["global", "strict"] = Query(GLOBAL_LIMITER),
) -> RateLimitStatusResponse:
    """Report the caller's quota without consuming a request."""

    engine = get_limiter(request, limiter)
    client_id = get_client_identifier(
        request, trust_forwarded_for=settings.rate_limit.trust_forwarded_for
    )
    status = engine.get_status(client_id)

    if settings.rate_limit.include_headers:
        response.headers.update(
            build_rate_limit_headers(status, reset_format=settings.rate_limit.reset_format)
        )

    return RateLimitStatusResponse(
        limiter=limiter,
        request_count=status.request_count,
        limit=status.limit,
        remaining=status.remaining,
        window_ms=engine.config.window_ms,
        reset_at=status.reset_at_datetime,
    )
