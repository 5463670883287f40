"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapters into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only, and the
  dependency only sees the AbstractRateLimiter contract.
- Swap-friendly: limiters are looked up by name in the registry stored on
  ``app.state``, so storage backends can be replaced at startup.
- Advisory headers on every outcome; a blocked request raises
  RateLimitExceededAppError, which the exception handlers turn into a 429.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable, Literal

from fastapi import Request, Response

from ratelimit_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitResult,
    RateLimitStatus,
)
from ratelimit_api.adapters.rate_limit.registry import RateLimiterRegistry
from ratelimit_api.core.config import settings
from ratelimit_api.core.errors import ConfigurationAppError, RateLimitExceededAppError

logger = logging.getLogger(__name__)

KeyFunc = Callable[[Request], str]
LimitReachedHook = Callable[[Request, RateLimitResult], None]

UNKNOWN_CLIENT = "unknown"

# Registry names of the limiters created at startup
GLOBAL_LIMITER = "global"
STRICT_LIMITER = "strict"


def get_client_identifier(request: Request, *, trust_forwarded_for: bool = True) -> str:
    """Derive the rate limit key for a request.

    Uses the first entry of X-Forwarded-For when present (and trusted), then
    the connection address, then a shared ``"unknown"`` bucket.

    Examples:
        X-Forwarded-For: "203.0.113.7, 10.0.0.1" -> "203.0.113.7"
    """

    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def hash_client_id(client_id: str) -> str:
    """Hash the client key for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


def build_rate_limit_headers(
    quota: RateLimitResult | RateLimitStatus,
    *,
    reset_format: Literal["iso", "epoch"] = "iso",
) -> dict[str, str]:
    """Build X-RateLimit-* (and Retry-After when blocked) headers.

    Args:
        quota: Engine result or status snapshot.
        reset_format: "iso" for an ISO-8601 UTC timestamp, "epoch" for seconds.

    Returns:
        Header mapping ready to attach to a response.
    """

    if reset_format == "epoch":
        reset_value = str(quota.reset_at)
    else:
        reset_value = quota.reset_at_datetime.isoformat().replace("+00:00", "Z")

    headers = {
        "X-RateLimit-Limit": str(quota.limit),
        "X-RateLimit-Remaining": str(quota.remaining),
        "X-RateLimit-Reset": reset_value,
    }

    retry_after = getattr(quota, "retry_after_seconds", None)
    if retry_after:
        headers["Retry-After"] = str(retry_after)
    return headers


def get_registry(request: Request) -> RateLimiterRegistry:
    registry = getattr(request.app.state, "rate_limiters", None)
    if registry is None:
        raise ConfigurationAppError(
            code="rate_limiters_not_initialized",
            message="Rate limiter registry is not available on the application",
        )
    return registry


def get_limiter(request: Request, name: str) -> AbstractRateLimiter:
    """Resolve a named limiter from the application registry.

    Raises:
        ConfigurationAppError: If the registry or the limiter is missing.
    """

    limiter = get_registry(request).get(name)
    if limiter is None:
        raise ConfigurationAppError(
            code="rate_limiter_not_found",
            message=f"Rate limiter '{name}' is not registered",
        )
    return limiter


def create_rate_limit_dependency(
    limiter_name: str,
    *,
    key_func: KeyFunc | None = None,
    message: str | None = None,
    include_headers: bool | None = None,
    status_code: int | None = None,
    on_limit_reached: LimitReachedHook | None = None,
) -> Callable[[Request, Response], Awaitable[None]]:
    """Create a FastAPI dependency enforcing the named limiter.

    Settings are read per request, so tests can flip ``enabled`` or the header
    options without rebuilding the app. Explicit arguments take precedence
    over settings; the message falls back to the limiter's own config.

    Usage:
        @router.post("/sensitive", dependencies=[Depends(strict_limit)])

    Args:
        limiter_name: Registry name of the limiter to consume.
        key_func: Custom client key extractor; defaults to get_client_identifier.
        message: Rejection message override.
        include_headers: Whether to emit advisory headers.
        status_code: Rejection status override.
        on_limit_reached: Called with the request and the blocked result just
            before the rejection is raised.

    Returns:
        Async dependency callable.
    """

    async def enforce_rate_limit(request: Request, response: Response) -> None:
        cfg = settings.rate_limit
        if not cfg.enabled:
            return

        limiter = get_limiter(request, limiter_name)
        if key_func is not None:
            client_id = key_func(request)
        else:
            client_id = get_client_identifier(
                request, trust_forwarded_for=cfg.trust_forwarded_for
            )

        result = limiter.check_limit(client_id)

        emit_headers = cfg.include_headers if include_headers is None else include_headers
        headers = (
            build_rate_limit_headers(result, reset_format=cfg.reset_format)
            if emit_headers
            else {}
        )
        log_fields = {
            "limiter": limiter_name,
            "client_hash": hash_client_id(client_id),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": limiter.config.window_ms,
        }

        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_fields)
            response.headers.update(headers)
            return

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": retry_after},
        )
        if on_limit_reached is not None:
            on_limit_reached(request, result)
        raise RateLimitExceededAppError(
            code="rate_limit_exceeded",
            message=message or limiter.config.message,
            details={
                "limit": result.limit,
                "remaining": result.remaining,
                "retry_after": retry_after,
                "reset_at": result.reset_at_datetime.isoformat(),
            },
            status_code=status_code or cfg.status_code,
            headers=headers,
        )

    enforce_rate_limit.__name__ = f"enforce_{limiter_name}_rate_limit"
    return enforce_rate_limit
