"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
rate limiter lifecycle) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ratelimit_api.adapters.rate_limit import (
    InMemorySlidingWindowRateLimiter,
    RateLimiterConfig,
    RateLimiterRegistry,
)
from ratelimit_api.api.routes import api_router, health_router, root_router
from ratelimit_api.core.config import RateLimitSettings, settings
from ratelimit_api.core.exception_handlers import setup_exception_handlers
from ratelimit_api.core.logging import configure_logging
from ratelimit_api.core.middleware import request_id_middleware
from ratelimit_api.core.rate_limit import GLOBAL_LIMITER, STRICT_LIMITER

logger = logging.getLogger(__name__)


def build_rate_limiters(cfg: RateLimitSettings) -> RateLimiterRegistry:
    """Create the global and strict limiters described by settings."""

    registry = RateLimiterRegistry()
    registry.create(
        GLOBAL_LIMITER,
        lambda: InMemorySlidingWindowRateLimiter(
            RateLimiterConfig(
                max_requests=cfg.max_requests,
                window_ms=cfg.window_ms,
                message=cfg.message,
                sweep_interval_ms=cfg.sweep_interval_ms,
            )
        ),
    )
    registry.create(
        STRICT_LIMITER,
        lambda: InMemorySlidingWindowRateLimiter(
            RateLimiterConfig(
                max_requests=cfg.strict_max_requests,
                window_ms=cfg.strict_window_ms,
                message=cfg.strict_message,
                sweep_interval_ms=cfg.sweep_interval_ms,
            )
        ),
    )
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the limiters for the lifetime of the app.

    Limiters (and their sweep threads) are created on startup and destroyed on
    shutdown, so repeated app instances in tests never leak threads.
    """

    registry = build_rate_limiters(settings.rate_limit)
    app.state.rate_limiters = registry
    logger.info("app.startup", extra={"rate_limiters": registry.names()})
    try:
        yield
    finally:
        registry.destroy()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.name,
        description=(
            "HTTP API protected by a per-client sliding-window rate limiter. "
            "Responses under /api carry X-RateLimit-Limit, X-RateLimit-Remaining "
            "and X-RateLimit-Reset headers; rejected requests receive 429 with "
            "Retry-After."
        ),
        version=settings.app.version,
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(root_router)
    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")

    return app
