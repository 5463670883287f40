from __future__ import annotations

from fastapi import APIRouter

from ratelimit_api.core.config import settings

router = APIRouter(tags=["Info"])


def _describe_limit(max_requests: int, window_ms: int) -> str:
    if window_ms % 60_000 == 0:
        minutes = window_ms // 60_000
        unit = "minute" if minutes == 1 else f"{minutes} minutes"
    else:
        unit = f"{window_ms} ms"
    return f"{max_requests} requests per {unit}"


@router.get("/")
def welcome() -> dict:
    """Describe the service, its endpoints, and the active limits."""

    cfg = settings.rate_limit
    return {
        "message": f"Welcome to {settings.app.name}",
        "version": settings.app.version,
        "endpoints": {
            "api": "/api",
            "health": "/api/health",
            "status": "/api/rate-limit/status",
            "documentation": "/docs",
        },
        "rateLimit": {
            "enabled": cfg.enabled,
            "global": _describe_limit(cfg.max_requests, cfg.window_ms),
            "strict": _describe_limit(cfg.strict_max_requests, cfg.strict_window_ms)
            + " (for sensitive endpoints)",
        },
    }
