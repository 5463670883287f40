"""Rate limiting adapters.

This package provides a small abstraction layer so the service can run with
the in-memory sliding-window engine and later migrate to Redis or another
shared store without changing the API layer.
"""

from ratelimit_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimiterConfig,
    RateLimitResult,
    RateLimitStatus,
)
from ratelimit_api.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from ratelimit_api.adapters.rate_limit.registry import RateLimiterRegistry

__all__ = [
    "AbstractRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "RateLimiterConfig",
    "RateLimiterRegistry",
    "RateLimitResult",
    "RateLimitStatus",
]
