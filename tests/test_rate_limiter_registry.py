"""Unit tests for the named rate limiter registry."""

from unittest.mock import Mock

import pytest

from ratelimit_api.adapters.rate_limit import (
    AbstractRateLimiter,
    InMemorySlidingWindowRateLimiter,
    RateLimiterConfig,
    RateLimiterRegistry,
)
from ratelimit_api.core.errors import ConfigurationAppError


def test_create_and_get() -> None:
    registry = RateLimiterRegistry()
    limiter = Mock(spec=AbstractRateLimiter)

    created = registry.create("global", lambda: limiter)

    assert created is limiter
    assert registry.get("global") is limiter
    assert registry.get("missing") is None
    assert registry.names() == ["global"]


def test_duplicate_name_is_rejected() -> None:
    registry = RateLimiterRegistry()
    registry.create("strict", lambda: Mock(spec=AbstractRateLimiter))
    factory = Mock()

    with pytest.raises(ConfigurationAppError) as exc_info:
        registry.create("strict", factory)

    assert exc_info.value.code == "duplicate_rate_limiter"
    factory.assert_not_called()


def test_destroy_destroys_every_limiter() -> None:
    registry = RateLimiterRegistry()
    first = Mock(spec=AbstractRateLimiter)
    second = Mock(spec=AbstractRateLimiter)
    registry.create("a", lambda: first)
    registry.create("b", lambda: second)

    registry.destroy()
    registry.destroy()

    first.destroy.assert_called_once_with()
    second.destroy.assert_called_once_with()
    assert registry.names() == []


def test_limiters_are_independent() -> None:
    registry = RateLimiterRegistry()
    loose = registry.create(
        "loose",
        lambda: InMemorySlidingWindowRateLimiter(
            RateLimiterConfig(max_requests=5, window_ms=60_000), start_sweeper=False
        ),
    )
    tight = registry.create(
        "tight",
        lambda: InMemorySlidingWindowRateLimiter(
            RateLimiterConfig(max_requests=1, window_ms=60_000), start_sweeper=False
        ),
    )

    tight.check_limit("client")
    assert tight.check_limit("client").allowed is False
    assert loose.check_limit("client").remaining == 4

    registry.destroy()
