"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-memory engine can be swapped for a shared store (e.g., Redis)
without touching routes or dependencies.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from ratelimit_api.core.errors import ConfigurationAppError

DEFAULT_LIMIT_MESSAGE = "Too many requests, please try again later."
DEFAULT_SWEEP_INTERVAL_MS = 5 * 60 * 1000


@dataclass(frozen=True)
class RateLimiterConfig:
    """Immutable limiter configuration.

    Attributes:
        max_requests: Maximum admitted requests per window (>= 1).
        window_ms: Sliding window length in milliseconds (>= 1).
        message: Advisory text for the transport layer; the engine never uses it.
        sweep_interval_ms: Period of the background stale-record sweep.

    Raises:
        ConfigurationAppError: If any numeric value is not a positive integer.
    """

    max_requests: int
    window_ms: int
    message: str = DEFAULT_LIMIT_MESSAGE
    sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS

    def __post_init__(self) -> None:
        for field_name in ("max_requests", "window_ms", "sweep_interval_ms"):
            value = getattr(self, field_name)
            # bool is an int subclass; True would silently mean 1
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationAppError(
                    code="invalid_rate_limit_config",
                    message=f"{field_name} must be an integer >= 1",
                    details={"context": {"field": field_name, "value": repr(value)}},
                )


def _ms_to_epoch_seconds(value_ms: int) -> int:
    return int(math.ceil(value_ms / 1000))


def _ms_to_datetime(value_ms: int) -> datetime:
    return datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class RateLimitResult:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Requests still available in the window after this one.
        reset_at_ms: Epoch milliseconds when the oldest counted request expires.
        retry_after_seconds: Suggested wait in seconds when blocked, else None.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int | None = None

    @property
    def reset_at(self) -> int:
        """UNIX epoch seconds (rounded up) of ``reset_at_ms``."""
        return _ms_to_epoch_seconds(self.reset_at_ms)

    @property
    def reset_at_datetime(self) -> datetime:
        return _ms_to_datetime(self.reset_at_ms)


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only quota snapshot for a client."""

    request_count: int
    limit: int
    remaining: int
    reset_at_ms: int

    @property
    def reset_at(self) -> int:
        return _ms_to_epoch_seconds(self.reset_at_ms)

    @property
    def reset_at_datetime(self) -> datetime:
        return _ms_to_datetime(self.reset_at_ms)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters.

    Implementations must treat every string key (including empty or unseen
    ones) as valid: absence means zero usage, never an error.
    """

    @property
    @abstractmethod
    def config(self) -> RateLimiterConfig:
        raise NotImplementedError

    @abstractmethod
    def check_limit(self, client_id: str) -> RateLimitResult:
        """Decide whether a request from ``client_id`` is admitted.

        Admitted requests are recorded and count toward the window.

        Args:
            client_id: Opaque client identifier (e.g., IP address).

        Returns:
            RateLimitResult describing the decision and quota state.
        """
        raise NotImplementedError

    @abstractmethod
    def get_status(self, client_id: str) -> RateLimitStatus:
        """Report quota state for ``client_id`` without consuming a request."""
        raise NotImplementedError

    @abstractmethod
    def reset_client(self, client_id: str) -> None:
        """Forget all history for ``client_id``."""
        raise NotImplementedError

    @abstractmethod
    def reset_all(self) -> None:
        """Forget all history for every client."""
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        """Release background resources and clear state. Idempotent."""
        raise NotImplementedError

    def __enter__(self) -> "AbstractRateLimiter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()
