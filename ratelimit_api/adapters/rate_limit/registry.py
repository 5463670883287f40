"""Named collection of rate limiters.

Different routes usually need different policies (e.g., a generous global
limit and a strict one for sensitive endpoints). The registry owns each
limiter instance so the application can look them up by name and shut all of
them down together.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ratelimit_api.adapters.rate_limit.base import AbstractRateLimiter
from ratelimit_api.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


class RateLimiterRegistry:
    """Thread-safe registry mapping names to limiter instances."""

    def __init__(self) -> None:
        self._limiters: dict[str, AbstractRateLimiter] = {}
        self._lock = threading.Lock()

    def create(
        self,
        name: str,
        factory: Callable[[], AbstractRateLimiter],
    ) -> AbstractRateLimiter:
        """Build a limiter with ``factory`` and store it under ``name``.

        Args:
            name: Unique limiter name (e.g., "global", "strict").
            factory: Zero-argument callable returning a new limiter.

        Returns:
            The newly created limiter.

        Raises:
            ConfigurationAppError: If ``name`` is already registered.
        """
        with self._lock:
            if name in self._limiters:
                raise ConfigurationAppError(
                    code="duplicate_rate_limiter",
                    message=f"Rate limiter '{name}' is already registered",
                )
            limiter = factory()
            self._limiters[name] = limiter

        logger.debug("rate_limiter.registered", extra={"limiter": name})
        return limiter

    def get(self, name: str) -> AbstractRateLimiter | None:
        with self._lock:
            return self._limiters.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._limiters)

    def destroy(self) -> None:
        """Destroy every registered limiter and empty the registry."""
        with self._lock:
            limiters = list(self._limiters.items())
            self._limiters.clear()

        for name, limiter in limiters:
            limiter.destroy()
            logger.debug("rate_limiter.unregistered", extra={"limiter": name})
