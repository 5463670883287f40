"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the store is split into shards, each guarded by its own lock,
  so unrelated clients do not serialize on a single mutex.
- History is kept sorted by timestamp even if the wall clock steps
  backwards, so the left end is always the oldest counted request.
- A daemon thread owned by each instance sweeps records that have not been
  touched for two windows. ``last_accessed`` is refreshed on every access, so
  a record still holding in-window timestamps is never swept; the sweep
  interval only bounds how long stale records linger in memory.
"""

from __future__ import annotations

import bisect
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from ratelimit_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimiterConfig,
    RateLimitResult,
    RateLimitStatus,
)
from ratelimit_api.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

DEFAULT_SHARD_COUNT = 16


@dataclass
class _ClientRecord:
    """Request history for one client, timestamps in epoch milliseconds."""

    last_accessed: int
    history: deque[int] = field(default_factory=deque)


class _Shard:
    __slots__ = ("lock", "records")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.records: dict[str, _ClientRecord] = {}


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a sliding window of request timestamps per key.

    A request is admitted when fewer than ``max_requests`` admitted requests
    fall within the last ``window_ms`` milliseconds. Unlike a fixed window,
    there is no burst at window boundaries: quota frees up one request at a
    time as each logged timestamp ages out.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        config: RateLimiterConfig,
        *,
        clock: Callable[[], float] = time.time,
        shard_count: int = DEFAULT_SHARD_COUNT,
        start_sweeper: bool = True,
    ) -> None:
        """Initialize the limiter and start its background sweep.

        Args:
            config: Validated limiter configuration.
            clock: Time source function returning UNIX time in seconds.
            shard_count: Number of independently locked store partitions.
            start_sweeper: Start the stale-record sweep thread immediately.

        Raises:
            ConfigurationAppError: If shard_count is invalid.
        """
        if shard_count < 1:
            raise ConfigurationAppError(
                code="invalid_rate_limit_config",
                message="shard_count must be >= 1",
            )

        self._config = config
        self._clock = clock
        self._shards = tuple(_Shard() for _ in range(shard_count))
        self._stop_event = threading.Event()
        self._lifecycle_lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._destroyed = False

        if start_sweeper:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name=f"rate-limiter-sweep-{id(self):x}",
                daemon=True,
            )
            self._sweeper.start()

        logger.info(
            "rate_limiter.created",
            extra={
                "max_requests": config.max_requests,
                "window_ms": config.window_ms,
                "sweep_interval_ms": config.sweep_interval_ms,
                "shards": shard_count,
            },
        )

    @property
    def config(self) -> RateLimiterConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        """Whether the background sweep is active."""
        return (
            self._sweeper is not None
            and self._sweeper.is_alive()
            and not self._stop_event.is_set()
        )

    def __len__(self) -> int:
        return self.tracked_clients()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _shard_for(self, client_id: str) -> _Shard:
        return self._shards[hash(client_id) % len(self._shards)]

    def _trim_locked(self, record: _ClientRecord, now: int) -> None:
        window_start = now - self._config.window_ms
        history = record.history
        while history and history[0] <= window_start:
            history.popleft()

    def _reset_at(self, record: _ClientRecord | None, now: int) -> int:
        oldest = record.history[0] if record is not None and record.history else now
        return oldest + self._config.window_ms

    def check_limit(self, client_id: str) -> RateLimitResult:
        """Check and, when admitted, record a request for ``client_id``.

        Args:
            client_id: Opaque client identifier (e.g., IP address). Any string
                is accepted, including the empty string.

        Returns:
            RateLimitResult with the admission decision and quota metadata.
        """
        limit = self._config.max_requests
        now = self._now_ms()
        shard = self._shard_for(client_id)

        with shard.lock:
            record = shard.records.get(client_id)
            if record is None:
                record = _ClientRecord(last_accessed=now)
                shard.records[client_id] = record

            self._trim_locked(record, now)
            record.last_accessed = now

            count = len(record.history)
            allowed = count < limit
            if allowed:
                # insort keeps order if the wall clock stepped backwards
                bisect.insort(record.history, now)

            remaining = max(0, max(0, limit - count) - (1 if allowed else 0))
            reset_at = self._reset_at(record, now)

        if allowed:
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=remaining,
                reset_at_ms=reset_at,
            )

        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=remaining,
            reset_at_ms=reset_at,
            retry_after_seconds=int(math.ceil((reset_at - now) / 1000)),
        )

    def get_status(self, client_id: str) -> RateLimitStatus:
        """Return quota state for ``client_id`` without consuming a request.

        Unseen clients report zero usage and are not added to the store.
        """
        limit = self._config.max_requests
        now = self._now_ms()
        shard = self._shard_for(client_id)

        with shard.lock:
            record = shard.records.get(client_id)
            if record is not None:
                self._trim_locked(record, now)
                record.last_accessed = now
                count = len(record.history)
            else:
                count = 0
            reset_at = self._reset_at(record, now)

        return RateLimitStatus(
            request_count=count,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at_ms=reset_at,
        )

    def reset_client(self, client_id: str) -> None:
        shard = self._shard_for(client_id)
        with shard.lock:
            shard.records.pop(client_id, None)

    def reset_all(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.records.clear()

    def tracked_clients(self) -> int:
        """Return the number of client records currently held."""
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total

    def sweep(self) -> int:
        """Evict records not accessed within the last two windows.

        Returns:
            Number of evicted client records.
        """
        now = self._now_ms()
        stale_before = now - 2 * self._config.window_ms
        evicted = 0

        for shard in self._shards:
            with shard.lock:
                stale = [
                    client_id
                    for client_id, record in shard.records.items()
                    if record.last_accessed < stale_before
                ]
                for client_id in stale:
                    del shard.records[client_id]
            evicted += len(stale)

        if evicted:
            logger.debug(
                "rate_limiter.sweep",
                extra={"evicted": evicted, "window_ms": self._config.window_ms},
            )
        return evicted

    def _sweep_loop(self) -> None:
        interval_s = self._config.sweep_interval_ms / 1000
        while not self._stop_event.wait(interval_s):
            self.sweep()

    def destroy(self) -> None:
        """Stop the sweep thread and clear all records.

        Safe to call more than once; later calls do nothing. Once this returns,
        the background sweep will not touch the store again.
        """
        with self._lifecycle_lock:
            if self._destroyed:
                return
            self._destroyed = True

        self._stop_event.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join()

        self.reset_all()
        logger.info("rate_limiter.destroyed", extra={"window_ms": self._config.window_ms})
