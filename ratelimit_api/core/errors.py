"""Application-level exception types.

This module defines domain errors used across adapters and the HTTP layer,
enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    limit: int
    remaining: int
    reset_at: str
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when client input validation fails."""


class ConfigurationAppError(AppError):
    """Raised when a limiter or application setting is invalid.

    Only ever raised while constructing components, never per request.
    """


@dataclass
class RateLimitExceededAppError(AppError):
    """Raised by the HTTP layer when a client is over its quota.

    The engine itself reports a blocked request as a normal result; this
    error only exists so the transport can short-circuit the route.

    Attributes:
        status_code: HTTP status to respond with (429 unless configured).
        headers: Rate limit headers to attach to the rejection.
    """

    status_code: int = 429
    headers: dict[str, str] = field(default_factory=dict)
