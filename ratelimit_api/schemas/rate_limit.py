"""Pydantic schemas for rate limiter service responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """Current quota of the calling client for one limiter."""

    limiter: str = Field(..., description="Name of the limiter queried (e.g., 'global').")
    request_count: int = Field(
        ..., description="Admitted requests still inside the sliding window."
    )
    limit: int = Field(..., description="Maximum requests allowed per window.")
    remaining: int = Field(..., description="Requests still available in the window.")
    window_ms: int = Field(..., description="Sliding window length in milliseconds.")
    reset_at: datetime = Field(
        ...,
        description=(
            "When the oldest counted request leaves the window (now + window "
            "when nothing is counted)."
        ),
    )


class ApiHealthResponse(BaseModel):
    status: str = Field("healthy", description="Service health indicator.")
    timestamp: datetime = Field(..., description="Server time (UTC).")
    uptime: float = Field(..., description="Seconds since the API module was loaded.")


class EchoResponse(BaseModel):
    """Echo of the JSON object sent by the client."""

    received: Dict[str, Any] = Field(default_factory=dict)
