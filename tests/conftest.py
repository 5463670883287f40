"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets TESTING so settings never load a local .env file, and keeps the
background sweep slow so it never interferes with route tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_SWEEP_INTERVAL_MS", "300000")

import pytest  # noqa: E402


class FakeClock:
    """Deterministic clock returning UNIX seconds, advanced manually."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
