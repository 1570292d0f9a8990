"""Pytest configuration and fixtures shared across all test modules.

This file is loaded by pytest before any test module, so the environment
below is in place before ``throttle.core.config`` builds its settings.
"""

import os

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeClock:
    """Deterministic millisecond clock for limiter tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _fresh_rate_limiters():
    """Give every test an empty limiter registry."""
    from throttle.core.rate_limit import reset_rate_limiters

    reset_rate_limiters()
    yield
    reset_rate_limiters()
