"""Rate limiting adapters.

This package provides a small abstraction layer so the service can run an
in-memory limiter today and later migrate to Redis or another shared store
without changing the API layer.
"""

from throttle.adapters.rate_limit.base import AbstractRateLimiter, Decision
from throttle.adapters.rate_limit.factory import SUPPORTED_ALGORITHMS, create_rate_limiter
from throttle.adapters.rate_limit.fixed_window import InMemoryFixedWindowRateLimiter
from throttle.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "Decision",
    "InMemoryFixedWindowRateLimiter",
    "InMemorySlidingWindowRateLimiter",
    "SUPPORTED_ALGORITHMS",
    "create_rate_limiter",
]
