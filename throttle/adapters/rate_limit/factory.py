"""Factory pattern for creating rate limiter instances."""

from __future__ import annotations

from typing import Callable

from throttle.adapters.rate_limit.base import AbstractRateLimiter
from throttle.adapters.rate_limit.fixed_window import InMemoryFixedWindowRateLimiter
from throttle.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter, monotonic_ms
from throttle.core.errors import ValidationAppError

SUPPORTED_ALGORITHMS = ("sliding_window", "fixed_window")


def create_rate_limiter(
    *,
    algorithm: str,
    limit: int,
    window_ms: int,
    max_keys: int = 10_000,
    sweep_every: int = 1_000,
    clock: Callable[[], float] | None = None,
) -> AbstractRateLimiter:
    """Instantiate a limiter for the requested algorithm.

    Args:
        algorithm: One of ``SUPPORTED_ALGORITHMS``.
        limit: Maximum admitted requests per key per window.
        window_ms: Window length in milliseconds.
        max_keys: Maximum number of tracked keys (0 for unbounded).
        sweep_every: Opportunistic sweep period in checks (sliding window only).
        clock: Optional time source in milliseconds.

    Returns:
        AbstractRateLimiter: Configured limiter instance.

    Raises:
        ValidationAppError: If the algorithm is unknown.
        ValueError: If the quota bounds are invalid.
    """
    name = algorithm.lower()
    clock = clock or monotonic_ms

    if name == "sliding_window":
        return InMemorySlidingWindowRateLimiter(
            limit=limit,
            window_ms=window_ms,
            clock=clock,
            max_keys=max_keys,
            sweep_every=sweep_every,
        )

    if name == "fixed_window":
        return InMemoryFixedWindowRateLimiter(
            limit=limit,
            window_ms=window_ms,
            clock=clock,
            max_keys=max_keys,
        )

    raise ValidationAppError(
        code="rate_limit_unknown_algorithm",
        message=(
            f"Unknown rate limit algorithm: '{algorithm}'. "
            f"Supported algorithms: {', '.join(SUPPORTED_ALGORITHMS)}"
        ),
    )
