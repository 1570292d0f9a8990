"""In-memory fixed-window rate limiter.

Counter + window-start variant: cheaper than the sliding log (O(1) memory per
key) at the cost of allowing up to ``2 * limit`` requests across a window
boundary.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Bounded: at most ``max_keys`` keys are tracked; the least recently used key
  makes room for a new one.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from throttle.adapters.rate_limit.base import AbstractRateLimiter, Decision
from throttle.adapters.rate_limit.sliding_window import monotonic_ms


@dataclass
class _WindowState:
    window_start: float
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Windows are aligned to multiples of ``window_ms`` on the limiter clock
    (e.g., 60 requests per 60000 ms). Rejected requests do not consume budget.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Callable[[], float] = monotonic_ms,
        max_keys: int = 10_000,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted requests per window.
            window_ms: Size of the fixed window in milliseconds.
            clock: Time source returning milliseconds.
            max_keys: Maximum number of tracked keys (0 for unbounded).

        Raises:
            ValueError: If limit, window_ms or max_keys are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_keys < 0:
            raise ValueError("max_keys must be >= 0")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._max_keys = max_keys
        self._lock = threading.RLock()
        self._state_by_key: OrderedDict[str, _WindowState] = OrderedDict()
        self._last_now: float | None = None
        self._evictions = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _get_window_bounds(self, now: float) -> tuple[float, float]:
        """Compute fixed-window boundaries for a given timestamp.

        Args:
            now: Time in milliseconds.

        Returns:
            Tuple of (window_start_ms, reset_at_ms).
        """
        window_start = (now // self._window_ms) * self._window_ms
        return window_start, window_start + self._window_ms

    def _get_or_reset_state(self, key: str, window_start: float) -> _WindowState:
        """Get the current state for key or reset it when window changes."""
        state = self._state_by_key.get(key)
        if state is not None:
            self._state_by_key.move_to_end(key)
            if state.window_start != window_start:
                state.window_start = window_start
                state.count = 0
            return state

        while self._max_keys and len(self._state_by_key) >= self._max_keys:
            # Least recently used key first; only live windows count as evictions
            _, head = self._state_by_key.popitem(last=False)
            if head.window_start >= window_start:
                self._evictions += 1

        state = _WindowState(window_start=window_start, count=0)
        self._state_by_key[key] = state
        return state

    def _sweep_locked(self, current_window_start: float) -> int:
        stale = [
            key
            for key, state in self._state_by_key.items()
            if state.window_start < current_window_start
        ]
        for key in stale:
            del self._state_by_key[key]
        return len(stale)

    def check(self, key: str, now: float | None = None) -> Decision:
        """Consume one unit of budget for ``key`` if the window has room.

        Args:
            key: Caller identifier; an empty key is one shared bucket.
            now: Current time in milliseconds; read from the clock if omitted.

        Returns:
            Decision with allowance and metadata.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            if self._last_now is not None and now < self._last_now:
                now = self._last_now
            self._last_now = now

            window_start, reset_at = self._get_window_bounds(now)
            state = self._get_or_reset_state(key, window_start)

            admitted = state.count < self._limit
            if admitted:
                state.count += 1

            return Decision(
                admitted=admitted,
                limit=self._limit,
                remaining=max(0, self._limit - state.count),
                reset_at=reset_at,
                retry_after_ms=max(0.0, reset_at - now),
            )

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._state_by_key.clear()
                self._last_now = None
                self._evictions = 0
            else:
                self._state_by_key.pop(key, None)

    def sweep(self, now: float | None = None) -> int:
        with self._lock:
            if now is None:
                now = self._clock()
            window_start, _ = self._get_window_bounds(max(now, self._last_now or now))
            return self._sweep_locked(window_start)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "algorithm": "fixed_window",
                "limit": self._limit,
                "window_ms": self._window_ms,
                "tracked_keys": len(self._state_by_key),
                "max_keys": self._max_keys,
                "evictions": self._evictions,
            }
