"""In-memory sliding-window log rate limiter.

Each key keeps the timestamps of its admitted requests inside the trailing
window ``(now - window_ms, now]``. A request is admitted while fewer than
``limit`` timestamps remain; rejected requests are never recorded, so a
client hammering a closed window does not push its own reset time forward.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock covers the read-decide-write sequence and the
  sweeps, so concurrent checks for the same key cannot over-admit.
- Bounded: at most ``max_keys`` keys are tracked (the least recently used key
  makes room for a new one), and every ``sweep_every`` checks expired keys are
  purged.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict, deque
from typing import Any, Callable

from throttle.adapters.rate_limit.base import AbstractRateLimiter, Decision

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Sliding-window log limiter keyed by caller identifier.

    Example:
        >>> limiter = InMemorySlidingWindowRateLimiter(limit=3, window_ms=1000)
        >>> [limiter.check("ip:1.2.3.4", now=t).admitted for t in (0, 100, 200, 300)]
        [True, True, True, False]
        >>> limiter.check("ip:1.2.3.4", now=1001).admitted
        True
    """

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Callable[[], float] = monotonic_ms,
        max_keys: int = 10_000,
        sweep_every: int = 1_000,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum admitted requests per key per window.
            window_ms: Window length in milliseconds.
            clock: Time source returning milliseconds.
            max_keys: Maximum number of tracked keys (0 for unbounded).
            sweep_every: Run an expired-key sweep every N checks (0 disables).

        Raises:
            ValueError: If any bound is invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_keys < 0:
            raise ValueError("max_keys must be >= 0")
        if sweep_every < 0:
            raise ValueError("sweep_every must be >= 0")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._max_keys = max_keys
        self._sweep_every = sweep_every
        self._lock = threading.Lock()
        self._log_by_key: OrderedDict[str, deque[float]] = OrderedDict()
        self._last_now: float | None = None
        self._checks = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemorySlidingWindowRateLimiter(limit={self._limit}, "
            f"window_ms={self._window_ms}, keys={len(self._log_by_key)})"
        )

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def check(self, key: str, now: float | None = None) -> Decision:
        """Admit or reject one request for ``key``.

        An empty key is not rejected; all empty-key callers share one bucket.

        Args:
            key: Caller identifier.
            now: Current time in milliseconds; read from the clock if omitted.

        Returns:
            Decision with remaining quota and reset time.
        """
        with self._lock:
            now = self._resolve_now_locked(now)
            self._checks += 1

            entries = self._entries_for_locked(key, now)
            self._purge_locked(entries, now)

            if len(entries) >= self._limit:
                decision = self._build_decision(False, entries, now)
            else:
                entries.append(now)
                decision = self._build_decision(True, entries, now)

            if self._sweep_every and self._checks % self._sweep_every == 0:
                self._sweep_locked(now)

            return decision

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._log_by_key.clear()
                self._last_now = None
                self._checks = 0
                self._evictions = 0
            else:
                self._log_by_key.pop(key, None)

    def sweep(self, now: float | None = None) -> int:
        with self._lock:
            now = self._resolve_now_locked(now)
            return self._sweep_locked(now)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "algorithm": "sliding_window",
                "limit": self._limit,
                "window_ms": self._window_ms,
                "tracked_keys": len(self._log_by_key),
                "max_keys": self._max_keys,
                "evictions": self._evictions,
            }

    def _resolve_now_locked(self, now: float | None) -> float:
        # Clamp to the last observed time; a regressed clock must not free slots.
        if now is None:
            now = self._clock()
        if self._last_now is not None and now < self._last_now:
            now = self._last_now
        self._last_now = now
        return now

    def _entries_for_locked(self, key: str, now: float) -> deque[float]:
        entries = self._log_by_key.get(key)
        if entries is not None:
            self._log_by_key.move_to_end(key)
            return entries

        while self._max_keys and len(self._log_by_key) >= self._max_keys:
            self._make_room_locked(now)

        entries = deque()
        self._log_by_key[key] = entries
        return entries

    def _make_room_locked(self, now: float) -> None:
        """Drop the least recently used key, counting it only if still live.

        Only the LRU head is inspected; full sweeps happen every
        ``sweep_every`` checks.
        """
        head_key, head_entries = next(iter(self._log_by_key.items()))
        self._purge_locked(head_entries, now)
        del self._log_by_key[head_key]
        if head_entries:
            self._evictions += 1

    def _purge_locked(self, entries: deque[float], now: float) -> None:
        while entries and now - entries[0] >= self._window_ms:
            entries.popleft()

    def _sweep_locked(self, now: float) -> int:
        expired = []
        for key, entries in self._log_by_key.items():
            self._purge_locked(entries, now)
            if not entries:
                expired.append(key)
        for key in expired:
            del self._log_by_key[key]

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={
                    "removed_keys": len(expired),
                    "tracked_keys": len(self._log_by_key),
                },
            )
        return len(expired)

    def _build_decision(self, admitted: bool, entries: deque[float], now: float) -> Decision:
        reset_at = entries[0] + self._window_ms if entries else now
        return Decision(
            admitted=admitted,
            limit=self._limit,
            remaining=max(0, self._limit - len(entries)),
            reset_at=reset_at,
            retry_after_ms=max(0.0, reset_at - now),
        )
