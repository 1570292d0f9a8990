"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
algorithm or storage backend can be swapped (e.g., a shared Redis store)
without touching the dispatch layer.

All timestamps are milliseconds on the limiter's own clock. By default that
clock is monotonic, so ``reset_at`` is only meaningful relative to the
``now`` used for the decision; use ``retry_after_ms`` to build HTTP headers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Decision:
    """Outcome of a single rate limit check.

    Attributes:
        admitted: Whether the request may proceed.
        limit: Max requests per window for this key.
        remaining: Slots left in the window after this decision (0 when blocked).
        reset_at: Earliest time (ms) at which a slot frees up.
        retry_after_ms: Milliseconds from the decision time until ``reset_at``.
    """

    admitted: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_ms: float


class AbstractRateLimiter(ABC):
    """Interface for per-key rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Max admitted requests per key per window."""

    @property
    @abstractmethod
    def window_ms(self) -> int:
        """Window length in milliseconds."""

    @abstractmethod
    def check(self, key: str, now: float | None = None) -> Decision:
        """Admit or reject one request for ``key``.

        Args:
            key: Caller identifier (IP, API key, user id). Equal strings share
                a quota.
            now: Current time in milliseconds; the limiter clock is read when
                omitted.

        Returns:
            Decision describing the outcome.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str | None = None) -> None:
        """Forget state for ``key``, or for every key when omitted."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float | None = None) -> int:
        """Drop keys whose state has fully expired.

        Returns:
            Number of keys removed.
        """
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return lightweight metrics without exposing key values."""
        raise NotImplementedError
