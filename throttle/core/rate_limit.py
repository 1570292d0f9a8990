"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapters into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a ``RateLimit`` dependency only.
- Swap-friendly: the algorithm/storage sits behind ``AbstractRateLimiter``.
- One limiter per scope: ``global`` guards a whole router, narrower scopes
  (``data``, ``user``) guard single endpoints with their own quota.

Quota resolution per scope: ``RATE_LIMIT_OVERRIDES[scope]`` fields win, then
the route's declared key strategy, then the global ``RATE_LIMIT_*`` values.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from fastapi import Request, Response

from throttle.adapters.rate_limit.base import AbstractRateLimiter, Decision
from throttle.adapters.rate_limit.factory import create_rate_limiter
from throttle.core.config import RateLimitSettings, settings
from throttle.core.errors import RateLimitAppError
from throttle.core.keys import get_key_extractor, key_type
from throttle.core.logging import hash_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeConfig:
    """Effective limiter configuration for one scope."""

    algorithm: str
    limit: int
    window_ms: int
    key_strategy: str = field(compare=False)
    max_keys: int
    sweep_every: int


def resolve_scope_config(
    scope: str,
    *,
    key_strategy: str | None = None,
    rate_settings: RateLimitSettings | None = None,
) -> ScopeConfig:
    """Merge global settings, the route default and the scope override."""

    cfg = rate_settings or settings.rate_limit
    override = cfg.overrides.get(scope)

    window_ms = cfg.window_ms
    limit = cfg.max_requests
    strategy = key_strategy or cfg.key_strategy
    if override is not None:
        window_ms = override.window_ms or window_ms
        limit = override.max_requests or limit
        strategy = override.key_strategy or strategy

    return ScopeConfig(
        algorithm=cfg.algorithm,
        limit=limit,
        window_ms=window_ms,
        key_strategy=strategy,
        max_keys=cfg.max_tracked_keys,
        sweep_every=cfg.sweep_every,
    )


class LimiterRegistry:
    """Process-wide owner of one limiter per scope.

    Limiters are built lazily on first use. If the effective configuration of
    a scope changes (primarily in tests), its limiter is rebuilt and previous
    state is dropped.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._limiters: dict[str, tuple[ScopeConfig, AbstractRateLimiter]] = {}

    def get(self, scope: str, config: ScopeConfig | None = None) -> AbstractRateLimiter:
        """Return the limiter for ``scope``, building it if needed."""

        config = config or resolve_scope_config(scope)
        with self._lock:
            entry = self._limiters.get(scope)
            if entry is not None and entry[0] == config:
                return entry[1]

            limiter = create_rate_limiter(
                algorithm=config.algorithm,
                limit=config.limit,
                window_ms=config.window_ms,
                max_keys=config.max_keys,
                sweep_every=config.sweep_every,
                clock=self._clock,
            )
            self._limiters[scope] = (config, limiter)

        logger.info(
            "rate_limit.limiter_built",
            extra={
                "scope": scope,
                "algorithm": config.algorithm,
                "limit": config.limit,
                "window_ms": config.window_ms,
                "rebuilt": entry is not None,
            },
        )
        return limiter

    def clear(self) -> None:
        """Drop every limiter and its state."""

        with self._lock:
            for _, limiter in self._limiters.values():
                limiter.reset()
            self._limiters.clear()

    def sweep_all(self) -> int:
        """Sweep expired keys in every limiter; returns keys removed."""

        with self._lock:
            limiters = [limiter for _, limiter in self._limiters.values()]
        return sum(limiter.sweep() for limiter in limiters)

    def stats(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            items = list(self._limiters.items())
        return {scope: limiter.stats() for scope, (_, limiter) in items}


_registry: LimiterRegistry | None = None
_registry_lock = threading.Lock()


def get_limiter_registry() -> LimiterRegistry:
    """Return the process-wide limiter registry."""

    global _registry

    with _registry_lock:
        if _registry is None:
            _registry = LimiterRegistry()
        return _registry


def reset_rate_limiters() -> None:
    """Forget all limiter state (used by tests and admin tooling)."""

    global _registry

    with _registry_lock:
        if _registry is not None:
            _registry.clear()
        _registry = None


def build_rate_limit_headers(decision: Decision) -> dict[str, str]:
    """Informational headers for a decision.

    ``X-RateLimit-Reset`` is the number of seconds until a slot frees up,
    rounded up, since limiter timestamps come from a monotonic clock.
    """

    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(math.ceil(decision.retry_after_ms / 1000)),
    }


class RateLimit:
    """FastAPI dependency enforcing the quota of one scope.

    Usage:
        router = APIRouter(dependencies=[Depends(RateLimit("global", key_strategy="ip"))])

        @router.get("/data", dependencies=[Depends(RateLimit("data"))])
        async def data(): ...

    Admitted requests get ``X-RateLimit-*`` headers (when enabled); rejected
    ones raise ``RateLimitAppError`` which the exception handlers turn into a
    429 with ``Retry-After``.
    """

    def __init__(self, scope: str = "global", *, key_strategy: str | None = None) -> None:
        self.scope = scope
        self.key_strategy = key_strategy

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"RateLimit(scope={self.scope!r}, key_strategy={self.key_strategy!r})"

    async def __call__(self, request: Request, response: Response) -> None:
        if not settings.rate_limit.enabled:
            return

        config = resolve_scope_config(self.scope, key_strategy=self.key_strategy)
        key = get_key_extractor(config.key_strategy)(request)
        limiter = get_limiter_registry().get(self.scope, config)

        decision = limiter.check(key)
        headers = build_rate_limit_headers(decision) if settings.rate_limit.include_headers else {}
        log_fields = {
            "scope": self.scope,
            "key_type": key_type(key),
            "key_hash": hash_identifier(key),
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_ms": config.window_ms,
        }

        if decision.admitted:
            logger.debug("rate_limit.allowed", extra=log_fields)
            response.headers.update(headers)
            return

        retry_after = max(1, math.ceil(decision.retry_after_ms / 1000))
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": retry_after},
        )

        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Try again later.",
            details={
                "scope": self.scope,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_ms": config.window_ms,
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after), **headers},
        )
