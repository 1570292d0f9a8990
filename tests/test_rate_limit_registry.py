"""Tests for scope configuration and the process-wide limiter registry."""

import pytest

from throttle.adapters.rate_limit import InMemoryFixedWindowRateLimiter
from throttle.adapters.rate_limit.base import Decision
from throttle.core import rate_limit as rate_limit_module
from throttle.core.config import RateLimitSettings, ScopeOverride
from throttle.core.rate_limit import (
    LimiterRegistry,
    build_rate_limit_headers,
    get_limiter_registry,
    reset_rate_limiters,
    resolve_scope_config,
)


@pytest.fixture
def rate_settings() -> RateLimitSettings:
    return RateLimitSettings(
        window_ms=1000,
        max_requests=10,
        key_strategy="api_key_or_ip",
        overrides={
            "data": ScopeOverride(max_requests=2),
            "user": ScopeOverride(window_ms=500, key_strategy="api_key"),
        },
    )


class TestResolveScopeConfig:
    def test_global_defaults(self, rate_settings: RateLimitSettings) -> None:
        config = resolve_scope_config("global", rate_settings=rate_settings)

        assert config.limit == 10
        assert config.window_ms == 1000
        assert config.key_strategy == "api_key_or_ip"

    def test_route_strategy_beats_global_default(self, rate_settings: RateLimitSettings) -> None:
        config = resolve_scope_config("global", key_strategy="ip", rate_settings=rate_settings)
        assert config.key_strategy == "ip"

    def test_override_fields_win(self, rate_settings: RateLimitSettings) -> None:
        data = resolve_scope_config("data", key_strategy="ip", rate_settings=rate_settings)
        assert (data.limit, data.window_ms, data.key_strategy) == (2, 1000, "ip")

        user = resolve_scope_config("user", key_strategy="user", rate_settings=rate_settings)
        assert (user.limit, user.window_ms, user.key_strategy) == (10, 500, "api_key")


class TestLimiterRegistry:
    def test_same_scope_returns_same_limiter(self) -> None:
        registry = LimiterRegistry()

        assert registry.get("global") is registry.get("global")
        assert registry.get("global") is not registry.get("data")

    def test_rebuilds_when_configuration_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = LimiterRegistry()
        before = registry.get("global")

        monkeypatch.setattr(rate_limit_module.settings.rate_limit, "max_requests", 1)
        after = registry.get("global")

        assert after is not before
        assert after.limit == 1

    def test_key_strategy_change_keeps_limiter(self, rate_settings: RateLimitSettings) -> None:
        registry = LimiterRegistry()
        a = resolve_scope_config("global", key_strategy="ip", rate_settings=rate_settings)
        b = resolve_scope_config("global", key_strategy="api_key", rate_settings=rate_settings)

        assert registry.get("global", a) is registry.get("global", b)

    def test_algorithm_selection(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(rate_limit_module.settings.rate_limit, "algorithm", "fixed_window")

        assert isinstance(LimiterRegistry().get("global"), InMemoryFixedWindowRateLimiter)

    def test_sweep_all_and_stats(self, clock) -> None:
        registry = LimiterRegistry(clock=clock)
        registry.get("global").check("a")
        registry.get("data").check("b")

        assert registry.stats()["global"]["tracked_keys"] == 1

        clock.advance(rate_limit_module.settings.rate_limit.window_ms)
        assert registry.sweep_all() == 2
        assert registry.stats()["data"]["tracked_keys"] == 0

    def test_clear_drops_limiters(self) -> None:
        registry = LimiterRegistry()
        registry.get("global").check("a")

        registry.clear()
        assert registry.stats() == {}


def test_process_registry_is_singleton_until_reset() -> None:
    registry = get_limiter_registry()
    assert get_limiter_registry() is registry

    reset_rate_limiters()
    assert get_limiter_registry() is not registry


def test_build_rate_limit_headers_rounds_reset_up() -> None:
    decision = Decision(admitted=True, limit=5, remaining=4, reset_at=1500.0, retry_after_ms=1200.0)

    assert build_rate_limit_headers(decision) == {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "4",
        "X-RateLimit-Reset": "2",
    }
