"""Tests for application construction and the background limiter sweep."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from throttle.core import app_factory
from throttle.core.app_factory import create_app, sweep_limiters_periodically
from throttle.core.rate_limit import LimiterRegistry


def test_create_app_registers_routes() -> None:
    app = create_app()
    paths = {route.path for route in app.routes}

    assert {"/health", "/v1/data", "/v1/user-data", "/v1/limits"} <= paths


@pytest.mark.asyncio
async def test_periodic_sweep_purges_expired_keys(clock, monkeypatch: pytest.MonkeyPatch) -> None:
    registry = LimiterRegistry(clock=clock)
    monkeypatch.setattr(app_factory, "get_limiter_registry", lambda: registry)
    limiter = registry.get("global")
    limiter.check("ip:198.51.100.1")
    clock.advance(limiter.window_ms)

    task = asyncio.create_task(sweep_limiters_periodically(0.01))
    try:
        for _ in range(50):
            await asyncio.sleep(0.01)
            if registry.stats()["global"]["tracked_keys"] == 0:
                break
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert registry.stats()["global"]["tracked_keys"] == 0


def test_lifespan_starts_and_stops_sweep_task(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_factory.settings.rate_limit, "sweep_interval_seconds", 0.01)
    started = []

    async def fake_sweep(interval: float) -> None:
        started.append(interval)
        await asyncio.Event().wait()

    monkeypatch.setattr(app_factory, "sweep_limiters_periodically", fake_sweep)

    with TestClient(create_app()) as client:
        assert client.get("/health").status_code == 200

    assert started == [0.01]
