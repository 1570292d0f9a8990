from __future__ import annotations

from throttle.api.routes.data import router as data_router
from throttle.api.routes.health import router as health_router
from throttle.api.routes.limits import router as limits_router

__all__ = ["data_router", "health_router", "limits_router"]
