from __future__ import annotations

from fastapi import APIRouter, Depends

from throttle.core.auth import verify_api_key
from throttle.core.config import settings
from throttle.core.rate_limit import RateLimit, get_limiter_registry
from throttle.schemas.limits import LimitsResponse

router = APIRouter(
    tags=["Limits"],
    dependencies=[Depends(RateLimit("global", key_strategy="ip"))],
)


@router.get(
    "/limits",
    response_model=LimitsResponse,
    dependencies=[Depends(verify_api_key)],
)
async def get_limits() -> LimitsResponse:
    """Report per-scope limiter metrics.

    Only scopes that have served at least one request are listed; limiters
    are built lazily.
    """

    return LimitsResponse(
        enabled=settings.rate_limit.enabled,
        scopes=get_limiter_registry().stats(),
    )
