from __future__ import annotations

from fastapi import APIRouter

from throttle.schemas.data import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint.

    Never rate limited, so load balancers can probe it freely.
    """

    return HealthResponse(status="ok")
