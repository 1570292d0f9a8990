"""Rate-limited resource endpoints.

Every route on this router passes the per-IP ``global`` scope first, then its
own narrower scope:

- ``/data``: ``data`` scope keyed by client IP (endpoint quota)
- ``/user-data``: authenticated, ``user`` scope keyed by the API key principal
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from throttle.core.auth import verify_api_key
from throttle.core.rate_limit import RateLimit
from throttle.schemas.data import DataResponse

router = APIRouter(
    tags=["Data"],
    dependencies=[Depends(RateLimit("global", key_strategy="ip"))],
)


@router.get(
    "/data",
    response_model=DataResponse,
    dependencies=[Depends(RateLimit("data", key_strategy="ip"))],
)
async def get_data() -> DataResponse:
    return DataResponse(data="Some protected data", scope="data")


@router.get(
    "/user-data",
    response_model=DataResponse,
    dependencies=[
        Depends(verify_api_key),
        Depends(RateLimit("user", key_strategy="user")),
    ],
)
async def get_user_data() -> DataResponse:
    """Per-caller data; quota is tracked per API key rather than per IP."""
    return DataResponse(data="User-specific rate-limited data", scope="user")
