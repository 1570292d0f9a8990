"""Pydantic schemas for rate-limited data endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DataResponse(BaseModel):
    """Payload returned by the protected data endpoints."""

    data: str = Field(..., description="Protected resource content.")
    scope: str = Field(..., description="Rate limit scope that admitted the request.")


class HealthResponse(BaseModel):
    """Liveness probe response."""

    status: str = Field("ok", description="Always 'ok' while the process serves requests.")
