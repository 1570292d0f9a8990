"""Pydantic schemas for limiter introspection."""

from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, Field


class LimiterStats(BaseModel):
    """Metrics for one scope's limiter. Key values are never exposed."""

    algorithm: Literal["sliding_window", "fixed_window"] = Field(
        ..., description="Counting algorithm in use."
    )
    limit: int = Field(..., description="Max admitted requests per key per window.")
    window_ms: int = Field(..., description="Window length in milliseconds.")
    tracked_keys: int = Field(..., description="Distinct keys currently held in memory.")
    max_keys: int = Field(..., description="Cap on tracked keys (0 = unbounded).")
    evictions: int = Field(
        0, description="Keys dropped by the LRU cap while still holding in-window entries."
    )


class LimitsResponse(BaseModel):
    """Snapshot of all limiters built so far in this process."""

    enabled: bool = Field(..., description="Whether rate limiting is enforced.")
    scopes: Dict[str, LimiterStats] = Field(
        default_factory=dict,
        description="Per-scope limiter metrics, keyed by scope name.",
    )
