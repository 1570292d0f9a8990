"""Application-level exception types.

This module defines domain errors used across the dispatch layer and
adapters, enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes flexible while encouraging
    consistency across the codebase.
    """

    code: str
    message: str
    hint: str
    scope: str
    limit: int
    remaining: int
    window_ms: int
    retry_after: float
    key_strategy: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


@dataclass
class RateLimitAppError(AppError):
    """Raised by the dispatch layer when a caller exceeded its quota.

    Attributes:
        headers: Response headers advising the client when to retry.
    """

    headers: dict[str, str] | None = None
