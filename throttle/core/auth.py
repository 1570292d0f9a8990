"""API key authentication.

Keys are validated against a comma-separated list from environment variables
(``APP_API_KEYS``). On success the dependency records the caller's principal
on ``request.state.user_id`` so the ``user`` rate limit key strategy can
throttle per authenticated caller without ever seeing the raw key.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, Request

from throttle.core.config import settings
from throttle.core.errors import AuthenticationAppError
from throttle.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 ,key3 "))
        ['key1', 'key2', 'key3']
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_api_key(provided_key: str) -> None:
    """Validate that provided API key matches configured keys.

    Args:
        provided_key: API key to validate.

    Raises:
        AuthenticationAppError: If the key is invalid, or authentication is
            required but no keys are configured.
    """
    if not settings.app.api_key_required:
        return

    valid_keys = parse_api_keys(settings.app.api_keys)

    if not valid_keys:
        logger.error(
            "auth.keys_not_configured",
            extra={"auth_required": settings.app.api_key_required},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    if provided_key not in valid_keys:
        logger.warning(
            "auth.invalid_key",
            extra={"api_key_hash": hash_identifier(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )


def is_known_api_key(provided_key: str | None) -> bool:
    """Whether ``provided_key`` is one of the configured API keys."""
    if not provided_key:
        return False
    return provided_key in parse_api_keys(settings.app.api_keys)


async def verify_api_key(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency for API key authentication.

    Usage:
        @router.get("/protected", dependencies=[Depends(verify_api_key)])
        async def protected_endpoint():
            ...

    Raises:
        AuthenticationAppError: Rendered as 403 Forbidden by the exception
            handlers if authentication fails.
    """
    if not settings.app.api_key_required:
        logger.debug("auth.skipped", extra={"reason": "auth_required_false"})
        return

    if not x_api_key:
        logger.warning("auth.missing_key")
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide X-API-Key header.",
        )

    validate_api_key(x_api_key)

    principal = hash_identifier(x_api_key)
    request.state.user_id = principal
    logger.debug("auth.success", extra={"api_key_hash": principal})
