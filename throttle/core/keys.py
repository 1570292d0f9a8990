"""Key extraction strategies for rate limiting.

A strategy maps an incoming request to the opaque key the limiter counts
against. Keys are namespaced by type (``ip:``, ``api_key:``, ``user:``) so two
strategies can never collide on the same bucket.

Strategies:
- ``ip``: client address (optionally from proxy headers)
- ``api_key``: ``X-API-Key`` header; callers without a configured key share
  ``anonymous``
- ``user``: principal set on ``request.state.user_id`` by authentication,
  falling back to ``ip``
- ``api_key_or_ip``: configured API key when present, otherwise client address

Only keys listed in ``APP_API_KEYS`` get their own bucket. An unknown or
forged header never opens a fresh quota.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from throttle.core.auth import is_known_api_key
from throttle.core.config import KEY_STRATEGIES, settings
from throttle.core.errors import ValidationAppError

KeyExtractor = Callable[[Request], str]

API_KEY_HEADER = "X-API-Key"
ANONYMOUS = "anonymous"


def client_ip(request: Request) -> str:
    """Best-effort client address.

    Proxy headers are only read when ``RATE_LIMIT_TRUST_FORWARDED_HEADERS``
    is enabled.
    """
    if settings.rate_limit.trust_forwarded_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
        cf_ip = request.headers.get("CF-Connecting-IP")
        if cf_ip and cf_ip.strip():
            return cf_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def ip_key(request: Request) -> str:
    return f"ip:{client_ip(request)}"


def api_key_key(request: Request) -> str:
    api_key = request.headers.get(API_KEY_HEADER)
    if is_known_api_key(api_key):
        return f"api_key:{api_key}"
    return f"api_key:{ANONYMOUS}"


def user_key(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return ip_key(request)


def api_key_or_ip_key(request: Request) -> str:
    api_key = request.headers.get(API_KEY_HEADER)
    if is_known_api_key(api_key):
        return f"api_key:{api_key}"
    return ip_key(request)


_EXTRACTORS: dict[str, KeyExtractor] = {
    "ip": ip_key,
    "api_key": api_key_key,
    "user": user_key,
    "api_key_or_ip": api_key_or_ip_key,
}


def get_key_extractor(strategy: str) -> KeyExtractor:
    """Return the extractor registered under ``strategy``.

    Raises:
        ValidationAppError: If the strategy name is unknown.
    """
    try:
        return _EXTRACTORS[strategy]
    except KeyError:
        raise ValidationAppError(
            code="rate_limit_unknown_key_strategy",
            message=(
                f"Unknown key strategy: '{strategy}'. "
                f"Supported strategies: {', '.join(KEY_STRATEGIES)}"
            ),
        ) from None


def key_type(key: str) -> str:
    """Namespace prefix of a key (``ip``, ``api_key`` or ``user``)."""
    return key.split(":", 1)[0]
