"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- API Key security scheme (``X-API-Key``) on authenticated operations only
- A documented 429 response on every rate-limited operation
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# Paths served without X-API-Key
PUBLIC_PATHS = ("/health", "/v1/data")

RATE_LIMITED_PREFIX = "/v1/"

_TOO_MANY_REQUESTS = {
    "description": "Rate limit exceeded. Retry after the number of seconds in Retry-After.",
    "headers": {
        "Retry-After": {"schema": {"type": "integer"}},
        "X-RateLimit-Limit": {"schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"schema": {"type": "integer"}},
        "X-RateLimit-Reset": {"schema": {"type": "integer"}},
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Data", "description": "Rate-limited resource endpoints."},
            {"name": "Limits", "description": "Limiter metrics per scope."},
            {"name": "Health", "description": "Liveness checks (never rate limited)."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if path in PUBLIC_PATHS:
                    method_obj["security"] = []
                if path.startswith(RATE_LIMITED_PREFIX):
                    method_obj.setdefault("responses", {}).setdefault("429", _TOO_MANY_REQUESTS)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
