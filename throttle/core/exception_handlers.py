"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses → appropriate HTTP status (400, 403, 429)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from throttle.core.errors import AppError, AuthenticationAppError, RateLimitAppError
from throttle.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, AuthenticationAppError):
        return 403
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - AuthenticationAppError → 403 Forbidden
    - RateLimitAppError → 429 Too Many Requests (with Retry-After)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with ``{"error": {code, message, request_id, details?}}``.
    """
    status_code = _status_for(exc)

    # Quota rejections are expected traffic; the limiter dependency logs them.
    if status_code != 429:
        logger.warning(
            "app_error_handled",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "status_code": status_code,
                "has_details": bool(exc.details),
                "request_path": request.url.path,
            },
        )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers = exc.headers if isinstance(exc, RateLimitAppError) else None

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the error type for debugging while returning a generic message, so
    no stack trace or exception text reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
