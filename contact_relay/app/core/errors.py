"""
Application Errors
==================
Error taxonomy shared by middleware, route handlers and email providers,
plus the single mapping from an exception to the standard error response.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from contact_relay.app.schemas.base import ErrorCode, ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class AppError(Exception):
    """
    Base exception for application errors.

    `expose` decides whether the message reaches the client; errors that
    are not exposed are rendered as a generic 500.
    """

    code: ErrorCode = ErrorCode.SERVER_ERROR
    status_code: int = 500
    expose: bool = True

    def __init__(
        self,
        message: str,
        details: Any | None = None,
    ):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    """Caller input failed validation."""
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, details: Any | None = None, message: str = "Validation failed"):
        super().__init__(message, details)


class ForbiddenError(AppError):
    """Request rejected by CORS or header policy."""
    code = ErrorCode.FORBIDDEN
    status_code = 403


class NotFoundError(AppError):
    """No route matched."""
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, message: str = "Route not found"):
        super().__init__(message)


class RateLimitError(AppError):
    """Rate limit exceeded."""
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429

    def __init__(self, message: str = "Too many requests", retry_after_ms: int | None = None):
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class PayloadTooLargeError(AppError):
    """Request body exceeds the configured size limit."""
    code = ErrorCode.PAYLOAD_TOO_LARGE
    status_code = 413

    def __init__(self, limit_bytes: int, message: str = "Request body too large"):
        super().__init__(message, details={"limit_bytes": limit_bytes})
        self.limit_bytes = limit_bytes


class ConfigurationError(AppError):
    """Missing or malformed credentials / settings."""
    code = ErrorCode.CONFIGURATION_ERROR
    status_code = 500
    expose = False


class EmailError(AppError):
    """Email delivery failed (wraps transport errors)."""
    code = ErrorCode.EMAIL_SEND_FAILED
    status_code = 500
    expose = False


# =============================================================================
# ERROR RESPONSE MAPPING
# =============================================================================


def handle_error(err: object) -> Exception:
    """Coerce anything raised into an Exception instance."""
    if isinstance(err, Exception):
        return err
    return Exception(str(err))


def validation_details(exc: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into `{field, message, type}` entries."""
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())) or "body",
            "message": error.get("msg", "Invalid value"),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]


def create_error_response(err: BaseException, expose_details: bool = False) -> tuple[int, dict[str, Any]]:
    """
    Map an exception to `(status, body)` in the standard error shape.

    Args:
        err: The exception to render
        expose_details: Attach the internal message of unexpected errors
            (development only)

    Returns:
        tuple: HTTP status code and JSON-serializable body
    """
    if isinstance(err, PydanticValidationError):
        err = ValidationError(details=validation_details(err))

    if isinstance(err, AppError) and err.expose:
        logger.warning(
            "Request error",
            extra={"error_code": err.code.value, "status": err.status_code, "error": err.message},
        )
        body = ErrorResponse(
            message=err.message,
            error=ErrorDetail(code=err.code, details=err.details),
        )
        return err.status_code, body.to_body()

    logger.error(
        "Unhandled request error",
        exc_info=(type(err), err, err.__traceback__),
        extra={"error_type": type(err).__name__},
    )
    body = ErrorResponse(
        message=INTERNAL_ERROR_MESSAGE,
        error=ErrorDetail(
            code=ErrorCode.SERVER_ERROR,
            details=str(err) if expose_details else None,
        ),
    )
    return 500, body.to_body()


__all__ = [
    "AppError",
    "ValidationError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "PayloadTooLargeError",
    "ConfigurationError",
    "EmailError",
    "INTERNAL_ERROR_MESSAGE",
    "handle_error",
    "validation_details",
    "create_error_response",
]
