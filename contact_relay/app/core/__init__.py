"""
Core application modules.
"""

from contact_relay.app.core.config import SMTP_SERVICES, Settings, get_settings
from contact_relay.app.core.errors import (
    AppError,
    ConfigurationError,
    EmailError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    ValidationError,
    create_error_response,
    handle_error,
)
from contact_relay.app.core.logging_config import configure_logging

__all__ = [
    # Config
    "SMTP_SERVICES",
    "Settings",
    "get_settings",
    # Errors
    "AppError",
    "ConfigurationError",
    "EmailError",
    "ForbiddenError",
    "NotFoundError",
    "PayloadTooLargeError",
    "RateLimitError",
    "ValidationError",
    "create_error_response",
    "handle_error",
    # Logging
    "configure_logging",
]
