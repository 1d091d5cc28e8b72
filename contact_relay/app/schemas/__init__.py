"""
Pydantic Schemas Module
=======================
Data validation schemas for API requests/responses and email delivery.
"""

from contact_relay.app.schemas.base import (
    # Enums
    ErrorCode,
    # Base
    BaseSchema,
    # Responses
    ErrorDetail,
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)

from contact_relay.app.schemas.email import (
    # Enums
    ProviderType,
    HostMode,
    # Input Schemas
    BrowserInfo,
    EmailSubmission,
    # Output Schemas
    EmailSendResult,
    EmailResponse,
    SenderInfo,
)

__all__ = [
    # Base
    "ErrorCode",
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
    # Email
    "ProviderType",
    "HostMode",
    "BrowserInfo",
    "EmailSubmission",
    "EmailSendResult",
    "EmailResponse",
    "SenderInfo",
]
