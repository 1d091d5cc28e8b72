"""
Base Pydantic Schemas
=====================
Response envelopes and error codes shared by every route on both hosts.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class ErrorCode(str, Enum):
    """Error codes returned in the `error.code` field."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    EMAIL_SEND_FAILED = "EMAIL_SEND_FAILED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All request schemas inherit from this base for consistent behavior.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================


class ErrorDetail(BaseModel):
    """Machine-readable part of an error response."""
    code: ErrorCode
    details: Any | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""
    success: bool = False
    message: str
    error: ErrorDetail

    def to_body(self) -> dict[str, Any]:
        """Serialize for the wire; `details` is omitted when absent."""
        return self.model_dump(mode="json", exclude_none=True)


class SuccessResponse(BaseModel):
    """Standard success response model."""
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(default="ok")
    timestamp: str
