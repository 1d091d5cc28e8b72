"""
Email Schemas
=============
Pydantic schemas for contact-form submissions and email delivery results.

This module defines:
- EmailSubmission: the validated, normalized contact-form input
- BrowserInfo: optional client diagnostics attached to a submission
- EmailSendResult: the provider-neutral outcome of one send attempt
- EmailResponse: what the email service hands back to route handlers
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from contact_relay.app.schemas.base import BaseSchema


# =============================================================================
# ENUMS
# =============================================================================


class ProviderType(str, Enum):
    """Email transport strategies."""
    SMTP_OAUTH2 = "smtp_oauth2"              # SMTP authenticated with XOAUTH2
    RELAY_API_KEY = "relay_api_key"          # HTTP relay, X-Api-Key header
    RELAY_DOMAIN_AUTH = "relay_domain_auth"  # HTTP relay, domain identifier in payload


class HostMode(str, Enum):
    """Runtime executing the request."""
    SERVER = "server"
    EDGE = "edge"


NAME_PUNCTUATION = frozenset("-'.,")


# =============================================================================
# INPUT SCHEMAS
# =============================================================================


class BrowserInfo(BaseModel):
    """
    Client diagnostics sent alongside a submission.

    Every known field is optional and validated on its own; unknown fields
    are kept as-is for telemetry.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    userAgent: str | None = Field(default=None, max_length=500)
    language: str | None = Field(default=None, max_length=20)
    platform: str | None = Field(default=None, max_length=50)
    screenResolution: str | None = Field(default=None, max_length=20)
    windowSize: str | None = Field(default=None, max_length=20)
    timeZone: str | None = Field(default=None, max_length=50)
    cookiesEnabled: bool | None = None
    doNotTrack: str | None = Field(default=None, max_length=20)
    referrer: str | None = Field(default=None, max_length=500)
    connectionType: str | None = Field(default=None, max_length=50)
    deviceMemory: str | None = Field(default=None, max_length=20)
    devicePixelRatio: float | None = Field(default=None, ge=0, le=10)
    vendor: str | None = Field(default=None, max_length=100)
    renderingEngine: str | None = Field(default=None, max_length=100)


class EmailSubmission(BaseSchema):
    """Contact-form submission. Strings are trimmed before bounds are checked."""

    name: str = Field(min_length=1, max_length=100, description="Sender's name")
    email: EmailStr = Field(description="Sender's email address")
    message: str = Field(min_length=10, max_length=1000, description="Message body")
    browser_info: BrowserInfo | None = Field(
        default=None,
        alias="browserInfo",
        description="Optional client diagnostics",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Letters, spaces and basic punctuation only."""
        if not all(ch.isalpha() or ch.isspace() or ch in NAME_PUNCTUATION for ch in v):
            raise ValueError("Name can only contain letters, spaces, and basic punctuation")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip().lower()
            if len(v) > 100:
                raise ValueError("Email cannot exceed 100 characters")
        return v


# =============================================================================
# OUTPUT SCHEMAS
# =============================================================================


@dataclass(frozen=True)
class EmailSendResult:
    """Outcome of one provider send, identical for every provider."""
    success: bool
    message_id: str | None = None
    error: Exception | None = None


class EmailResponse(BaseModel):
    """Result returned by the email service facade."""
    success: bool
    message_id: str | None = None
    message: str
    duration_ms: int = Field(ge=0)


@dataclass(frozen=True)
class SenderInfo:
    """Resolved relay sender."""
    email: str
    domain: str
