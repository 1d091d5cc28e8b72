"""
Application Configuration
=========================
Centralized configuration management with Pydantic Settings V2.
Both hosts (server process and edge function) read their environment
variables through this module.
"""

from functools import lru_cache
from typing import Optional, Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from contact_relay.app.schemas.email import ProviderType


# Well-known SMTP services: (host, port, implicit TLS)
SMTP_SERVICES: dict[str, tuple[str, int, bool]] = {
    "gmail": ("smtp.gmail.com", 465, True),
    "outlook": ("smtp-mail.outlook.com", 587, False),
    "yahoo": ("smtp.mail.yahoo.com", 465, True),
    "zoho": ("smtp.zoho.com", 465, True),
}


class Settings(BaseSettings):
    """
    Application Settings - Environment Variables

    All values are read from the .env file or from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # APP CONFIG
    # =========================================================================
    app_name: str = Field(default="Contact Relay", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode flag")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    site_name: str = Field(
        default="Contact Form",
        description="Label used in the subject and body of relayed emails"
    )

    # =========================================================================
    # CORS / SECURITY
    # =========================================================================
    cors_origin: str = Field(
        default="*",
        description="Allowed CORS origin ('*', one origin, or a comma-separated list)"
    )
    security_validate_headers: bool = Field(
        default=True,
        description="Reject requests carrying headers outside the allow-list"
    )
    max_body_bytes: int = Field(
        default=10_240,
        description="Largest request body accepted, in bytes",
        ge=1
    )

    # =========================================================================
    # RATE LIMITING
    # =========================================================================
    rate_limit_window_ms: int = Field(
        default=900_000,
        description="General rate limit window in milliseconds (per client IP)",
        ge=1
    )
    rate_limit_max: int = Field(
        default=50,
        description="Requests allowed per IP within the general window",
        ge=1
    )
    email_rate_limit_window_ms: int = Field(
        default=86_400_000,
        description="Email rate limit window in milliseconds (per submitted address)",
        ge=1
    )
    email_rate_limit_max: int = Field(
        default=2,
        description="Submissions allowed per address within the email window",
        ge=1
    )

    # =========================================================================
    # EMAIL PROVIDER SELECTION
    # =========================================================================
    email_provider: Optional[ProviderType] = Field(
        default=None,
        description="Explicit provider; unset applies the API key / host fallback policy"
    )
    email_send_timeout_seconds: float = Field(
        default=25.0,
        description="Upper bound for a single provider send call",
        gt=0,
        le=300
    )
    verify_provider_on_startup: bool = Field(
        default=True,
        description="Initialize (and verify) the provider when the server host starts"
    )

    # =========================================================================
    # SMTP + OAUTH2
    # =========================================================================
    email_service: Literal["gmail", "outlook", "yahoo", "zoho"] = Field(
        default="gmail",
        description="Well-known SMTP service"
    )
    email_user: str = Field(
        default="test@example.com",
        description="Mailbox that sends (SMTP) and receives contact submissions"
    )
    oauth2_client_id: Optional[str] = Field(default=None, description="OAuth2 client ID")
    oauth2_client_secret: Optional[str] = Field(default=None, description="OAuth2 client secret")
    oauth2_refresh_token: Optional[str] = Field(default=None, description="OAuth2 refresh token")
    oauth2_token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="Token endpoint used for the refresh-token exchange"
    )
    smtp_host: Optional[str] = Field(default=None, description="SMTP host override")
    smtp_port: Optional[int] = Field(default=None, description="SMTP port override", ge=1, le=65535)

    # =========================================================================
    # HTTP RELAY (MailChannels)
    # =========================================================================
    mailchannels_api_url: str = Field(
        default="https://api.mailchannels.net/tx/v1/send",
        description="Relay endpoint"
    )
    mailchannels_api_key: Optional[str] = Field(default=None, description="Relay API key")
    mailchannels_sender_email: Optional[str] = Field(default=None, description="Sender email override")
    mailchannels_sender_domain: Optional[str] = Field(default=None, description="Sender domain override")
    mailchannels_domain_id: Optional[str] = Field(
        default=None,
        description="Pre-registered domain identifier for domain authentication"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @field_validator(
        "oauth2_client_id",
        "oauth2_client_secret",
        "oauth2_refresh_token",
        "mailchannels_api_key",
        "mailchannels_sender_email",
        "mailchannels_sender_domain",
        "mailchannels_domain_id",
        "smtp_host",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty environment variables as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("email_provider", mode="before")
    @classmethod
    def parse_email_provider(cls, v: Optional[str]) -> Optional[str]:
        """Accept an empty string or 'auto' as 'use the fallback policy'."""
        if isinstance(v, str):
            v = v.strip().lower()
            if v in ("", "auto"):
                return None
        return v

    @model_validator(mode="after")
    def validate_smtp_credentials(self) -> "Settings":
        """An explicit SMTP provider in production needs the full OAuth2 triple."""
        if (
            self.environment == "production"
            and self.email_provider == ProviderType.SMTP_OAUTH2
            and not self.has_oauth2_credentials
        ):
            raise ValueError(
                "OAUTH2_CLIENT_ID, OAUTH2_CLIENT_SECRET and OAUTH2_REFRESH_TOKEN "
                "are required when EMAIL_PROVIDER=smtp_oauth2 in production"
            )
        return self

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from the comma-separated setting."""
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]

    @property
    def cors_allows_any(self) -> bool:
        return "*" in self.cors_origins

    @property
    def cors_domain(self) -> str:
        """Hostname of the first configured CORS origin."""
        origins = self.cors_origins
        if not origins:
            return ""
        first = origins[0]
        parsed = urlparse(first if "://" in first else f"https://{first}")
        return parsed.hostname or ""

    @property
    def has_oauth2_credentials(self) -> bool:
        return bool(
            self.oauth2_client_id
            and self.oauth2_client_secret
            and self.oauth2_refresh_token
        )

    @property
    def smtp_endpoint(self) -> tuple[str, int, bool]:
        """Resolve (host, port, implicit TLS) for the SMTP transport."""
        host, port, use_tls = SMTP_SERVICES[self.email_service]
        if self.smtp_port is not None:
            port = self.smtp_port
            use_tls = port == 465
        return self.smtp_host or host, port, use_tls


@lru_cache
def get_settings() -> Settings:
    """
    Singleton Settings Instance

    LRU cache ensures settings are loaded once and reused.
    Call get_settings.cache_clear() to reload if needed.

    Returns:
        Settings: Application settings instance

    Example:
        >>> from contact_relay.app.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.cors_origin)
    """
    return Settings()
