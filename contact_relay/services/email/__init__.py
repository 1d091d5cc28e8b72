"""
Email Delivery
==============
Providers, payload helpers and the OAuth2 token exchange.
"""

from contact_relay.services.email.oauth2 import (
    AccessToken,
    OAuthTokenError,
    exchange_refresh_token,
    require_oauth2_credentials,
)
from contact_relay.services.email.payload import (
    build_html_body,
    build_relay_payload,
    build_subject,
    build_text_body,
    post_to_relay,
    resolve_sender,
    validate_api_key,
)
from contact_relay.services.email.providers import (
    ApiKeyRelayProvider,
    DomainAuthRelayProvider,
    EmailProvider,
    EmailProviderFactory,
    SmtpOAuth2Provider,
    get_email_provider_factory,
    register_provider,
    reset_email_provider_factory,
    resolve_provider_type,
)

__all__ = [
    # OAuth2
    "AccessToken",
    "OAuthTokenError",
    "exchange_refresh_token",
    "require_oauth2_credentials",
    # Payload
    "build_html_body",
    "build_relay_payload",
    "build_subject",
    "build_text_body",
    "post_to_relay",
    "resolve_sender",
    "validate_api_key",
    # Providers
    "EmailProvider",
    "SmtpOAuth2Provider",
    "ApiKeyRelayProvider",
    "DomainAuthRelayProvider",
    # Factory
    "EmailProviderFactory",
    "get_email_provider_factory",
    "register_provider",
    "reset_email_provider_factory",
    "resolve_provider_type",
]
