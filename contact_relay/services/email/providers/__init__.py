"""
Email Providers
===============
Pluggable email transports and the factory that picks one per host.

- smtp_oauth2: SMTP mailbox with XOAUTH2 (server host default)
- relay_api_key: HTTP relay with an API key (whenever a key is configured)
- relay_domain_auth: HTTP relay with domain authentication (edge host default)
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from contact_relay.app.core.config import Settings, get_settings
from contact_relay.app.core.errors import AppError, ConfigurationError
from contact_relay.app.schemas.email import HostMode, ProviderType
from contact_relay.services.email.providers.base import EmailProvider, failure_result
from contact_relay.services.email.providers.relay import (
    ApiKeyRelayProvider,
    DomainAuthRelayProvider,
)
from contact_relay.services.email.providers.smtp import SmtpOAuth2Provider

logger = logging.getLogger(__name__)

# Provider registry
_provider_registry: dict[ProviderType, type] = {
    ProviderType.SMTP_OAUTH2: SmtpOAuth2Provider,
    ProviderType.RELAY_API_KEY: ApiKeyRelayProvider,
    ProviderType.RELAY_DOMAIN_AUTH: DomainAuthRelayProvider,
}


def register_provider(provider_type: ProviderType | str, provider_class: type) -> None:
    """
    Register a custom email provider.

    Args:
        provider_type: Provider type the class serves
        provider_class: Class called as `provider_class(settings, host=..., transport=...)`
    """
    _provider_registry[ProviderType(provider_type)] = provider_class


def resolve_provider_type(settings: Settings, host: HostMode) -> ProviderType:
    """
    Pick the provider type for a host.

    An explicit EMAIL_PROVIDER wins. Otherwise an API key selects the
    API-key relay on either host; without one the edge host uses domain
    authentication and the server host uses SMTP.
    """
    if settings.email_provider is not None:
        return settings.email_provider
    if settings.mailchannels_api_key:
        return ProviderType.RELAY_API_KEY
    if host is HostMode.EDGE:
        return ProviderType.RELAY_DOMAIN_AUTH
    return ProviderType.SMTP_OAUTH2


class EmailProviderFactory:
    """
    Creates, initializes and caches providers.

    One instance is kept per (provider type, host). A provider whose
    `initialize()` fails is never cached.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._cache: dict[tuple[ProviderType, HostMode], EmailProvider] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    def resolve_provider_type(self, host: HostMode = HostMode.SERVER) -> ProviderType:
        return resolve_provider_type(self._settings, host)

    async def get_provider(self, host: HostMode = HostMode.SERVER) -> EmailProvider:
        """
        Get the initialized provider for a host.

        Raises:
            ConfigurationError: If the provider cannot be created or initialized
        """
        provider_type = self.resolve_provider_type(host)
        key = (provider_type, host)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        provider_class = _provider_registry.get(provider_type)
        if provider_class is None:
            supported = ", ".join(p.value for p in _provider_registry)
            raise ConfigurationError(
                f"Unsupported email provider: {provider_type.value}. Supported: {supported}"
            )

        logger.info(
            "Initializing email provider",
            extra={"provider": provider_type.value, "host": host.value},
        )
        try:
            provider = provider_class(self._settings, host=host, transport=self._transport)
            await provider.initialize()
        except AppError as exc:
            logger.error(
                "Email provider initialization failed",
                extra={"provider": provider_type.value, "error": exc.message},
            )
            raise
        except Exception as exc:
            logger.error(
                "Email provider initialization failed",
                exc_info=exc,
                extra={"provider": provider_type.value},
            )
            raise ConfigurationError(
                f"Failed to initialize {provider_type.value} provider: {exc}"
            ) from exc

        self._cache[key] = provider
        return provider

    def clear_cache(self) -> None:
        self._cache.clear()

    def cached_keys(self) -> list[tuple[ProviderType, HostMode]]:
        return list(self._cache)


# Singleton factory
_factory: Optional[EmailProviderFactory] = None


def get_email_provider_factory(settings: Settings | None = None) -> EmailProviderFactory:
    """Get or create the process-wide provider factory."""
    global _factory
    if _factory is None:
        _factory = EmailProviderFactory(settings or get_settings())
    return _factory


def reset_email_provider_factory() -> None:
    """Drop the process-wide factory and its cached providers."""
    global _factory
    if _factory is not None:
        _factory.clear_cache()
    _factory = None


__all__ = [
    # Interface
    "EmailProvider",
    "failure_result",
    # Providers
    "SmtpOAuth2Provider",
    "ApiKeyRelayProvider",
    "DomainAuthRelayProvider",
    # Factory
    "EmailProviderFactory",
    "resolve_provider_type",
    "register_provider",
    "get_email_provider_factory",
    "reset_email_provider_factory",
]
