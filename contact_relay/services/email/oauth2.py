"""
OAuth2 Refresh-Token Exchange
=============================
Trades the configured refresh token for a short-lived access token used
by the SMTP XOAUTH2 mechanism.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Refresh a little before the provider-reported expiry
EXPIRY_MARGIN_SECONDS = 60
DEFAULT_EXPIRES_IN = 3600


class OAuthTokenError(Exception):
    """Token exchange failed."""
    pass


@dataclass(frozen=True)
class AccessToken:
    """Access token plus its monotonic expiry."""
    token: str
    expires_at: float

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


def require_oauth2_credentials(settings: Settings) -> tuple[str, str, str]:
    """
    Return (client id, client secret, refresh token).

    Raises:
        ConfigurationError: If any of the three is missing
    """
    missing = [
        name
        for name, value in (
            ("OAUTH2_CLIENT_ID", settings.oauth2_client_id),
            ("OAUTH2_CLIENT_SECRET", settings.oauth2_client_secret),
            ("OAUTH2_REFRESH_TOKEN", settings.oauth2_refresh_token),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"OAuth2 credentials missing: {', '.join(missing)}",
            details={"missing": missing},
        )
    return settings.oauth2_client_id, settings.oauth2_client_secret, settings.oauth2_refresh_token


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type(httpx.TransportError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def exchange_refresh_token(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AccessToken:
    """
    Exchange the refresh token for an access token.

    Network errors are retried; a non-200 answer is not.

    Raises:
        ConfigurationError: If credentials are incomplete
        OAuthTokenError: If the token endpoint rejects the exchange
    """
    client_id, client_secret, refresh_token = require_oauth2_credentials(settings)

    async with httpx.AsyncClient(timeout=httpx.Timeout(15.0), transport=transport) as client:
        response = await client.post(
            settings.oauth2_token_url,
            data={
                "grant_type": "refresh_token",
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
            },
        )

    if response.status_code != 200:
        raise OAuthTokenError(
            f"Token refresh failed: {response.status_code} - {response.text}"
        )

    data = response.json()
    token = data.get("access_token")
    if not token:
        raise OAuthTokenError("Token refresh response did not include an access token")

    expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
    logger.info("OAuth2 access token refreshed", extra={"expires_in": expires_in})
    return AccessToken(
        token=token,
        expires_at=time.monotonic() + max(0, expires_in - EXPIRY_MARGIN_SECONDS),
    )
