"""
HTTP Relay Providers
====================
Deliver through a MailChannels-compatible HTTP endpoint.

Two authentication modes share one payload and one endpoint:
- ApiKeyRelayProvider: static key in the `X-Api-Key` header
- DomainAuthRelayProvider: no credential header; the pre-registered
  domain identifier travels inside the payload
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from contact_relay.app.core.config import Settings
from contact_relay.app.schemas.email import EmailSendResult, EmailSubmission, HostMode, ProviderType
from contact_relay.services.email.payload import (
    build_relay_payload,
    describe_api_key,
    fallback_message_id,
    post_to_relay,
    resolve_sender,
    validate_api_key,
)
from contact_relay.services.email.providers.base import failure_result

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"
DOMAIN_ID_HEADER = "X-MC-Domain-Id"


async def send_via_relay(
    submission: EmailSubmission,
    settings: Settings,
    *,
    request_headers: dict[str, str] | None = None,
    payload_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Build the payload, POST it and return the message id."""
    sender = resolve_sender(settings)
    payload = build_relay_payload(submission, sender, settings, extra_headers=payload_headers)

    logger.info(
        "Sending email via relay",
        extra={"sender": sender.email, "recipient": settings.email_user},
    )
    message_id = await post_to_relay(
        payload,
        settings,
        headers=request_headers,
        transport=transport,
    )
    return message_id or fallback_message_id()


class ApiKeyRelayProvider:
    """Relay provider authenticated with an API key header."""

    provider_type = ProviderType.RELAY_API_KEY

    def __init__(
        self,
        settings: Settings,
        host: HostMode = HostMode.SERVER,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._host = host
        self._transport = transport
        self._api_key = settings.mailchannels_api_key
        logger.info("Relay API key provider created", extra=describe_api_key(self._api_key))

    async def initialize(self) -> None:
        # No long-lived connection; fail fast on configuration only
        validate_api_key(self._api_key)
        resolve_sender(self._settings)

    async def send_email(
        self,
        submission: EmailSubmission,
        client_ip: Optional[str] = None,
        host_is_edge: bool = False,
    ) -> EmailSendResult:
        started = time.perf_counter()
        try:
            api_key = validate_api_key(self._api_key)
            message_id = await send_via_relay(
                submission,
                self._settings,
                request_headers={API_KEY_HEADER: api_key},
                transport=self._transport,
            )
        except Exception as exc:
            return failure_result(exc, self.provider_type, started, client_ip)

        logger.info(
            "Email sent via relay",
            extra={
                "provider": self.provider_type.value,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return EmailSendResult(success=True, message_id=message_id)


class DomainAuthRelayProvider:
    """Relay provider authenticated by a registered sending domain."""

    provider_type = ProviderType.RELAY_DOMAIN_AUTH

    def __init__(
        self,
        settings: Settings,
        host: HostMode = HostMode.EDGE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._host = host
        self._transport = transport

    def _domain_id(self) -> str:
        return self._settings.mailchannels_domain_id or resolve_sender(self._settings).domain

    async def initialize(self) -> None:
        self._domain_id()

    async def send_email(
        self,
        submission: EmailSubmission,
        client_ip: Optional[str] = None,
        host_is_edge: bool = False,
    ) -> EmailSendResult:
        started = time.perf_counter()
        try:
            message_id = await send_via_relay(
                submission,
                self._settings,
                payload_headers={DOMAIN_ID_HEADER: self._domain_id()},
                transport=self._transport,
            )
        except Exception as exc:
            return failure_result(exc, self.provider_type, started, client_ip)

        logger.info(
            "Email sent via relay",
            extra={
                "provider": self.provider_type.value,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return EmailSendResult(success=True, message_id=message_id)
