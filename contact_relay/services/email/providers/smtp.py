"""
SMTP OAuth2 Provider
====================
Deliver through an SMTP mailbox authenticated with XOAUTH2.

On the server host the access token is fetched at `initialize()` (which
also verifies the SMTP login) and refreshed once it expires. On the edge
host a fresh token is exchanged for every send.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any, Optional

import aiosmtplib
import httpx

from contact_relay.app.core.config import Settings
from contact_relay.app.schemas.email import EmailSendResult, EmailSubmission, HostMode, ProviderType
from contact_relay.services.email.oauth2 import (
    AccessToken,
    exchange_refresh_token,
    require_oauth2_credentials,
)
from contact_relay.services.email.payload import (
    SENDER_NAME,
    build_html_body,
    build_subject,
    build_text_body,
)
from contact_relay.services.email.providers.base import failure_result

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 20.0
AUTH_SUCCESS = 235
AUTH_CONTINUE = 334


def xoauth2_string(user: str, access_token: str) -> str:
    """Base64 SASL XOAUTH2 initial response."""
    raw = f"user={user}\x01auth=Bearer {access_token}\x01\x01"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


async def authenticate_xoauth2(smtp: aiosmtplib.SMTP, user: str, access_token: str) -> None:
    """
    Run `AUTH XOAUTH2` on a connected client.

    Raises:
        aiosmtplib.SMTPAuthenticationError: If the server rejects the token
    """
    if not smtp.supports_extension("auth"):
        await smtp.ehlo()

    response = await smtp.execute_command(
        b"AUTH", b"XOAUTH2", xoauth2_string(user, access_token).encode("ascii")
    )
    if response.code == AUTH_CONTINUE:
        # Server sent an error challenge; an empty line completes the exchange
        response = await smtp.execute_command(b"")
    if response.code != AUTH_SUCCESS:
        raise aiosmtplib.SMTPAuthenticationError(response.code, response.message)


def build_message(submission: EmailSubmission, settings: Settings) -> EmailMessage:
    """Multipart text + HTML message addressed to the site mailbox."""
    mailbox = settings.email_user
    message = EmailMessage()
    message["From"] = formataddr((SENDER_NAME, mailbox))
    message["To"] = mailbox
    message["Reply-To"] = formataddr((submission.name, submission.email))
    message["Subject"] = build_subject(submission, settings)
    message["Message-ID"] = make_msgid(domain=mailbox.rpartition("@")[2] or None)
    message.set_content(build_text_body(submission, settings))
    message.add_alternative(build_html_body(submission, settings), subtype="html")
    return message


class SmtpOAuth2Provider:
    """SMTP transport using the OAuth2 refresh-token flow."""

    provider_type = ProviderType.SMTP_OAUTH2

    def __init__(
        self,
        settings: Settings,
        host: HostMode = HostMode.SERVER,
        transport: httpx.AsyncBaseTransport | None = None,
        smtp_factory: Callable[..., Any] | None = None,
    ):
        self._settings = settings
        self._host = host
        self._transport = transport
        self._smtp_factory = smtp_factory or aiosmtplib.SMTP
        self._token: AccessToken | None = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _client(self) -> aiosmtplib.SMTP:
        hostname, port, use_tls = self._settings.smtp_endpoint
        return self._smtp_factory(
            hostname=hostname,
            port=port,
            use_tls=use_tls,
            timeout=SMTP_TIMEOUT_SECONDS,
        )

    async def _access_token(self, host_is_edge: bool) -> str:
        if host_is_edge or self._host is HostMode.EDGE:
            return (await exchange_refresh_token(self._settings, self._transport)).token
        if self._token is None or self._token.is_expired:
            self._token = await exchange_refresh_token(self._settings, self._transport)
        return self._token.token

    async def initialize(self) -> None:
        """
        Check credentials; on the server host also fetch a token and verify
        the SMTP login.

        Raises:
            ConfigurationError: If the OAuth2 credentials are incomplete
        """
        if self._initialized:
            return

        require_oauth2_credentials(self._settings)

        if self._host is HostMode.SERVER:
            token = await self._access_token(host_is_edge=False)
            async with self._client() as smtp:
                await authenticate_xoauth2(smtp, self._settings.email_user, token)
            logger.info(
                "SMTP transport verified",
                extra={"smtp_host": self._settings.smtp_endpoint[0]},
            )

        self._initialized = True

    async def send_email(
        self,
        submission: EmailSubmission,
        client_ip: Optional[str] = None,
        host_is_edge: bool = False,
    ) -> EmailSendResult:
        started = time.perf_counter()
        try:
            require_oauth2_credentials(self._settings)
            token = await self._access_token(host_is_edge)
            message = build_message(submission, self._settings)
            async with self._client() as smtp:
                await authenticate_xoauth2(smtp, self._settings.email_user, token)
                await smtp.send_message(message)
        except Exception as exc:
            return failure_result(exc, self.provider_type, started, client_ip)

        logger.info(
            "Email sent via SMTP",
            extra={
                "provider": self.provider_type.value,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return EmailSendResult(success=True, message_id=message["Message-ID"])
