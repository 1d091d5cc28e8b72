"""
Email Payload Helpers
=====================
Free functions shared by the email providers:

- Sender resolution for the HTTP relay
- Plain-text and HTML body construction
- Relay (MailChannels-compatible) payload building and delivery
"""

from __future__ import annotations

import html
import logging
import re
import time
from typing import Any

import httpx

from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import ConfigurationError
from contact_relay.app.schemas.email import BrowserInfo, EmailSubmission, SenderInfo

logger = logging.getLogger(__name__)

RECIPIENT_NAME = "Site Admin"
SENDER_NAME = "Contact Form"
RELAY_TIMEOUT_SECONDS = 20.0
MIN_API_KEY_LENGTH = 8

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
_PRINTABLE_ASCII = re.compile(r"^[\x20-\x7E]+$")


# =============================================================================
# SENDER
# =============================================================================


def resolve_sender(settings: Settings) -> SenderInfo:
    """
    Resolve the relay sender address.

    Order: explicit sender email, then `noreply@<sender domain>`, then
    `noreply@<host of the first CORS origin>`.

    Raises:
        ConfigurationError: If no usable domain can be derived
    """
    domain = settings.mailchannels_sender_domain or settings.cors_domain
    if domain == "*":
        domain = ""

    if settings.mailchannels_sender_email:
        email = settings.mailchannels_sender_email
        return SenderInfo(email=email, domain=domain or email.rpartition("@")[2])

    if not domain:
        raise ConfigurationError(
            "Cannot derive a sender domain: set MAILCHANNELS_SENDER_EMAIL or "
            "MAILCHANNELS_SENDER_DOMAIN, or a concrete CORS_ORIGIN"
        )

    return SenderInfo(email=f"noreply@{domain}", domain=domain)


def validate_api_key(api_key: str | None) -> str:
    """
    Check the relay API key shape before any network call.

    Raises:
        ConfigurationError: If the key is missing or malformed
    """
    if not api_key:
        raise ConfigurationError(
            "Relay API key is missing. Set the MAILCHANNELS_API_KEY environment variable."
        )
    if len(api_key) < MIN_API_KEY_LENGTH or not _PRINTABLE_ASCII.match(api_key):
        raise ConfigurationError(
            "Relay API key appears to be malformed. Check the MAILCHANNELS_API_KEY environment variable."
        )
    return api_key


def describe_api_key(api_key: str | None) -> dict[str, Any]:
    """Loggable summary of a key: presence, length and a short prefix."""
    length = len(api_key) if api_key else 0
    return {
        "has_key": bool(api_key),
        "key_length": length,
        "key_prefix": f"{api_key[:4]}..." if api_key and length > 4 else "",
    }


# =============================================================================
# BODIES
# =============================================================================


def format_label(key: str) -> str:
    """`screenResolution` -> `Screen Resolution`."""
    spaced = _CAMEL_BOUNDARY.sub(" ", key)
    return spaced[:1].upper() + spaced[1:]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def browser_info_rows(browser_info: BrowserInfo | None) -> list[tuple[str, str]]:
    """Label/value pairs for every browser info field that has a value."""
    if browser_info is None:
        return []
    data = browser_info.model_dump(exclude_none=True)
    return [(format_label(key), _format_value(value)) for key, value in data.items()]


def build_subject(submission: EmailSubmission, settings: Settings) -> str:
    return f"{settings.site_name}: {submission.name} wants to get in touch"


def build_text_body(submission: EmailSubmission, settings: Settings) -> str:
    lines = [
        f"{settings.site_name} Contact Submission",
        "",
        f"From: {submission.name} <{submission.email}>",
        "",
        "Message:",
        submission.message,
    ]
    rows = browser_info_rows(submission.browser_info)
    if rows:
        lines += ["", "Browser Information:"]
        lines += [f"{label}: {value}" for label, value in rows]
    return "\n".join(lines)


def build_html_body(submission: EmailSubmission, settings: Settings) -> str:
    name = html.escape(submission.name)
    email = html.escape(submission.email)
    message = html.escape(submission.message).replace("\n", "<br>")

    parts = [
        f"<h2>Submission from {name}</h2>",
        f"<p><strong>From:</strong> {name} &lt;{email}&gt;</p>",
        "<p><strong>Message:</strong></p>",
        f'<div style="margin-left: 20px; padding: 10px; border-left: 4px solid #ccc;">{message}</div>',
    ]

    rows = browser_info_rows(submission.browser_info)
    if rows:
        table_rows = "".join(
            f'<tr style="background-color: {"#ffffff" if index % 2 == 0 else "#f8f9fa"};">'
            f'<td style="padding: 8px 12px; font-weight: 600; width: 200px;">{html.escape(label)}</td>'
            f'<td style="padding: 8px 12px; font-family: monospace;">{html.escape(value)}</td>'
            "</tr>"
            for index, (label, value) in enumerate(rows)
        )
        parts.append(
            '<details style="margin-top: 30px; font-family: Arial, sans-serif;">'
            "<summary>Browser Information</summary>"
            f'<table style="width: 100%; border-collapse: collapse;"><tbody>{table_rows}</tbody></table>'
            "</details>"
        )

    return "\n".join(parts)


# =============================================================================
# RELAY
# =============================================================================


def build_relay_payload(
    submission: EmailSubmission,
    sender: SenderInfo,
    settings: Settings,
    extra_headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build the relay endpoint JSON payload."""
    return {
        "personalizations": [
            {"to": [{"email": settings.email_user, "name": RECIPIENT_NAME}]},
        ],
        "from": {"email": sender.email, "name": SENDER_NAME},
        "subject": build_subject(submission, settings),
        "content": [
            {"type": "text/plain", "value": build_text_body(submission, settings)},
            {"type": "text/html", "value": build_html_body(submission, settings)},
        ],
        "reply_to": {"email": submission.email, "name": submission.name},
        "headers": dict(extra_headers or {}),
    }


def fallback_message_id() -> str:
    return f"mc-{int(time.time() * 1000)}"


async def post_to_relay(
    payload: dict[str, Any],
    settings: Settings,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    """
    POST a payload to the relay endpoint.

    A client is opened per call so each edge invocation stays on its own
    event loop.

    Returns:
        str | None: The `id` from the JSON response, if any

    Raises:
        httpx.HTTPStatusError: On a non-2xx response
        httpx.TransportError: On network failure
    """
    request_headers = {"Content-Type": "application/json", **(headers or {})}

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(RELAY_TIMEOUT_SECONDS),
        transport=transport,
    ) as client:
        response = await client.post(
            settings.mailchannels_api_url,
            json=payload,
            headers=request_headers,
        )

    if response.is_error:
        logger.error(
            "Relay API error",
            extra={"status": response.status_code, "response": response.text[:500]},
        )
        response.raise_for_status()

    try:
        data = response.json()
    except ValueError:
        logger.warning("Could not parse JSON response from relay")
        return None

    message_id = data.get("id") if isinstance(data, dict) else None
    return str(message_id) if message_id else None
