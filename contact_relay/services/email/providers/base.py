"""
Email Provider Interface
========================
Structural interface every email transport satisfies.

Providers take a validated submission and return an `EmailSendResult`.
Transport failures come back as a failed result; application errors
(configuration problems, for instance) are raised unchanged.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol, runtime_checkable

from contact_relay.app.core.errors import AppError
from contact_relay.app.schemas.email import EmailSendResult, EmailSubmission, ProviderType

logger = logging.getLogger(__name__)


@runtime_checkable
class EmailProvider(Protocol):
    """
    Email transport.

    Implementations must be safe to share between concurrent sends.
    """

    provider_type: ProviderType

    async def initialize(self) -> None:
        """Prepare credentials / verify the transport. Idempotent."""
        ...

    async def send_email(
        self,
        submission: EmailSubmission,
        client_ip: Optional[str] = None,
        host_is_edge: bool = False,
    ) -> EmailSendResult:
        """Deliver one submission."""
        ...


def failure_result(
    exc: Exception,
    provider_type: ProviderType,
    started: float,
    client_ip: Optional[str] = None,
) -> EmailSendResult:
    """
    Turn a send exception into a failed result.

    Raises:
        AppError: Re-raised unchanged
    """
    duration_ms = int((time.perf_counter() - started) * 1000)
    if isinstance(exc, AppError):
        logger.error(
            "Email provider raised an application error",
            extra={"provider": provider_type.value, "error": exc.message, "duration_ms": duration_ms},
        )
        raise exc

    logger.error(
        "Email sending failed",
        exc_info=exc,
        extra={"provider": provider_type.value, "ip": client_ip, "duration_ms": duration_ms},
    )
    return EmailSendResult(success=False, message_id=None, error=exc)
