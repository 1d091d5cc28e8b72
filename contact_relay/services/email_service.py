"""
Email Service
=============
Facade used by the route handlers: validate the raw submission, pick a
provider for the current host and deliver under a timeout.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from contact_relay.app.core.config import Settings, get_settings
from contact_relay.app.core.errors import AppError, EmailError, ValidationError, validation_details
from contact_relay.app.schemas.email import EmailResponse, EmailSubmission, HostMode
from contact_relay.services.email.providers import EmailProviderFactory, get_email_provider_factory

logger = logging.getLogger(__name__)


class EmailService:
    """
    Contact submission delivery.

    Usage:
        service = EmailService(factory, settings)
        result = await service.send_email(req.body, client_ip=req.ip)
    """

    def __init__(
        self,
        factory: EmailProviderFactory | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or (factory.settings if factory else get_settings())
        self._factory = factory or get_email_provider_factory(self._settings)

    @property
    def factory(self) -> EmailProviderFactory:
        return self._factory

    async def send_email(
        self,
        raw_input: Any,
        client_ip: Optional[str] = None,
        host_is_edge: bool = False,
    ) -> EmailResponse:
        """
        Validate and deliver one submission.

        Args:
            raw_input: Unvalidated request body
            client_ip: Caller address, for logging
            host_is_edge: Whether the edge host is running this call

        Returns:
            EmailResponse: Delivery outcome with timing

        Raises:
            ValidationError: Input rejected; no provider is touched
            EmailError: Delivery failed or timed out
            AppError: Provider configuration errors, unchanged
        """
        started = time.perf_counter()
        host = HostMode.EDGE if host_is_edge else HostMode.SERVER

        logger.info("Email send attempt", extra={"ip": client_ip, "host": host.value})

        try:
            submission = EmailSubmission.model_validate(raw_input)
        except PydanticValidationError as exc:
            raise ValidationError(details=validation_details(exc)) from exc

        context = {"recipient": self._settings.email_user, "host": host.value}
        logger.info("Email submission validated", extra=context)

        try:
            provider = await self._factory.get_provider(host)
            result = await asyncio.wait_for(
                provider.send_email(submission, client_ip=client_ip, host_is_edge=host_is_edge),
                timeout=self._settings.email_send_timeout_seconds,
            )
        except AppError:
            logger.error(
                "Email send failed",
                extra={**context, "duration_ms": self._elapsed_ms(started)},
            )
            raise
        except asyncio.TimeoutError as exc:
            logger.error(
                "Email send timed out",
                extra={**context, "duration_ms": self._elapsed_ms(started)},
            )
            raise EmailError(
                f"Email provider timed out after {self._settings.email_send_timeout_seconds}s"
            ) from exc
        except Exception as exc:
            logger.error(
                "Email send failed",
                exc_info=exc,
                extra={**context, "duration_ms": self._elapsed_ms(started)},
            )
            raise EmailError(str(exc) or type(exc).__name__) from exc

        duration_ms = self._elapsed_ms(started)
        if not result.success:
            error = result.error
            logger.error(
                "Email send failed",
                extra={**context, "duration_ms": duration_ms, "error": str(error)},
            )
            raise EmailError(str(error) if error else "Email provider reported a failure")

        logger.info(
            "Email sent successfully",
            extra={**context, "duration_ms": duration_ms, "message_id": result.message_id},
        )
        return EmailResponse(
            success=True,
            message_id=result.message_id,
            message="Email sent successfully",
            duration_ms=duration_ms,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
