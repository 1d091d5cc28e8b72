"""
Email Service Tests
===================
Tests for the EmailService facade with a mocked provider factory.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from contact_relay.app.core.errors import ConfigurationError, EmailError, ValidationError
from contact_relay.app.schemas.email import EmailSendResult, HostMode
from contact_relay.services.email_service import EmailService


class TestEmailService:
    """Tests for EmailService.send_email."""

    @pytest.mark.asyncio
    async def test_send_email_success(self, mock_factory, mock_provider, settings, valid_payload):
        """Should validate, pick the server provider and report the message id."""
        service = EmailService(mock_factory, settings)

        result = await service.send_email(valid_payload, client_ip="203.0.113.7")

        assert result.success is True
        assert result.message_id == "abc123"
        assert result.message == "Email sent successfully"
        assert result.duration_ms >= 0
        mock_factory.get_provider.assert_awaited_once_with(HostMode.SERVER)

        submission = mock_provider.send_email.await_args.args[0]
        assert submission.email == "ada@example.com"
        assert mock_provider.send_email.await_args.kwargs == {
            "client_ip": "203.0.113.7",
            "host_is_edge": False,
        }

    @pytest.mark.asyncio
    async def test_edge_host_selects_edge_provider(self, mock_factory, settings, valid_payload):
        service = EmailService(mock_factory, settings)

        await service.send_email(valid_payload, host_is_edge=True)

        mock_factory.get_provider.assert_awaited_once_with(HostMode.EDGE)

    @pytest.mark.asyncio
    async def test_invalid_input_never_reaches_provider(self, mock_factory, mock_provider, settings):
        service = EmailService(mock_factory, settings)

        with pytest.raises(ValidationError) as exc_info:
            await service.send_email({"name": "Ada", "email": "bad", "message": "Hello there, friend."})

        assert exc_info.value.details[0]["field"] == "email"
        mock_factory.get_provider.assert_not_awaited()
        mock_provider.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_result_becomes_email_error(self, mock_factory, mock_provider, settings, valid_payload):
        mock_provider.send_email.return_value = EmailSendResult(
            success=False, error=RuntimeError("relay said no")
        )
        service = EmailService(mock_factory, settings)

        with pytest.raises(EmailError) as exc_info:
            await service.send_email(valid_payload)

        assert exc_info.value.message == "relay said no"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_email_error(self, mock_factory, mock_provider, settings, valid_payload):
        mock_provider.send_email.side_effect = OSError("socket closed")
        service = EmailService(mock_factory, settings)

        with pytest.raises(EmailError):
            await service.send_email(valid_payload)

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, mock_factory, settings, valid_payload):
        mock_factory.get_provider.side_effect = ConfigurationError("no credentials")
        service = EmailService(mock_factory, settings)

        with pytest.raises(ConfigurationError):
            await service.send_email(valid_payload)

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, mock_factory, mock_provider, make_settings, valid_payload):
        """Should give up after the configured send timeout."""

        async def slow_send(*args, **kwargs):
            await asyncio.sleep(5)

        mock_provider.send_email = AsyncMock(side_effect=slow_send)
        settings = make_settings(email_send_timeout_seconds=0.01)
        service = EmailService(mock_factory, settings)

        with pytest.raises(EmailError) as exc_info:
            await service.send_email(valid_payload)

        assert "timed out" in exc_info.value.message
