"""
Test Configuration and Fixtures
================================
Shared pytest fixtures: settings, adapters for both hosts, mocked email
providers and fake transports.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from contact_relay.app.api.pipeline import RelayPipeline
from contact_relay.app.core.config import Settings
from contact_relay.app.main import create_application
from contact_relay.app.schemas.email import EmailSendResult, ProviderType
from contact_relay.services.email_service import EmailService

from contact_relay.tests.helpers import (
    FIXED_NOW_MS,
    HOSTS,
    FakeSMTP,
    RecordingTransport,
    build_settings,
)


# =============================================================================
# SETTINGS FIXTURES
# =============================================================================

@pytest.fixture
def make_settings():
    """Factory fixture for settings with overrides."""
    return build_settings


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def oauth2_settings() -> Settings:
    return build_settings(
        email_provider=ProviderType.SMTP_OAUTH2,
        oauth2_client_id="client-id",
        oauth2_client_secret="client-secret",
        oauth2_refresh_token="refresh-token",
    )


@pytest.fixture
def clock():
    """Controllable millisecond clock; set `clock.state.now` to move it."""
    state = SimpleNamespace(now=FIXED_NOW_MS)

    def now() -> int:
        return state.now

    now.state = state
    return now


# =============================================================================
# PAYLOAD FIXTURES
# =============================================================================

@pytest.fixture
def valid_payload() -> dict[str, Any]:
    return {
        "name": "Ada Lovelace",
        "email": "  ADA@Example.com ",
        "message": "Hello, I would like to talk about engines.",
    }


@pytest.fixture
def browser_info() -> dict[str, Any]:
    return {
        "userAgent": "Mozilla/5.0",
        "screenResolution": "1920x1080",
        "cookiesEnabled": True,
        "devicePixelRatio": 2,
        "gpuVendor": "Acme",
    }


# =============================================================================
# ADAPTER FIXTURES
# =============================================================================

@pytest.fixture(params=sorted(HOSTS))
def host_adapters(request):
    """(make_request, response_class, finalize) for each host."""
    return HOSTS[request.param]


# =============================================================================
# EMAIL PROVIDER FIXTURES
# =============================================================================

@pytest.fixture
def mock_provider():
    """Provider mock that succeeds with message id 'abc123'."""
    provider = MagicMock()
    provider.provider_type = ProviderType.RELAY_API_KEY
    provider.initialize = AsyncMock(return_value=None)
    provider.send_email = AsyncMock(
        return_value=EmailSendResult(success=True, message_id="abc123")
    )
    return provider


@pytest.fixture
def mock_factory(mock_provider, settings):
    factory = MagicMock()
    factory.settings = settings
    factory.get_provider = AsyncMock(return_value=mock_provider)
    factory.resolve_provider_type = MagicMock(return_value=ProviderType.RELAY_API_KEY)
    factory.clear_cache = MagicMock()
    return factory


@pytest.fixture
def make_pipeline(mock_factory, clock):
    """Build a pipeline around the mocked provider factory."""

    def _make(settings: Settings) -> RelayPipeline:
        mock_factory.settings = settings
        service = EmailService(mock_factory, settings)
        return RelayPipeline(settings, email_service=service, clock=clock)

    return _make


# =============================================================================
# APP FIXTURES
# =============================================================================

@pytest.fixture
def app(settings, make_pipeline) -> FastAPI:
    return create_application(settings, make_pipeline(settings))


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Synchronous test client (lifespan not run)."""
    return TestClient(app)


# =============================================================================
# TRANSPORT FIXTURES
# =============================================================================

@pytest.fixture
def relay_transport() -> RecordingTransport:
    """Relay endpoint answering 202 with a JSON message id."""
    return RecordingTransport(lambda request: httpx.Response(202, json={"id": "relay-42"}))


@pytest.fixture
def token_transport() -> RecordingTransport:
    """OAuth2 token endpoint that always issues a token."""
    return RecordingTransport(
        lambda request: httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3599})
    )


@pytest.fixture
def smtp_factory():
    """Factory for FakeSMTP sessions; `factory.sessions` lists them."""

    def factory(**kwargs: Any) -> FakeSMTP:
        session = FakeSMTP(auth_code=factory.auth_code, send_error=factory.send_error, **kwargs)
        factory.sessions.append(session)
        return session

    factory.sessions = []
    factory.auth_code = 235
    factory.send_error = None
    return factory
