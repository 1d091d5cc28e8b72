"""
Test helpers: settings builder, request builders for both hosts and
fake transports.
"""

import base64
import json
from types import SimpleNamespace
from typing import Any, Optional

import httpx
from starlette.requests import Request

from contact_relay.app.adapters.edge import EdgeRequestAdapter, EdgeResponseAdapter
from contact_relay.app.adapters.server import ServerRequestAdapter, ServerResponseAdapter
from contact_relay.app.core.config import Settings

# Far from an hour boundary, so the hourly store eviction never fires
FIXED_NOW_MS = 1_700_000_500_000


# =============================================================================
# SETTINGS
# =============================================================================

DEFAULT_TEST_SETTINGS: dict[str, Any] = {
    "environment": "test",
    "cors_origin": "https://example.com",
    "email_user": "owner@example.com",
    "email_provider": None,
    "mailchannels_api_key": None,
    "mailchannels_sender_email": None,
    "mailchannels_sender_domain": None,
    "mailchannels_domain_id": None,
    "oauth2_client_id": None,
    "oauth2_client_secret": None,
    "oauth2_refresh_token": None,
    "verify_provider_on_startup": False,
}


def build_settings(**overrides: Any) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, **{**DEFAULT_TEST_SETTINGS, **overrides})


# =============================================================================
# REQUEST BUILDERS
# =============================================================================

def make_server_request(
    method: str = "GET",
    path: str = "/",
    headers: Optional[list[tuple[str, str]]] = None,
    body: Any = None,
    query: str = "",
    client: Optional[tuple[str, int]] = ("203.0.113.7", 50000),
) -> ServerRequestAdapter:
    """ServerRequestAdapter over a Starlette request built from a raw scope."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or [])],
        "client": client,
        "server": ("testserver", 80),
    }
    return ServerRequestAdapter(Request(scope), body)


def make_edge_event(
    method: str = "GET",
    path: str = "/",
    headers: Optional[dict[str, str]] = None,
    body: Any = None,
    version: str = "2.0",
    source_ip: str = "198.51.100.4",
    base64_body: bool = False,
) -> dict[str, Any]:
    """API Gateway proxy event (payload 1.0 or 2.0)."""
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)
    if base64_body and body is not None:
        body = base64.b64encode(body.encode()).decode()

    if version == "2.0":
        return {
            "version": "2.0",
            "rawPath": path,
            "rawQueryString": "",
            "headers": dict(headers or {}),
            "requestContext": {"http": {"method": method, "path": path, "sourceIp": source_ip}},
            "body": body,
            "isBase64Encoded": base64_body,
        }
    return {
        "httpMethod": method,
        "path": path,
        "headers": dict(headers or {}),
        "multiValueHeaders": {k: [v] for k, v in (headers or {}).items()},
        "queryStringParameters": None,
        "pathParameters": None,
        "requestContext": {"identity": {"sourceIp": source_ip}},
        "body": body,
        "isBase64Encoded": base64_body,
    }


def make_edge_request(
    method: str = "GET",
    path: str = "/",
    headers: Optional[list[tuple[str, str]]] = None,
    body: Any = None,
) -> EdgeRequestAdapter:
    multi: dict[str, list[str]] = {}
    for key, value in headers or []:
        multi.setdefault(key, []).append(value)
    event = {
        "httpMethod": method,
        "path": path,
        "headers": {key: values[-1] for key, values in multi.items()},
        "multiValueHeaders": multi,
        "requestContext": {"identity": {"sourceIp": "198.51.100.4"}},
    }
    return EdgeRequestAdapter(event, body)


async def finalize_server(res: ServerResponseAdapter) -> dict[str, Any]:
    """Send, run the completion signal and decode the native response."""
    native = res.send()
    if native.background is not None:
        await native.background()
    body = json.loads(native.body) if native.body else None
    return {"status": native.status_code, "headers": dict(native.headers), "body": body, "native": native}


async def finalize_edge(res: EdgeResponseAdapter) -> dict[str, Any]:
    result = res.send()
    raw = result.get("body")
    body = json.loads(raw) if raw else None
    headers = {k.lower(): v for k, v in result["headers"].items()}
    return {"status": result["statusCode"], "headers": headers, "body": body, "native": result}


HOSTS = {
    "server": (make_server_request, ServerResponseAdapter, finalize_server),
    "edge": (make_edge_request, EdgeResponseAdapter, finalize_edge),
}


# =============================================================================
# FAKE TRANSPORTS
# =============================================================================

class RecordingTransport:
    """httpx.MockTransport wrapper that records every request."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        self.transport = httpx.MockTransport(_record)


class FakeSMTP:
    """Stand-in for aiosmtplib.SMTP recording the session."""

    def __init__(self, auth_code: int = 235, send_error: Optional[Exception] = None, **kwargs: Any):
        self.kwargs = kwargs
        self.auth_code = auth_code
        self.send_error = send_error
        self.commands: list[tuple[bytes, ...]] = []
        self.sent: list[Any] = []
        self.greeted = False

    async def __aenter__(self) -> "FakeSMTP":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    def supports_extension(self, name: str) -> bool:
        return self.greeted

    async def ehlo(self) -> None:
        self.greeted = True

    async def execute_command(self, *args: bytes):
        self.commands.append(args)
        return SimpleNamespace(code=self.auth_code, message="auth result")

    async def send_message(self, message: Any):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        return {}, "OK"

