"""
Server Host Adapters
====================
Wrap a Starlette request/response pair (the FastAPI server process).

The native response is created up front and filled in by `send()`; its
background task is the completion signal, which Starlette runs once the
body has been flushed to the client.
"""

from __future__ import annotations

from typing import Any

from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response

from contact_relay.app.adapters.base import (
    DEFAULT_CONTENT_TYPE,
    CommonRequest,
    CommonResponse,
    aggregate_headers,
    ensure_body_within_limit,
    parse_content_length,
    render_json,
)
from contact_relay.app.schemas.email import HostMode


async def read_limited_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, stopping as soon as it exceeds `limit` bytes.

    Raises:
        PayloadTooLargeError: If the declared or received size is above `limit`
    """
    ensure_body_within_limit(parse_content_length(request.headers.get("content-length")), limit)

    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        ensure_body_within_limit(len(received), limit)
    return bytes(received)


class ServerRequestAdapter(CommonRequest):
    """CommonRequest over a Starlette `Request` whose body was parsed upstream."""

    host = HostMode.SERVER

    def __init__(self, request: Request, body: Any = None):
        client = request.client
        super().__init__(
            method=request.method,
            url=str(request.url),
            path=request.url.path,
            ip=client.host if client and client.host else "unknown",
            headers=aggregate_headers(request.headers.items()),
            body=body,
            query=dict(request.query_params),
            params=dict(request.path_params),
        )
        self._request = request

    def get_original_request(self) -> Request:
        return self._request


class ServerResponseAdapter(CommonResponse):
    """CommonResponse that renders into a live Starlette `Response`."""

    host = HostMode.SERVER

    def __init__(self, native: Response | None = None):
        super().__init__()
        self._native = native or Response(status_code=200, media_type=DEFAULT_CONTENT_TYPE)

    @property
    def native(self) -> Response:
        return self._native

    def send(self) -> Response:
        """
        Copy status, headers and body onto the native response.

        Returns:
            Response: The native response, with `finish` wired to its
            background task
        """
        if self.sent:
            return self._native

        native = self._native
        native.status_code = self.status_code
        for name, value in self.headers.items():
            if value is None:
                continue
            native.headers[name] = ", ".join(value) if isinstance(value, list) else str(value)

        if self.has_body:
            native.body = render_json(self.body).encode("utf-8")
            native.headers["content-length"] = str(len(native.body))
        else:
            native.body = b""
            if "content-length" in native.headers:
                del native.headers["content-length"]

        native.background = BackgroundTask(self._finish)
        self.sent = True
        return native

    async def _finish(self) -> None:
        self._emit_finish()
