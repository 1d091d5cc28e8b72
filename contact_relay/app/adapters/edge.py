"""
Edge Host Adapters
==================
Wrap an AWS Lambda proxy event (API Gateway payload format 1.0 or 2.0).

The response is a fresh in-memory buffer per invocation; `send()` turns
it into the proxy-result mapping exactly once.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from contact_relay.app.adapters.base import (
    NO_BODY_STATUSES,
    CommonRequest,
    CommonResponse,
    aggregate_headers,
    render_json,
)
from contact_relay.app.schemas.email import HostMode


def _event_method(event: dict[str, Any]) -> str:
    http = (event.get("requestContext") or {}).get("http") or {}
    return event.get("httpMethod") or http.get("method") or "GET"


def _event_path(event: dict[str, Any]) -> str:
    return event.get("rawPath") or event.get("path") or "/"


def _event_ip(event: dict[str, Any]) -> str:
    context = event.get("requestContext") or {}
    http = context.get("http") or {}
    identity = context.get("identity") or {}
    return http.get("sourceIp") or identity.get("sourceIp") or "unknown"


def _event_header_pairs(event: dict[str, Any]) -> list[tuple[str, Any]]:
    multi = event.get("multiValueHeaders")
    if isinstance(multi, dict) and multi:
        return [
            (name, value)
            for name, values in multi.items()
            for value in (values if isinstance(values, list) else [values])
        ]
    headers = event.get("headers")
    if isinstance(headers, dict):
        return list(headers.items())
    return []


def event_headers(event: dict[str, Any]) -> dict[str, Any]:
    """Aggregated header map of a proxy event (multi-value headers preferred)."""
    return aggregate_headers(_event_header_pairs(event or {}))


def _event_url(event: dict[str, Any], headers: dict[str, Any], path: str, query: dict[str, Any]) -> str:
    host = headers.get("host")
    if isinstance(host, list):
        host = host[0]
    proto = headers.get("x-forwarded-proto") or "https"
    if isinstance(proto, list):
        proto = proto[0]
    url = f"{proto}://{host or 'localhost'}{path}"
    raw_query = event.get("rawQueryString")
    if raw_query:
        url = f"{url}?{raw_query}"
    elif query:
        url = f"{url}?{urlencode(query)}"
    return url


class EdgeRequestAdapter(CommonRequest):
    """CommonRequest over a Lambda proxy event."""

    host = HostMode.EDGE

    def __init__(self, event: dict[str, Any], body: Any = None):
        event = event or {}
        headers = event_headers(event)
        path = _event_path(event)
        query = event.get("queryStringParameters") or {}
        super().__init__(
            method=_event_method(event),
            url=_event_url(event, headers, path, query),
            path=path,
            ip=_event_ip(event),
            headers=headers,
            body=body,
            query=query,
            params=event.get("pathParameters") or {},
        )
        self._event = event

    def get_original_request(self) -> dict[str, Any]:
        return self._event


class EdgeResponseAdapter(CommonResponse):
    """CommonResponse buffered in memory and finalized into a proxy result."""

    host = HostMode.EDGE

    def __init__(self) -> None:
        super().__init__()
        self._result: dict[str, Any] | None = None

    def send(self) -> dict[str, Any]:
        """
        Build the proxy-result mapping.

        Every call returns a fresh copy of the mapping built on the first
        call; the body is omitted for statuses that cannot carry one.
        """
        if self._result is None:
            self._result = self._build_result()
            self.sent = True
            self._emit_finish()
        return {**self._result, "headers": dict(self._result["headers"])}

    def _build_result(self) -> dict[str, Any]:

        headers = {
            name: ", ".join(value) if isinstance(value, list) else str(value)
            for name, value in self.headers.items()
            if value is not None
        }
        result: dict[str, Any] = {
            "statusCode": self.status_code,
            "headers": headers,
            "isBase64Encoded": False,
        }
        if self.has_body:
            result["body"] = render_json(self.body)
        elif self.status_code not in NO_BODY_STATUSES:
            result["body"] = ""
        return result

    def _after_json(self) -> None:
        self._emit_finish()
