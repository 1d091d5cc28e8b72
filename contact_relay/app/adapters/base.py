"""
Request/Response Contract
=========================
Host-neutral request and response objects.

Middleware and route handlers only ever see these two types. Each host
(the ASGI server process and the edge function runtime) provides one
implementation of each, and nothing above this layer knows which host
is running.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Union

from contact_relay.app.core.errors import PayloadTooLargeError
from contact_relay.app.schemas.email import HostMode

logger = logging.getLogger(__name__)

HeaderValue = Union[str, list[str], None]

# Statuses that never carry a response body
NO_BODY_STATUSES = frozenset({101, 204, 205, 304})

DEFAULT_CONTENT_TYPE = "application/json"


# =============================================================================
# HELPERS
# =============================================================================


def aggregate_headers(pairs: Iterable[tuple[str, Any]]) -> dict[str, HeaderValue]:
    """
    Flatten header pairs into one map keyed by both the native and the
    lower-cased name. Repeated headers become a list in arrival order.
    """
    headers: dict[str, HeaderValue] = {}
    for name, value in pairs:
        if not isinstance(name, str) or not name:
            continue
        if value is not None and not isinstance(value, str):
            value = str(value)
        for key in {name, name.lower()}:
            existing = headers.get(key)
            if value is None:
                headers.setdefault(key, None)
            elif existing is None:
                headers[key] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                headers[key] = [existing, value]
    return headers


def first_header_value(headers: Mapping[str, HeaderValue], name: str) -> str | None:
    """Case-insensitive lookup in an aggregated map; first value of a repeated header."""
    value = headers.get(name.lower()) if isinstance(name, str) else None
    if isinstance(value, list):
        return value[0] if value else None
    return value


def parse_content_length(value: str | None) -> int | None:
    """Declared body size, or None when absent or not a number."""
    if value is None or not value.strip().isdigit():
        return None
    return int(value)


def ensure_body_within_limit(size: int | None, limit: int) -> None:
    """
    Raises:
        PayloadTooLargeError: If `size` is known and above `limit`
    """
    if size is not None and size > limit:
        raise PayloadTooLargeError(limit)


def render_json(data: Any) -> str:
    """Compact JSON text for a response body."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)


def parse_json_body(raw: bytes | str | None, content_type: str | None) -> Any:
    """
    Parse a JSON request body.

    Returns None for non-JSON content types, empty bodies and malformed
    JSON; validation answers those requests with a 400.
    """
    if not raw or "json" not in (content_type or "").lower():
        return None
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.debug("Ignoring malformed JSON body")
        return None


# =============================================================================
# REQUEST
# =============================================================================


class CommonRequest(ABC):
    """
    Read-only view of an inbound call.

    Attributes:
        method: Upper-cased HTTP method
        url: Full request URL
        path: Path component only
        ip: Client address, "unknown" when the host cannot tell
        headers: Flat header map (native + lower-cased keys)
        body: Parsed body, None when absent or unparseable
        query: Query string parameters
        params: Route parameters
    """

    host: HostMode

    def __init__(
        self,
        *,
        method: str,
        url: str,
        path: str,
        ip: str,
        headers: dict[str, HeaderValue],
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ):
        self.method = (method or "GET").upper()
        self.url = url
        self.path = path or "/"
        self.ip = ip or "unknown"
        self.headers = headers
        self.body = body
        self.query = dict(query or {})
        self.params = dict(params or {})

    def get(self, name: str) -> str | None:
        """Case-insensitive header lookup; first value of a repeated header."""
        return first_header_value(self.headers, name)

    @abstractmethod
    def get_original_request(self) -> Any:
        """Return the native request this adapter wraps."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(method={self.method}, path={self.path}, ip={self.ip})"


# =============================================================================
# RESPONSE
# =============================================================================


class CommonResponse(ABC):
    """
    Mutable response buffer, finalized exactly once by `send()`.

    Mutators return the response so calls can be chained:

        res.status(429).set("Retry-After", "60").json({...})
    """

    host: HostMode

    def __init__(self) -> None:
        self.status_code: int = 200
        self.headers: dict[str, Any] = {"Content-Type": DEFAULT_CONTENT_TYPE}
        self.body: Any = None
        self.handled: bool = False
        self.sent: bool = False
        self._listeners: dict[str, list[Callable[..., Any]]] = defaultdict(list)
        self._finished = False

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def status(self, code: int) -> CommonResponse:
        if self._ignore_after_send("status"):
            return self
        self.status_code = int(code)
        return self

    def set(self, name: str | Mapping[str, Any], value: Any = None) -> CommonResponse:
        """Set one header, or merge a mapping of headers."""
        if self._ignore_after_send("set"):
            return self
        if isinstance(name, Mapping):
            for key, val in name.items():
                self._set_header(key, val)
        else:
            self._set_header(name, value)
        return self

    def json(self, data: Any) -> CommonResponse:
        """Set a JSON body and mark the response as answered."""
        if self._ignore_after_send("json"):
            return self
        self.body = data
        self.handled = True
        self._after_json()
        return self

    def end(self) -> CommonResponse:
        """Mark the response as answered without a body."""
        if self._ignore_after_send("end"):
            return self
        self.handled = True
        return self

    def get_header(self, name: str) -> Any:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: Callable[..., Any]) -> CommonResponse:
        self._listeners[event].append(callback)
        return self

    def emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners.get(event, ())):
            callback(*args)

    def _emit_finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self.emit("finish")

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    @property
    def has_body(self) -> bool:
        return self.body is not None and self.status_code not in NO_BODY_STATUSES

    @abstractmethod
    def send(self) -> Any:
        """Finalize into the host's native response."""

    def _after_json(self) -> None:
        """Hook run after `json()`; hosts use it to time their finish signal."""

    def _set_header(self, name: str, value: Any) -> None:
        lowered = name.lower()
        for key in [key for key in self.headers if key.lower() == lowered and key != name]:
            del self.headers[key]
        self.headers[name] = value

    def _ignore_after_send(self, operation: str) -> bool:
        if self.sent:
            logger.debug("Ignoring %s() on a response that was already sent", operation)
            return True
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status_code}, handled={self.handled})"
