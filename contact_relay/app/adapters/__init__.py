"""
Host Adapters
=============
One request/response contract, implemented once per host.

- Server: FastAPI / Starlette process
- Edge: AWS Lambda proxy events
"""

from contact_relay.app.adapters.base import (
    NO_BODY_STATUSES,
    CommonRequest,
    CommonResponse,
    aggregate_headers,
    parse_json_body,
    render_json,
)
from contact_relay.app.adapters.edge import EdgeRequestAdapter, EdgeResponseAdapter
from contact_relay.app.adapters.server import ServerRequestAdapter, ServerResponseAdapter

__all__ = [
    # Contract
    "NO_BODY_STATUSES",
    "CommonRequest",
    "CommonResponse",
    "aggregate_headers",
    "parse_json_body",
    "render_json",
    # Server host
    "ServerRequestAdapter",
    "ServerResponseAdapter",
    # Edge host
    "EdgeRequestAdapter",
    "EdgeResponseAdapter",
]
