"""
Edge Host Entry Point
=====================
AWS Lambda handler for API Gateway proxy events (payload 1.0 and 2.0).

The pipeline (and with it the rate-limit stores and provider cache) is
built lazily on the first invocation and reused while the instance
stays warm.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Optional

from contact_relay.app.adapters.base import (
    ensure_body_within_limit,
    first_header_value,
    parse_content_length,
    parse_json_body,
)
from contact_relay.app.adapters.edge import EdgeRequestAdapter, EdgeResponseAdapter, event_headers
from contact_relay.app.api.pipeline import RelayPipeline
from contact_relay.app.core.config import get_settings
from contact_relay.app.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

_pipeline: Optional[RelayPipeline] = None


def get_pipeline() -> RelayPipeline:
    """Get or create the pipeline for this warm instance."""
    global _pipeline
    if _pipeline is None:
        settings = get_settings()
        configure_logging(settings)
        _pipeline = RelayPipeline(settings)
        logger.info(
            "Edge pipeline created",
            extra={"environment": settings.environment},
        )
    return _pipeline


def reset_pipeline() -> None:
    """Forget the cached pipeline (tests, configuration reloads)."""
    global _pipeline
    _pipeline = None


def parse_event_body(
    event: dict[str, Any],
    content_type: Optional[str],
    max_bytes: Optional[int] = None,
) -> Any:
    """
    Decode and parse the event body.

    Returns None when the body is absent or unreadable.

    Raises:
        PayloadTooLargeError: If `max_bytes` is given and the decoded body
            is larger
    """
    body = event.get("body")
    if body is None or body == "":
        return None
    if isinstance(body, (dict, list)):
        return body
    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("Ignoring undecodable base64 body")
            return None
    if max_bytes is not None:
        size = len(body) if isinstance(body, bytes) else len(str(body).encode("utf-8"))
        ensure_body_within_limit(size, max_bytes)
    return parse_json_body(body, content_type)


async def handle_event(
    event: dict[str, Any],
    context: Any = None,
    pipeline: Optional[RelayPipeline] = None,
) -> dict[str, Any]:
    """Run one proxy event through the pipeline and return the proxy result."""
    pipeline = pipeline or get_pipeline()
    event = event or {}
    res = EdgeResponseAdapter()
    try:
        headers = event_headers(event)
        limit = pipeline.settings.max_body_bytes
        ensure_body_within_limit(parse_content_length(first_header_value(headers, "content-length")), limit)
        body = parse_event_body(event, first_header_value(headers, "content-type"), max_bytes=limit)
        await pipeline.handle(EdgeRequestAdapter(event, body), res)
    except Exception as exc:
        pipeline.render_error(res, exc)
    return res.send()


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda entry point."""
    return asyncio.run(handle_event(event, context))
