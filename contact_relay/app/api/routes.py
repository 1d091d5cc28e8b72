"""
Route Handlers
==============
Host-neutral `(req, res)` handlers for the three routes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.errors import NotFoundError
from contact_relay.app.middleware.chain import RouteHandler
from contact_relay.app.schemas.base import HealthResponse, SuccessResponse
from contact_relay.app.schemas.email import HostMode
from contact_relay.services.email_service import EmailService

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/health"
EMAIL_PATHS = frozenset({"/api/send-email", "/api/email"})


def health_check_handler(req: CommonRequest, res: CommonResponse) -> None:
    """GET /api/health"""
    body = HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())
    res.status(200).json(body.model_dump())


def make_email_handler(service: EmailService) -> RouteHandler:
    """Build the POST handler for the email routes."""

    async def email_handler(req: CommonRequest, res: CommonResponse) -> None:
        result = await service.send_email(
            req.body,
            client_ip=req.ip,
            host_is_edge=req.host is HostMode.EDGE,
        )
        logger.info(
            "Contact submission delivered",
            extra={"ip": req.ip, "duration_ms": result.duration_ms},
        )
        res.status(200).json(SuccessResponse(message="Email sent successfully").model_dump())

    return email_handler


def not_found_handler(req: CommonRequest, res: CommonResponse) -> None:
    """Fallback for unmatched routes."""
    raise NotFoundError()
