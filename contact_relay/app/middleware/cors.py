"""
CORS Middleware
===============
Answers pre-flight requests and stamps CORS headers on actual requests.
"""

from __future__ import annotations

import logging

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import ForbiddenError
from contact_relay.app.middleware.chain import Middleware, NextFunction

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
CORS_ALLOW_HEADERS = ("Content-Type", "Authorization")
CORS_EXPOSE_HEADERS = ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")
CORS_MAX_AGE_SECONDS = 3600

CORS_FORBIDDEN_MESSAGE = "CORS not allowed for this origin"


def is_origin_allowed(origin: str | None, settings: Settings) -> bool:
    """An absent origin is never allowed; '*' allows every present origin."""
    if not origin:
        return False
    if settings.cors_allows_any:
        return True
    return origin in settings.cors_origins


def _allow_origin_value(origin: str, settings: Settings) -> str:
    return "*" if settings.cors_allows_any else origin


def create_cors_middleware(settings: Settings) -> Middleware:
    """
    Build the CORS middleware.

    - OPTIONS from an allowed origin: 204 with the Access-Control-Allow-*
      headers, chain stops
    - OPTIONS otherwise: 403
    - Other methods with a disallowed Origin header: 403
    - Other methods without an Origin header: passed through untouched
    """

    async def cors_middleware(req: CommonRequest, res: CommonResponse, next_fn: NextFunction) -> None:
        origin = req.get("origin")
        allowed = is_origin_allowed(origin, settings)

        if req.method == "OPTIONS":
            if not allowed:
                logger.warning(
                    "CORS: Origin not allowed",
                    extra={"origin": origin, "allowed_origins": settings.cors_origin},
                )
                raise ForbiddenError(CORS_FORBIDDEN_MESSAGE)

            res.set({
                "Access-Control-Allow-Origin": _allow_origin_value(origin, settings),
                "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
                "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
                "Access-Control-Max-Age": str(CORS_MAX_AGE_SECONDS),
            })
            if not settings.cors_allows_any:
                res.set("Vary", "Origin")
            res.status(204).end()
            return

        if origin and not allowed:
            logger.warning(
                "CORS: Origin not allowed",
                extra={"origin": origin, "allowed_origins": settings.cors_origin},
            )
            raise ForbiddenError(CORS_FORBIDDEN_MESSAGE)

        if allowed:
            res.set({
                "Access-Control-Allow-Origin": _allow_origin_value(origin, settings),
                "Access-Control-Expose-Headers": ", ".join(CORS_EXPOSE_HEADERS),
            })
            if not settings.cors_allows_any:
                res.set("Vary", "Origin")

        await next_fn()

    return cors_middleware
