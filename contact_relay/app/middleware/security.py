"""
Security Headers Middleware
===========================
Adds the standard hardening headers and rejects requests carrying
headers outside the allow-list.
"""

from __future__ import annotations

import logging

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import ForbiddenError
from contact_relay.app.middleware.chain import Middleware, NextFunction

logger = logging.getLogger(__name__)

SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

ALLOWED_REQUEST_HEADERS = frozenset({
    "accept",
    "accept-encoding",
    "accept-language",
    "authorization",
    "cache-control",
    "connection",
    "content-language",
    "content-length",
    "content-type",
    "dnt",
    "forwarded",
    "host",
    "origin",
    "pragma",
    "referer",
    "user-agent",
    "via",
    "x-real-ip",
    "x-requested-with",
})

# Browser fetch metadata plus proxy / load balancer headers
ALLOWED_REQUEST_HEADER_PREFIXES = ("sec-", "x-forwarded-", "x-amzn-", "cf-", "cloudfront-")


def is_header_allowed(name: str) -> bool:
    name = name.lower()
    return name in ALLOWED_REQUEST_HEADERS or name.startswith(ALLOWED_REQUEST_HEADER_PREFIXES)


def apply_security_headers(res: CommonResponse) -> CommonResponse:
    """Add the hardening headers a response does not carry yet."""
    return res.set({
        name: value for name, value in SECURITY_HEADERS.items() if res.get_header(name) is None
    })


def find_disallowed_headers(req: CommonRequest) -> list[str]:
    return sorted({name.lower() for name in req.headers if not is_header_allowed(name)})


def create_security_middleware(settings: Settings) -> Middleware:
    """Build the security headers middleware."""

    async def security_middleware(req: CommonRequest, res: CommonResponse, next_fn: NextFunction) -> None:
        if req.method == "OPTIONS" and res.handled:
            await next_fn()
            return

        apply_security_headers(res)

        if req.method != "OPTIONS" and settings.security_validate_headers:
            disallowed = find_disallowed_headers(req)
            if disallowed:
                logger.warning(
                    "Request rejected for unsupported headers",
                    extra={"headers": ",".join(disallowed), "ip": req.ip},
                )
                raise ForbiddenError(
                    "Forbidden",
                    details="Request contains unsupported headers",
                )

        await next_fn()

    return security_middleware
