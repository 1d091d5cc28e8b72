"""
Request Pipeline
================
Host-neutral dispatch shared by the server and edge entry points.

    global chain: CORS -> request logging -> security headers -> IP rate limit
    route:        OPTIONS           -> 204
                  GET  /api/health  -> health
                  POST email paths  -> email rate limit -> validation -> email
                  anything else     -> 404
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.api.routes import (
    EMAIL_PATHS,
    HEALTH_PATH,
    health_check_handler,
    make_email_handler,
    not_found_handler,
)
from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import create_error_response
from contact_relay.app.middleware.chain import Middleware, as_middleware, run_middleware_chain
from contact_relay.app.middleware.cors import create_cors_middleware
from contact_relay.app.middleware.rate_limiting import RateLimitStore, rate_limiters_from_settings
from contact_relay.app.middleware.request_logging import request_logging_middleware
from contact_relay.app.middleware.security import apply_security_headers, create_security_middleware
from contact_relay.app.middleware.validation import validate_email_request
from contact_relay.services.email.providers import EmailProviderFactory
from contact_relay.services.email_service import EmailService

logger = logging.getLogger(__name__)


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


class RelayPipeline:
    """
    Middleware and routes for one process / warm edge instance.

    Rate-limit stores live on the pipeline, so their counters persist
    across requests served by the same instance.
    """

    def __init__(
        self,
        settings: Settings,
        email_service: EmailService | None = None,
        ip_store: RateLimitStore | None = None,
        email_store: RateLimitStore | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.settings = settings
        self.email_service = email_service or EmailService(EmailProviderFactory(settings), settings)

        ip_limiter, email_limiter = rate_limiters_from_settings(
            settings, ip_store=ip_store, email_store=email_store, clock=clock
        )
        self.global_middleware: list[Middleware] = [
            create_cors_middleware(settings),
            request_logging_middleware,
            create_security_middleware(settings),
            ip_limiter,
        ]
        self.email_middleware: list[Middleware] = [
            email_limiter,
            validate_email_request,
            as_middleware(make_email_handler(self.email_service)),
        ]

    @property
    def expose_details(self) -> bool:
        return self.settings.is_development

    async def handle(self, req: CommonRequest, res: CommonResponse) -> CommonResponse:
        """Run the request through the pipeline; the caller then calls `res.send()`."""
        handled = await run_middleware_chain(
            req, res, self.global_middleware, expose_details=self.expose_details
        )
        if handled:
            return self._finalize(res)

        path = _normalize_path(req.path)

        if req.method == "OPTIONS":
            res.status(204).end()
        elif req.method == "GET" and path == HEALTH_PATH:
            await run_middleware_chain(
                req, res, [as_middleware(health_check_handler)], expose_details=self.expose_details
            )
        elif req.method == "POST" and path in EMAIL_PATHS:
            await run_middleware_chain(
                req, res, self.email_middleware, expose_details=self.expose_details
            )
        else:
            await run_middleware_chain(
                req, res, [as_middleware(not_found_handler)], expose_details=self.expose_details
            )

        if not res.handled:
            return self.render_error(
                res, RuntimeError(f"Route finished without answering: {req.method} {req.path}")
            )
        return self._finalize(res)

    def render_error(self, res: CommonResponse, exc: BaseException) -> CommonResponse:
        """Answer with the standard error shape, for failures outside the chains."""
        status_code, body = create_error_response(exc, expose_details=self.expose_details)
        res.status(status_code).json(body)
        return self._finalize(res)

    @staticmethod
    def _finalize(res: CommonResponse) -> CommonResponse:
        # Errors raised before the security middleware ran still get its headers
        if res.status_code >= 400:
            apply_security_headers(res)
        return res
