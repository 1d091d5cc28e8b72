"""
Request logging middleware.

Logs each inbound request, and its completion once the host reports
the response as finished.
"""

from __future__ import annotations

import logging
import time

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.middleware.chain import NextFunction

logger = logging.getLogger(__name__)


async def request_logging_middleware(req: CommonRequest, res: CommonResponse, next_fn: NextFunction) -> None:
    start = time.perf_counter()
    logger.info(
        "Incoming request",
        extra={
            "method": req.method,
            "path": req.path,
            "ip": req.ip,
            "user_agent": req.get("user-agent"),
            "host": req.host.value,
        },
    )

    def on_finish() -> None:
        logger.info(
            "Request completed",
            extra={
                "method": req.method,
                "path": req.path,
                "status": res.status_code,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    res.on("finish", on_finish)
    await next_fn()
