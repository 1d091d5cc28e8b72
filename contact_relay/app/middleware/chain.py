"""
Middleware Chain Runner
=======================
Host-neutral `(req, res, next)` composition.

A middleware receives the request, the response and a `next` callable.
It either answers the request (`res.json()` / `res.end()`) or awaits
`next()` to hand control to the following middleware. Sync and async
middleware mix freely.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any, Union

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.errors import create_error_response, handle_error

NextFunction = Callable[[], Awaitable[None]]
Middleware = Callable[[CommonRequest, CommonResponse, NextFunction], Union[Awaitable[None], None]]
RouteHandler = Callable[[CommonRequest, CommonResponse], Union[Awaitable[Any], Any]]


async def run_middleware_chain(
    req: CommonRequest,
    res: CommonResponse,
    middlewares: Sequence[Middleware],
    *,
    expose_details: bool = False,
) -> bool:
    """
    Run middleware in order.

    Args:
        req: Host-neutral request
        res: Host-neutral response
        middlewares: Middleware to run, first to last
        expose_details: Attach internal error messages to 500 bodies

    Returns:
        bool: Whether the response was answered. Errors raised anywhere in
        the chain are rendered into `res` and count as answered.
    """
    index = 0

    async def dispatch() -> None:
        nonlocal index
        if index >= len(middlewares):
            return
        middleware = middlewares[index]
        index += 1

        pending: list[Coroutine[Any, Any, None]] = []

        def next_fn() -> Coroutine[Any, Any, None]:
            step = dispatch()
            pending.append(step)
            return step

        result = middleware(req, res, next_fn)
        if inspect.isawaitable(result):
            await result
        # A sync middleware cannot await next(); drive the step it started.
        for step in pending:
            if inspect.getcoroutinestate(step) == inspect.CORO_CREATED:
                await step

    try:
        await dispatch()
    except Exception as exc:
        error = handle_error(exc)
        status_code, body = create_error_response(error, expose_details=expose_details)
        res.status(status_code).json(body)
        return True

    return res.handled


def as_middleware(handler: RouteHandler) -> Middleware:
    """Adapt a `(req, res)` route handler into a terminal middleware."""

    async def terminal(req: CommonRequest, res: CommonResponse, next_fn: NextFunction) -> None:
        result = handler(req, res)
        if inspect.isawaitable(result):
            await result

    terminal.__name__ = getattr(handler, "__name__", "route_handler")
    return terminal
