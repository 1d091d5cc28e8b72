"""
Rate Limiting
=============
Fixed-window counters per key (client IP, or submitted email address).

Counters live in a `RateLimitStore`. The default store is an in-process
dict, so on the edge host limits only hold within one warm instance.
The whole store is cleared during the first second of every hour.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from contact_relay.app.adapters.base import CommonRequest, CommonResponse
from contact_relay.app.core.config import Settings
from contact_relay.app.core.errors import RateLimitError
from contact_relay.app.middleware.chain import Middleware, NextFunction

logger = logging.getLogger(__name__)

EVICTION_PERIOD_MS = 60 * 60 * 1000
EVICTION_SLACK_MS = 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# STORE
# =============================================================================


@dataclass
class RateLimitEntry:
    """Requests counted in the window that started at `window_start_ms`."""
    count: int
    window_start_ms: int


@runtime_checkable
class RateLimitStore(Protocol):
    """Counter storage used by `RateLimiter`."""

    def get(self, key: str) -> Optional[RateLimitEntry]: ...

    def set(self, key: str, entry: RateLimitEntry) -> None: ...

    def clear(self) -> None: ...


class InMemoryRateLimitStore:
    """Process-local store."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# LIMITER
# =============================================================================


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_ms: int

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_ms),
        }


class RateLimiter:
    """
    Fixed-window limiter.

    `hit()` reads and writes the store without awaiting in between, so
    concurrent requests on one event loop cannot interleave a
    check-and-increment.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        store: RateLimitStore | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.store = store if store is not None else InMemoryRateLimitStore()
        self._clock = clock or _now_ms

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for `key` and report whether it is allowed."""
        now = self._clock()

        if now % EVICTION_PERIOD_MS < EVICTION_SLACK_MS:
            self.store.clear()

        entry = self.store.get(key)
        if entry is None or now - entry.window_start_ms > self.window_ms:
            entry = RateLimitEntry(count=1, window_start_ms=now)
            self.store.set(key, entry)
        elif entry.count >= self.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_ms=entry.window_start_ms + self.window_ms,
            )
        else:
            entry = RateLimitEntry(count=entry.count + 1, window_start_ms=entry.window_start_ms)
            self.store.set(key, entry)

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - entry.count),
            reset_ms=entry.window_start_ms + self.window_ms,
        )


# =============================================================================
# MIDDLEWARE FACTORIES
# =============================================================================


def create_rate_limiter(
    window_ms: int,
    max_requests: int,
    store: RateLimitStore | None = None,
    clock: Callable[[], int] | None = None,
) -> Middleware:
    """General limiter keyed by client IP; sets the X-RateLimit-* headers."""
    limiter = RateLimiter(window_ms, max_requests, store=store, clock=clock)

    def rate_limit_middleware(req: CommonRequest, res: CommonResponse, next_fn: NextFunction):
        decision = limiter.hit(req.ip or "unknown")
        res.set(decision.headers)
        if not decision.allowed:
            logger.warning("Rate limit exceeded", extra={"ip": req.ip, "path": req.path})
            raise RateLimitError()
        return next_fn()

    rate_limit_middleware.limiter = limiter
    return rate_limit_middleware


def create_email_rate_limiter(
    window_ms: int,
    max_requests: int,
    store: RateLimitStore | None = None,
    clock: Callable[[], int] | None = None,
) -> Middleware:
    """
    Limiter keyed by the lower-cased `email` field of the body.

    Requests without a string email are passed on untouched; validation
    rejects them later.
    """
    limiter = RateLimiter(window_ms, max_requests, store=store, clock=clock)

    def email_rate_limit_middleware(req: CommonRequest, res: CommonResponse, next_fn: NextFunction):
        body = req.body
        email = body.get("email") if isinstance(body, dict) else None
        if not isinstance(email, str) or not email.strip():
            return next_fn()

        decision = limiter.hit(email.strip().lower())
        if not decision.allowed:
            logger.warning("Email rate limit exceeded", extra={"ip": req.ip})
            raise RateLimitError()
        return next_fn()

    email_rate_limit_middleware.limiter = limiter
    return email_rate_limit_middleware


def rate_limiters_from_settings(
    settings: Settings,
    ip_store: RateLimitStore | None = None,
    email_store: RateLimitStore | None = None,
    clock: Callable[[], int] | None = None,
) -> tuple[Middleware, Middleware]:
    """Build the general and email limiters from configuration."""
    return (
        create_rate_limiter(
            settings.rate_limit_window_ms, settings.rate_limit_max, store=ip_store, clock=clock
        ),
        create_email_rate_limiter(
            settings.email_rate_limit_window_ms,
            settings.email_rate_limit_max,
            store=email_store,
            clock=clock,
        ),
    )
