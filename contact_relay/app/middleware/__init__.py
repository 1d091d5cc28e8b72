"""
Middleware
==========
Host-neutral middleware and the chain runner that composes them.
"""

from contact_relay.app.middleware.chain import (
    Middleware,
    NextFunction,
    RouteHandler,
    as_middleware,
    run_middleware_chain,
)
from contact_relay.app.middleware.cors import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_EXPOSE_HEADERS,
    CORS_MAX_AGE_SECONDS,
    create_cors_middleware,
    is_origin_allowed,
)
from contact_relay.app.middleware.rate_limiting import (
    InMemoryRateLimitStore,
    RateLimitDecision,
    RateLimitEntry,
    RateLimiter,
    RateLimitStore,
    create_email_rate_limiter,
    create_rate_limiter,
    rate_limiters_from_settings,
)
from contact_relay.app.middleware.request_logging import request_logging_middleware
from contact_relay.app.middleware.security import (
    SECURITY_HEADERS,
    apply_security_headers,
    create_security_middleware,
    is_header_allowed,
)
from contact_relay.app.middleware.validation import validate_email_request

__all__ = [
    # Chain
    "Middleware",
    "NextFunction",
    "RouteHandler",
    "as_middleware",
    "run_middleware_chain",
    # CORS
    "CORS_ALLOW_HEADERS",
    "CORS_ALLOW_METHODS",
    "CORS_EXPOSE_HEADERS",
    "CORS_MAX_AGE_SECONDS",
    "create_cors_middleware",
    "is_origin_allowed",
    # Security
    "SECURITY_HEADERS",
    "apply_security_headers",
    "create_security_middleware",
    "is_header_allowed",
    # Rate Limiting
    "InMemoryRateLimitStore",
    "RateLimitDecision",
    "RateLimitEntry",
    "RateLimiter",
    "RateLimitStore",
    "create_email_rate_limiter",
    "create_rate_limiter",
    "rate_limiters_from_settings",
    # Logging / Validation
    "request_logging_middleware",
    "validate_email_request",
]
