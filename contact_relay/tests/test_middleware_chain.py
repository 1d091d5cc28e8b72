"""
Middleware Chain Tests
======================
Tests for run_middleware_chain, as_middleware and the error mapping.
"""

import pytest

from contact_relay.app.adapters.edge import EdgeResponseAdapter
from contact_relay.app.core.errors import (
    ConfigurationError,
    EmailError,
    ForbiddenError,
    RateLimitError,
    create_error_response,
    handle_error,
)
from contact_relay.app.middleware.chain import as_middleware, run_middleware_chain
from contact_relay.app.schemas.email import EmailSubmission

from contact_relay.tests.helpers import make_edge_request


# =============================================================================
# CHAIN RUNNER
# =============================================================================

class TestRunMiddlewareChain:
    """Tests for run_middleware_chain."""

    @pytest.mark.asyncio
    async def test_runs_middleware_in_order(self):
        """Should run sync and async middleware in list order."""
        order = []

        def sync_mw(req, res, next_fn):
            order.append("sync")
            return next_fn()

        async def async_mw(req, res, next_fn):
            order.append("async")
            await next_fn()
            order.append("async-after")

        def terminal(req, res, next_fn):
            order.append("terminal")
            res.json({"ok": True})

        handled = await run_middleware_chain(
            make_edge_request(), EdgeResponseAdapter(), [sync_mw, async_mw, terminal]
        )

        assert handled is True
        assert order == ["sync", "async", "terminal", "async-after"]

    @pytest.mark.asyncio
    async def test_sync_middleware_without_return_still_advances(self):
        """Should drive next() even when a sync middleware drops its result."""
        order = []

        def sync_mw(req, res, next_fn):
            order.append("sync")
            next_fn()

        async def terminal(req, res, next_fn):
            order.append("terminal")
            res.json({})

        handled = await run_middleware_chain(make_edge_request(), EdgeResponseAdapter(), [sync_mw, terminal])

        assert handled is True
        assert order == ["sync", "terminal"]

    @pytest.mark.asyncio
    async def test_stops_when_next_not_called(self):
        called = []

        async def answer(req, res, next_fn):
            res.status(204).end()

        async def never(req, res, next_fn):
            called.append(True)

        handled = await run_middleware_chain(make_edge_request(), EdgeResponseAdapter(), [answer, never])

        assert handled is True
        assert called == []

    @pytest.mark.asyncio
    async def test_unanswered_chain_reports_not_handled(self):
        async def passthrough(req, res, next_fn):
            await next_fn()

        handled = await run_middleware_chain(make_edge_request(), EdgeResponseAdapter(), [passthrough])

        assert handled is False

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        assert await run_middleware_chain(make_edge_request(), EdgeResponseAdapter(), []) is False

    @pytest.mark.asyncio
    async def test_app_error_is_rendered(self):
        """Should map an AppError to its status and code."""
        res = EdgeResponseAdapter()

        async def limited(req, res, next_fn):
            raise RateLimitError()

        handled = await run_middleware_chain(make_edge_request(), res, [limited])

        assert handled is True
        assert res.status_code == 429
        assert res.body == {
            "success": False,
            "message": "Too many requests",
            "error": {"code": "RATE_LIMIT_EXCEEDED"},
        }

    @pytest.mark.asyncio
    async def test_sync_exception_is_caught(self):
        res = EdgeResponseAdapter()

        def broken(req, res, next_fn):
            raise KeyError("boom")

        handled = await run_middleware_chain(make_edge_request(), res, [broken])

        assert handled is True
        assert res.status_code == 500
        assert res.body == {
            "success": False,
            "message": "Internal server error",
            "error": {"code": "SERVER_ERROR"},
        }

    @pytest.mark.asyncio
    async def test_expose_details_adds_internal_message(self):
        res = EdgeResponseAdapter()

        async def broken(req, res, next_fn):
            raise RuntimeError("database exploded")

        await run_middleware_chain(make_edge_request(), res, [broken], expose_details=True)

        assert res.body["error"]["details"] == "database exploded"

    @pytest.mark.asyncio
    async def test_as_middleware_wraps_route_handler(self):
        res = EdgeResponseAdapter()

        async def handler(req, res):
            res.status(200).json({"route": req.path})

        handled = await run_middleware_chain(
            make_edge_request(path="/api/health"), res, [as_middleware(handler)]
        )

        assert handled is True
        assert res.body == {"route": "/api/health"}


# =============================================================================
# ERROR MAPPING
# =============================================================================

class TestCreateErrorResponse:
    """Tests for create_error_response."""

    def test_forbidden_error(self):
        status, body = create_error_response(ForbiddenError("CORS not allowed for this origin"))

        assert status == 403
        assert body == {
            "success": False,
            "message": "CORS not allowed for this origin",
            "error": {"code": "FORBIDDEN"},
        }

    @pytest.mark.parametrize("error", [ConfigurationError("missing key"), EmailError("smtp down")])
    def test_unexposed_app_errors_become_generic_500(self, error):
        """Should hide configuration and delivery errors from the client."""
        status, body = create_error_response(error)

        assert status == 500
        assert body["message"] == "Internal server error"
        assert body["error"] == {"code": "SERVER_ERROR"}

    def test_pydantic_validation_error_maps_to_400(self):
        try:
            EmailSubmission.model_validate({"name": "", "email": "nope", "message": "short"})
        except Exception as exc:
            status, body = create_error_response(exc)

        assert status == 400
        assert body["message"] == "Validation failed"
        assert body["error"]["code"] == "VALIDATION_ERROR"
        fields = {detail["field"] for detail in body["error"]["details"]}
        assert fields == {"name", "email", "message"}

    def test_handle_error_wraps_non_exceptions(self):
        err = handle_error("plain string")

        assert isinstance(err, Exception)
        assert str(err) == "plain string"
