"""
Contact Relay - FastAPI Application
===================================
Server host entry point.
Every path is handed to the host-neutral pipeline through the server
adapters; FastAPI only parses the body and serves the result.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from contact_relay.app.adapters.base import parse_json_body
from contact_relay.app.adapters.server import (
    ServerRequestAdapter,
    ServerResponseAdapter,
    read_limited_body,
)
from contact_relay.app.api.pipeline import RelayPipeline
from contact_relay.app.core.config import Settings, get_settings
from contact_relay.app.core.dependencies import PipelineDep
from contact_relay.app.core.errors import (
    ConfigurationError,
    PayloadTooLargeError,
    create_error_response,
)
from contact_relay.app.core.logging_config import configure_logging
from contact_relay.app.middleware.security import SECURITY_HEADERS
from contact_relay.app.schemas.email import HostMode

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# =============================================================================
# LIFESPAN MANAGER
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    pipeline: RelayPipeline = app.state.pipeline
    factory = pipeline.email_service.factory

    # === STARTUP ===
    logger.info("=" * 60)
    logger.info(f"[START] Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"[ENV] Environment: {settings.environment}")
    logger.info(f"[DEBUG] Debug Mode: {settings.debug}")
    logger.info(f"[LOG] Log Level: {settings.log_level}")
    logger.info(f"[CORS] Allowed origins: {settings.cors_origin}")
    logger.info(f"[EMAIL] Provider: {factory.resolve_provider_type(HostMode.SERVER).value}")
    logger.info("=" * 60)

    if settings.verify_provider_on_startup:
        try:
            await factory.get_provider(HostMode.SERVER)
            logger.info("[OK] Email provider ready")
        except ConfigurationError as exc:
            logger.critical(f"[FATAL] Email provider configuration invalid: {exc.message}")
            raise

    logger.info("[READY] Application started successfully")

    yield

    # === SHUTDOWN ===
    logger.info("[STOP] Shutting down application...")
    factory.clear_cache()
    logger.info("[OK] Cleanup complete")


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_application(
    settings: Optional[Settings] = None,
    pipeline: Optional[RelayPipeline] = None,
) -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Contact-form email relay.",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline or RelayPipeline(settings)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Render anything that escaped the pipeline in the standard error shape."""
        status_code, body = create_error_response(exc, expose_details=settings.is_development)
        return JSONResponse(status_code=status_code, content=body, headers=SECURITY_HEADERS)

    # =========================================================================
    # RELAY ROUTE
    # =========================================================================

    @app.api_route("/{full_path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def relay(request: Request, pipeline: PipelineDep) -> Response:
        """Hand every request to the pipeline."""
        res = ServerResponseAdapter()
        try:
            raw = await read_limited_body(request, pipeline.settings.max_body_bytes)
        except PayloadTooLargeError as exc:
            return pipeline.render_error(res, exc).send()

        body = parse_json_body(raw, request.headers.get("content-type"))
        await pipeline.handle(ServerRequestAdapter(request, body), res)
        return res.send()

    return app


# Application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "contact_relay.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
