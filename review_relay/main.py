"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Design Decisions:
- Settings are injected into create_app and kept on app.state
- One shared httpx client per application, opened and closed in the lifespan
- Missing credentials are reported at startup but do not stop the server
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from review_relay import __version__
from review_relay.config import Settings, get_settings
from review_relay.logging_config import get_logger, setup_logging
from review_relay.webhook import router as webhook_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration to use; loaded from the environment when omitted
        transport: Optional httpx transport for outbound calls (tests use
            httpx.MockTransport)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "Starting Review Relay",
            host=settings.host,
            port=settings.port,
            model=settings.llm_model,
            background_processing=settings.background_processing
        )

        missing = settings.missing_credentials()
        if missing:
            logger.warning("Missing configuration, reviews will fail", missing=missing)

        async with httpx.AsyncClient(
            timeout=settings.http_timeout,
            transport=transport
        ) as http_client:
            app.state.http_client = http_client
            yield

        logger.info("Shutting down Review Relay")

    app = FastAPI(
        title="Review Relay",
        description="Relays GitHub pull request diffs to an AI reviewer and posts the review",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.include_router(webhook_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """Root endpoint, used as a liveness probe."""
        return "Main route is healthy"

    @app.get("/health")
    async def health_check():
        """Health check endpoint for load balancers and monitors."""
        return {
            "status": "healthy",
            "service": "review-relay",
            "version": __version__
        }

    return app
