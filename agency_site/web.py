"""
Web Interface Module

This module provides the FastAPI application for the agency site backend:
the rate-limited chat proxy, the CMS webhook receiver, content
revalidation and sync, and the real-time collaboration socket.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agency_site import __version__
from agency_site.cache import create_cache
from agency_site.chat import ChatProxy
from agency_site.cms import BuilderClient
from agency_site.config import Settings, load_settings
from agency_site.logging_hygiene import setup_secure_logging
from agency_site.rate_limiter import FixedWindowRateLimiter, create_rate_limit_store
from agency_site.web_api.exceptions import setup_exception_handlers
from agency_site.web_api.routes import chat, content, realtime, revalidate, webhook
from agency_site.web_api.websocket import ConnectionManager, setup_websocket_routes
from agency_site.webhook import WebhookDispatcher

logger = logging.getLogger(__name__)

SERVICE_NAME = "Agency Site API"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.
    """
    logger.info(f"Starting {SERVICE_NAME}...")
    cache_info = app.state.content_cache.get_cache_stats()
    logger.info(f"Content cache backend: {cache_info.get('backend', 'unknown')}")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}...")
    app.state.cms_client.session.close()
    app.state.webhook_dispatcher.session.close()


def init_state(app: FastAPI, settings: Settings) -> None:
    """
    Build the shared components and attach them to ``app.state``.

    Args:
        app: FastAPI application instance
        settings: Runtime settings
    """
    store = create_rate_limit_store(settings.rate_limit_backend, settings.redis_url)
    content_cache = create_cache(settings.redis_url, settings.content_cache_ttl)

    app.state.settings = settings
    app.state.rate_limiter = FixedWindowRateLimiter(
        store,
        max_requests=settings.rate_limit_max_requests,
        window_ms=settings.rate_limit_window_ms,
    )
    app.state.chat_proxy = ChatProxy(settings.openai_api_key, model=settings.openai_model)
    app.state.content_cache = content_cache
    app.state.cms_client = BuilderClient(
        settings.builder_api_key,
        private_key=settings.builder_private_key,
        space_id=settings.builder_space_id,
    )
    app.state.webhook_dispatcher = WebhookDispatcher(
        revalidate=content_cache.revalidate_path,
        invalidate_model=content_cache.invalidate_model,
        deploy_hook_url=settings.deploy_hook_url,
        notification_url=settings.slack_webhook_url,
    )
    app.state.connection_manager = ConnectionManager()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_secure_logging()
    settings = settings or load_settings()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Chat proxy, CMS webhooks and real-time collaboration for the agency site",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    init_state(app, settings)

    # Credentials cannot be combined with a wildcard origin
    allow_any_origin = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_any_origin,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(chat.router, prefix="/api/chat", tags=["Chat"])
    app.include_router(webhook.router, prefix="/api/builder", tags=["Builder"])
    app.include_router(content.router, prefix="/api/builder", tags=["Builder"])
    app.include_router(revalidate.router, prefix="/api/revalidate", tags=["Content"])
    app.include_router(realtime.router, prefix="/api/websocket", tags=["Realtime"])

    setup_websocket_routes(app)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "cache": app.state.content_cache.get_cache_stats().get("backend", "unknown"),
            "rateLimitStore": type(app.state.rate_limiter.store).__name__,
        }

    return app


def main():
    """
    Main entry point for the web application.

    This function starts the FastAPI server with appropriate configuration
    for development or production environments.
    """
    from dotenv import load_dotenv

    load_dotenv()

    # Cloud Run uses PORT environment variable
    host = os.getenv("WEB_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", os.getenv("WEB_PORT", "8000")))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    logger.info(f"Starting web server on {host}:{port}")
    logger.info(f"Debug mode: {debug}")

    app = create_app()

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="debug" if debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
