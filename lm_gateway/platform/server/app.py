"""FastAPI application factory and server configuration.

This module creates and configures the FastAPI application with all middleware,
routes, and lifecycle management.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from lm_gateway.platform.constants import SERVICE_NAME
from lm_gateway.platform.observability import configure_logging, get_logger
from lm_gateway.platform.observability import errors as bugsnag
from lm_gateway.platform.observability.metrics import prometheus_middleware
from lm_gateway.platform.server.dispatcher import Dispatcher
from lm_gateway.platform.server.middlewares import CorrelationIdMiddleware
from lm_gateway.platform.server.routes import root as root_router
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.settings import Settings
from lm_gateway.platform.upstream.litellm_backend import LiteLLMBackend
from lm_gateway.platform.upstream.protocol import ChatBackend

logger = get_logger(__name__)


def lifespan_closure(settings: Settings, state: ServerState):
    @asynccontextmanager
    async def lifespan(app):
        """Set up logging and error reporting, and track running state."""
        configure_logging(settings.app_http.log_level, json_output=settings.json_logs)
        # After configure_logging, which replaces the root handlers
        reporting = bugsnag.initialize_bugsnag(settings.bugsnag)

        state.mark_started(settings.app_http.host, settings.app_http.port)
        logger.info(
            "gateway started",
            service=SERVICE_NAME,
            host=settings.app_http.host,
            port=settings.app_http.port,
            models=len(settings.upstream.models),
            error_reporting=reporting,
        )
        try:
            yield
        finally:
            state.mark_stopped()
            logger.info("gateway stopped", service=SERVICE_NAME)

    return lifespan


def create_app(
    settings: Settings,
    backend: ChatBackend | None = None,
    state: ServerState | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance
        backend: Upstream chat capability, LiteLLM by default
        state: Server state to report through /health, a fresh one by default

    Returns:
        Configured FastAPI application
    """
    state = state or ServerState()
    backend = backend or LiteLLMBackend(settings.upstream)

    # No generated docs: every non-metrics path belongs to the gateway router
    app = FastAPI(
        title=SERVICE_NAME,
        lifespan=lifespan_closure(settings, state),
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.dispatcher = Dispatcher(backend, settings.gateway, state)

    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)

    app.include_router(root_router)

    return app
