"""FastAPI application factory and server configuration.

This module creates and configures the FastAPI application with all middleware,
routes, and lifecycle management.
"""

import asyncio
import os
import signal
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI

from assistant_relay.chat.events import CharacterPacer
from assistant_relay.chat.orchestrator import OrchestratorConfig, RunOrchestrator
from assistant_relay.chat.relay import StreamRelay
from assistant_relay.chat.tools import ToolDispatcher
from assistant_relay.platform.clients.assistant import AssistantClient, AssistantClientConfig
from assistant_relay.platform.clients.search import SearchClientConfig, WebSearchClient
from assistant_relay.platform.constants import SERVICE_NAME, SERVICE_VERSION, USER_AGENT
from assistant_relay.platform.observability import errors as bugsnag
from assistant_relay.platform.observability.logging import configure_logging
from assistant_relay.platform.observability.metrics import prometheus_middleware
from assistant_relay.platform.observability.tracing import initialize_tracing, instrument_app
from assistant_relay.platform.server.errors import register_exception_handlers
from assistant_relay.platform.server.health import HealthCheck
from assistant_relay.platform.server.middlewares import CorrelationIdMiddleware
from assistant_relay.platform.server.routes import root as root_router
from assistant_relay.platform.settings import Settings

logger = structlog.get_logger(__name__)

DRAIN_SECONDS = 20


def lifespan_closure(settings):
    @asynccontextmanager
    async def lifespan(app):
        """
        Initialize the shared clients and chat components, and close them
        again on shutdown.
        """
        if settings.bugsnag.release_stage in ["production", "development"]:
            signal_handler = SignalHandler(app)
            signal_handler.register_signal_handler()
        await bugsnag.initialize_bugsnag(
            settings.bugsnag.api_key,
            settings.bugsnag.release_stage,
        )

        # JSON in prod/dev, console in local
        if settings.app_http.log_json is not None:
            json_output = settings.app_http.log_json
        else:
            json_output = settings.bugsnag.release_stage != "local"
        configure_logging(settings.app_http.log_level, json_output=json_output)

        app.state.settings = settings

        if settings.opentelemetry.enabled:
            initialize_tracing(settings.opentelemetry)

        setup_chat(app, settings)

        missing = settings.assistant.missing_fields
        if missing:
            logger.warning("assistant_not_configured", missing=missing)

        HealthCheck.enable()
        yield
        HealthCheck.disable()
        await close_chat(app)

    return lifespan


def setup_chat(app: FastAPI, settings: Settings) -> None:
    """Create the chat components and store them on ``app.state``."""
    # Shared pool for the public search API; the assistant client owns its own
    app.state.http_client = httpx.AsyncClient(
        timeout=30.0,
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        headers={"user-agent": USER_AGENT},
    )
    app.state.assistant_client = AssistantClient(AssistantClientConfig.from_settings(settings.assistant))
    app.state.search_client = WebSearchClient(
        app.state.http_client, SearchClientConfig.from_settings(settings.search)
    )
    app.state.tool_dispatcher = ToolDispatcher(app.state.search_client)
    app.state.orchestrator = RunOrchestrator(
        app.state.assistant_client,
        app.state.tool_dispatcher,
        OrchestratorConfig.from_settings(settings),
    )
    app.state.relay = StreamRelay(
        app.state.orchestrator,
        CharacterPacer(settings.stream.char_delay_seconds),
    )


async def close_chat(app: FastAPI) -> None:
    if hasattr(app.state, "orchestrator"):
        await app.state.orchestrator.close()
    if hasattr(app.state, "assistant_client"):
        await app.state.assistant_client.close()
    if hasattr(app.state, "http_client"):
        await app.state.http_client.aclose()


def create_app(settings: Settings):
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        lifespan=lifespan_closure(settings),
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)
    if settings.opentelemetry.enabled:
        instrument_app(app, settings.opentelemetry)

    register_exception_handlers(app)

    # Health, info, metrics and chat routes
    app.include_router(root_router)

    return app


class SignalHandler:
    def __init__(self, app: FastAPI):
        self.app = app

    async def handle_exit(self):
        """
        Drain the server before exiting.

        Lifespan shutdown runs only after the server stops accepting
        requests, which leaves no time for load balancers to notice. Fail
        the health check first, wait, then close the clients and stop.
        """
        HealthCheck.disable()
        for _ in range(DRAIN_SECONDS):
            logger.info("shutting_down")
            await asyncio.sleep(1)

        await close_chat(self.app)

        os.kill(os.getpid(), signal.SIGUSR1)

    def signal_handler(self):
        asyncio.create_task(self.handle_exit())

    def register_signal_handler(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in [signal.SIGINT, signal.SIGTERM]:
            loop.add_signal_handler(sig, self.signal_handler)
