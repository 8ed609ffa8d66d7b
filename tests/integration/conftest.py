"""Integration test fixtures.

This module provides shared fixtures for integration tests:
- Route/handler tests against a shallow app (no lifespan) with a stubbed
  assistant client wired into the real orchestrator, dispatcher and relay
- Component interaction tests through the real HTTP clients, mocked with respx
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from assistant_relay.chat.events import CharacterPacer
from assistant_relay.chat.orchestrator import OrchestratorConfig, RunOrchestrator
from assistant_relay.chat.relay import StreamRelay
from assistant_relay.chat.tools import ToolDispatcher
from assistant_relay.platform.clients.assistant import (
    AssistantClient,
    Run,
    Thread,
    ThreadMessage,
    UpstreamEvent,
)
from assistant_relay.platform.clients.search import SearchResult, WebSearchClient
from assistant_relay.platform.server.errors import register_exception_handlers
from assistant_relay.platform.server.health import HealthCheck
from assistant_relay.platform.server.middlewares import CorrelationIdMiddleware
from assistant_relay.platform.server.routes import root as root_router

# =============================================================================
# Canned upstream payloads
# =============================================================================


def make_message(message_id: str, role: str, text: str, created_at: int = 0) -> ThreadMessage:
    return ThreadMessage.model_validate(
        {
            "id": message_id,
            "role": role,
            "created_at": created_at,
            "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
        }
    )


def run_event(status: str, run_id: str = "run_1", **extra) -> UpstreamEvent:
    return UpstreamEvent(
        event=f"thread.run.{status}",
        data={"object": "thread.run", "id": run_id, "thread_id": "thread_new", "status": status, **extra},
    )


def delta_event(text: str) -> UpstreamEvent:
    return UpstreamEvent(
        event="thread.message.delta",
        data={"object": "thread.message.delta", "delta": {"content": [{"type": "text", "text": {"value": text}}]}},
    )


def event_stream(*events: UpstreamEvent):
    """Build a stand-in for a streaming client method."""

    async def stream(*args, **kwargs):
        for event in events:
            yield event

    return stream


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def stub_assistant_client() -> Mock:
    """Create a stub assistant client with canned happy-path responses."""
    client = Mock(spec=AssistantClient)
    client.has_credentials = True
    client.create_thread = AsyncMock(return_value=Thread(id="thread_new"))
    client.post_message = AsyncMock(return_value=make_message("msg_1", "user", "question", 1))
    client.create_run = AsyncMock(return_value=Run(id="run_1", status="queued"))
    client.get_run = AsyncMock(return_value=Run(id="run_1", status="completed"))
    client.submit_tool_outputs = AsyncMock(return_value=Run(id="run_1", status="queued"))
    client.get_messages = AsyncMock(
        return_value=[make_message("msg_2", "assistant", "Employees receive 20 days of PTO per year.", 2)]
    )
    client.delete_thread = AsyncMock(return_value=True)
    client.cancel_run = AsyncMock(return_value=Run(id="run_1", status="cancelling"))
    client.create_run_stream = event_stream(
        run_event("queued"), delta_event("Hi"), run_event("completed"), UpstreamEvent(done=True)
    )
    client.submit_tool_outputs_stream = event_stream()
    return client


@pytest.fixture
def stub_search_client() -> Mock:
    """Create a stub search client that returns a canned result."""
    client = Mock(spec=WebSearchClient)
    client.search = AsyncMock(
        return_value=SearchResult(
            source="Wikipedia",
            content="Lisbon is the capital of Portugal.",
            url="https://en.wikipedia.org/wiki/Lisbon",
        )
    )
    return client


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(assistant_id="asst_test", poll_interval_seconds=0.001, max_poll_time_seconds=5)


@pytest.fixture
def orchestrator(stub_assistant_client, stub_search_client, orchestrator_config) -> RunOrchestrator:
    return RunOrchestrator(stub_assistant_client, ToolDispatcher(stub_search_client), orchestrator_config)


# =============================================================================
# FastAPI App Fixtures (Shallow - no lifespan)
# =============================================================================


@pytest.fixture
def test_app(stub_assistant_client: Mock, orchestrator: RunOrchestrator) -> FastAPI:
    """Create a minimal test FastAPI app for integration tests.

    This is intentionally SHALLOW - no lifespan, no metrics middleware.
    Tests route handlers and their interaction with the chat components.
    """
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(app)

    app.state.assistant_client = stub_assistant_client
    app.state.orchestrator = orchestrator
    app.state.relay = StreamRelay(orchestrator, CharacterPacer(0))

    app.include_router(root_router)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """Create a test client for the test app.

    No context manager needed since we're not using lifespan.
    """
    return TestClient(test_app)


@pytest.fixture
def client_with_health_enabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks enabled."""
    HealthCheck.enable()
    yield TestClient(test_app)
    HealthCheck.disable()


@pytest.fixture
def client_with_health_disabled(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client with health checks disabled."""
    HealthCheck.disable()
    yield TestClient(test_app)
