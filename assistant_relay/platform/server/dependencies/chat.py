"""Chat component dependencies for FastAPI routes.

All components are created once in the application lifespan and stored on
``app.state``.
"""

from fastapi import Request

from assistant_relay.chat.orchestrator import RunOrchestrator
from assistant_relay.chat.relay import StreamRelay
from assistant_relay.platform.clients.assistant import AssistantClient


def get_orchestrator(request: Request) -> RunOrchestrator:
    return request.app.state.orchestrator


def get_relay(request: Request) -> StreamRelay:
    return request.app.state.relay


def get_assistant_client(request: Request) -> AssistantClient:
    return request.app.state.assistant_client
