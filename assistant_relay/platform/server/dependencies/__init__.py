"""FastAPI dependencies."""

from assistant_relay.platform.server.dependencies.chat import (
    get_assistant_client,
    get_orchestrator,
    get_relay,
)

__all__ = [
    "get_assistant_client",
    "get_orchestrator",
    "get_relay",
]
