"""Assistant service client module.

This module provides a client-side implementation of the assistant REST API
(threads, messages, runs), including:
- Typed payload models
- Server-sent event decoding for streamed runs (httpx-sse)
- A structured exception hierarchy
"""

from assistant_relay.platform.clients.assistant.client import AssistantClient
from assistant_relay.platform.clients.assistant.config import AssistantClientConfig
from assistant_relay.platform.clients.assistant.exceptions import (
    AssistantClientError,
    AssistantProtocolError,
    RunError,
    RunFailedError,
    RunTimeoutError,
    StreamProtocolError,
    UpstreamError,
)
from assistant_relay.platform.clients.assistant.models import (
    FAILED_RUN_STATUSES,
    Run,
    RunStatus,
    Thread,
    ThreadMessage,
    ToolCall,
    ToolOutput,
    UpstreamEvent,
)
from assistant_relay.platform.clients.assistant.sse import decode_events, iter_events

__all__ = [
    # Client
    "AssistantClient",
    "AssistantClientConfig",
    # Models
    "FAILED_RUN_STATUSES",
    "Run",
    "RunStatus",
    "Thread",
    "ThreadMessage",
    "ToolCall",
    "ToolOutput",
    "UpstreamEvent",
    # Streaming
    "decode_events",
    "iter_events",
    # Exceptions
    "AssistantClientError",
    "AssistantProtocolError",
    "RunError",
    "RunFailedError",
    "RunTimeoutError",
    "StreamProtocolError",
    "UpstreamError",
]
