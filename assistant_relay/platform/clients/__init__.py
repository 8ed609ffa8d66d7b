"""HTTP clients for external services.

This module provides clients for communicating with external services:
the upstream assistant service and the public web search API.
"""

from assistant_relay.platform.clients.assistant import (
    AssistantClient,
    AssistantClientConfig,
    AssistantClientError,
    AssistantProtocolError,
    RunFailedError,
    RunTimeoutError,
    StreamProtocolError,
    UpstreamError,
)
from assistant_relay.platform.clients.search import (
    SearchClientConfig,
    SearchResult,
    WebSearchClient,
)

__all__ = [
    # Assistant client
    "AssistantClient",
    "AssistantClientConfig",
    # Assistant exceptions
    "AssistantClientError",
    "AssistantProtocolError",
    "RunFailedError",
    "RunTimeoutError",
    "StreamProtocolError",
    "UpstreamError",
    # Search
    "SearchClientConfig",
    "SearchResult",
    "WebSearchClient",
]
