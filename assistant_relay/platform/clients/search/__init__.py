"""Public web search client used by the web_search tool."""

from assistant_relay.platform.clients.search.client import (
    SearchClientConfig,
    SearchError,
    SearchResult,
    WebSearchClient,
)

__all__ = [
    "SearchClientConfig",
    "SearchError",
    "SearchResult",
    "WebSearchClient",
]
