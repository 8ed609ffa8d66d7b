"""Web search client backed by the DuckDuckGo instant-answer API.

``search`` never raises: any failure becomes a fallback result pointing the
user at a regular search page, so a broken search cannot stall a run.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from assistant_relay.platform.constants import USER_AGENT
from assistant_relay.platform.settings import SearchSettings

logger = structlog.get_logger(__name__)

DEFAULT_SOURCE = "DuckDuckGo"

# Minimum lengths below which abstract/answer fields are considered noise
MIN_ABSTRACT_LENGTH = 20
MIN_ANSWER_LENGTH = 10


class SearchResult(BaseModel):
    """Structured search result handed back to the assistant."""

    source: str
    content: str
    url: str


class SearchError(Exception):
    """Raised by ``fetch_instant_answer`` when the search API is unusable."""


@dataclass(frozen=True)
class SearchClientConfig:
    """Configuration for the web search client.

    Attributes:
        base_url: Instant-answer API endpoint.
        fallback_url: Human-facing search page used in fallback results.
        app_name: Value of the ``t`` parameter identifying this application.
        timeout_seconds: Per-request timeout (default: 10s).
        max_attempts: Attempts for transient transport errors (default: 2).
        retry_wait_seconds: Pause between attempts (default: 0.5s).
    """

    base_url: str = "https://api.duckduckgo.com/"
    fallback_url: str = "https://duckduckgo.com/"
    app_name: str = "assistant-relay"
    timeout_seconds: float = 10.0
    max_attempts: int = 2
    retry_wait_seconds: float = 0.5

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> "SearchClientConfig":
        return cls(
            base_url=settings.base_url,
            fallback_url=settings.fallback_url,
            app_name=settings.app_name,
            timeout_seconds=settings.timeout_seconds,
            max_attempts=settings.max_attempts,
        )


class WebSearchClient:
    """Queries the public search API and shapes the answer into a SearchResult."""

    def __init__(
        self,
        httpx_client: httpx.AsyncClient,
        config: SearchClientConfig | None = None,
    ):
        self._http = httpx_client
        self._config = config or SearchClientConfig()

    def search_page_url(self, query: str) -> str:
        """Regular search page for ``query``, used whenever the API gives no URL."""
        return f"{self._config.fallback_url}?{urlencode({'q': query})}"

    async def search(self, query: str) -> SearchResult:
        """Search for ``query``. Always returns a fully populated result."""
        try:
            data = await self.fetch_instant_answer(query)
        except SearchError as e:
            logger.warning("web_search_failed", query=query, error=str(e))
            return self.error_result(query)
        return self._interpret(query, data)

    async def fetch_instant_answer(self, query: str) -> dict[str, Any]:
        """Fetch the raw instant-answer payload.

        Transport errors are retried; the search is a plain GET so repeating
        it is harmless.

        Raises:
            SearchError: On transport failure, non-2xx status or a non-JSON body.
        """
        if not query.strip():
            raise SearchError("empty query")

        params = {
            "q": query,
            "format": "json",
            "no_html": "1",
            "skip_disambig": "1",
            "t": self._config.app_name,
        }
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self._config.max_attempts),
                wait=wait_fixed(self._config.retry_wait_seconds),
                reraise=True,
            ):
                with attempt:
                    response = await self._http.get(
                        self._config.base_url,
                        params=params,
                        headers={"user-agent": USER_AGENT},
                        timeout=self._config.timeout_seconds,
                    )
        except httpx.HTTPError as e:
            raise SearchError(f"request failed: {e}") from e

        if not response.is_success:
            raise SearchError(f"search API returned {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise SearchError("search API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise SearchError("search API returned an unexpected payload")
        return data

    def error_result(self, query: str) -> SearchResult:
        return SearchResult(
            source=DEFAULT_SOURCE,
            content=(
                f'I encountered an error while searching for "{query}". You can search for '
                "this directly on DuckDuckGo for the most current information."
            ),
            url=self.search_page_url(query),
        )

    def _interpret(self, query: str, data: dict[str, Any]) -> SearchResult:
        """Pick the most useful field, in priority order."""
        search_url = self.search_page_url(query)

        abstract = _text(data.get("Abstract"))
        if len(abstract) > MIN_ABSTRACT_LENGTH:
            return SearchResult(
                source=_text(data.get("AbstractSource")) or DEFAULT_SOURCE,
                content=abstract,
                url=_text(data.get("AbstractURL")) or search_url,
            )

        topic = _first_topic(data.get("RelatedTopics"))
        if topic is not None:
            first_url = _text(topic.get("FirstURL"))
            return SearchResult(
                source=DEFAULT_SOURCE,
                content=_text(topic.get("Text"))
                or first_url
                or "Information found but no details available.",
                url=first_url or search_url,
            )

        answer = _text(data.get("Answer"))
        if len(answer) > MIN_ANSWER_LENGTH:
            return SearchResult(
                source=DEFAULT_SOURCE,
                content=answer,
                url=_text(data.get("AbstractURL")) or search_url,
            )

        heading = _text(data.get("Heading"))
        definition = _text(data.get("Definition"))
        if heading or definition:
            return SearchResult(
                source=_text(data.get("DefinitionSource")) or DEFAULT_SOURCE,
                content=definition or heading,
                url=_text(data.get("DefinitionURL")) or _text(data.get("AbstractURL")) or search_url,
            )

        return SearchResult(
            source=DEFAULT_SOURCE,
            content=(
                f'I searched for "{query}" and found some information, but for the most '
                "current and detailed results, you can search directly on DuckDuckGo."
            ),
            url=search_url,
        )


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first_topic(topics: Any) -> dict[str, Any] | None:
    """First usable related topic, descending into grouped topics."""
    if not isinstance(topics, list):
        return None
    for topic in topics:
        if not isinstance(topic, dict):
            continue
        if "Topics" in topic:
            nested = _first_topic(topic["Topics"])
            if nested is not None:
                return nested
            continue
        if _text(topic.get("Text")) or _text(topic.get("FirstURL")):
            return topic
    return None
