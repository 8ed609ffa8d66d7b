"""Core assistant service client.

Thin typed wrapper over the assistant REST API (threads, messages and
runs). Calls are never retried here: creating messages and runs is not
idempotent, so a blind retry could duplicate thread state.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx
import structlog
from httpx_sse import SSEError
from opentelemetry import propagate

from assistant_relay.platform.clients.assistant.config import AssistantClientConfig
from assistant_relay.platform.clients.assistant.exceptions import (
    AssistantProtocolError,
    UpstreamError,
)
from assistant_relay.platform.clients.assistant.models import (
    Run,
    Thread,
    ThreadMessage,
    ToolOutput,
    UpstreamEvent,
)
from assistant_relay.platform.clients.assistant.sse import iter_events
from assistant_relay.platform.constants import USER_AGENT
from assistant_relay.platform.observability import correlation_id_ctx, time_upstream_call

logger = structlog.get_logger(__name__)


async def _inject_trace_context(request: httpx.Request) -> None:
    """Inject OpenTelemetry trace context into each outgoing request.

    Note: Must be async because httpx AsyncClient awaits event hooks.
    """
    propagate.inject(request.headers)

    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        request.headers["X-Request-ID"] = correlation_id


class AssistantClient:
    """Typed operations against the assistant service.

    Every operation raises ``UpstreamError`` on a non-2xx response or a
    transport failure. Callers decide whether to propagate.
    """

    def __init__(
        self,
        config: AssistantClientConfig,
        httpx_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            config: Client configuration (credentials, base URL, timeouts).
            httpx_client: Optional pre-configured HTTP client. When omitted the
                client creates and owns one.
        """
        self._config = config
        self._httpx_client = httpx_client
        self._owns_httpx_client = httpx_client is None

    @property
    def config(self) -> AssistantClientConfig:
        return self._config

    @property
    def has_credentials(self) -> bool:
        return self._config.has_credentials

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_httpx_client and self._httpx_client is not None:
            await self._httpx_client.aclose()
            self._httpx_client = None

    async def __aenter__(self) -> "AssistantClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Threads and messages
    # ------------------------------------------------------------------

    async def create_thread(self) -> Thread:
        data = await self._request("create_thread", "POST", "/threads", json={})
        thread = self._parse(Thread, data, "create_thread")
        logger.info("thread_created", thread_id=thread.id)
        return thread

    async def post_message(self, thread_id: str, role: str, content: str) -> ThreadMessage:
        """Append a message to a thread.

        Args:
            thread_id: Target thread.
            role: "user" or "assistant".
            content: Message text.
        """
        data = await self._request(
            "post_message",
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": role, "content": content},
        )
        return self._parse(ThreadMessage, data, "post_message")

    async def get_messages(self, thread_id: str, run_id: str | None = None) -> list[ThreadMessage]:
        """List thread messages, oldest first.

        The service pages newest first. Every page is fetched (following
        ``has_more`` / ``last_id``) and the result reversed once, so callers
        see the whole thread in chronological order.

        Args:
            thread_id: Thread to read.
            run_id: Only return messages produced by this run.
        """
        params: dict[str, Any] = {"order": "desc", "limit": self._config.messages_page_limit}
        if run_id:
            params["run_id"] = run_id

        messages: list[ThreadMessage] = []
        while True:
            data = await self._request(
                "get_messages", "GET", f"/threads/{thread_id}/messages", params=params
            )
            items = data.get("data")
            if not isinstance(items, list):
                raise AssistantProtocolError("message list has no data array", "get_messages")
            messages.extend(self._parse(ThreadMessage, item, "get_messages") for item in items)

            if not data.get("has_more") or not items:
                break
            params = {**params, "after": data.get("last_id") or messages[-1].id}

        messages.reverse()
        return messages

    async def delete_thread(self, thread_id: str) -> bool:
        data = await self._request("delete_thread", "DELETE", f"/threads/{thread_id}")
        deleted = bool(data.get("deleted", False))
        logger.info("thread_deleted", thread_id=thread_id, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def create_run(self, thread_id: str, assistant_id: str) -> Run:
        data = await self._request(
            "create_run",
            "POST",
            f"/threads/{thread_id}/runs",
            json={"assistant_id": assistant_id},
        )
        run = self._parse(Run, data, "create_run")
        logger.info("run_created", thread_id=thread_id, run_id=run.id, status=run.status)
        return run

    def create_run_stream(self, thread_id: str, assistant_id: str) -> AsyncIterator[UpstreamEvent]:
        """Create a run with streaming enabled and yield its events."""
        return self._stream(
            "create_run_stream",
            f"/threads/{thread_id}/runs",
            {"assistant_id": assistant_id},
        )

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        data = await self._request("get_run", "GET", f"/threads/{thread_id}/runs/{run_id}")
        return self._parse(Run, data, "get_run")

    async def submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        outputs: Sequence[ToolOutput],
    ) -> Run:
        data = await self._request(
            "submit_tool_outputs",
            "POST",
            f"/threads/{thread_id}/runs/{run_id}/submit_tool_outputs",
            json={"tool_outputs": [output.model_dump() for output in outputs]},
        )
        return self._parse(Run, data, "submit_tool_outputs")

    def submit_tool_outputs_stream(
        self,
        thread_id: str,
        run_id: str,
        outputs: Sequence[ToolOutput],
    ) -> AsyncIterator[UpstreamEvent]:
        """Submit tool outputs and yield the events of the resumed run."""
        return self._stream(
            "submit_tool_outputs_stream",
            f"/threads/{thread_id}/runs/{run_id}/submit_tool_outputs",
            {"tool_outputs": [output.model_dump() for output in outputs]},
        )

    async def cancel_run(self, thread_id: str, run_id: str) -> Run:
        data = await self._request(
            "cancel_run", "POST", f"/threads/{thread_id}/runs/{run_id}/cancel", json={}
        )
        run = self._parse(Run, data, "cancel_run")
        logger.info("run_cancel_requested", thread_id=thread_id, run_id=run_id, status=run.status)
        return run

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._httpx_client is None:
            self._httpx_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers={"user-agent": USER_AGENT},
                event_hooks={"request": [_inject_trace_context]},
            )
            self._owns_httpx_client = True
        return self._httpx_client

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "OpenAI-Beta": self._config.beta_header,
        }

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        with time_upstream_call(operation) as timer:
            try:
                response = await self._http().request(
                    method,
                    self._url(path),
                    headers=self._headers(),
                    json=json,
                    params=params,
                )
            except httpx.HTTPError as e:
                logger.warning("upstream_transport_error", operation=operation, error=str(e))
                raise UpstreamError(operation, None, str(e)) from e
            timer.status_code = response.status_code

        if not response.is_success:
            logger.warning(
                "upstream_call_failed",
                operation=operation,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(operation, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise AssistantProtocolError("response body is not JSON", operation) from e
        if not isinstance(data, dict):
            raise AssistantProtocolError("response body is not a JSON object", operation)
        return data

    async def _stream(
        self,
        operation: str,
        path: str,
        body: dict[str, Any],
    ) -> AsyncIterator[UpstreamEvent]:
        timeout = httpx.Timeout(
            self._config.timeout_seconds,
            read=self._config.stream_read_timeout_seconds,
        )
        with time_upstream_call(operation) as timer:
            try:
                async with self._http().stream(
                    "POST",
                    self._url(path),
                    headers=self._headers(),
                    json={**body, "stream": True},
                    timeout=timeout,
                ) as response:
                    timer.status_code = response.status_code
                    if not response.is_success:
                        error_body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.warning(
                            "upstream_call_failed",
                            operation=operation,
                            status_code=response.status_code,
                            body=error_body[:500],
                        )
                        raise UpstreamError(operation, response.status_code, error_body)

                    async for event in iter_events(response):
                        yield event
            except SSEError as e:
                # SSEError subclasses httpx.TransportError
                raise AssistantProtocolError(str(e), operation) from e
            except httpx.HTTPError as e:
                logger.warning("upstream_transport_error", operation=operation, error=str(e))
                raise UpstreamError(operation, None, str(e)) from e

    @staticmethod
    def _parse(model: type, data: Any, operation: str):
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise AssistantProtocolError(f"unexpected {model.__name__} payload: {e}", operation) from e
