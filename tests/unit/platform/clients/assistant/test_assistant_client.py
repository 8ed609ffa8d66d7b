"""Unit tests for AssistantClient.

The HTTP layer is mocked with respx so requests go through the real httpx
client, including headers, query params and streaming bodies.
"""

import json

import httpx
import pytest
import respx

from assistant_relay.platform.clients.assistant import (
    AssistantClient,
    AssistantClientConfig,
    AssistantProtocolError,
    ToolOutput,
    UpstreamError,
)
from assistant_relay.platform.observability.logging import correlation_id_ctx

BASE_URL = "https://assistant.test/v1"


@pytest.fixture
def config() -> AssistantClientConfig:
    return AssistantClientConfig(api_key="sk-test", base_url=BASE_URL)


@pytest.fixture
async def client(config: AssistantClientConfig):
    async with AssistantClient(config) as assistant_client:
        yield assistant_client


def _message(message_id: str, role: str, text: str, created_at: int) -> dict:
    return {
        "id": message_id,
        "object": "thread.message",
        "role": role,
        "created_at": created_at,
        "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
    }


def _sse(*payloads: dict | str) -> bytes:
    frames = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        frames.append(f"data: {data}\n\n")
    return "".join(frames).encode()


class TestAssistantClientInit:
    """Tests for AssistantClient construction."""

    def test_has_credentials(self, config):
        """Credentials come from the config."""
        assert AssistantClient(config).has_credentials is True
        assert AssistantClient(AssistantClientConfig()).has_credentials is False

    async def test_does_not_close_injected_client(self, config):
        """An injected httpx client is left open on close()."""
        http = httpx.AsyncClient()
        assistant_client = AssistantClient(config, httpx_client=http)

        await assistant_client.close()

        assert http.is_closed is False
        await http.aclose()


class TestAssistantClientHeaders:
    """Tests for headers sent on every call."""

    @respx.mock
    async def test_auth_and_beta_headers(self, client):
        """Every request carries the bearer token and the beta header."""
        route = respx.post(f"{BASE_URL}/threads").mock(
            return_value=httpx.Response(200, json={"id": "thread_1", "object": "thread"})
        )

        await client.create_thread()

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["OpenAI-Beta"] == "assistants=v2"

    @respx.mock
    async def test_correlation_id_forwarded(self, client):
        """The request correlation id is forwarded as X-Request-ID."""
        route = respx.post(f"{BASE_URL}/threads").mock(
            return_value=httpx.Response(200, json={"id": "thread_1"})
        )
        token = correlation_id_ctx.set("req-123")
        try:
            await client.create_thread()
        finally:
            correlation_id_ctx.reset(token)

        assert route.calls.last.request.headers["X-Request-ID"] == "req-123"


class TestAssistantClientThreads:
    """Tests for thread and message operations."""

    @respx.mock
    async def test_create_thread(self, client):
        """create_thread returns the new thread id."""
        respx.post(f"{BASE_URL}/threads").mock(
            return_value=httpx.Response(200, json={"id": "thread_abc", "object": "thread"})
        )

        thread = await client.create_thread()

        assert thread.id == "thread_abc"

    @respx.mock
    async def test_create_thread_rate_limited(self, client):
        """A 429 surfaces as UpstreamError with status and body."""
        respx.post(f"{BASE_URL}/threads").mock(
            return_value=httpx.Response(429, json={"error": {"message": "Rate limit reached"}})
        )

        with pytest.raises(UpstreamError) as exc_info:
            await client.create_thread()

        assert exc_info.value.status_code == 429
        assert exc_info.value.operation == "create_thread"
        assert "Rate limit reached" in exc_info.value.body

    @respx.mock
    async def test_transport_error(self, client):
        """Connection failures surface as UpstreamError without a status."""
        respx.post(f"{BASE_URL}/threads").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(UpstreamError) as exc_info:
            await client.create_thread()

        assert exc_info.value.status_code is None

    @respx.mock
    async def test_non_json_body(self, client):
        """A 2xx response that is not JSON is a protocol error."""
        respx.post(f"{BASE_URL}/threads").mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(AssistantProtocolError):
            await client.create_thread()

    @respx.mock
    async def test_post_message(self, client):
        """post_message sends role and content."""
        route = respx.post(f"{BASE_URL}/threads/thread_1/messages").mock(
            return_value=httpx.Response(200, json=_message("msg_1", "user", "Hi", 1))
        )

        message = await client.post_message("thread_1", "user", "Hi")

        assert json.loads(route.calls.last.request.content) == {"role": "user", "content": "Hi"}
        assert message.text == "Hi"

    @respx.mock
    async def test_get_messages_returns_chronological_order(self, client):
        """The newest-first upstream page is returned oldest first."""
        route = respx.get(f"{BASE_URL}/threads/thread_1/messages").mock(
            return_value=httpx.Response(
                200,
                json={
                    "object": "list",
                    "data": [
                        _message("msg_3", "user", "third", 3),
                        _message("msg_2", "assistant", "second", 2),
                        _message("msg_1", "user", "first", 1),
                    ],
                },
            )
        )

        messages = await client.get_messages("thread_1")

        assert [m.id for m in messages] == ["msg_1", "msg_2", "msg_3"]
        assert [m.role for m in messages] == ["user", "assistant", "user"]
        assert [m.created_at for m in messages] == sorted(m.created_at for m in messages)
        params = route.calls.last.request.url.params
        assert params["order"] == "desc"
        assert params["limit"] == "100"
        assert "run_id" not in params

    @respx.mock
    async def test_get_messages_follows_pages(self):
        """Every page is fetched and the whole thread returned oldest first."""
        route = respx.get(f"{BASE_URL}/threads/thread_1/messages").mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={
                        "data": [_message("m4", "assistant", "four", 4), _message("m3", "user", "three", 3)],
                        "has_more": True,
                        "last_id": "m3",
                    },
                ),
                httpx.Response(
                    200,
                    json={
                        "data": [_message("m2", "assistant", "two", 2), _message("m1", "user", "one", 1)],
                        "has_more": False,
                        "last_id": "m1",
                    },
                ),
            ]
        )

        async with AssistantClient(
            AssistantClientConfig(api_key="sk-test", base_url=BASE_URL, messages_page_limit=2)
        ) as paged_client:
            messages = await paged_client.get_messages("thread_1")

        assert [m.id for m in messages] == ["m1", "m2", "m3", "m4"]
        assert route.call_count == 2
        first, second = (call.request.url.params for call in route.calls)
        assert "after" not in first
        assert second["after"] == "m3"
        assert second["limit"] == "2"
        assert second["order"] == "desc"

    @respx.mock
    async def test_get_messages_filtered_by_run(self, client):
        """run_id is passed through as a query filter."""
        route = respx.get(f"{BASE_URL}/threads/thread_1/messages").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        assert await client.get_messages("thread_1", run_id="run_9") == []
        assert route.calls.last.request.url.params["run_id"] == "run_9"

    @respx.mock
    async def test_get_messages_without_data(self, client):
        """A list response without a data array is a protocol error."""
        respx.get(f"{BASE_URL}/threads/thread_1/messages").mock(
            return_value=httpx.Response(200, json={"object": "list"})
        )

        with pytest.raises(AssistantProtocolError):
            await client.get_messages("thread_1")

    @respx.mock
    async def test_delete_thread(self, client):
        """delete_thread reports the upstream deleted flag."""
        respx.delete(f"{BASE_URL}/threads/thread_1").mock(
            return_value=httpx.Response(200, json={"id": "thread_1", "deleted": True})
        )

        assert await client.delete_thread("thread_1") is True


class TestAssistantClientRuns:
    """Tests for run operations."""

    @respx.mock
    async def test_create_run(self, client):
        """create_run sends the assistant id and parses the run."""
        route = respx.post(f"{BASE_URL}/threads/thread_1/runs").mock(
            return_value=httpx.Response(200, json={"id": "run_1", "thread_id": "thread_1", "status": "queued"})
        )

        run = await client.create_run("thread_1", "asst_1")

        assert json.loads(route.calls.last.request.content) == {"assistant_id": "asst_1"}
        assert run.id == "run_1"
        assert run.status == "queued"

    @respx.mock
    async def test_get_run_with_required_action(self, client):
        """Tool calls are exposed from required_action."""
        respx.get(f"{BASE_URL}/threads/thread_1/runs/run_1").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": "run_1",
                    "status": "requires_action",
                    "required_action": {
                        "type": "submit_tool_outputs",
                        "submit_tool_outputs": {
                            "tool_calls": [
                                {
                                    "id": "call_1",
                                    "type": "function",
                                    "function": {"name": "web_search", "arguments": '{"query": "x"}'},
                                }
                            ]
                        },
                    },
                },
            )
        )

        run = await client.get_run("thread_1", "run_1")

        assert [call.id for call in run.tool_calls] == ["call_1"]
        assert run.tool_calls[0].function.parsed_arguments() == {"query": "x"}

    @respx.mock
    async def test_submit_tool_outputs(self, client):
        """Outputs are sent as a single batch."""
        route = respx.post(f"{BASE_URL}/threads/thread_1/runs/run_1/submit_tool_outputs").mock(
            return_value=httpx.Response(200, json={"id": "run_1", "status": "queued"})
        )

        await client.submit_tool_outputs(
            "thread_1",
            "run_1",
            [ToolOutput(tool_call_id="call_1", output="{}"), ToolOutput(tool_call_id="call_2", output="{}")],
        )

        body = json.loads(route.calls.last.request.content)
        assert [o["tool_call_id"] for o in body["tool_outputs"]] == ["call_1", "call_2"]

    @respx.mock
    async def test_cancel_run(self, client):
        """cancel_run posts to the cancel endpoint."""
        route = respx.post(f"{BASE_URL}/threads/thread_1/runs/run_1/cancel").mock(
            return_value=httpx.Response(200, json={"id": "run_1", "status": "cancelling"})
        )

        run = await client.cancel_run("thread_1", "run_1")

        assert route.called
        assert run.status == "cancelling"

    @respx.mock
    async def test_run_payload_without_status(self, client):
        """A run payload missing required fields is a protocol error."""
        respx.get(f"{BASE_URL}/threads/thread_1/runs/run_1").mock(
            return_value=httpx.Response(200, json={"id": "run_1"})
        )

        with pytest.raises(AssistantProtocolError):
            await client.get_run("thread_1", "run_1")


class TestAssistantClientStreaming:
    """Tests for streamed runs."""

    @respx.mock
    async def test_create_run_stream_yields_events(self, client):
        """Streamed events are decoded and the stream flag is set."""
        route = respx.post(f"{BASE_URL}/threads/thread_1/runs").mock(
            return_value=httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=_sse(
                    {"object": "thread.run", "id": "run_1", "status": "queued"},
                    {
                        "object": "thread.message.delta",
                        "delta": {"content": [{"type": "text", "text": {"value": "Hi"}}]},
                    },
                    {"object": "thread.run", "id": "run_1", "status": "completed"},
                    "[DONE]",
                ),
            )
        )

        events = [event async for event in client.create_run_stream("thread_1", "asst_1")]

        assert json.loads(route.calls.last.request.content) == {"assistant_id": "asst_1", "stream": True}
        assert [event.object_type for event in events[:3]] == ["thread.run", "thread.message.delta", "thread.run"]
        assert events[1].delta_text() == "Hi"
        assert events[-1].done is True

    @respx.mock
    async def test_stream_error_status(self, client):
        """A non-2xx streamed response raises UpstreamError with the body."""
        respx.post(f"{BASE_URL}/threads/thread_1/runs/run_1/submit_tool_outputs").mock(
            return_value=httpx.Response(400, json={"error": {"message": "bad outputs"}})
        )

        with pytest.raises(UpstreamError) as exc_info:
            async for _ in client.submit_tool_outputs_stream("thread_1", "run_1", []):
                pass

        assert exc_info.value.status_code == 400
        assert "bad outputs" in exc_info.value.body

    @respx.mock
    async def test_stream_not_event_stream(self, client):
        """A 200 that is not an event stream is a protocol error."""
        respx.post(f"{BASE_URL}/threads/thread_1/runs").mock(
            return_value=httpx.Response(200, json={"id": "run_1", "status": "queued"})
        )

        with pytest.raises(AssistantProtocolError):
            async for _ in client.create_run_stream("thread_1", "asst_1"):
                pass
