"""Upstream run stream events.

Framing (line reassembly across network reads, ``event:``/``data:`` fields)
is handled by httpx-sse. This module turns its events into ``UpstreamEvent``
values: the ``[DONE]`` marker becomes a done event and malformed data is
logged and skipped.
"""

import json
from collections.abc import AsyncIterable, AsyncIterator

import httpx
import structlog
from httpx_sse import EventSource, ServerSentEvent

from assistant_relay.platform.clients.assistant.exceptions import StreamProtocolError
from assistant_relay.platform.clients.assistant.models import UpstreamEvent

logger = structlog.get_logger(__name__)

DONE_MARKER = "[DONE]"


def to_upstream_event(sse: ServerSentEvent) -> UpstreamEvent | None:
    """Convert one server-sent event; None when it carries nothing usable."""
    payload = sse.data.strip()
    if not payload:
        return None
    if payload == DONE_MARKER:
        return UpstreamEvent(event=sse.event, done=True)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        _skip(StreamProtocolError(f"invalid JSON: {e.msg}", payload))
        return None
    if not isinstance(data, dict):
        _skip(StreamProtocolError("data is not a JSON object", payload))
        return None
    return UpstreamEvent(event=sse.event, data=data)


async def decode_events(events: AsyncIterable[ServerSentEvent]) -> AsyncIterator[UpstreamEvent]:
    async for sse in events:
        event = to_upstream_event(sse)
        if event is not None:
            yield event


def iter_events(response: httpx.Response) -> AsyncIterator[UpstreamEvent]:
    """Decode a streamed run response.

    Raises:
        httpx_sse.SSEError: If the response is not ``text/event-stream``.
    """
    return decode_events(EventSource(response).aiter_sse())


def _skip(error: StreamProtocolError) -> None:
    logger.warning(
        "stream_event_skipped",
        reason=str(error),
        fragment=error.fragment[:200],
    )
