"""Republishes a streamed run to the client.

Framing: exactly one ``start`` event first, one ``message`` event per
character of assistant text, then exactly one ``done`` or ``error`` event.
Nothing is sent after the terminal event.
"""

from collections.abc import AsyncIterator
from contextlib import aclosing

import structlog

from assistant_relay.chat.events import CharacterPacer, ClientStreamEvent
from assistant_relay.chat.orchestrator import RunEventType, RunOrchestrator, Turn
from assistant_relay.platform.clients.assistant import AssistantClientError

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred while streaming the response."


class StreamRelay:
    def __init__(self, orchestrator: RunOrchestrator, pacer: CharacterPacer):
        self._orchestrator = orchestrator
        self._pacer = pacer

    async def events(self, turn: Turn) -> AsyncIterator[ClientStreamEvent]:
        yield ClientStreamEvent.start(turn.thread_id)

        try:
            async with aclosing(self._orchestrator.run_stream(turn)) as run_events:
                async for event in run_events:
                    if event.type != RunEventType.TEXT:
                        continue
                    async with aclosing(self._pacer.pace(event.text)) as chars:
                        async for char in chars:
                            yield ClientStreamEvent.message(char)
        except AssistantClientError as e:
            logger.warning("stream_failed", thread_id=turn.thread_id, error=str(e))
            yield ClientStreamEvent.failed(str(e))
            return
        except Exception:
            logger.exception("stream_crashed", thread_id=turn.thread_id)
            yield ClientStreamEvent.failed(INTERNAL_ERROR_MESSAGE)
            return

        logger.info("stream_completed", thread_id=turn.thread_id)
        yield ClientStreamEvent.done()

    async def stream(self, turn: Turn) -> AsyncIterator[str]:
        """Encoded server-sent event frames for ``turn``."""
        async with aclosing(self.events(turn)) as events:
            async for event in events:
                yield event.encode()
