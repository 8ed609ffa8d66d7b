"""Run orchestration.

``RunOrchestrator`` owns turn setup (thread creation and the user message)
and hands the run to one of two strategies:

- ``PollingRunStrategy``: run-and-poll, returns the final answer
- ``StreamingRunStrategy``: run-and-stream, yields text deltas as they arrive
"""

from collections.abc import AsyncIterator

import structlog

from assistant_relay.chat.exceptions import ConfigurationError
from assistant_relay.chat.orchestrator.base import (
    OrchestratorConfig,
    RunEvent,
    RunEventType,
    RunStrategyProtocol,
    StreamingRunStrategyProtocol,
    Turn,
    TurnResult,
)
from assistant_relay.chat.orchestrator.polling import PollingRunStrategy
from assistant_relay.chat.orchestrator.streaming import StreamingRunStrategy
from assistant_relay.chat.tools import ToolDispatcher
from assistant_relay.platform.clients.assistant import AssistantClient

logger = structlog.get_logger(__name__)


class RunOrchestrator:
    """Drives one conversational turn against the assistant service."""

    def __init__(
        self,
        client: AssistantClient,
        dispatcher: ToolDispatcher,
        config: OrchestratorConfig,
    ):
        self._client = client
        self._config = config
        self._polling: RunStrategyProtocol = PollingRunStrategy(client, dispatcher, config)
        self._streaming: StreamingRunStrategyProtocol = StreamingRunStrategy(client, dispatcher, config)

    @property
    def missing_configuration(self) -> list[str]:
        missing = []
        if not self._client.has_credentials:
            missing.append("api_key")
        if not self._config.assistant_id:
            missing.append("assistant_id")
        return missing

    def check_ready(self) -> None:
        """Raise ConfigurationError when credentials or the assistant id are missing."""
        missing = self.missing_configuration
        if missing:
            raise ConfigurationError(missing)

    async def begin_turn(self, question: str, thread_id: str | None = None) -> Turn:
        """Create the thread if needed and append the user's question to it."""
        self.check_ready()

        created = False
        if not thread_id:
            thread = await self._client.create_thread()
            thread_id = thread.id
            created = True

        await self._client.post_message(thread_id, "user", question)
        logger.info("turn_started", thread_id=thread_id, created_thread=created)
        return Turn(thread_id=thread_id, created_thread=created)

    async def run(self, turn: Turn) -> TurnResult:
        return await self._polling.execute(turn)

    def run_stream(self, turn: Turn) -> AsyncIterator[RunEvent]:
        return self._streaming.execute_stream(turn)

    async def ask(self, question: str, thread_id: str | None = None) -> TurnResult:
        """Begin a turn and wait for its final answer."""
        turn = await self.begin_turn(question, thread_id)
        return await self.run(turn)

    async def close(self) -> None:
        await self._streaming.wait_for_cancellations()


__all__ = [
    "OrchestratorConfig",
    "PollingRunStrategy",
    "RunEvent",
    "RunEventType",
    "RunOrchestrator",
    "StreamingRunStrategy",
    "Turn",
    "TurnResult",
]
