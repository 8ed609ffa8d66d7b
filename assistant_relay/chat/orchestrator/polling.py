"""Polling run strategy.

Creates a run and checks its status on a fixed interval until it settles,
serving tool calls whenever the run stops in ``requires_action``.
"""

import asyncio
import time

import structlog

from assistant_relay.chat.orchestrator.base import OrchestratorConfig, Turn, TurnResult
from assistant_relay.chat.tools import ToolDispatcher
from assistant_relay.platform.clients.assistant import (
    FAILED_RUN_STATUSES,
    AssistantClient,
    AssistantProtocolError,
    Run,
    RunFailedError,
    RunStatus,
    RunTimeoutError,
)

logger = structlog.get_logger(__name__)


class PollingRunStrategy:
    """Run-and-poll execution.

    Suitable for the request/response endpoint: the caller only needs the
    final answer.
    """

    def __init__(
        self,
        client: AssistantClient,
        dispatcher: ToolDispatcher,
        config: OrchestratorConfig,
    ):
        self._client = client
        self._dispatcher = dispatcher
        self._config = config

    async def execute(self, turn: Turn) -> TurnResult:
        """Run the assistant on ``turn`` and return its final answer.

        Raises:
            RunFailedError: If the run ends in a failed terminal state.
            RunTimeoutError: If the run does not settle within max_poll_time_seconds.
            UpstreamError: If any assistant call fails.
            AssistantProtocolError: If the completed run produced no assistant text.
        """
        run = await self._client.create_run(turn.thread_id, self._config.assistant_id)
        run = await self._poll_until_complete(turn.thread_id, run)
        return await self._final_result(turn, run)

    async def _poll_until_complete(self, thread_id: str, run: Run) -> Run:
        deadline = time.monotonic() + self._config.max_poll_time_seconds

        while True:
            logger.debug("run_status", thread_id=thread_id, run_id=run.id, status=run.status)

            if run.status == RunStatus.COMPLETED:
                return run

            if run.status in FAILED_RUN_STATUSES:
                logger.warning(
                    "run_failed", thread_id=thread_id, run_id=run.id, status=run.status, error=run.error_message
                )
                raise RunFailedError(run.error_message, run_id=run.id, status=run.status)

            if run.status == RunStatus.REQUIRES_ACTION:
                run = await self._resume_with_tool_outputs(thread_id, run)
                continue

            if time.monotonic() >= deadline:
                raise RunTimeoutError(run.id, self._config.max_poll_time_seconds)

            await asyncio.sleep(self._config.poll_interval_seconds)
            run = await self._client.get_run(thread_id, run.id)

    async def _resume_with_tool_outputs(self, thread_id: str, run: Run) -> Run:
        tool_calls = run.tool_calls
        if not tool_calls:
            raise AssistantProtocolError(f"run {run.id} requires action without tool calls", "get_run")

        outputs = await self._dispatcher.dispatch_all(tool_calls)
        logger.info("tool_outputs_submitted", thread_id=thread_id, run_id=run.id, count=len(outputs))
        return await self._client.submit_tool_outputs(thread_id, run.id, outputs)

    async def _final_result(self, turn: Turn, run: Run) -> TurnResult:
        messages = await self._client.get_messages(turn.thread_id, run_id=run.id)
        for message in reversed(messages):
            if message.role == "assistant" and message.text:
                return TurnResult(text=message.text, thread_id=turn.thread_id, run_id=run.id)

        raise AssistantProtocolError(f"run {run.id} completed without an assistant reply", "get_messages")
