"""Streaming run strategy.

Consumes the upstream event stream of a run inline. When the run stops in
``requires_action`` the tool outputs are submitted with streaming enabled
and the continuation is spliced into the same event sequence, so callers
see one ordered stream per turn.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing

import structlog

from assistant_relay.chat.orchestrator.base import (
    OrchestratorConfig,
    RunEvent,
    RunEventType,
    Turn,
)
from assistant_relay.chat.tools import ToolDispatcher
from assistant_relay.platform.clients.assistant import (
    FAILED_RUN_STATUSES,
    AssistantClient,
    AssistantClientError,
    AssistantProtocolError,
    Run,
    RunFailedError,
    RunStatus,
    UpstreamEvent,
)

logger = structlog.get_logger(__name__)

RUN_OBJECT = "thread.run"
MESSAGE_DELTA_OBJECT = "thread.message.delta"
ERROR_EVENT = "error"


class StreamingRunStrategy:
    """Run-and-stream execution."""

    def __init__(
        self,
        client: AssistantClient,
        dispatcher: ToolDispatcher,
        config: OrchestratorConfig,
    ):
        self._client = client
        self._dispatcher = dispatcher
        self._config = config
        self._pending_cancellations: set[asyncio.Task] = set()

    async def execute_stream(self, turn: Turn) -> AsyncIterator[RunEvent]:
        """Stream the assistant's answer to ``turn``.

        Yields ``text`` events in upstream order and a single ``completed``
        event once the run completes.

        Raises:
            RunFailedError: If the run fails, the upstream reports an error
                event, or the stream ends before the run completed.
            UpstreamError: If any assistant call fails.
        """
        thread_id = turn.thread_id
        run_id: str | None = None
        completed = False
        events: AsyncIterator[UpstreamEvent] | None = self._client.create_run_stream(
            thread_id, self._config.assistant_id
        )

        try:
            while events is not None:
                continuation: AsyncIterator[UpstreamEvent] | None = None

                async with aclosing(events):
                    async for event in events:
                        if event.done:
                            break

                        if event.event == ERROR_EVENT:
                            raise RunFailedError(_error_message(event), run_id=run_id)

                        if event.object_type == RUN_OBJECT:
                            run = _parse_run(event)
                            run_id = run.id
                            logger.debug("run_status", thread_id=thread_id, run_id=run.id, status=run.status)

                            if run.status == RunStatus.REQUIRES_ACTION:
                                continuation = await self._resume_with_tool_outputs(thread_id, run)
                                break

                            if run.status == RunStatus.COMPLETED:
                                completed = True
                                yield RunEvent(RunEventType.COMPLETED, run_id=run.id)
                                return

                            if run.status in FAILED_RUN_STATUSES:
                                raise RunFailedError(run.error_message, run_id=run.id, status=run.status)

                        elif event.object_type == MESSAGE_DELTA_OBJECT:
                            text = event.delta_text()
                            if text:
                                yield RunEvent(RunEventType.TEXT, text=text, run_id=run_id)

                events = continuation

            raise RunFailedError("stream ended before the run completed", run_id=run_id)
        except (GeneratorExit, asyncio.CancelledError):
            if not completed and run_id and self._config.cancel_run_on_disconnect:
                self._cancel_in_background(thread_id, run_id)
            raise

    async def _resume_with_tool_outputs(self, thread_id: str, run: Run) -> AsyncIterator[UpstreamEvent]:
        tool_calls = run.tool_calls
        if not tool_calls:
            raise AssistantProtocolError(f"run {run.id} requires action without tool calls", "stream")

        outputs = await self._dispatcher.dispatch_all(tool_calls)
        logger.info("tool_outputs_submitted", thread_id=thread_id, run_id=run.id, count=len(outputs))
        return self._client.submit_tool_outputs_stream(thread_id, run.id, outputs)

    def _cancel_in_background(self, thread_id: str, run_id: str) -> None:
        logger.info("run_cancel_on_disconnect", thread_id=thread_id, run_id=run_id)
        task = asyncio.create_task(self._cancel_run(thread_id, run_id))
        self._pending_cancellations.add(task)
        task.add_done_callback(self._pending_cancellations.discard)

    async def _cancel_run(self, thread_id: str, run_id: str) -> None:
        try:
            await self._client.cancel_run(thread_id, run_id)
        except AssistantClientError as e:
            logger.warning("run_cancel_failed", thread_id=thread_id, run_id=run_id, error=str(e))

    async def wait_for_cancellations(self) -> None:
        """Wait for in-flight disconnect cancellations to finish."""
        if self._pending_cancellations:
            await asyncio.gather(*self._pending_cancellations, return_exceptions=True)


def _parse_run(event: UpstreamEvent) -> Run:
    try:
        return Run.model_validate(event.data)
    except ValueError as e:
        raise AssistantProtocolError(f"unexpected run event payload: {e}", "stream") from e


def _error_message(event: UpstreamEvent) -> str:
    data = event.data or {}
    error = data.get("error") if isinstance(data.get("error"), dict) else data
    return error.get("message") or "upstream reported an error"
