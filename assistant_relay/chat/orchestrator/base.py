"""Shared types for the run strategies."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from assistant_relay.platform.settings import Settings


@dataclass(frozen=True)
class OrchestratorConfig:
    """Run driving parameters.

    Attributes:
        assistant_id: Assistant that processes every run; None when unconfigured.
        poll_interval_seconds: Fixed delay between status checks (default: 1s).
        max_poll_time_seconds: Upper bound on a polled run (default: 600s).
        cancel_run_on_disconnect: Cancel a streamed run when its consumer goes away.
    """

    assistant_id: str | None = None
    poll_interval_seconds: float = 1.0
    max_poll_time_seconds: float = 600.0
    cancel_run_on_disconnect: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrchestratorConfig":
        return cls(
            assistant_id=settings.assistant.assistant_id,
            poll_interval_seconds=settings.assistant.poll_interval_seconds,
            max_poll_time_seconds=settings.assistant.max_poll_time_seconds,
            cancel_run_on_disconnect=settings.stream.cancel_run_on_disconnect,
        )


@dataclass(frozen=True)
class Turn:
    """A user message that has been appended to its thread and awaits a run.

    Attributes:
        thread_id: Conversation thread the turn belongs to.
        created_thread: True when the thread was created for this turn.
    """

    thread_id: str
    created_thread: bool = False


@dataclass(frozen=True)
class TurnResult:
    """Final answer of a completed run."""

    text: str
    thread_id: str
    run_id: str | None = None


class RunEventType(StrEnum):
    TEXT = "text"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RunEvent:
    """Event produced while streaming a run.

    Attributes:
        type: ``text`` for an assistant text delta, ``completed`` once the run
            has finished successfully (always the last event).
        text: Delta text for ``text`` events.
        run_id: Run the event belongs to, when known.
    """

    type: RunEventType
    text: str = ""
    run_id: str | None = None


class RunStrategyProtocol(Protocol):
    async def execute(self, turn: Turn) -> TurnResult: ...


class StreamingRunStrategyProtocol(Protocol):
    def execute_stream(self, turn: Turn) -> AsyncIterator[RunEvent]: ...

    async def wait_for_cancellations(self) -> None: ...
