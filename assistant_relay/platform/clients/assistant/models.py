"""Typed views over assistant service payloads.

Only the fields the relay reads are modelled; everything else the
service sends is ignored.
"""

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(StrEnum):
    """Run lifecycle states reported by the assistant service."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


# Terminal states that must never be reported as a successful turn
FAILED_RUN_STATUSES = frozenset(
    {
        RunStatus.FAILED,
        RunStatus.CANCELLED,
        RunStatus.EXPIRED,
        RunStatus.INCOMPLETE,
    }
)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Thread(_Payload):
    id: str


class FunctionCall(_Payload):
    name: str
    arguments: str = ""

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the JSON argument payload.

        Raises:
            ValueError: If the payload is not a JSON object.
        """
        value = json.loads(self.arguments or "{}")
        if not isinstance(value, dict):
            raise ValueError("tool arguments must be a JSON object")
        return value


class ToolCall(_Payload):
    id: str
    type: str = "function"
    function: FunctionCall


class _SubmitToolOutputs(_Payload):
    tool_calls: list[ToolCall] = Field(default_factory=list)


class RequiredAction(_Payload):
    type: str = "submit_tool_outputs"
    submit_tool_outputs: _SubmitToolOutputs = Field(default_factory=_SubmitToolOutputs)


class LastError(_Payload):
    code: str | None = None
    message: str | None = None


class Run(_Payload):
    id: str
    thread_id: str | None = None
    status: str
    required_action: RequiredAction | None = None
    last_error: LastError | None = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        if self.required_action is None:
            return []
        return self.required_action.submit_tool_outputs.tool_calls

    @property
    def error_message(self) -> str:
        if self.last_error and self.last_error.message:
            return self.last_error.message
        return f"run ended with status {self.status}"


class ThreadMessage(_Payload):
    id: str
    role: str
    content: list[dict[str, Any]] = Field(default_factory=list)
    created_at: int | None = None
    run_id: str | None = None

    @property
    def text(self) -> str:
        """All text parts of the message, joined in order."""
        return "".join(
            (part.get("text") or {}).get("value", "")
            for part in self.content
            if part.get("type") == "text"
        )


class ToolOutput(_Payload):
    tool_call_id: str
    output: str


@dataclass(frozen=True)
class UpstreamEvent:
    """One decoded server-sent event from a streamed run.

    Attributes:
        event: The SSE ``event:`` name (``"message"`` when the frame had none).
        data: The decoded JSON ``data:`` payload.
        done: True for the ``[DONE]`` end-of-stream marker.
    """

    event: str | None = None
    data: dict[str, Any] | None = None
    done: bool = False

    @property
    def object_type(self) -> str | None:
        if self.data is None:
            return None
        return self.data.get("object")

    def delta_text(self) -> str:
        """Text carried by a ``thread.message.delta`` payload."""
        if self.data is None:
            return ""
        delta = self.data.get("delta") or {}
        return "".join(
            (part.get("text") or {}).get("value", "")
            for part in delta.get("content") or []
            if part.get("type", "text") == "text"
        )
