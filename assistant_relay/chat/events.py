"""Client-facing stream events and pacing."""

import asyncio
from collections.abc import AsyncIterator
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EventType = Literal["start", "message", "done", "error"]


class ClientStreamEvent(BaseModel):
    """One event of the normalized client stream.

    Serialized as a single ``data: <json>`` server-sent event frame.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: EventType
    thread_id: str | None = Field(None, alias="threadId")
    text: str | None = None
    error: str | None = None

    @classmethod
    def start(cls, thread_id: str) -> "ClientStreamEvent":
        return cls(type="start", thread_id=thread_id)

    @classmethod
    def message(cls, text: str) -> "ClientStreamEvent":
        return cls(type="message", text=text)

    @classmethod
    def done(cls) -> "ClientStreamEvent":
        return cls(type="done")

    @classmethod
    def failed(cls, error: str) -> "ClientStreamEvent":
        return cls(type="error", error=error)

    @property
    def is_terminal(self) -> bool:
        return self.type in ("done", "error")

    def encode(self) -> str:
        return encode_sse(self)


def encode_sse(event: ClientStreamEvent) -> str:
    return f"data: {event.model_dump_json(by_alias=True, exclude_none=True)}\n\n"


class CharacterPacer:
    """Splits text into single characters with a fixed pause after each.

    Args:
        delay_seconds: Pause after every character; 0 disables pacing.
    """

    def __init__(self, delay_seconds: float = 0.01):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.delay_seconds = delay_seconds

    async def pace(self, text: str) -> AsyncIterator[str]:
        for char in text:
            yield char
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
