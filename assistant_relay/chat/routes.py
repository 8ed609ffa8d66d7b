"""Chat HTTP endpoints.

- ``POST /chat``: ask a question and wait for the full answer
- ``POST /chat/stream``: ask a question and receive the answer as server-sent events
- ``POST /chat/messages``: read a thread's history, oldest first
- ``POST /chat/delete``: delete a thread on the assistant service
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from assistant_relay.chat.exceptions import ConfigurationError, InvalidRequestError
from assistant_relay.chat.orchestrator import RunOrchestrator
from assistant_relay.chat.relay import StreamRelay
from assistant_relay.platform.clients.assistant import AssistantClient, AssistantClientError
from assistant_relay.platform.server.dependencies.chat import (
    get_assistant_client,
    get_orchestrator,
    get_relay,
)

logger = structlog.get_logger(__name__)

chat_router = APIRouter(prefix="/chat", tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# =============================================================================
# Payloads
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatPayload(_CamelModel):
    """Request body for ``/chat`` and ``/chat/stream``.

    Attributes:
        question: The user's message; must not be blank
        thread_id: Existing conversation thread; a new one is created when omitted
    """

    question: str | None = None
    thread_id: str | None = Field(None, alias="threadId")


class ThreadPayload(_CamelModel):
    thread_id: str | None = Field(None, alias="threadId")


class ChatResponse(_CamelModel):
    text: str
    thread_id: str = Field(alias="threadId")


class HistoryMessage(BaseModel):
    sender: Literal["user", "bot"]
    text: str
    id: str


class HistoryResponse(BaseModel):
    messages: list[HistoryMessage]


class DeleteResponse(BaseModel):
    success: bool
    deleted: bool


# =============================================================================
# Endpoints
# =============================================================================


@chat_router.post("")
async def chat_handler(
    payload: ChatPayload,
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    """Answer a question synchronously (run-and-poll)."""
    question = _required(payload.question, "question")
    result = await orchestrator.ask(question, _optional(payload.thread_id))
    return ChatResponse(text=result.text, thread_id=result.thread_id)


@chat_router.post("/stream")
async def stream_handler(
    payload: ChatPayload,
    orchestrator: RunOrchestrator = Depends(get_orchestrator),
    relay: StreamRelay = Depends(get_relay),
):
    """Answer a question as a server-sent event stream (run-and-stream).

    Thread creation and the user message happen before the response starts,
    so their failures are still answered with a JSON error. Anything that
    fails later arrives as a single ``error`` event.
    """
    question = _required(payload.question, "question")
    turn = await orchestrator.begin_turn(question, _optional(payload.thread_id))

    return StreamingResponse(
        relay.stream(turn),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@chat_router.post("/messages")
async def messages_handler(
    payload: ThreadPayload,
    client: AssistantClient = Depends(get_assistant_client),
) -> HistoryResponse:
    """Return the thread's messages in the order they were sent."""
    thread_id = _required(payload.thread_id, "threadId")
    _require_credentials(client)

    messages = await client.get_messages(thread_id)
    return HistoryResponse(
        messages=[
            HistoryMessage(
                sender="user" if message.role == "user" else "bot",
                text=message.text,
                id=message.id,
            )
            for message in messages
        ]
    )


@chat_router.post("/delete")
async def delete_handler(
    payload: ThreadPayload,
    client: AssistantClient = Depends(get_assistant_client),
) -> DeleteResponse:
    """Delete the thread upstream.

    Deletion is best-effort: an upstream failure is logged and reported as
    ``deleted: false``.
    """
    thread_id = _required(payload.thread_id, "threadId")
    _require_credentials(client)

    try:
        deleted = await client.delete_thread(thread_id)
    except AssistantClientError as e:
        logger.warning("thread_delete_failed", thread_id=thread_id, error=str(e))
        deleted = False
    return DeleteResponse(success=True, deleted=deleted)


# =============================================================================
# Helpers
# =============================================================================


def _required(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequestError(f"{field} is required", field=field)
    return value.strip()


def _require_credentials(client: AssistantClient) -> None:
    # History and deletion need no assistant, only the API key
    if not client.has_credentials:
        raise ConfigurationError(["api_key"])


def _optional(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()
