"""Tool dispatch for runs that stop in ``requires_action``.

Every tool call the assistant asks for gets exactly one output, whatever
happens while serving it, so a run is never resumed with missing outputs.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence

import structlog

from assistant_relay.chat.exceptions import ToolDispatchError
from assistant_relay.platform.clients.assistant import ToolCall, ToolOutput
from assistant_relay.platform.clients.search import SearchResult, WebSearchClient
from assistant_relay.platform.observability import record_tool_call

logger = structlog.get_logger(__name__)

WEB_SEARCH_TOOL = "web_search"

ToolHandler = Callable[[ToolCall], Awaitable[str]]


def unsupported_tool_output(name: str) -> str:
    return json.dumps(
        {
            "error": "unsupported_tool",
            "tool": name,
            "message": f"The tool {name!r} is not available.",
        }
    )


class ToolDispatcher:
    """Serves tool calls with the external tool backends.

    Args:
        search_client: Client used by the ``web_search`` tool.
    """

    def __init__(self, search_client: WebSearchClient):
        self._search = search_client
        self._handlers: dict[str, ToolHandler] = {
            WEB_SEARCH_TOOL: self._web_search,
        }

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._handlers)

    async def dispatch_all(self, tool_calls: Sequence[ToolCall]) -> list[ToolOutput]:
        """Serve all calls concurrently; outputs keep the order of ``tool_calls``."""
        outputs = await asyncio.gather(*(self.dispatch(call) for call in tool_calls))
        return list(outputs)

    async def dispatch(self, tool_call: ToolCall) -> ToolOutput:
        """Serve one tool call. Never raises."""
        name = tool_call.function.name
        handler = self._handlers.get(name)

        if handler is None:
            logger.warning("tool_unsupported", tool_name=name, tool_call_id=tool_call.id)
            record_tool_call(name, "unsupported")
            return ToolOutput(tool_call_id=tool_call.id, output=unsupported_tool_output(name))

        try:
            output = await handler(tool_call)
        except ToolDispatchError as e:
            logger.warning("tool_dispatch_failed", tool_name=name, tool_call_id=tool_call.id, error=str(e))
            record_tool_call(name, "error")
            output = json.dumps({"error": "tool_failed", "tool": name, "message": str(e)})
        except Exception:
            logger.exception("tool_dispatch_crashed", tool_name=name, tool_call_id=tool_call.id)
            record_tool_call(name, "error")
            output = json.dumps({"error": "tool_failed", "tool": name, "message": "internal error"})
        else:
            logger.info("tool_dispatched", tool_name=name, tool_call_id=tool_call.id)
            record_tool_call(name, "ok")

        return ToolOutput(tool_call_id=tool_call.id, output=output)

    async def _web_search(self, tool_call: ToolCall) -> str:
        try:
            query = _search_query(tool_call)
        except ToolDispatchError as e:
            logger.warning("tool_arguments_invalid", tool_call_id=tool_call.id, error=str(e))
            result = self._search.error_result(tool_call.function.arguments.strip())
        else:
            result = await self._search.search(query)
        return _result_json(result)


def _search_query(tool_call: ToolCall) -> str:
    try:
        arguments = tool_call.function.parsed_arguments()
    except ValueError as e:
        raise ToolDispatchError(
            f"arguments are not a JSON object: {e}", tool_call.function.name, tool_call.id
        ) from e

    query = arguments.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ToolDispatchError("missing query argument", tool_call.function.name, tool_call.id)
    return query.strip()


def _result_json(result: SearchResult) -> str:
    return result.model_dump_json()
