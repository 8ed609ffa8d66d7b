"""Errors raised by the chat layer itself.

Upstream and run lifecycle errors live with the assistant client; these
cover what the relay decides on its own.
"""


class ChatError(Exception):
    """Base exception for chat layer errors."""


class ConfigurationError(ChatError):
    """Raised when required assistant configuration is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing assistant configuration: {', '.join(missing)}")


class InvalidRequestError(ChatError):
    """Raised when a client request is missing a required field."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ToolDispatchError(ChatError):
    """Raised inside the dispatcher when a single tool call cannot be served.

    Always converted into a tool output before the run is resumed.
    """

    def __init__(self, message: str, tool_name: str, tool_call_id: str):
        self.tool_name = tool_name
        self.tool_call_id = tool_call_id
        super().__init__(f"Tool {tool_name} [call: {tool_call_id}]: {message}")
