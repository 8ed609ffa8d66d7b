"""Custom exception hierarchy for the assistant client.

This module defines the errors raised while talking to the upstream
assistant service and while driving runs on it.
"""


class AssistantClientError(Exception):
    """Base exception for all assistant client errors."""


class UpstreamError(AssistantClientError):
    """Raised when an assistant service call fails.

    ``status_code`` is None when no HTTP response was received at all
    (connection refused, timeout, broken stream).
    """

    def __init__(self, operation: str, status_code: int | None, body: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        status_info = f" ({status_code})" if status_code is not None else ""
        detail = f": {body}" if body else ""
        super().__init__(f"Upstream call {operation} failed{status_info}{detail}")


class AssistantProtocolError(AssistantClientError):
    """Raised when the assistant service returns a payload we cannot use."""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        op_info = f" in {operation}" if operation else ""
        super().__init__(f"Protocol error{op_info}: {message}")


class StreamProtocolError(AssistantProtocolError):
    """A streamed event fragment could not be decoded.

    Only used for logging; the SSE decoder skips such fragments.
    """

    def __init__(self, message: str, fragment: str):
        self.fragment = fragment
        super().__init__(message, operation="stream")


class RunError(AssistantClientError):
    """Base exception for run lifecycle errors."""

    def __init__(self, message: str, run_id: str | None = None):
        self.run_id = run_id
        run_info = f" [run: {run_id}]" if run_id else ""
        super().__init__(f"Run error{run_info}: {message}")


class RunFailedError(RunError):
    """Raised when a run ends in any terminal state other than completed."""

    def __init__(self, message: str, run_id: str | None = None, status: str | None = None):
        self.status = status
        super().__init__(f"Run failed: {message}", run_id=run_id)


class RunTimeoutError(RunError):
    """Raised when a polled run does not finish within the allowed time."""

    def __init__(self, run_id: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Run did not finish after {timeout_seconds}s", run_id=run_id)
