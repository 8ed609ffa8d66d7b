"""JSON error responses.

Every failure answered before a stream starts uses the same body shape:
``{"error": <summary>, "details": <message>}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from assistant_relay.chat.exceptions import ConfigurationError, InvalidRequestError
from assistant_relay.platform.clients.assistant import (
    AssistantClientError,
    AssistantProtocolError,
    RunError,
    UpstreamError,
)

logger = structlog.get_logger(__name__)


def error_response(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return error_response(400, "Invalid request", str(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(_describe(error) for error in exc.errors()) or "Malformed request body"
    return error_response(400, "Invalid request", details)


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("assistant_not_configured", missing=exc.missing, path=request.url.path)
    return error_response(500, "Assistant is not configured", str(exc))


async def assistant_error_handler(request: Request, exc: AssistantClientError):
    if isinstance(exc, UpstreamError):
        summary = "Assistant service request failed"
    elif isinstance(exc, RunError):
        summary = "Assistant run did not complete"
    elif isinstance(exc, AssistantProtocolError):
        summary = "Unexpected response from assistant service"
    else:
        summary = "Assistant error"
    logger.warning("chat_request_failed", path=request.url.path, error=str(exc))
    return error_response(500, summary, str(exc))


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(AssistantClientError, assistant_error_handler)
