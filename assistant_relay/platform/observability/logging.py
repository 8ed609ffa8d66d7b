"""structlog setup for the relay.

Every line carries the service name and, inside a request, the
``X-Request-ID`` correlation id. The id lives in a contextvar so it also
reaches the generators that feed streaming responses and the outgoing
assistant calls they make.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

from assistant_relay.platform.constants import SERVICE_NAME

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Per-request chatter from the HTTP stack; our own events already cover it
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_service_name(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderer(json_output: bool) -> list[structlog.types.Processor]:
    if json_output:
        # Tracebacks become a string field instead of a multi-line dump
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Root level name (INFO, DEBUG, ...)
        json_output: JSON lines for production/development, console for local
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_service_name,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *_renderer(json_output)],
        )
    )

    root_logger = logging.getLogger()
    # Bugsnag attaches its handler first; only stream handlers are replaced
    for existing in list(root_logger.handlers):
        if isinstance(existing, logging.StreamHandler):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
