"""Observability infrastructure module.

This module provides monitoring and error tracking:
- Structured logging with correlation IDs
- Prometheus metrics for HTTP, upstream assistant calls and tool dispatches
- Bugsnag error reporting
- OpenTelemetry tracing
"""

from assistant_relay.platform.observability.logging import (
    configure_logging,
    correlation_id_ctx,
)
from assistant_relay.platform.observability.metrics import (
    BUCKETS,
    prometheus_middleware,
    record_tool_call,
    time_upstream_call,
)

__all__ = [
    "BUCKETS",
    "configure_logging",
    "correlation_id_ctx",
    "prometheus_middleware",
    "record_tool_call",
    "time_upstream_call",
]
