"""Prometheus metrics collection and HTTP middleware.

This module provides Prometheus metrics for inbound HTTP requests, calls made
to the upstream assistant service, and tool dispatches made on behalf of
assistant runs.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from time import monotonic
from typing import NamedTuple

import prometheus_client


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


class UpstreamLabels(NamedTuple):
    operation: str
    http_status: str


class ToolLabels(NamedTuple):
    tool_name: str
    outcome: str


# Maybe kinda optimized. Better than templating a string at least.
_NXX_LUT = ["1XX", "2XX", "3XX", "4XX", "5XX"]


def http_status_nxx(status: int | None) -> str:
    """A coarser 2XX, 4XX, 5XX. ``None`` means the request never got a response."""
    if status is None or not 100 <= status < 600:
        return "none"
    return _NXX_LUT[status // 100 - 1]


BUCKETS = (
    # these are log spaced with 1 sig-fig rounding so there are 3 per decade
    # 2 div/decade = 1,       3.16,       10
    # 3 div/decade = 1,   2.15,   4.64,   10
    # 4 div/decade = 1, 1.78, 3.16, 5.62, 10
    0.0002,  # 200 μs
    0.0005,
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,  # streamed runs routinely outlive the usual envoy timeout
    float("inf"),
)


def get_path(routes, scope) -> str:
    """Extract the matched route path from a request scope.

    Args:
        routes: List of FastAPI/Starlette route objects
        scope: ASGI request scope dictionary

    Returns:
        The matched route path template, or "path-not-found" if no match
    """
    path = "path-not-found"
    for route in routes:
        _, matches = route.matches(scope)
        if len(matches) > 0:
            path = route.path
    return path


async def prometheus_middleware(request, call_next):
    """HTTP middleware that records request duration metrics.

    For streaming responses the duration covers the time to the first
    response byte, not the lifetime of the stream.

    Args:
        request: The incoming HTTP request
        call_next: The next middleware/handler in the chain

    Returns:
        The HTTP response from the downstream handler
    """
    start_time = monotonic()
    response = await call_next(request)
    elapsed_sec = monotonic() - start_time
    path = get_path(request.app.routes, request.scope)

    labels = HTTPLabels(
        method=request.method,
        path=path,
        http_status=http_status_nxx(response.status_code),
    )
    http_histogram.labels(*labels).observe(elapsed_sec)

    return response


def setup_metrics_factory(registry, name, documentation, labelnames):
    """Create a Prometheus histogram with standard bucket configuration.

    Args:
        registry: Prometheus registry to register the metric with
        name: Metric name (e.g., "http_request_duration_seconds")
        documentation: Human-readable metric description
        labelnames: Tuple of label names for the histogram

    Returns:
        Configured Prometheus Histogram instance
    """
    return prometheus_client.Histogram(
        name=name,
        documentation=documentation,
        labelnames=labelnames,
        registry=registry,
        buckets=BUCKETS,
    )


def setup_http_metrics(registry):
    return setup_metrics_factory(
        registry,
        name="http_request_duration_seconds",
        documentation="Request duration (seconds)",
        labelnames=HTTPLabels._fields,
    )


def setup_upstream_metrics(registry):
    return setup_metrics_factory(
        registry,
        name="assistant_upstream_call_duration_seconds",
        documentation="Assistant service call duration (seconds)",
        labelnames=UpstreamLabels._fields,
    )


def setup_tool_metrics(registry):
    return prometheus_client.Counter(
        name="assistant_tool_dispatch",
        documentation="Tool calls dispatched on behalf of assistant runs",
        labelnames=ToolLabels._fields,
        registry=registry,
    )


class UpstreamCallTimer:
    """Mutable holder so the timed block can report the status it observed."""

    def __init__(self, operation: str):
        self.operation = operation
        self.status_code: int | None = None


@contextmanager
def time_upstream_call(operation: str) -> Iterator[UpstreamCallTimer]:
    """Time one call to the assistant service.

    Usage:
        ```
        with time_upstream_call("create_thread") as timer:
            response = await http.post(...)
            timer.status_code = response.status_code
        ```
    """
    timer = UpstreamCallTimer(operation)
    start_time = monotonic()
    try:
        yield timer
    finally:
        labels = UpstreamLabels(
            operation=operation,
            http_status=http_status_nxx(timer.status_code),
        )
        upstream_histogram.labels(*labels).observe(monotonic() - start_time)


def record_tool_call(tool_name: str, outcome: str) -> None:
    """Count a tool dispatch. ``outcome`` is "ok", "error" or "unsupported"."""
    tool_counter.labels(*ToolLabels(tool_name=tool_name, outcome=outcome)).inc()


http_histogram = setup_http_metrics(registry=prometheus_client.REGISTRY)
upstream_histogram = setup_upstream_metrics(registry=prometheus_client.REGISTRY)
tool_counter = setup_tool_metrics(registry=prometheus_client.REGISTRY)


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for the /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
