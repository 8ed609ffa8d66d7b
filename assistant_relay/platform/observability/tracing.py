"""OpenTelemetry tracing setup.

Exports spans over OTLP/gRPC to the configured collector and instruments
the FastAPI application. Outgoing assistant calls carry the active trace
context (see ``platform.clients.assistant.client``).
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME as SERVICE_NAME_ATTR
from opentelemetry.sdk.resources import SERVICE_VERSION as SERVICE_VERSION_ATTR
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from assistant_relay.platform.constants import SERVICE_NAME, SERVICE_VERSION
from assistant_relay.platform.settings import OpenTelemetrySettings


def initialize_tracing(settings: OpenTelemetrySettings) -> TracerProvider:
    """Install a global tracer provider exporting to ``host:port``."""
    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME_ATTR: SERVICE_NAME,
                SERVICE_VERSION_ATTR: SERVICE_VERSION,
            }
        )
    )
    exporter = OTLPSpanExporter(endpoint=f"{settings.host}:{settings.port}", insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    # structlog renders the record, so leave the stdlib format alone
    LoggingInstrumentor().instrument(set_logging_format=False)
    return provider


def instrument_app(app: FastAPI, settings: OpenTelemetrySettings) -> None:
    FastAPIInstrumentor.instrument_app(app, excluded_urls=settings.excluded_urls)
