"""
OpenTelemetry Distributed Tracing

Configures OpenTelemetry for the API and the Celery workers. Spans are
exported over OTLP/HTTP, which Jaeger and most collectors accept directly.

Services import the module level ``tracer``. It is a proxy until
``setup_tracing`` installs a provider, so spans cost nothing when tracing is
disabled.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

TRACER_NAME = "busy2shop"

tracer = trace.get_tracer(TRACER_NAME)

_initialized = False


def setup_tracing(
    service_name: str = "busy2shop-backend",
    endpoint: Optional[str] = None,
    enable: bool = True,
) -> bool:
    """
    Initialize OpenTelemetry tracing with an OTLP exporter.

    Args:
        service_name: Name of the service for tracing
        endpoint: OTLP/HTTP traces endpoint, e.g. http://jaeger:4318/v1/traces.
            When empty the exporter falls back to OTEL_EXPORTER_OTLP_* env vars.
        enable: Enable/disable tracing

    Returns:
        True when a tracer provider was installed by this call.
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return False

    if not enable:
        logger.info("Tracing disabled via configuration")
        return False

    resource = Resource(attributes={SERVICE_NAME: service_name})
    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info(f"OTLP trace export configured: {endpoint or 'from environment'}")
    except ImportError:
        logger.warning("OTLP exporter not installed. Spans are recorded but not exported.")

    # Incoming HTTP requests and outgoing calls (OneSignal, SMTP relays over HTTP)
    DjangoInstrumentor().instrument()
    RequestsInstrumentor().instrument()

    _initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")
    return True


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """
    Add custom attributes to a span.

    None values are skipped; everything else is stringified so ids, UUIDs and
    Decimals can be passed straight through.
    """
    for key, value in attributes.items():
        if value is None:
            continue
        span.set_attribute(key.replace("__", "."), str(value))
