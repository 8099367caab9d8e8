from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from .config import settings
from .utils import get_logger

logger = get_logger(__name__)

SERVICE_VERSION_VALUE = "1.0.0"


def setup_observability(app=None):
    """
    Sets up OpenTelemetry tracing.

    Supabase (PostgREST) calls go through httpx, so instrumenting httpx
    covers the subscription and usage stores on that backend.
    """
    if not settings.otel.exporter_otlp_endpoint:
        logger.info("otel_setup_skipped", reason="OTEL_EXPORTER_OTLP_ENDPOINT not set")
        return

    logger.info("otel_setup_started", service_name=settings.otel.service_name)

    resource = Resource.create({
        SERVICE_NAME: settings.otel.service_name,
        SERVICE_VERSION: SERVICE_VERSION_VALUE,
    })

    provider = TracerProvider(resource=resource)

    # The gRPC exporter expects host:port
    endpoint = settings.otel.exporter_otlp_endpoint.replace("http://", "").replace("https://", "")

    otlp_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)

    HTTPXClientInstrumentor().instrument()

    if app:
        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)

    logger.info("otel_setup_complete")
