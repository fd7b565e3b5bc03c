import logging
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

logger = logging.getLogger(__name__)

_tracing_initialized = False


def setup_tracing(service_name: str = "rn-bridge") -> None:
    """
    Initializes OpenTelemetry tracing with an OTLP exporter.

    Safe to call more than once; only the first call installs a provider.
    Until this runs, tracers returned by get_tracer() are no-ops.
    """
    global _tracing_initialized
    if _tracing_initialized:
        return

    trace_provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(trace_provider)
    _tracing_initialized = True

    logger.info("OpenTelemetry tracing initialized with OTLPSpanExporter.")


def get_tracer(name: str) -> trace.Tracer:
    """Returns a tracer with the specified name."""
    return trace.get_tracer(name)
