"""
Distributed Tracing with OpenTelemetry
=============================================================================
CONCEPT: Spans Around Service Operations

Each EmployeeService operation runs inside a span ("employee.find_by_id",
"employee.update", ...) carrying the employee id as an attribute. When an
error response is produced, its `traceId` is the id of the trace that was
active, so a client-reported error can be matched to the exact span tree:

    [Trace: 4bf92f3577b34da6a3ce929d0e0e4736]
      |-- [Span: employee.update] 9ms   employee.id=42
      |     |-- (SQL SELECT / UPDATE issued inside the span)

Tracing is opt-in (TRACING_ENABLED). Without a configured provider the
OpenTelemetry API hands out no-op spans with an invalid (all-zero) context;
current_trace_id() then returns None and callers fall back to a random id.
=============================================================================
"""

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)

_tracing_initialized: bool = False


def setup_tracing(
    service_name: str = "employee-records-api",
    environment: str = "development",
    use_batch_processor: bool = False,
) -> TracerProvider:
    """
    Install a global TracerProvider exporting spans to stdout.

    In production, swap ConsoleSpanExporter for an OTLP exporter pointing at
    the tracing backend. `use_batch_processor` buffers spans instead of
    exporting each one as it ends.
    """
    global _tracing_initialized

    if _tracing_initialized:
        return trace.get_tracer_provider()

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": "1.0.0",
            "deployment.environment": environment,
        }
    )
    provider = TracerProvider(resource=resource)

    exporter = ConsoleSpanExporter()
    if use_batch_processor:
        processor = BatchSpanProcessor(exporter)
    else:
        processor = SimpleSpanProcessor(exporter)
    provider.add_span_processor(processor)

    trace.set_tracer_provider(provider)
    _tracing_initialized = True

    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Named tracer for creating spans; pass the module's __name__."""
    return trace.get_tracer(name)


def current_trace_id() -> str | None:
    """Hex id of the active trace, or None when no real span is recording."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None
    return format(context.trace_id, "032x")
