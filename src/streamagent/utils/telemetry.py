"""OpenTelemetry tracing helpers.

Modules obtain a tracer with :func:`get_tracer` and open spans freely.
Without a configured SDK the OpenTelemetry API hands out no-op tracers, so
instrumentation costs nothing unless :func:`configure_telemetry` was called
(requires the ``otel`` extra: ``pip install streamagent[otel]``).

Span names used across the project::

    react.run               one start/resume of the loop driver
    react.iteration         one think/act/observe cycle
    react.phase.<name>      one phase call (think, act, observe)
    stream.call             one streamed model turn
    tool.execute            one tool call
    backend.chat_completion the local backend's LiteLLM stream
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys
# ---------------------------------------------------------------------------

ATTR_CHAT_ID = "streamagent.chat_id"
ATTR_STREAM_ID = "streamagent.stream_id"
ATTR_PHASE = "streamagent.phase"
ATTR_ITERATION = "streamagent.iteration"
ATTR_MAX_ITERATIONS = "streamagent.max_iterations"
ATTR_ALLOW_TOOLS = "streamagent.allow_tools"
ATTR_MODEL = "streamagent.model"
ATTR_PROVIDER = "streamagent.provider"
ATTR_TOOL_NAME = "streamagent.tool.name"
ATTR_TOOL_SERVER = "streamagent.tool.server"
ATTR_TOOL_CALL_COUNT = "streamagent.tool_calls"
ATTR_OUTCOME = "streamagent.outcome"

_INSTRUMENTATION_NAME = "streamagent"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a tracer for *name*; a no-op one unless the SDK is configured."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "streamagent",
    export_to_console: bool = False,
    otlp_endpoint: str | None = None,
) -> None:
    """Install an SDK tracer provider (requires ``streamagent[otel]``).

    Parameters
    ----------
    service_name:
        The ``service.name`` resource attribute.
    export_to_console:
        If ``True``, print finished spans as JSON to stdout.
    otlp_endpoint:
        If set, export spans via OTLP/gRPC to this endpoint.

    Raises
    ------
    ImportError
        If ``opentelemetry-sdk`` (or, for OTLP, the exporter) is missing.
    """
    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install streamagent[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if export_to_console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    trace.set_tracer_provider(provider)


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp is required for OTLP export. "
            "Install it with: pip install streamagent[otel]"
        )
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
