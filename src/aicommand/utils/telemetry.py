"""Tracing for the agent loop, model calls and tool invocations.

Everything goes through the OpenTelemetry *API*; without a configured SDK
the tracer is a no-op.  ``aicommand ai --telemetry`` calls
:func:`configure_telemetry`, which needs the ``otel`` extra
(``pip install ai-command[otel]``).

Spans emitted:

- ``agent.round``: one per model round (:data:`ATTR_ROUND`, :data:`ATTR_TOOL_CALLS`)
- ``model.generate``: one per backend call (model, provider, token usage)
- ``tool.invoke``: one per routed tool call (:data:`ATTR_TOOL_NAME`, :data:`ATTR_TOOL_PROVIDER`)
"""

from __future__ import annotations

import os
import sys
from typing import Any

from opentelemetry import trace

# Agent loop
ATTR_ROUND = "aicommand.round"
ATTR_TOOL_CALLS = "aicommand.tool_calls"

# Model backend
ATTR_MODEL = "aicommand.model"
ATTR_PROVIDER = "aicommand.provider"
ATTR_TOKENS_PROMPT = "aicommand.tokens.prompt"
ATTR_TOKENS_COMPLETION = "aicommand.tokens.completion"
ATTR_TOKENS_TOTAL = "aicommand.tokens.total"
ATTR_FINISH_REASON = "aicommand.finish_reason"

# Tool routing
ATTR_TOOL_NAME = "aicommand.tool.name"
ATTR_TOOL_PROVIDER = "aicommand.tool.provider"

_INSTRUMENTATION_NAME = "aicommand"
OTLP_ENDPOINT_ENV = "OTEL_EXPORTER_OTLP_ENDPOINT"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Tracer for *name* (a module's ``__name__``), no-op until configured."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "aicommand",
    export_to_console: bool = False,
    otlp_endpoint: str | None = None,
) -> None:
    """Install an SDK tracer provider with the requested exporters.

    Console spans are written to stderr; stdout belongs to the chat and to
    stdio JSON-RPC frames.  *otlp_endpoint* defaults to
    ``$OTEL_EXPORTER_OTLP_ENDPOINT``.

    Raises :class:`ImportError` when the ``otel`` extra is missing.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for --telemetry. "
            "Install it with: pip install ai-command[otel]"
        )
        raise ImportError(msg) from exc

    endpoint = otlp_endpoint or os.environ.get(OTLP_ENDPOINT_ENV)
    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))
    if endpoint:
        processors.append(BatchSpanProcessor(_otlp_exporter(endpoint)))

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for processor in processors:
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
            OTLPSpanExporter,
        )
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp-proto-grpc is required for OTLP export. "
            "Install it with: pip install ai-command[otel]"
        )
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
