"""Span hooks around runs, steps, model calls and tool calls.

The engine only depends on the `Tracer` protocol. `NoopTracer` is used when
no tracer is configured; `OpenTelemetryTracer` records OpenTelemetry spans
using OpenInference attribute names.
"""

import json
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Protocol

from openinference.semconv.trace import SpanAttributes
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class SpanKind(StrEnum):
    """OpenInference span kinds used by the engine."""

    AGENT = "AGENT"
    CHAIN = "CHAIN"
    LLM = "LLM"
    TOOL = "TOOL"


class SpanHandle(Protocol):
    def set_attributes(self, attributes: Mapping[str, Any]) -> None: ...

    def end(self, *, output: Any = None, error: str | None = None) -> None: ...


class Tracer(Protocol):
    """Protocol for span-based tracing."""

    def start_span(
        self,
        name: str,
        *,
        kind: SpanKind,
        inputs: Any = None,
        attributes: Mapping[str, Any] | None = None,
        parent: SpanHandle | None = None,
    ) -> SpanHandle:
        """Start a span.

        Args:
            name: Span name
            kind: OpenInference span kind
            inputs: Input payload recorded on the span
            attributes: Extra span attributes
            parent: Enclosing span, if any

        Returns:
            Handle that must be ended exactly once
        """
        ...


class NoopSpan:
    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        pass

    def end(self, *, output: Any = None, error: str | None = None) -> None:
        pass


class NoopTracer:
    """Tracer that records nothing."""

    def start_span(
        self,
        name: str,
        *,
        kind: SpanKind,
        inputs: Any = None,
        attributes: Mapping[str, Any] | None = None,
        parent: SpanHandle | None = None,
    ) -> SpanHandle:
        return NoopSpan()


def _serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _clean(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Drop None values and serialize anything OpenTelemetry cannot store."""
    cleaned = {}
    for key, value in attributes.items():
        if value is None:
            continue
        cleaned[key] = value if isinstance(value, str | bool | int | float) else _serialize(value)
    return cleaned


class OpenTelemetrySpan:
    def __init__(self, span: trace.Span):
        self.span = span

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        self.span.set_attributes(_clean(attributes))

    def end(self, *, output: Any = None, error: str | None = None) -> None:
        if output is not None:
            self.span.set_attribute(SpanAttributes.OUTPUT_VALUE, _serialize(output))
        if error:
            self.span.set_status(Status(StatusCode.ERROR, error))
        else:
            self.span.set_status(Status(StatusCode.OK))
        self.span.end()


class OpenTelemetryTracer:
    """Tracer emitting OpenTelemetry spans with OpenInference attributes."""

    def __init__(self, tracer: trace.Tracer | None = None):
        self._tracer = tracer or trace.get_tracer(__name__)

    def start_span(
        self,
        name: str,
        *,
        kind: SpanKind,
        inputs: Any = None,
        attributes: Mapping[str, Any] | None = None,
        parent: SpanHandle | None = None,
    ) -> SpanHandle:
        context = trace.set_span_in_context(parent.span) if isinstance(parent, OpenTelemetrySpan) else None
        span_attributes: dict[str, Any] = {SpanAttributes.OPENINFERENCE_SPAN_KIND: kind.value}
        if inputs is not None:
            span_attributes[SpanAttributes.INPUT_VALUE] = _serialize(inputs)
        span_attributes.update(attributes or {})
        span = self._tracer.start_span(name, context=context, attributes=_clean(span_attributes))
        return OpenTelemetrySpan(span)
