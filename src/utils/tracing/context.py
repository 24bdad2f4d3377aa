"""
Context managers and helpers for span management.

Spans are created around search requests, scroll scans and reconciliation
pages. Attribute values are passed to OpenTelemetry as-is when they are
primitive types and stringified otherwise.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer

_PRIMITIVES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    return value if isinstance(value, _PRIMITIVES) else str(value)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes,
):
    """
    Context manager for tracing operations.

    Records the exception and marks the span as failed if the body raises,
    then re-raises.

    Example:
        >>> with trace_operation("reconcile.page", page=3) as span:
        ...     missing = find_missing(keys)
        ...     span.set_attribute("missing", len(missing))
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(operation_name, kind=kind) as span:
        for key, value in attributes.items():
            span.set_attribute(key, _attribute_value(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def trace_http_request(method: str, url: str, **extra_attrs):
    """
    Context manager for an outgoing HTTP request span.

    Example:
        >>> with trace_http_request("POST", "http://localhost:9200/_search/scroll"):
        ...     response = session.post(url, json=body)
    """
    return trace_operation(
        f"http.{method.lower()}",
        kind=trace.SpanKind.CLIENT,
        **{
            "http.method": method,
            "http.url": url,
            "component": "http",
            **extra_attrs,
        },
    )


def add_span_attributes(**attributes) -> None:
    """Add attributes to the current span, if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            current_span.set_attribute(key, _attribute_value(value))


def add_span_event(name: str, **attributes) -> None:
    """Add an event to the current span, if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        attrs = {k: _attribute_value(v) for k, v in attributes.items()}
        current_span.add_event(name, attributes=attrs)
