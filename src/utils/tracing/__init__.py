"""
Distributed tracing using OpenTelemetry.

Instruments:
- Search requests sent to the cluster
- Scroll scans
- Reconciliation runs and per-page existence checks
"""

from .context import add_span_attributes, add_span_event, trace_http_request, trace_operation
from .tracer import (
    get_tracer,
    initialize_tracing,
    instrument_requests,
    is_tracing_enabled,
    shutdown_tracing,
)

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "is_tracing_enabled",
    "shutdown_tracing",
    "instrument_requests",
    "trace_operation",
    "trace_http_request",
    "add_span_attributes",
    "add_span_event",
]
