"""
Unit tests for tracing helpers

Tracing is not initialized in tests, so spans come from the no-op tracer;
these tests check that the helpers are transparent to the traced code.
"""

import pytest
from unittest.mock import MagicMock, patch

from utils.tracing import (
    add_span_attributes,
    add_span_event,
    is_tracing_enabled,
    shutdown_tracing,
    trace_http_request,
    trace_operation,
)
from utils.tracing.context import _attribute_value


class TestTraceOperation:

    def test_yields_span_and_returns(self):
        with trace_operation("reconciliation.page", page=1) as span:
            result = 42

        assert span is not None
        assert result == 42

    def test_reraises_exceptions(self):
        with pytest.raises(RuntimeError, match="boom"):
            with trace_operation("reconciliation.page"):
                raise RuntimeError("boom")

    def test_records_exception_on_span(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span

        with patch("utils.tracing.context.get_tracer", return_value=tracer):
            with pytest.raises(ValueError):
                with trace_operation("search.scroll", indices="operate*"):
                    raise ValueError("bad")

        span.set_attribute.assert_any_call("indices", "operate*")
        span.set_attribute.assert_any_call("error.type", "ValueError")
        span.record_exception.assert_called_once()

    def test_http_request_span(self):
        with trace_http_request("POST", "http://localhost:9200/_search/scroll"):
            pass

    def test_helpers_outside_span(self):
        add_span_attributes(keys=3)
        add_span_event("done", orphans=1)


class TestTracerLifecycle:

    def test_disabled_by_default(self):
        assert is_tracing_enabled() is False

    def test_shutdown_without_init(self):
        shutdown_tracing()


@pytest.mark.parametrize("value, expected", [
    ("x", "x"),
    (3, 3),
    (1.5, 1.5),
    (True, True),
    ((1, 2), "(1, 2)"),
    (None, "None"),
])
def test_attribute_value(value, expected):
    assert _attribute_value(value) == expected
