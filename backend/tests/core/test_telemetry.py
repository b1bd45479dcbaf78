"""Tests for OpenTelemetry telemetry module."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode
from seatalert.core import telemetry
from seatalert.core.config import settings
from seatalert.core.telemetry import get_tracer_provider, parse_otlp_headers, service_span

from tests.helpers.otel import assert_span_status


class TestServiceSpan:
    """Tests for service_span context manager."""

    def test_service_span_sets_ok_status_on_success(
        self,
        otel_enabled_provider: tuple[TracerProvider, InMemorySpanExporter],
    ) -> None:
        _, exporter = otel_enabled_provider

        with service_span("test.operation", "test-service"):
            pass

        spans = exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name == "test.operation"
        assert spans[0].kind == SpanKind.INTERNAL
        assert_span_status(spans[0], StatusCode.OK)

    def test_service_span_sets_error_status_on_exception(
        self,
        otel_enabled_provider: tuple[TracerProvider, InMemorySpanExporter],
    ) -> None:
        """The SDK marks the span ERROR and records the exception; it is re-raised."""
        _, exporter = otel_enabled_provider

        with pytest.raises(ValueError, match="Test error"), service_span("test.operation", "test-service"):
            raise ValueError("Test error")

        spans = exporter.get_finished_spans()
        assert len(spans) == 1
        assert_span_status(spans[0], StatusCode.ERROR, check_exception=True)

    def test_service_span_sets_peer_service_and_attributes(
        self,
        otel_enabled_provider: tuple[TracerProvider, InMemorySpanExporter],
    ) -> None:
        _, exporter = otel_enabled_provider

        with service_span(
            "availability.query",
            "availability-api",
            kind=SpanKind.CLIENT,
            **{"availability.from_station_id": "98", "availability.passenger_count": 1},
        ) as span:
            span.set_attribute("availability.train_count", 4)

        recorded = exporter.get_finished_spans()[0]
        assert recorded.kind == SpanKind.CLIENT
        assert recorded.attributes["peer.service"] == "availability-api"
        assert recorded.attributes["availability.from_station_id"] == "98"
        assert recorded.attributes["availability.passenger_count"] == 1
        assert recorded.attributes["availability.train_count"] == 4

    def test_service_span_is_noop_without_provider(self) -> None:
        with service_span("test.operation", "test-service") as span:
            assert not span.is_recording()


class TestTracerProvider:
    """Tests for lazy TracerProvider creation."""

    def test_returns_none_when_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "OTEL_ENABLED", False)

        assert get_tracer_provider() is None

    def test_created_once_per_process(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "OTEL_ENABLED", True)
        monkeypatch.setattr(settings, "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", None)

        first = get_tracer_provider()
        second = get_tracer_provider()

        assert isinstance(first, TracerProvider)
        assert first is second
        assert first.resource.attributes["service.name"] == settings.OTEL_SERVICE_NAME

        telemetry.shutdown_tracer_provider()


class TestParseOtlpHeaders:
    """Tests for parse_otlp_headers."""

    def test_parses_pairs(self) -> None:
        assert parse_otlp_headers("Authorization=Bearer abc, X-Scope = team") == {
            "Authorization": "Bearer abc",
            "X-Scope": "team",
        }

    def test_keeps_equals_signs_in_values(self) -> None:
        assert parse_otlp_headers("Authorization=Basic dXNlcjpwYXNz==") == {"Authorization": "Basic dXNlcjpwYXNz=="}

    def test_skips_malformed_and_empty_pairs(self) -> None:
        assert parse_otlp_headers("novalue,,X-Key=1") == {"X-Key": "1"}
        assert parse_otlp_headers("") == {}
