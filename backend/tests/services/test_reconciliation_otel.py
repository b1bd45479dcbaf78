"""Tests for reconciliation engine OpenTelemetry instrumentation."""

import uuid
from datetime import time
from unittest.mock import AsyncMock

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from seatalert.models.search_alert import AlertStatus, SearchAlert
from seatalert.services.reconciliation_service import AlertReconciliationService
from seatalert.services.station_directory import StationDirectory

from tests.helpers.factories import NOW, STATION_NAMES, TOMORROW
from tests.helpers.otel import assert_span_status, spans_named


def _alert() -> SearchAlert:
    return SearchAlert(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        from_station_id="98",
        to_station_id="796",
        date=TOMORROW,
        cabin_class="1",
        departure_time_start=time(6, 0),
        departure_time_end=time(22, 0),
        high_speed_only=True,
        status=AlertStatus.PENDING,
        is_active=True,
        deleted_at=None,
    )


def _service(store: AsyncMock, availability: AsyncMock) -> AlertReconciliationService:
    notifier = AsyncMock()
    return AlertReconciliationService(
        store,
        availability,
        notifier,
        StationDirectory(STATION_NAMES),
        clock=lambda: NOW,
        display_timezone="Europe/Istanbul",
    )


class TestRunPassSpans:
    """Spans created by a reconciliation pass."""

    async def test_empty_pass_creates_ok_span(
        self,
        otel_enabled_provider: tuple[TracerProvider, InMemorySpanExporter],
    ) -> None:
        _, exporter = otel_enabled_provider
        store = AsyncMock()
        store.list_eligible_alerts = AsyncMock(return_value=[])

        await _service(store, AsyncMock()).run_pass()

        (span,) = spans_named(exporter, "reconciliation.run_pass")
        assert_span_status(span, StatusCode.OK)
        assert span.attributes["peer.service"] == "reconciliation-service"
        assert span.attributes["reconciliation.alert_count"] == 0

    async def test_group_failure_is_recorded_on_group_span(
        self,
        otel_enabled_provider: tuple[TracerProvider, InMemorySpanExporter],
    ) -> None:
        """A failed group keeps an OK status but carries the exception and a failure flag."""
        _, exporter = otel_enabled_provider
        alert = _alert()
        store = AsyncMock()
        store.list_eligible_alerts = AsyncMock(return_value=[alert])
        store.get_alert = AsyncMock(return_value=alert)
        store.update_alert = AsyncMock(return_value=True)
        availability = AsyncMock()
        availability.query = AsyncMock(side_effect=RuntimeError("parser crashed"))

        stats = await _service(store, availability).run_pass()

        assert stats["alerts_failed"] == 1
        (group_span,) = spans_named(exporter, "reconciliation.process_group")
        assert_span_status(group_span, StatusCode.OK, check_exception=True)
        assert group_span.attributes["alert_group.failed"] is True
        assert group_span.attributes["alert_group.query_issued"] is True
        assert group_span.attributes["alert_group.size"] == 1
        assert group_span.attributes["alert_group.date"] == TOMORROW.isoformat()

        (pass_span,) = spans_named(exporter, "reconciliation.run_pass")
        assert pass_span.attributes["reconciliation.group_count"] == 1
        assert pass_span.attributes["reconciliation.errors"] == 1
        # Group span is a child of the pass span
        assert group_span.parent.span_id == pass_span.context.span_id
