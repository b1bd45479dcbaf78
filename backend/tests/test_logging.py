"""Tests for logging configuration module."""

import json
import logging
import sys
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
import structlog
from opentelemetry import trace
from seatalert.core.logging import _add_otel_context, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.mark.parametrize(
        ("given", "expected"),
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("Error", logging.ERROR)],
    )
    def test_sets_root_level_case_insensitively(self, given: str, expected: int) -> None:
        configure_logging(log_level=given)

        assert logging.getLogger().level == expected

    def test_default_level_is_info(self) -> None:
        configure_logging()

        assert logging.getLogger().level == logging.INFO

    def test_noisy_loggers_stay_at_warning(self) -> None:
        configure_logging(log_level="DEBUG")

        for name in ("httpx", "httpcore", "celery.app.trace", "sqlalchemy.engine"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_replaces_existing_handlers_with_single_stdout_handler(self) -> None:
        root_logger = logging.getLogger()
        dummy_handler = logging.StreamHandler()
        root_logger.addHandler(dummy_handler)

        configure_logging()

        assert dummy_handler not in root_logger.handlers
        assert len(root_logger.handlers) == 1
        assert root_logger.handlers[0].stream == sys.stdout

    def test_debug_renders_json_lines(self) -> None:
        """Stdlib records (Celery, SQLAlchemy) go through the same JSON renderer."""
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            configure_logging(log_level="DEBUG")
            logging.getLogger("seatalert.test").info("pass started")

        record = json.loads(mock_stdout.getvalue().strip().splitlines()[-1])
        assert record["event"] == "pass started"
        assert record["logger"] == "seatalert.test"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_structlog_events_include_key_values(self) -> None:
        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            configure_logging(log_level="DEBUG")
            structlog.get_logger("seatalert.test").info("search_alert_completed", train_number="81015")

        record = json.loads(mock_stdout.getvalue().strip().splitlines()[-1])
        assert record["event"] == "search_alert_completed"
        assert record["train_number"] == "81015"


class TestAddOtelContext:
    """Tests for _add_otel_context processor."""

    def test_adds_trace_and_span_ids_with_active_span(self) -> None:
        mock_span_context = MagicMock()
        mock_span_context.trace_id = 0x1234567890ABCDEF1234567890ABCDEF
        mock_span_context.span_id = 0x1234567890ABCDEF
        mock_span = MagicMock()
        mock_span.is_recording.return_value = True
        mock_span.get_span_context.return_value = mock_span_context

        with patch.object(trace, "get_current_span", return_value=mock_span):
            result = _add_otel_context(logging.getLogger(), "info", {"event": "test_event"})

        assert result["trace_id"] == "1234567890abcdef1234567890abcdef"
        assert result["span_id"] == "1234567890abcdef"

    def test_no_trace_ids_without_active_span(self) -> None:
        mock_span = MagicMock()
        mock_span.is_recording.return_value = False

        with patch.object(trace, "get_current_span", return_value=mock_span):
            result = _add_otel_context(logging.getLogger(), "info", {"event": "test_event"})

        assert result == {"event": "test_event"}
