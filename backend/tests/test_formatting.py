"""Tests for notification text formatting helpers."""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from seatalert.helpers.formatting import (
    format_alert_date,
    format_duration,
    format_local_time,
    format_route,
    format_station_display_name,
    to_local_time,
)

ISTANBUL = ZoneInfo("Europe/Istanbul")


class TestFormatStationDisplayName:
    """Tests for format_station_display_name."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("ANKARA GAR, Ankara", "Ankara gar"),
            ("KONYA, Konya", "Konya"),
            ("Eskisehir", "Eskisehir"),
            ("  SIVAS , Sivas", "Sivas"),
            ("", ""),
        ],
    )
    def test_formats_names(self, name: str, expected: str) -> None:
        assert format_station_display_name(name) == expected

    def test_unknown_id_passthrough_is_formatted_too(self) -> None:
        assert format_station_display_name("9999") == "9999"


class TestDateAndTimeFormatting:
    """Tests for date, time and duration formatting."""

    def test_format_alert_date_uses_english_month_names(self) -> None:
        assert format_alert_date(date(2025, 12, 9)) == "09 December 2025"

    def test_format_local_time_converts_to_display_timezone(self) -> None:
        value = datetime(2025, 6, 1, 22, 30, tzinfo=UTC)

        assert format_local_time(value, ISTANBUL) == "01:30"

    def test_naive_datetimes_are_taken_as_local(self) -> None:
        value = datetime(2025, 6, 1, 8, 15)

        assert to_local_time(value, ISTANBUL).tzinfo is ISTANBUL
        assert format_local_time(value, ISTANBUL) == "08:15"

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [(0, "0h 0m"), (59, "0h 59m"), (60, "1h 0m"), (125, "2h 5m"), (1441, "24h 1m")],
    )
    def test_format_duration(self, minutes: int, expected: str) -> None:
        assert format_duration(minutes) == expected

    def test_format_route_uses_arrow(self) -> None:
        assert format_route("Ankara gar", "Konya") == "Ankara gar → Konya"
