"""Tests for notification content builders."""

import uuid
from datetime import date, timedelta
from zoneinfo import ZoneInfo

from seatalert.helpers.notification_text import (
    build_completed_reason,
    build_expired_message,
    build_seats_found_message,
)
from seatalert.helpers.train_matching import TrainMatch

from tests.helpers.factories import istanbul_time, make_train

ISTANBUL = ZoneInfo("Europe/Istanbul")
TRAVEL_DATE = date(2025, 6, 2)


class TestExpiredMessage:
    """Tests for build_expired_message."""

    def test_title_and_body(self) -> None:
        alert_id = uuid.uuid4()

        message = build_expired_message(
            alert_id=alert_id, from_name="Ankara gar", to_name="Konya", travel_date=TRAVEL_DATE
        )

        assert message.title == "❌ Ankara gar → Konya Alert Expired"
        assert "🚉 Route: Ankara gar → Konya" in message.body
        assert "📅 Date: 02 June 2025" in message.body
        assert message.data == {"type": "ALERT_EXPIRED", "alertId": str(alert_id), "date": "2025-06-02"}


class TestSeatsFoundMessage:
    """Tests for build_seats_found_message."""

    def test_content_and_payload(self) -> None:
        alert_id = uuid.uuid4()
        train = make_train(
            "81015",
            istanbul_time(TRAVEL_DATE, 9, 5),
            duration=timedelta(hours=2, minutes=5),
            cabins=[("1", "EKONOMİ", 3)],
        )
        match = TrainMatch(train=train, cabin=train.cabin_class_availabilities[0])

        message = build_seats_found_message(
            alert_id=alert_id,
            from_station_id="98",
            to_station_id="796",
            from_name="Ankara gar",
            to_name="Konya",
            travel_date=TRAVEL_DATE,
            cabin_class="1",
            match=match,
            tz=ISTANBUL,
        )

        assert message.title == "🎫 3 seats found: Ankara gar → Konya"
        for fragment in (
            "🚄 Train: 81015",
            "🎫 Available Seats: 3",
            "💺 Class: EKONOMİ",
            "🕒 Departure: 09:05",
            "🕒 Arrival: 11:10",
            "⏱️ Duration: 2h 5m",
            "📅 Date: 02 June 2025",
        ):
            assert fragment in message.body

        assert message.data["type"] == "SEATS_FOUND"
        assert message.data["alertId"] == str(alert_id)
        assert message.data["fromStationId"] == "98"
        assert message.data["toStationId"] == "796"
        assert message.data["date"] == "2025-06-02"
        assert message.data["cabinClass"] == "1"
        assert message.data["trainNumber"] == "81015"
        assert message.data["departureTime"] == train.departure_time.isoformat()
        assert message.data["arrivalTime"] == train.arrival_time.isoformat()
        assert message.data["availableSeats"] == 3
        assert message.data["cabinClassName"] == "EKONOMİ"
        assert message.data["duration"] == 125


def test_completed_reason() -> None:
    reason = build_completed_reason(seats=5, from_name="Ankara gar", to_name="Konya", departure="18:40")

    assert reason == "5 seats found: Ankara gar → Konya at time 18:40"
