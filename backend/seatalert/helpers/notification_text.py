"""Build push notification content for alert transitions."""

import datetime as dt
import uuid
from zoneinfo import ZoneInfo

from seatalert.helpers.formatting import (
    format_alert_date,
    format_duration,
    format_local_time,
    format_route,
)
from seatalert.helpers.train_matching import TrainMatch
from seatalert.models.notification import NotificationKind
from seatalert.schemas.notifications import PushMessage


def build_expired_message(
    *, alert_id: uuid.UUID, from_name: str, to_name: str, travel_date: dt.date
) -> PushMessage:
    """
    Build the notification sent when an alert's travel date has passed.

    Example:
        >>> msg = build_expired_message(
        ...     alert_id=uuid.uuid4(), from_name="Ankara", to_name="Konya", travel_date=dt.date(2025, 6, 1)
        ... )
        >>> msg.title
        '❌ Ankara → Konya Alert Expired'
    """
    route = format_route(from_name, to_name)
    return PushMessage(
        title=f"❌ {route} Alert Expired",
        body=(f"❌ Your search alert has expired\n\n🚉 Route: {route}\n📅 Date: {format_alert_date(travel_date)}"),
        data={
            "type": NotificationKind.ALERT_EXPIRED.value,
            "alertId": str(alert_id),
            "date": travel_date.isoformat(),
        },
    )


def build_seats_found_message(
    *,
    alert_id: uuid.UUID,
    from_station_id: str,
    to_station_id: str,
    from_name: str,
    to_name: str,
    travel_date: dt.date,
    cabin_class: str,
    match: TrainMatch,
    tz: ZoneInfo,
) -> PushMessage:
    """
    Build the notification sent when seats matching an alert are found.

    The data payload carries the raw fields so the app can deep-link into a
    booking screen without parsing the body.
    """
    train = match.train
    seats = match.cabin.availability_count
    cabin_name = match.cabin.cabin_class_name
    duration = train.duration_minutes(tz)
    route = format_route(from_name, to_name)

    body = (
        "✨ Great news! We found tickets for your journey!\n\n"
        f"🚄 Train: {train.train_number}\n\n"
        f"🎫 Available Seats: {seats}\n"
        f"💺 Class: {cabin_name}\n\n"
        f"🚉 Route: {route}\n\n"
        f"🕒 Departure: {format_local_time(train.departure_time, tz)}\n"
        f"🕒 Arrival: {format_local_time(train.arrival_time, tz)}\n"
        f"⏱️ Duration: {format_duration(duration)}\n\n"
        f"📅 Date: {format_alert_date(travel_date)}"
    )

    return PushMessage(
        title=f"🎫 {seats} seats found: {route}",
        body=body,
        data={
            "type": NotificationKind.SEATS_FOUND.value,
            "alertId": str(alert_id),
            "fromStationId": from_station_id,
            "toStationId": to_station_id,
            "date": travel_date.isoformat(),
            "cabinClass": cabin_class,
            "trainNumber": train.train_number,
            "departureTime": train.departure_time.isoformat(),
            "arrivalTime": train.arrival_time.isoformat(),
            "availableSeats": seats,
            "cabinClassName": cabin_name,
            "duration": duration,
        },
    )


def build_completed_reason(*, seats: int, from_name: str, to_name: str, departure: str) -> str:
    """
    Status reason stored on an alert that found seats.

    Example:
        >>> build_completed_reason(seats=3, from_name="Ankara", to_name="Konya", departure="09:05")
        '3 seats found: Ankara → Konya at time 09:05'
    """
    return f"{seats} seats found: {format_route(from_name, to_name)} at time {departure}"
