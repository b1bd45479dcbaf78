"""Text and time formatting for notification content.

Pure functions, no I/O.
"""

import datetime as dt
from zoneinfo import ZoneInfo

# English month names, independent of the process locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def format_station_display_name(name: str) -> str:
    """
    Turn a canonical station name into its notification form.

    Drops any comma-delimited qualifier, lower-cases, then capitalises the
    first letter.

    Example:
        >>> format_station_display_name("Ankara, Province")
        'Ankara'
        >>> format_station_display_name("KONYA GAR")
        'Konya gar'
        >>> format_station_display_name("")
        ''
    """
    base = name.split(",")[0].strip().lower()
    return base[:1].upper() + base[1:]


def format_alert_date(value: dt.date) -> str:
    """
    Format a travel date for notification text.

    Example:
        >>> format_alert_date(dt.date(2025, 6, 1))
        '01 June 2025'
    """
    return f"{value.day:02d} {MONTH_NAMES[value.month - 1]} {value.year}"


def to_local_time(value: dt.datetime, tz: ZoneInfo) -> dt.datetime:
    """Convert to the display timezone; naive datetimes are taken as already local."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def format_local_time(value: dt.datetime, tz: ZoneInfo) -> str:
    """
    Format a timestamp as 24-hour HH:MM in the display timezone.

    Example:
        >>> format_local_time(dt.datetime(2025, 6, 1, 6, 5, tzinfo=dt.UTC), ZoneInfo("Europe/Istanbul"))
        '09:05'
    """
    return to_local_time(value, tz).strftime("%H:%M")


def format_duration(minutes: int) -> str:
    """
    Format a duration in minutes as hours and minutes.

    Example:
        >>> format_duration(125)
        '2h 5m'
        >>> format_duration(45)
        '0h 45m'
    """
    hours, remainder = divmod(minutes, 60)
    return f"{hours}h {remainder}m"


def format_route(from_name: str, to_name: str) -> str:
    """
    Format a route for titles and bodies.

    Example:
        >>> format_route("Ankara", "Konya")
        'Ankara → Konya'
    """
    return f"{from_name} → {to_name}"
