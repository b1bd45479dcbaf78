"""Partition search alerts into upstream-query groups."""

import datetime as dt
from collections.abc import Iterable
from typing import NamedTuple, Protocol


class GroupableAlert(Protocol):
    """The alert attributes that determine its query group."""

    from_station_id: str
    to_station_id: str
    date: dt.date


class AlertGroupKey(NamedTuple):
    """Unit of upstream-query deduplication within one pass."""

    from_station_id: str
    to_station_id: str
    date: dt.date


def alert_group_key(alert: GroupableAlert) -> AlertGroupKey:
    """Build the group key for an alert."""
    return AlertGroupKey(alert.from_station_id, alert.to_station_id, alert.date)


def group_alerts[A: GroupableAlert](alerts: Iterable[A]) -> dict[AlertGroupKey, list[A]]:
    """
    Group alerts by (origin, destination, date).

    Pure function. Keys appear in first-seen order and each group keeps the
    relative order of its alerts (dicts preserve insertion order).

    Args:
        alerts: Eligible alerts, oldest first

    Returns:
        Mapping of group key to the alerts sharing it; empty input gives an empty dict

    Example:
        >>> from types import SimpleNamespace as A
        >>> d = dt.date(2025, 6, 1)
        >>> groups = group_alerts([A(from_station_id="X", to_station_id="Y", date=d, n=1),
        ...                        A(from_station_id="Z", to_station_id="Y", date=d, n=2),
        ...                        A(from_station_id="X", to_station_id="Y", date=d, n=3)])
        >>> [[a.n for a in group] for group in groups.values()]
        [[1, 3], [2]]
    """
    grouped: dict[AlertGroupKey, list[A]] = {}
    for alert in alerts:
        grouped.setdefault(alert_group_key(alert), []).append(alert)
    return grouped
