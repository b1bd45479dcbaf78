"""Client-side evaluation of one alert's filters against a shared query result."""

from collections.abc import Sequence
from typing import NamedTuple
from zoneinfo import ZoneInfo

from seatalert.helpers.formatting import to_local_time
from seatalert.schemas.availability import CabinClassAvailability, CandidateTrain, TimeWindow


class TrainMatch(NamedTuple):
    """The train and cabin entry selected for an alert."""

    train: CandidateTrain
    cabin: CabinClassAvailability


def qualifying_cabins(train: CandidateTrain, cabin_class: str) -> list[CabinClassAvailability]:
    """Cabin entries on a train for the requested class that have at least one seat."""
    return [
        entry
        for entry in train.cabin_class_availabilities
        if entry.cabin_class_id == cabin_class and entry.availability_count > 0
    ]


def find_first_match(
    trains: Sequence[CandidateTrain],
    *,
    cabin_class: str,
    time_window: TimeWindow,
    high_speed_only: bool,
    tz: ZoneInfo,
) -> TrainMatch | None:
    """
    Find the first train (in upstream order) that satisfies an alert's filters.

    A train qualifies when its local departure time is inside the window, it is
    high speed if the alert requires that, and it exposes at least one entry
    for the alert's cabin class with seats left. The first qualifying entry of
    the first qualifying train is returned; nothing is re-sorted.

    Args:
        trains: Candidate trains from the shared group query
        cabin_class: Alert's cabin class id
        time_window: Alert's departure time-of-day window
        high_speed_only: Whether the alert only accepts high-speed trains
        tz: Timezone the window is expressed in

    Returns:
        TrainMatch, or None if no train qualifies
    """
    for train in trains:
        if high_speed_only and not train.is_high_speed:
            continue
        departure = to_local_time(train.departure_time, tz).time()
        if not time_window.contains(departure):
            continue
        cabins = qualifying_cabins(train, cabin_class)
        if cabins:
            return TrainMatch(train=train, cabin=cabins[0])
    return None
