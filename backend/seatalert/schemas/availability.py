"""Pydantic schemas for upstream seat availability data."""

import datetime as dt
import math
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field

from seatalert.helpers.formatting import to_local_time


class TimeWindow(BaseModel):
    """Departure time-of-day window (wall-clock times in the display timezone)."""

    model_config = ConfigDict(frozen=True)

    start: dt.time
    end: dt.time

    def contains(self, value: dt.time) -> bool:
        """
        Check whether a wall-clock time falls inside the window (inclusive).

        A window whose start is after its end wraps past midnight.

        Example:
            >>> TimeWindow(start=dt.time(8, 0), end=dt.time(12, 0)).contains(dt.time(9, 30))
            True
            >>> TimeWindow(start=dt.time(22, 0), end=dt.time(2, 0)).contains(dt.time(1, 0))
            True
        """
        if self.start <= self.end:
            return self.start <= value <= self.end
        return value >= self.start or value <= self.end


class AvailabilityQuery(BaseModel):
    """Parameters for one upstream availability lookup."""

    from_station_id: str
    to_station_id: str
    date: dt.date
    passenger_count: int = 1
    departure_time_range: TimeWindow | None = None
    cabin_class: str | None = None
    high_speed_only: bool = False


class CabinClassAvailability(BaseModel):
    """Seat count for one cabin class on a train."""

    model_config = ConfigDict(populate_by_name=True)

    cabin_class_id: str = Field(alias="cabinClassId")
    cabin_class_name: str = Field(default="Unknown", alias="cabinClass")
    availability_count: int = Field(default=0, alias="availabilityCount")


class CandidateTrain(BaseModel):
    """A train returned by the upstream source for a route and date."""

    model_config = ConfigDict(populate_by_name=True)

    train_number: str = Field(alias="trainNumber")
    departure_time: dt.datetime = Field(alias="departureTime")
    arrival_time: dt.datetime = Field(alias="arrivalTime")
    is_high_speed: bool = Field(default=False, alias="isHighSpeed")
    cabin_class_availabilities: list[CabinClassAvailability] = Field(
        default_factory=list, alias="cabinClassAvailabilities"
    )

    def duration_minutes(self, tz: ZoneInfo) -> int:
        """
        Trip duration (arrival - departure) in whole minutes, half a minute rounding up.

        Naive timestamps are read as wall-clock times in ``tz``, so a response mixing
        naive and offset-aware values still compares like with like.
        """
        delta = to_local_time(self.arrival_time, tz) - to_local_time(self.departure_time, tz)
        return math.floor(delta.total_seconds() / 60 + 0.5)


class AvailabilityResult(BaseModel):
    """Successful upstream response: candidate trains in upstream order."""

    trains: list[CandidateTrain] = Field(default_factory=list)
