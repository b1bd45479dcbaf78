"""Search alert model: a standing request to be told when seats appear."""

import datetime as dt
import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Time,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seatalert.models.base import BaseModel
from seatalert.schemas.availability import TimeWindow

if TYPE_CHECKING:
    from seatalert.models.user import User


class AlertStatus(str, enum.Enum):
    """Lifecycle status of a search alert. COMPLETED and FAILED are terminal."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SearchAlert(BaseModel):
    """User's standing search for seat availability on a route and date."""

    __tablename__ = "search_alerts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_station_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    to_station_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        comment="Travel date (no time component)",
    )
    cabin_class: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Upstream cabin class id",
    )
    departure_time_start: Mapped[dt.time | None] = mapped_column(
        Time,
        nullable=True,
    )
    departure_time_end: Mapped[dt.time | None] = mapped_column(
        Time,
        nullable=True,
    )
    high_speed_only: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    status: Mapped[AlertStatus] = mapped_column(
        Enum(
            AlertStatus,
            name="search_alert_status",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=AlertStatus.PENDING,
        nullable=False,
    )
    status_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    last_checked: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    user: Mapped["User"] = relationship()

    __table_args__ = (
        # Serves the eligible-alerts query (ordered by creation)
        Index(
            "ix_search_alerts_eligible",
            "created_at",
            postgresql_where=text(
                "is_active AND status = 'PENDING' AND deleted_at IS NULL "
                "AND departure_time_start IS NOT NULL AND departure_time_end IS NOT NULL"
            ),
        ),
        Index("ix_search_alerts_route_date", "from_station_id", "to_station_id", "date"),
    )

    @property
    def departure_time_range(self) -> TimeWindow | None:
        """Departure time-of-day window, or None when either bound is missing."""
        if self.departure_time_start is None or self.departure_time_end is None:
            return None
        return TimeWindow(start=self.departure_time_start, end=self.departure_time_end)

    def __repr__(self) -> str:
        """String representation of the search alert."""
        return (
            f"<SearchAlert(id={self.id}, route={self.from_station_id}->{self.to_station_id}, "
            f"date={self.date}, status={self.status})>"
        )
