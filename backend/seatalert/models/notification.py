"""Notification-related models."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from seatalert.models.base import BaseModel


class NotificationKind(str, enum.Enum):
    """Which alert transition produced the notification."""

    SEATS_FOUND = "SEATS_FOUND"
    ALERT_EXPIRED = "ALERT_EXPIRED"


class NotificationStatus(str, enum.Enum):
    """Notification delivery status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # No push token or push disabled


class NotificationLog(BaseModel):
    """Log of push notification attempts."""

    __tablename__ = "notification_logs"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    alert_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("search_alerts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    kind: Mapped[NotificationKind | None] = mapped_column(
        Enum(
            NotificationKind,
            name="notification_kind",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=True,
    )
    status: Mapped[NotificationStatus] = mapped_column(
        Enum(
            NotificationStatus,
            name="notification_status",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (Index("ix_notification_logs_user_sent", "user_id", "sent_at"),)

    def __repr__(self) -> str:
        """String representation of the notification log."""
        return f"<NotificationLog(id={self.id}, kind={self.kind}, status={self.status})>"
