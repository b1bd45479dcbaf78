"""User model (read-only from the engine's point of view)."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from seatalert.models.base import BaseModel


class User(BaseModel):
    """Alert owner and push notification target."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    expo_push_token: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Expo push token registered by the mobile app",
    )
    push_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Notification preference: deliver push notifications",
    )

    def __repr__(self) -> str:
        """String representation of the user."""
        return f"<User(id={self.id}, push_enabled={self.push_enabled})>"
