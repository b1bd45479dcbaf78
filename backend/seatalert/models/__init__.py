"""Database models for the seat alert service."""

# Import all models to register them with SQLAlchemy metadata
from seatalert.models.base import Base, BaseModel
from seatalert.models.notification import NotificationKind, NotificationLog, NotificationStatus
from seatalert.models.search_alert import AlertStatus, SearchAlert
from seatalert.models.user import User

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # User models
    "User",
    # Alert models
    "SearchAlert",
    "AlertStatus",
    # Notification models
    "NotificationLog",
    "NotificationKind",
    "NotificationStatus",
]
