"""Notification Port and its push implementation."""

import hashlib
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from seatalert.core.telemetry import service_span
from seatalert.exceptions import PushDeliveryError
from seatalert.models.notification import NotificationKind, NotificationLog, NotificationStatus
from seatalert.models.user import User
from seatalert.services.push_service import ExpoPushClient

logger = structlog.get_logger(__name__)


class NotificationPort(Protocol):
    """Delivers a notification to a user. Fire-and-forget: never raises."""

    async def send(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None: ...


def _hash_user(user_id: uuid.UUID) -> str:
    """Hash a user id for span attributes."""
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:12]


def _kind_from_data(data: dict[str, Any]) -> NotificationKind | None:
    try:
        return NotificationKind(data.get("type"))
    except ValueError:
        return None


def _alert_id_from_data(data: dict[str, Any]) -> uuid.UUID | None:
    raw = data.get("alertId")
    if raw is None:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


class PushNotificationService:
    """
    Sends alert notifications as Expo push messages.

    The recipient's push token and preference are read from the users table.
    Every attempt is recorded in notification_logs. Delivery problems are
    logged and swallowed so alert processing never depends on them.
    """

    def __init__(self, db: AsyncSession, push_client: ExpoPushClient | None = None) -> None:
        self.db = db
        self.push_client = push_client or ExpoPushClient()

    async def send(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        """
        Send a push notification to a user.

        Args:
            user_id: Recipient
            title: Notification title
            body: Notification body
            data: Structured payload; "type" and "alertId" are also copied to the log row
        """
        payload = data or {}
        kind = _kind_from_data(payload)
        alert_id = _alert_id_from_data(payload)

        with service_span("notification.send_push", "notification-service") as span:
            span.set_attribute("notification.type", "push")
            span.set_attribute("notification.recipient_hash", _hash_user(user_id))
            if kind is not None:
                span.set_attribute("notification.kind", kind.value)

            try:
                status, error_message = await self._deliver(user_id, title, body, payload)
            except Exception as e:
                logger.error(
                    "push_notification_failed",
                    user_id=str(user_id),
                    alert_id=str(alert_id) if alert_id else None,
                    error=str(e),
                    exc_info=e,
                )
                if isinstance(e, SQLAlchemyError):
                    await self.db.rollback()
                status, error_message = NotificationStatus.FAILED, str(e)

            span.set_attribute("notification.status", status.value)
            await self._record(user_id, alert_id, kind, status, error_message)

    async def _deliver(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> tuple[NotificationStatus, str | None]:
        user = await self.db.get(User, user_id)
        if user is None or user.deleted_at is not None:
            logger.warning("push_notification_skipped", user_id=str(user_id), reason="user_not_found")
            return NotificationStatus.SKIPPED, "User not found"
        if not user.push_enabled:
            logger.info("push_notification_skipped", user_id=str(user_id), reason="push_disabled")
            return NotificationStatus.SKIPPED, "Push notifications disabled"
        if not user.expo_push_token:
            logger.info("push_notification_skipped", user_id=str(user_id), reason="no_push_token")
            return NotificationStatus.SKIPPED, "No push token registered"

        token = user.expo_push_token
        try:
            ticket_id = await self.push_client.send(token, title, body, data)
        except PushDeliveryError as e:
            logger.warning(
                "push_notification_rejected",
                user_id=str(user_id),
                error=str(e),
                device_not_registered=e.device_not_registered,
            )
            if e.device_not_registered:
                await self._clear_push_token(user_id, token)
            return NotificationStatus.FAILED, str(e)

        logger.info("push_notification_sent", user_id=str(user_id), ticket_id=ticket_id)
        return NotificationStatus.SENT, None

    async def _clear_push_token(self, user_id: uuid.UUID, token: str) -> None:
        """Remove a token the push service no longer accepts, unless it was already replaced."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id, User.expo_push_token == token)
            .values(expo_push_token=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("push_token_cleared", user_id=str(user_id))

    async def _record(
        self,
        user_id: uuid.UUID,
        alert_id: uuid.UUID | None,
        kind: NotificationKind | None,
        status: NotificationStatus,
        error_message: str | None,
    ) -> None:
        log = NotificationLog(
            user_id=user_id,
            alert_id=alert_id,
            kind=kind,
            status=status,
            error_message=error_message,
            sent_at=datetime.now(UTC),
        )
        self.db.add(log)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(
                "notification_log_failed",
                user_id=str(user_id),
                status=status.value,
                error=str(e),
                exc_info=e,
            )
            await self.db.rollback()
