"""Alert Store: the persistence operations the reconciliation engine needs."""

from collections.abc import Sequence
from typing import Any, Protocol
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from seatalert.helpers.soft_delete_filters import add_active_filter
from seatalert.models.search_alert import AlertStatus, SearchAlert

logger = structlog.get_logger(__name__)

# Columns the engine is allowed to write
MUTABLE_ALERT_FIELDS = frozenset({"is_active", "status", "status_reason", "last_checked"})


class AlertStore(Protocol):
    """Port consumed by the reconciliation engine."""

    async def list_eligible_alerts(self) -> Sequence[SearchAlert]:
        """Active, PENDING, non-deleted alerts with a time window, oldest first."""
        ...

    async def get_alert(self, alert_id: UUID) -> SearchAlert | None:
        """Fresh copy of one alert, or None if it no longer exists."""
        ...

    async def update_alert(
        self,
        alert_id: UUID,
        *,
        expected_status: AlertStatus | None = None,
        **fields: Any,  # noqa: ANN401 - column values of mixed types
    ) -> bool:
        """
        Update an alert's mutable fields.

        With expected_status set the update only applies while the alert still
        has that status and is not soft-deleted.

        Returns:
            True if a row was updated
        """
        ...


class SqlAlchemyAlertStore:
    """AlertStore backed by the search_alerts table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_eligible_alerts(self) -> list[SearchAlert]:
        """
        Load every alert eligible for evaluation.

        Eligible means active, PENDING, not soft-deleted and with both
        departure time bounds set.

        Returns:
            Alerts ordered by creation time ascending
        """
        query = select(SearchAlert).where(
            SearchAlert.is_active == True,  # noqa: E712
            SearchAlert.status == AlertStatus.PENDING,
            SearchAlert.departure_time_start.is_not(None),
            SearchAlert.departure_time_end.is_not(None),
        )
        query = add_active_filter(query, SearchAlert).order_by(SearchAlert.created_at.asc(), SearchAlert.id)

        result = await self.db.execute(query)
        alerts = list(result.scalars().all())
        logger.info("eligible_alerts_fetched", count=len(alerts))
        return alerts

    async def list_alerts(self, status: AlertStatus | None = None, limit: int = 50) -> list[SearchAlert]:
        """Non-deleted alerts, newest first, optionally filtered by status."""
        query = add_active_filter(select(SearchAlert), SearchAlert)
        if status is not None:
            query = query.where(SearchAlert.status == status)
        query = query.order_by(SearchAlert.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_alert(self, alert_id: UUID) -> SearchAlert | None:
        """Re-read an alert from the database, bypassing the identity map."""
        return await self.db.get(SearchAlert, alert_id, populate_existing=True)

    async def update_alert(
        self,
        alert_id: UUID,
        *,
        expected_status: AlertStatus | None = None,
        **fields: Any,  # noqa: ANN401 - column values of mixed types
    ) -> bool:
        """
        Update an alert and commit.

        Args:
            alert_id: Alert to update
            expected_status: Optimistic concurrency guard; the update is skipped
                if the alert moved away from this status or was soft-deleted
            **fields: Column values, restricted to MUTABLE_ALERT_FIELDS

        Returns:
            True if the row was updated

        Raises:
            ValueError: If no fields or a non-mutable field is given
            SQLAlchemyError: If the update fails (the transaction is rolled back)
        """
        if not fields:
            msg = "update_alert requires at least one field"
            raise ValueError(msg)
        unknown = set(fields) - MUTABLE_ALERT_FIELDS
        if unknown:
            msg = f"Cannot update search alert fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        stmt = update(SearchAlert).where(SearchAlert.id == alert_id)
        if expected_status is not None:
            stmt = stmt.where(
                SearchAlert.status == expected_status,
                SearchAlert.deleted_at.is_(None),
            )
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)

        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(
                "search_alert_update_failed",
                alert_id=str(alert_id),
                fields=sorted(fields),
                error=str(e),
                exc_info=e,
            )
            await self.db.rollback()
            raise

        updated = (result.rowcount or 0) > 0  # type: ignore[attr-defined]
        if not updated:
            logger.info(
                "search_alert_update_skipped",
                alert_id=str(alert_id),
                expected_status=expected_status.value if expected_status else None,
            )
        return updated
