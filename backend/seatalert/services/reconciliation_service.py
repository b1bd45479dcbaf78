"""Reconciliation engine: evaluates pending search alerts against live availability."""

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import TypedDict
from zoneinfo import ZoneInfo

import structlog

from seatalert.core.config import settings
from seatalert.core.telemetry import service_span
from seatalert.exceptions import AvailabilityQueryError, GroupProcessingError
from seatalert.helpers.alert_grouping import alert_group_key, group_alerts
from seatalert.helpers.formatting import format_local_time
from seatalert.helpers.notification_text import (
    build_completed_reason,
    build_expired_message,
    build_seats_found_message,
)
from seatalert.helpers.soft_delete_filters import is_soft_deleted
from seatalert.helpers.train_matching import find_first_match
from seatalert.models.search_alert import AlertStatus, SearchAlert
from seatalert.schemas.availability import AvailabilityQuery, AvailabilityResult
from seatalert.schemas.notifications import PushMessage
from seatalert.services.alert_store import AlertStore
from seatalert.services.availability_client import AvailabilityQueryPort
from seatalert.services.notification_service import NotificationPort
from seatalert.services.station_directory import StationDirectory

logger = structlog.get_logger(__name__)

NO_TIME_RANGE_REASON = "No departure time range provided"
EXPIRED_REASON = "Search date has passed"
TECHNICAL_ERROR_REASON = "Search failed due to technical error"


class PassStats(TypedDict):
    """Counters reported by a reconciliation pass."""

    groups_processed: int
    alerts_checked: int
    queries_issued: int
    alerts_completed: int
    alerts_expired: int
    alerts_failed: int
    errors: int


def init_pass_stats() -> PassStats:
    """
    Initialize pass statistics.

    Example:
        >>> init_pass_stats()["queries_issued"]
        0
    """
    return PassStats(
        groups_processed=0,
        alerts_checked=0,
        queries_issued=0,
        alerts_completed=0,
        alerts_expired=0,
        alerts_failed=0,
        errors=0,
    )


def merge_pass_stats(total: PassStats, part: PassStats) -> None:
    """Add the counters of part into total in place."""
    for key, value in part.items():
        total[key] += value  # type: ignore[literal-required]


def is_alert_expired(travel_date: date, now: datetime, tz: ZoneInfo) -> bool:
    """
    Check whether an alert's travel date has fully elapsed.

    The alert stays live for the whole of its travel date in the display
    timezone and expires at the following local midnight.

    Example:
        >>> tz = ZoneInfo("Europe/Istanbul")
        >>> now = datetime(2025, 6, 2, 9, 0, tzinfo=tz)
        >>> is_alert_expired(date(2025, 6, 1), now, tz), is_alert_expired(date(2025, 6, 2), now, tz)
        (True, False)
    """
    expires_at = datetime.combine(travel_date + timedelta(days=1), time.min, tzinfo=tz)
    return expires_at < now


def build_group_query(alerts: Sequence[SearchAlert]) -> AvailabilityQuery:
    """
    Build the single availability query shared by a route/date group.

    Time window and cabin class are left open so one result serves every alert
    of the group; they are applied per alert afterwards. High-speed filtering
    is pushed upstream only when every alert asks for it.
    """
    key = alert_group_key(alerts[0])
    return AvailabilityQuery(
        from_station_id=key.from_station_id,
        to_station_id=key.to_station_id,
        date=key.date,
        passenger_count=1,
        high_speed_only=all(alert.high_speed_only for alert in alerts),
    )


class _GroupQuery:
    """Runs a group's availability query at most once and remembers the outcome."""

    def __init__(self, availability: AvailabilityQueryPort, query: AvailabilityQuery) -> None:
        self._availability = availability
        self.query = query
        self.issued = False
        self.result: AvailabilityResult | None = None
        self.error: AvailabilityQueryError | None = None

    async def fetch(self) -> AvailabilityResult | None:
        """
        Get the group's availability result, querying upstream on first use.

        Returns:
            The result, or None if upstream failed transiently

        Raises:
            GroupProcessingError: If the port raised anything other than AvailabilityQueryError
        """
        if not self.issued:
            self.issued = True
            try:
                self.result = await self._availability.query(self.query)
            except AvailabilityQueryError as e:
                self.error = e
                logger.warning(
                    "availability_query_failed",
                    from_station_id=self.query.from_station_id,
                    to_station_id=self.query.to_station_id,
                    date=self.query.date.isoformat(),
                    error=str(e),
                )
            except Exception as e:
                msg = f"Availability query raised unexpectedly: {e}"
                raise GroupProcessingError(msg) from e
            else:
                logger.info(
                    "availability_query_completed",
                    from_station_id=self.query.from_station_id,
                    to_station_id=self.query.to_station_id,
                    date=self.query.date.isoformat(),
                    train_count=len(self.result.trains),
                )
        return self.result


class AlertReconciliationService:
    """
    Drives search alerts through PENDING -> COMPLETED | FAILED.

    One pass loads every eligible alert, groups them by (origin, destination,
    date), queries availability once per group and evaluates each alert
    against the shared result. Alerts are processed sequentially; terminal
    transitions are conditional on the alert still being PENDING, and a
    notification is only sent when that transition was applied.
    """

    def __init__(
        self,
        store: AlertStore,
        availability: AvailabilityQueryPort,
        notifier: NotificationPort,
        stations: StationDirectory,
        *,
        clock: Callable[[], datetime] | None = None,
        display_timezone: str | ZoneInfo | None = None,
    ) -> None:
        self.store = store
        self.availability = availability
        self.notifier = notifier
        self.stations = stations
        self._clock = clock or (lambda: datetime.now(UTC))
        tz = display_timezone or settings.DISPLAY_TIMEZONE
        self.tz = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)

    def _now(self) -> datetime:
        return self._clock()

    async def run_pass(self) -> PassStats:
        """
        Run one reconciliation pass over all eligible alerts.

        Returns:
            Pass statistics

        Raises:
            Exception: Whatever the store raises while listing alerts
        """
        with service_span("reconciliation.run_pass", "reconciliation-service") as span:
            stats = init_pass_stats()
            logger.info("reconciliation_pass_started")

            alerts = await self.store.list_eligible_alerts()
            if not alerts:
                logger.info("reconciliation_pass_completed", **stats)
                span.set_attribute("reconciliation.alert_count", 0)
                return stats

            groups = group_alerts(alerts)
            span.set_attribute("reconciliation.alert_count", len(alerts))
            span.set_attribute("reconciliation.group_count", len(groups))
            logger.info("search_alerts_grouped", alert_count=len(alerts), group_count=len(groups))

            for key, group in groups.items():
                try:
                    merge_pass_stats(stats, await self.process_group(group))
                except Exception as e:
                    logger.error(
                        "search_alert_group_failed",
                        from_station_id=key.from_station_id,
                        to_station_id=key.to_station_id,
                        date=key.date.isoformat(),
                        error=str(e),
                        exc_info=e,
                    )
                    stats["errors"] += 1

            for name, value in stats.items():
                span.set_attribute(f"reconciliation.{name}", value)
            logger.info("reconciliation_pass_completed", **stats)
            return stats

    async def process_group(self, alerts: Sequence[SearchAlert]) -> PassStats:
        """
        Evaluate every alert of one route/date group.

        Args:
            alerts: Alerts sharing (from_station_id, to_station_id, date), in pass order

        Returns:
            Statistics for this group
        """
        stats = init_pass_stats()
        if not alerts:
            return stats

        # Snapshot before any write; later reads always go through the store
        key = alert_group_key(alerts[0])
        alert_ids = [alert.id for alert in alerts]
        group_query = _GroupQuery(self.availability, build_group_query(alerts))

        with service_span(
            "reconciliation.process_group",
            "reconciliation-service",
            **{
                "alert_group.from_station_id": key.from_station_id,
                "alert_group.to_station_id": key.to_station_id,
                "alert_group.date": key.date.isoformat(),
                "alert_group.size": len(alert_ids),
            },
        ) as span:
            stats["groups_processed"] = 1
            try:
                for alert_id in alert_ids:
                    try:
                        await self._process_alert(alert_id, group_query, stats)
                    except GroupProcessingError:
                        raise
                    except Exception as e:
                        logger.error(
                            "search_alert_processing_failed",
                            alert_id=str(alert_id),
                            error=str(e),
                            exc_info=e,
                        )
                        stats["errors"] += 1
            except GroupProcessingError as e:
                logger.error(
                    "search_alert_group_aborted",
                    from_station_id=key.from_station_id,
                    to_station_id=key.to_station_id,
                    date=key.date.isoformat(),
                    error=str(e),
                    exc_info=e,
                )
                span.record_exception(e)
                span.set_attribute("alert_group.failed", True)
                stats["errors"] += 1
                await self._fail_group(alert_ids, stats)
            finally:
                if group_query.issued:
                    stats["queries_issued"] = 1
                span.set_attribute("alert_group.query_issued", group_query.issued)

        return stats

    async def _process_alert(self, alert_id: uuid.UUID, group_query: _GroupQuery, stats: PassStats) -> None:
        alert = await self.store.get_alert(alert_id)
        if alert is None or is_soft_deleted(alert) or alert.status != AlertStatus.PENDING:
            logger.debug("search_alert_skipped", alert_id=str(alert_id), reason="no_longer_pending")
            return

        stats["alerts_checked"] += 1
        now = self._now()

        window = alert.departure_time_range
        if window is None:
            if await self._finish(alert_id, AlertStatus.FAILED, NO_TIME_RANGE_REASON, last_checked=now):
                stats["alerts_failed"] += 1
            return

        if is_alert_expired(alert.date, now, self.tz):
            await self._expire(alert, now, stats)
            return

        result = await group_query.fetch()
        if result is None:
            # Transient upstream failure: retried on the next pass
            await self.store.update_alert(alert_id, expected_status=AlertStatus.PENDING, last_checked=now)
            return

        match = find_first_match(
            result.trains,
            cabin_class=alert.cabin_class,
            time_window=window,
            high_speed_only=alert.high_speed_only,
            tz=self.tz,
        )
        if match is None:
            await self.store.update_alert(alert_id, expected_status=AlertStatus.PENDING, last_checked=now)
            logger.debug("search_alert_no_match", alert_id=str(alert_id), train_count=len(result.trains))
            return

        from_name = self.stations.display_name(alert.from_station_id)
        to_name = self.stations.display_name(alert.to_station_id)
        seats = match.cabin.availability_count
        reason = build_completed_reason(
            seats=seats,
            from_name=from_name,
            to_name=to_name,
            departure=format_local_time(match.train.departure_time, self.tz),
        )
        # Built up front so a COMPLETED alert always has a message to send
        message = build_seats_found_message(
            alert_id=alert_id,
            from_station_id=alert.from_station_id,
            to_station_id=alert.to_station_id,
            from_name=from_name,
            to_name=to_name,
            travel_date=alert.date,
            cabin_class=alert.cabin_class,
            match=match,
            tz=self.tz,
        )
        if not await self._finish(alert_id, AlertStatus.COMPLETED, reason, last_checked=now):
            return

        stats["alerts_completed"] += 1
        logger.info(
            "search_alert_completed",
            alert_id=str(alert_id),
            train_number=match.train.train_number,
            available_seats=seats,
            cabin_class=alert.cabin_class,
        )
        await self._notify(alert.user_id, message)

    async def _expire(self, alert: SearchAlert, now: datetime, stats: PassStats) -> None:
        alert_id = alert.id
        message = build_expired_message(
            alert_id=alert_id,
            from_name=self.stations.display_name(alert.from_station_id),
            to_name=self.stations.display_name(alert.to_station_id),
            travel_date=alert.date,
        )
        if not await self._finish(alert_id, AlertStatus.FAILED, EXPIRED_REASON, last_checked=now):
            return

        stats["alerts_expired"] += 1
        logger.info("search_alert_expired", alert_id=str(alert_id), date=alert.date.isoformat())
        await self._notify(alert.user_id, message)

    async def _finish(
        self,
        alert_id: uuid.UUID,
        status: AlertStatus,
        reason: str,
        *,
        last_checked: datetime | None = None,
    ) -> bool:
        """
        Move a PENDING alert to a terminal status.

        Returns:
            True if the alert was still PENDING and has been updated
        """
        fields: dict[str, object] = {"status": status, "is_active": False, "status_reason": reason}
        if last_checked is not None:
            fields["last_checked"] = last_checked
        updated = await self.store.update_alert(alert_id, expected_status=AlertStatus.PENDING, **fields)
        if updated:
            logger.info("search_alert_status_changed", alert_id=str(alert_id), status=status.value, reason=reason)
        return updated

    async def _fail_group(self, alert_ids: Sequence[uuid.UUID], stats: PassStats) -> None:
        """Fail every alert of an aborted group that is still PENDING. No notifications are sent."""
        for alert_id in alert_ids:
            try:
                alert = await self.store.get_alert(alert_id)
                if alert is None or is_soft_deleted(alert) or alert.status != AlertStatus.PENDING:
                    continue
                if await self._finish(alert_id, AlertStatus.FAILED, TECHNICAL_ERROR_REASON):
                    stats["alerts_failed"] += 1
            except Exception as e:
                logger.error(
                    "search_alert_fail_safe_failed",
                    alert_id=str(alert_id),
                    error=str(e),
                    exc_info=e,
                )
                stats["errors"] += 1

    async def _notify(self, user_id: uuid.UUID, message: PushMessage) -> None:
        await self.notifier.send(user_id, message.title, message.body, message.data)
