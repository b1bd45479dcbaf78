"""Celery tasks.

check_search_alerts is the periodic trigger for the reconciliation pass. Beat
fires it every ALERT_CHECK_INTERVAL_SECONDS; a Redis lock keeps passes from
overlapping when one runs longer than the interval.
"""

import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypedDict

import structlog

from seatalert.celery.app import TASK_TIME_LIMIT, celery_app
from seatalert.celery.database import RedisClientProtocol, get_worker_loop, get_worker_redis_client, get_worker_session
from seatalert.core.config import settings
from seatalert.services.alert_store import SqlAlchemyAlertStore
from seatalert.services.availability_client import HttpAvailabilityClient
from seatalert.services.notification_service import PushNotificationService
from seatalert.services.reconciliation_service import AlertReconciliationService, PassStats, init_pass_stats
from seatalert.services.station_directory import get_station_directory

logger = structlog.get_logger(__name__)


def run_in_worker_loop[T](
    coro_func: Callable[..., Awaitable[T]],
    *args: Any,  # noqa: ANN401 - Pass-through args to async function
    **kwargs: Any,  # noqa: ANN401 - Pass-through kwargs to async function
) -> T:
    """
    Run an async function in the worker's persistent event loop.

    Raises:
        RuntimeError: If worker not initialized or event loop is closed
    """
    loop = get_worker_loop()
    coro = coro_func(*args, **kwargs)
    return loop.run_until_complete(coro)


class TaskRequest(Protocol):
    """Protocol for Celery task request object."""

    @property
    def retries(self) -> int:
        """Number of times task has been retried."""
        ...


class BoundTask(Protocol):
    """Protocol for Celery bound task self parameter."""

    @property
    def request(self) -> TaskRequest:
        """Task request object."""
        ...

    def retry(self, exc: Exception | None = None, countdown: int | None = None) -> Exception:
        """Build the exception that signals a retry."""
        ...


class SearchAlertCheckResult(TypedDict):
    """Result from check_search_alerts task."""

    status: str
    groups_processed: int
    alerts_checked: int
    queries_issued: int
    alerts_completed: int
    alerts_expired: int
    alerts_failed: int
    errors: int


def build_check_result(status: str, stats: PassStats) -> SearchAlertCheckResult:
    """
    Combine a task status with pass statistics.

    Example:
        >>> build_check_result("skipped", init_pass_stats())["status"]
        'skipped'
    """
    return SearchAlertCheckResult(status=status, **stats)


@celery_app.task(  # type: ignore[arg-type]
    bind=True,
    max_retries=3,
    name="seatalert.celery.tasks.check_search_alerts",
)
def check_search_alerts(self: BoundTask) -> SearchAlertCheckResult:
    """
    Run one reconciliation pass over all pending search alerts.

    Retried (60s countdown, at most 3 times) only when the pass itself fails,
    e.g. the database is unreachable while listing alerts. Per-alert problems
    are handled inside the pass.

    Returns:
        SearchAlertCheckResult: "success" with pass statistics, or "skipped"
            when another pass holds the lock
    """
    try:
        result = run_in_worker_loop(_check_search_alerts_async)
        logger.info(
            "check_search_alerts_task_completed",
            result=result,
        )
        return result

    except Exception as exc:
        logger.error(
            "check_search_alerts_task_failed",
            error=str(exc),
            error_type=type(exc).__name__,
            retry_count=self.request.retries,
        )
        raise self.retry(exc=exc, countdown=60) from exc


async def _acquire_pass_lock(redis_client: RedisClientProtocol, token: str) -> bool:
    """Take the pass lock; it expires with the task's hard time limit."""
    acquired = await redis_client.set(settings.ALERT_PASS_LOCK_KEY, token, ex=TASK_TIME_LIMIT, nx=True)
    return bool(acquired)


async def _release_pass_lock(redis_client: RedisClientProtocol, token: str) -> None:
    """Release the pass lock if this pass still holds it."""
    try:
        if await redis_client.get(settings.ALERT_PASS_LOCK_KEY) == token:
            await redis_client.delete(settings.ALERT_PASS_LOCK_KEY)
    except Exception as e:
        # The lock expires on its own
        logger.warning("pass_lock_release_failed", error=str(e), error_type=type(e).__name__)


async def _check_search_alerts_async() -> SearchAlertCheckResult:
    """
    Async body of check_search_alerts.

    Builds the engine with its collaborators for this pass and closes the
    session afterwards. The Redis client is shared across tasks.
    """
    redis_client = get_worker_redis_client()
    token = str(uuid.uuid4())
    if not await _acquire_pass_lock(redis_client, token):
        logger.info("reconciliation_pass_skipped", reason="pass_already_running")
        return build_check_result("skipped", init_pass_stats())

    session = None
    try:
        session = get_worker_session()
        service = AlertReconciliationService(
            store=SqlAlchemyAlertStore(session),
            availability=HttpAvailabilityClient(),
            notifier=PushNotificationService(session),
            stations=get_station_directory(),
        )
        stats = await service.run_pass()
        return build_check_result("success", stats)

    finally:
        if session is not None:
            await session.close()
        await _release_pass_lock(redis_client, token)
