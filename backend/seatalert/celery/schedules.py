"""Celery Beat periodic task schedules.

Scheduled tasks:
- check_search_alerts: every ALERT_CHECK_INTERVAL_SECONDS (default 60s) - one
  reconciliation pass over all pending search alerts
"""

from celery.schedules import schedule
from seatalert.celery.app import celery_app
from seatalert.core.config import settings

SEARCH_ALERT_CHECK_INTERVAL = settings.ALERT_CHECK_INTERVAL_SECONDS

celery_app.conf.beat_schedule = {
    "check-search-alerts": {
        "task": "seatalert.celery.tasks.check_search_alerts",
        "schedule": schedule(run_every=SEARCH_ALERT_CHECK_INTERVAL),
        "options": {
            # A pass not picked up before the next tick is redundant
            "expires": SEARCH_ALERT_CHECK_INTERVAL,
        },
    },
}
