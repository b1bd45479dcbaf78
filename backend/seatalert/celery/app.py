"""Celery application instance and configuration."""

import structlog
from celery.signals import beat_init
from opentelemetry import trace

from celery import Celery
from seatalert.core.config import require_config, settings
from seatalert.core.logging import configure_logging

logger = structlog.get_logger(__name__)

# structlog must be configured before Celery sets up its own handlers
configure_logging(log_level=settings.LOG_LEVEL)

require_config("CELERY_BROKER_URL", "CELERY_RESULT_BACKEND")

celery_app = Celery("seatalert")

# The pass must finish within the hard limit; the pass lock expires with it
TASK_TIME_LIMIT = 300
TASK_SOFT_TIME_LIMIT = 240

celery_app.conf.update(
    # Separate Redis databases for broker and results
    broker_url=settings.CELERY_BROKER_URL,
    result_backend=settings.CELERY_RESULT_BACKEND,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=TASK_TIME_LIMIT,
    task_soft_time_limit=TASK_SOFT_TIME_LIMIT,
    # Let structlog own the root logger
    worker_hijack_root_logger=False,
)

# The TracerProvider itself is installed per worker process after fork (see database.py)
if settings.OTEL_ENABLED:
    from opentelemetry.instrumentation.celery import CeleryInstrumentor

    CeleryInstrumentor().instrument()
    logger.info("celery_otel_instrumentation_enabled")


@beat_init.connect
def init_beat_otel(
    **kwargs: object,
) -> None:
    """Install the TracerProvider in the Beat scheduler process."""
    if settings.OTEL_ENABLED:
        try:
            from seatalert.core.telemetry import get_tracer_provider  # noqa: PLC0415  # Lazy import for fork-safety

            if provider := get_tracer_provider():
                trace.set_tracer_provider(provider)
                logger.info("beat_otel_tracer_provider_initialized")
        except Exception:
            logger.exception("beat_otel_initialization_failed")


# Must stay: these imports register the tasks and populate beat_schedule
from seatalert.celery import (  # noqa: E402
    schedules,  # noqa: F401
    tasks,  # noqa: F401
)
