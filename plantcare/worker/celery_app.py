"""Celery app bootstrap (Redis broker) with the daily beat schedule."""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from plantcare.core.config import get_settings


settings = get_settings()

DEFAULT_QUEUE = "default"

celery_app = Celery(
    "plantcare",
    broker=(settings.CELERY_BROKER_URL or "redis://localhost:6379/0").strip(),
    include=["plantcare.worker.tasks"],
)

celery_app.conf.update(
    task_default_queue=DEFAULT_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
)


# =============================================================================
# Celery Beat Schedule - Periodic Tasks
# =============================================================================

celery_app.conf.beat_schedule = {
    "daily-watering-sweep": {
        "task": "plantcare.worker.tasks.run_daily_watering_sweep",
        "schedule": crontab(hour=settings.DAILY_SWEEP_HOUR_UTC, minute=settings.DAILY_SWEEP_MINUTE_UTC),
        "options": {"queue": DEFAULT_QUEUE},
    },
}
