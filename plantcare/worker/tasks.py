"""Celery tasks (sync wrappers around the async services)."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, Optional

import httpx

from plantcare.ai.advisor import PlantAdvisorService
from plantcare.core.cache import Clock, utc_now
from plantcare.core.config import Settings, get_settings
from plantcare.core.database import Database
from plantcare.plants.learning import LearningService
from plantcare.plants.reminders import ReminderSweep
from plantcare.plants.repository import PlantRepository, WateringLogRepository
from plantcare.plants.watering_engine import WateringEngine
from plantcare.weather.service import RainAccumulator, WeatherService
from plantcare.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run async function in sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# Outlives a single run so the 24 h / 72 h rain totals see earlier sweeps.
_rain_history = RainAccumulator(retention_hours=get_settings().RAIN_HISTORY_HOURS)


def build_reminder_sweep(
    plants: Optional[PlantRepository] = None,
    logs: Optional[WateringLogRepository] = None,
    *,
    settings: Optional[Settings] = None,
    rain: Optional[RainAccumulator] = None,
    weather_client: Optional[httpx.AsyncClient] = None,
    clock: Clock = utc_now,
) -> ReminderSweep:
    """
    Fresh services for one sweep.

    Each task run gets its own event loop, so HTTP clients from a previous
    run cannot be reused. Rain history is passed in and kept across runs.
    """
    settings = settings or get_settings()
    engine = WateringEngine(
        WeatherService(settings, client=weather_client, rain=rain or _rain_history, clock=clock),
        LearningService(logs or WateringLogRepository()),
        PlantAdvisorService(settings, clock=clock),
        settings,
    )
    return ReminderSweep(plants or PlantRepository(), engine, concurrency=settings.SWEEP_CONCURRENCY)


async def run_reminder_sweep(sweep: ReminderSweep, today: date) -> Dict[str, Any]:
    """Run one sweep and close its HTTP clients before the loop goes away."""
    try:
        return await sweep.run(today)
    finally:
        await sweep.engine.aclose()


async def _daily_sweep(today: date) -> Dict[str, Any]:
    await Database.connect()
    try:
        return await run_reminder_sweep(build_reminder_sweep(), today)
    finally:
        await Database.disconnect()


@celery_app.task(name="plantcare.worker.tasks.run_daily_watering_sweep", acks_late=True)
def run_daily_watering_sweep(day: Optional[str] = None) -> Dict[str, Any]:
    """
    Find plants due for watering today and stamp their reminder date.

    Scheduled daily via Celery Beat; ``day`` (ISO date) overrides today for reruns.

    Returns:
        Dict with statistics and the due plants.
    """
    today = date.fromisoformat(day) if day else utc_now().date()
    logger.info(f"Starting daily watering sweep for {today.isoformat()}")

    try:
        stats = _run_async(_daily_sweep(today))
        logger.info(f"Daily watering sweep complete: checked={stats['checked']}, due={stats['due']}")
        return stats
    except Exception as e:
        logger.error(f"Failed to run daily watering sweep: {e}")
        raise
