"""
Daily due-plant sweep.

A plant is due when today is on or past ``last_watered_date + floor(interval)``
and it has not already been reminded today. The sweep computes recommendations
for all plants concurrently (bounded), stamps ``last_reminder_date`` on the due
ones and returns them so a delivery channel can pick them up.
"""

import asyncio
import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from plantcare.plants.models import DuePlant, Plant, WateringRecommendation
from plantcare.plants.repository import PlantRepository
from plantcare.plants.watering_engine import WateringEngine

logger = logging.getLogger(__name__)


def reference_date(plant: Plant, today: date) -> date:
    """Last watering, else the day the plant was added, else today."""
    if plant.last_watered_date is not None:
        return plant.last_watered_date
    if plant.created_at is not None:
        return plant.created_at.date()
    return today


def due_date(plant: Plant, recommendation: WateringRecommendation, today: date) -> date:
    return reference_date(plant, today) + timedelta(days=math.floor(recommendation.interval_days))


def is_due(plant: Plant, recommendation: WateringRecommendation, today: date) -> bool:
    if plant.last_reminder_date == today:
        return False
    return today >= due_date(plant, recommendation, today)


class ReminderSweep:
    """Finds plants that need water today."""

    def __init__(self, plants: PlantRepository, engine: WateringEngine, concurrency: int = 8):
        self.plants = plants
        self.engine = engine
        self.concurrency = max(1, concurrency)

    async def _check(self, plant: Plant, today: date, semaphore: asyncio.Semaphore) -> Optional[DuePlant]:
        async with semaphore:
            location = await self.plants.get_owner_location(plant.user_id)
            recommendation = await self.engine.recommend(plant, location, today=today)
        if not is_due(plant, recommendation, today):
            return None
        return DuePlant(
            plant_id=plant.id,
            user_id=plant.user_id,
            name=plant.name,
            due_date=due_date(plant, recommendation, today),
            recommendation=recommendation,
        )

    async def run(self, today: date) -> Dict[str, Any]:
        """
        Check every plant once.

        Returns:
            Dict with ``checked``, ``due``, ``failed`` counts and the ``plants`` list.
        """
        plants = await self.plants.list_all()
        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._check(p, today, semaphore) for p in plants),
            return_exceptions=True,
        )

        due: List[DuePlant] = []
        failed = 0
        for plant, result in zip(plants, results):
            if isinstance(result, Exception):
                failed += 1
                logger.error(f"Reminder check failed for plant {plant.id}: {result}")
                continue
            if result is None:
                continue
            await self.plants.mark_reminded(plant.id, today)
            due.append(result)

        logger.info(f"Reminder sweep for {today.isoformat()}: checked={len(plants)}, due={len(due)}, failed={failed}")
        return {
            "date": today.isoformat(),
            "checked": len(plants),
            "due": len(due),
            "failed": failed,
            "plants": [d.model_dump(mode="json") for d in due],
        }
