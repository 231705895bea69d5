"""Plant service - plant creation with catalog lookup, watering confirmation and history."""

import calendar
import logging
from datetime import date, datetime
from typing import Optional

from plantcare.core.cache import utc_now
from plantcare.core.exceptions import BadRequestException, NotFoundException
from plantcare.plants.catalog_service import PlantCatalogService
from plantcare.plants.models import (
    Location,
    Plant,
    PlantCreate,
    PlantType,
    WateringHistory,
    WateringLogEntry,
    WateringRecommendation,
)
from plantcare.plants.repository import PlantRepository, WateringLogRepository
from plantcare.plants.watering_engine import WateringEngine

logger = logging.getLogger(__name__)

DEFAULT_BASE_INTERVAL_DAYS = 7


def parse_month(value: str) -> date:
    """First day of a "YYYY-MM" month."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m").date()
    except ValueError:
        raise BadRequestException(f"Invalid month '{value}', expected YYYY-MM")


class PlantService:
    """Creates plants and loads them together with their owner's location."""

    def __init__(self, plants: PlantRepository, catalog: PlantCatalogService):
        self.plants = plants
        self.catalog = catalog

    async def create_plant(self, user_id: Optional[str], data: PlantCreate) -> Plant:
        """
        Save a new plant.

        When the caller gives no base interval the catalog is asked for one
        (and for a type, unless the caller set it). A failed lookup falls back
        to a 7 day interval and the DEFAULT type.
        """
        now = utc_now()
        interval = data.base_interval_days
        plant_type = data.type
        lookup_source = None
        lookup_at = None

        if interval is None:
            result = await self.catalog.suggest_interval_days(data.name)
            lookup_at = now
            if result is not None:
                interval = result.base_interval_days
                plant_type = plant_type or result.suggested_type
                lookup_source = result.source
                logger.info(f"Plant '{data.name}' created from lookup: interval={interval}, source={result.source}")
            else:
                interval = DEFAULT_BASE_INTERVAL_DAYS
                lookup_source = "Fallback"
                logger.info(f"Lookup failed for plant '{data.name}', using {interval} days")

        plant = Plant(
            user_id=user_id,
            name=data.name.strip(),
            placement=data.placement,
            pot_volume_liters=data.pot_volume_liters,
            outdoor_area_m2=data.outdoor_area_m2,
            base_interval_days=interval,
            type=plant_type or PlantType.DEFAULT,
            soil_type=data.soil_type,
            sun_exposure=data.sun_exposure,
            mulched=data.mulched,
            perennial=data.perennial,
            winter_dormancy_enabled=data.winter_dormancy_enabled,
            lookup_source=lookup_source,
            lookup_at=lookup_at,
            created_at=now,
        )
        return await self.plants.insert(plant)

    async def get_plant(self, plant_id: str) -> Plant:
        plant = await self.plants.get(plant_id)
        if plant is None:
            raise NotFoundException("Plant not found")
        return plant

    async def get_location(self, plant: Plant) -> Optional[Location]:
        return await self.plants.get_owner_location(plant.user_id)


class WateringLogService:
    """Records confirmed waterings along with what was recommended at the time."""

    def __init__(self, plants: PlantRepository, logs: WateringLogRepository, engine: WateringEngine):
        self.plants = plants
        self.logs = logs
        self.engine = engine

    async def record_watering(
        self,
        plant: Plant,
        location: Optional[Location] = None,
        watered_at: Optional[date] = None,
    ) -> WateringLogEntry:
        watered_at = watered_at or utc_now().date()
        recommendation: WateringRecommendation = await self.engine.recommend(plant, location, today=watered_at)
        weather = await self.engine.current_weather(location)

        entry = await self.logs.append(WateringLogEntry(
            plant_id=plant.id,
            watered_at=watered_at,
            recommended_interval_days=recommendation.interval_days,
            recommended_water_liters=recommendation.water_liters,
            temperature_c=weather.temperature_c if weather else None,
            humidity_percent=weather.humidity_percent if weather else None,
        ))
        await self.plants.update_last_watered(plant.id, watered_at)
        logger.info(f"Watering recorded for plant '{plant.name}' on {watered_at.isoformat()}")
        return entry

    async def month_history(self, plant: Plant, month: Optional[str] = None) -> WateringHistory:
        """
        Waterings of ``plant`` in one calendar month ("YYYY-MM", default current).

        Also carries the lifetime watering count and the average actual interval.
        """
        start = parse_month(month) if month else utc_now().date().replace(day=1)
        end = start.replace(day=calendar.monthrange(start.year, start.month)[1])
        return WateringHistory(
            month=start.strftime("%Y-%m"),
            entries=await self.logs.between(plant.id, start, end),
            total_waterings=await self.logs.count(plant.id),
            avg_actual_interval_days=await self.engine.learning.get_average_interval(plant),
        )
