"""
Common dependencies for FastAPI routes.

Services are process-wide so their caches, rain history and backoff state are
shared between requests. Tests override these with ``app.dependency_overrides``.
"""

from functools import lru_cache

from plantcare.ai.advisor import get_advisor_service
from plantcare.plants.catalog_service import get_catalog_service
from plantcare.plants.learning import LearningService
from plantcare.plants.repository import PlantRepository, WateringLogRepository
from plantcare.plants.service import PlantService, WateringLogService
from plantcare.plants.watering_engine import WateringEngine
from plantcare.weather.service import get_weather_service


@lru_cache
def get_plant_repository() -> PlantRepository:
    return PlantRepository()


@lru_cache
def get_log_repository() -> WateringLogRepository:
    return WateringLogRepository()


@lru_cache
def get_watering_engine() -> WateringEngine:
    return WateringEngine(
        get_weather_service(),
        LearningService(get_log_repository()),
        get_advisor_service(),
    )


def get_plant_service() -> PlantService:
    return PlantService(get_plant_repository(), get_catalog_service())


def get_watering_log_service() -> WateringLogService:
    return WateringLogService(get_plant_repository(), get_log_repository(), get_watering_engine())
