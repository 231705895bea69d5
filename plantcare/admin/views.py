"""Admin endpoints for cache maintenance."""

import logging
from typing import Dict

from fastapi import APIRouter, Depends

from plantcare.admin.dependencies import require_admin_api_key
from plantcare.ai.advisor import PlantAdvisorService, get_advisor_service
from plantcare.plants.catalog_service import PlantCatalogService, get_catalog_service
from plantcare.weather.service import WeatherService, get_weather_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin_api_key)])


@router.post("/caches/clear", response_model=Dict[str, int])
async def clear_caches(
    weather: WeatherService = Depends(get_weather_service),
    catalog: PlantCatalogService = Depends(get_catalog_service),
    advisor: PlantAdvisorService = Depends(get_advisor_service),
):
    """Drop every cache (weather, rain history, plant lookup, AI) and report removed entries."""
    removed: Dict[str, int] = {}
    removed.update(weather.clear_caches())
    removed.update(await catalog.clear_caches())
    removed.update(advisor.clear_caches())
    logger.info(f"Caches cleared: {removed}")
    return removed
