"""Plants API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from plantcare.ai.advisor import PlantAdvisorService, get_advisor_service
from plantcare.core.dependencies import (
    get_plant_service,
    get_watering_engine,
    get_watering_log_service,
)
from plantcare.core.exceptions import NotFoundException
from plantcare.plants.catalog_service import PlantCatalogService, get_catalog_service
from plantcare.plants.models import (
    CareAdvice,
    LearningInfo,
    LookupResult,
    Plant,
    PlantCreate,
    WateringConfirmation,
    WateringHistory,
    WateringLogEntry,
    WateringRecommendation,
)
from plantcare.plants.service import PlantService, WateringLogService
from plantcare.plants.watering_engine import WateringEngine

router = APIRouter(prefix="/plants", tags=["Plants"])


@router.post("", response_model=Plant, status_code=status.HTTP_201_CREATED)
async def create_plant(
    data: PlantCreate,
    user_id: Optional[str] = Query(None, description="Owner of the plant"),
    service: PlantService = Depends(get_plant_service),
):
    """
    Add a plant.

    When ``base_interval_days`` is omitted it is looked up in the plant
    catalog by name (falling back to 7 days).
    """
    return await service.create_plant(user_id, data)


@router.get("/lookup", response_model=LookupResult)
async def lookup_plant(
    name: str = Query(..., min_length=1),
    catalog: PlantCatalogService = Depends(get_catalog_service),
):
    """Resolve a free-text plant name (any language) to a base interval and type."""
    result = await catalog.suggest_interval_days(name)
    if result is None:
        raise NotFoundException(f"No catalog match for '{name}'")
    return result


@router.get("/{plant_id}", response_model=Plant)
async def get_plant(plant_id: str, service: PlantService = Depends(get_plant_service)):
    return await service.get_plant(plant_id)


@router.get("/{plant_id}/recommendation", response_model=WateringRecommendation)
async def get_recommendation(
    plant_id: str,
    service: PlantService = Depends(get_plant_service),
    engine: WateringEngine = Depends(get_watering_engine),
):
    """Days until the next watering and how much water to give."""
    plant = await service.get_plant(plant_id)
    return await engine.recommend(plant, await service.get_location(plant))


@router.get("/{plant_id}/learning", response_model=LearningInfo)
async def get_learning_info(
    plant_id: str,
    service: PlantService = Depends(get_plant_service),
    engine: WateringEngine = Depends(get_watering_engine),
):
    """The factors behind the current interval, including learned history."""
    plant = await service.get_plant(plant_id)
    return await engine.learning_info(plant, await service.get_location(plant))


@router.post("/{plant_id}/watered", response_model=WateringLogEntry, status_code=status.HTTP_201_CREATED)
async def confirm_watering(
    plant_id: str,
    data: Optional[WateringConfirmation] = None,
    service: PlantService = Depends(get_plant_service),
    logs: WateringLogService = Depends(get_watering_log_service),
):
    plant = await service.get_plant(plant_id)
    location = await service.get_location(plant)
    return await logs.record_watering(plant, location, data.watered_at if data else None)


@router.get("/{plant_id}/history", response_model=WateringHistory)
async def get_watering_history(
    plant_id: str,
    month: Optional[str] = Query(None, description="Calendar month as YYYY-MM (default: current)"),
    service: PlantService = Depends(get_plant_service),
    logs: WateringLogService = Depends(get_watering_log_service),
):
    """Waterings logged in one month, with the lifetime count and average interval."""
    plant = await service.get_plant(plant_id)
    return await logs.month_history(plant, month)


@router.get("/{plant_id}/care-advice", response_model=CareAdvice)
async def get_care_advice(
    plant_id: str,
    service: PlantService = Depends(get_plant_service),
    engine: WateringEngine = Depends(get_watering_engine),
    advisor: PlantAdvisorService = Depends(get_advisor_service),
):
    """AI care tips for the next watering (404 when the advisor has nothing to say)."""
    plant = await service.get_plant(plant_id)
    recommendation = await engine.recommend(plant, await service.get_location(plant))
    advice = await advisor.suggest_care_advice(plant, recommendation.interval_days)
    if advice is None:
        raise NotFoundException("Care advice is unavailable right now")
    return advice
