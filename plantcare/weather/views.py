"""Weather API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from plantcare.core.exceptions import BadRequestException, NotFoundException
from plantcare.weather.models import CityOption, RainTotals, WeatherSample
from plantcare.weather.service import WeatherService, get_weather_service

router = APIRouter(prefix="/weather", tags=["Weather"])


def _require_location(city: Optional[str], lat: Optional[float], lon: Optional[float]) -> None:
    if not (city or "").strip() and (lat is None or lon is None):
        raise BadRequestException("Provide a city or both lat and lon")


@router.get("/current", response_model=WeatherSample)
async def get_current_weather(
    city: Optional[str] = None,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    service: WeatherService = Depends(get_weather_service),
):
    """Current conditions for coordinates (preferred) or a city name."""
    _require_location(city, lat, lon)
    sample = await service.get_current(city, lat, lon)
    if sample is None:
        raise NotFoundException("Weather is unavailable for this location")
    return sample


@router.get("/rain", response_model=RainTotals)
async def get_accumulated_rain(
    city: Optional[str] = None,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    hours: int = Query(24, ge=0, le=72),
    service: WeatherService = Depends(get_weather_service),
):
    """Precipitation recorded for the location over the last ``hours``."""
    _require_location(city, lat, lon)
    return RainTotals(hours=hours, rain_mm=service.accumulated_rain(city, lat, lon, hours=hours))


@router.get("/cities", response_model=List[CityOption])
async def search_cities(
    q: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=8),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.resolve_city_options(q, limit)


@router.get("/reverse", response_model=CityOption)
async def reverse_geocode(
    lat: float,
    lon: float,
    service: WeatherService = Depends(get_weather_service),
):
    option = await service.resolve_city_by_coordinates(lat, lon)
    if option is None:
        raise NotFoundException("No place found for these coordinates")
    return option
