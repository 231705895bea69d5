"""Weather-related models and schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class WeatherSample(BaseModel):
    """Current conditions at a location."""
    temperature_c: float
    humidity_percent: float
    precipitation_mm_per_hour: float = 0.0  # rain + snow over the last hour
    fetched_at: Optional[datetime] = None


class RainSample(BaseModel):
    at: datetime
    mm_per_hour: float


class CityOption(BaseModel):
    """A geocoding candidate shown to the user for disambiguation."""
    display_name: str
    lat: float
    lon: float
    country_code: str = ""


class RainTotals(BaseModel):
    """Response schema for the accumulated-rain endpoint."""
    hours: int = Field(..., ge=0)
    rain_mm: float
