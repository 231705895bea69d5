"""Plant-related models and schemas."""

from datetime import date, datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class PlantPlacement(str, Enum):
    INDOOR = "INDOOR"
    OUTDOOR = "OUTDOOR"


class PlantType(str, Enum):
    """Plant physiology class; each carries a share of pot volume per watering."""
    SUCCULENT = "SUCCULENT"
    TROPICAL = "TROPICAL"
    FERN = "FERN"
    CONIFER = "CONIFER"
    DEFAULT = "DEFAULT"

    @property
    def label(self) -> str:
        return PLANT_TYPE_LABELS[self]

    @property
    def min_water_percent(self) -> float:
        return PLANT_TYPE_WATER_RANGE[self][0]

    @property
    def max_water_percent(self) -> float:
        return PLANT_TYPE_WATER_RANGE[self][1]

    @property
    def mid_water_percent(self) -> float:
        low, high = PLANT_TYPE_WATER_RANGE[self]
        return (low + high) / 2.0

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlantType":
        """Lenient parse; anything unknown maps to DEFAULT."""
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return cls.DEFAULT


PLANT_TYPE_LABELS = {
    PlantType.SUCCULENT: "Суккулент",
    PlantType.TROPICAL: "Тропическое",
    PlantType.FERN: "Папоротник",
    PlantType.CONIFER: "Хвойное",
    PlantType.DEFAULT: "Обычное",
}

# Share of pot volume per watering: (min, max)
PLANT_TYPE_WATER_RANGE = {
    PlantType.SUCCULENT: (0.10, 0.12),
    PlantType.TROPICAL: (0.18, 0.20),
    PlantType.FERN: (0.15, 0.18),
    PlantType.CONIFER: (0.10, 0.14),
    PlantType.DEFAULT: (0.12, 0.16),
}


class SoilType(str, Enum):
    SANDY = "SANDY"
    LOAMY = "LOAMY"
    CLAY = "CLAY"


class SunExposure(str, Enum):
    FULL_SUN = "FULL_SUN"
    PARTIAL_SHADE = "PARTIAL_SHADE"
    SHADE = "SHADE"


class Plant(BaseModel):
    """A plant as the engine sees it (read-only)."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    name: str
    placement: PlantPlacement = PlantPlacement.INDOOR
    pot_volume_liters: float = Field(default=0.0, ge=0)
    outdoor_area_m2: Optional[float] = Field(default=None, ge=0)
    base_interval_days: int = Field(default=7, ge=1)
    type: PlantType = PlantType.DEFAULT
    soil_type: Optional[SoilType] = None
    sun_exposure: Optional[SunExposure] = None
    mulched: Optional[bool] = None
    perennial: Optional[bool] = None
    winter_dormancy_enabled: Optional[bool] = None
    last_watered_date: Optional[date] = None
    last_reminder_date: Optional[date] = None
    lookup_source: Optional[str] = None
    lookup_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_outdoor(self) -> bool:
        return self.placement == PlantPlacement.OUTDOOR


class PlantCreate(BaseModel):
    """Schema to add a plant; base interval/type are looked up when omitted."""
    name: str = Field(..., min_length=1)
    placement: PlantPlacement = PlantPlacement.INDOOR
    pot_volume_liters: float = Field(default=0.0, ge=0)
    outdoor_area_m2: Optional[float] = Field(default=None, ge=0)
    base_interval_days: Optional[int] = Field(default=None, ge=1)
    type: Optional[PlantType] = None
    soil_type: Optional[SoilType] = None
    sun_exposure: Optional[SunExposure] = None
    mulched: Optional[bool] = None
    perennial: Optional[bool] = None
    winter_dormancy_enabled: Optional[bool] = None


class Location(BaseModel):
    """Where a plant's owner lives; coordinates take priority over the city name."""
    city: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not (self.city or "").strip() and (self.lat is None or self.lon is None)


class WateringLogEntry(BaseModel):
    plant_id: str
    watered_at: date
    recommended_interval_days: Optional[float] = None
    recommended_water_liters: Optional[float] = None
    temperature_c: Optional[float] = None
    humidity_percent: Optional[float] = None
    created_at: Optional[datetime] = None


class LookupResult(BaseModel):
    """Outcome of resolving a free-text plant name."""
    display_name: str
    base_interval_days: int = Field(..., ge=1, le=30)
    source: str
    suggested_type: PlantType = PlantType.DEFAULT


class CareAdvice(BaseModel):
    watering_cycle_days: int = Field(..., ge=1, le=30)
    additives: List[str] = Field(default_factory=list)
    soil_type: str = ""
    soil_composition: List[str] = Field(default_factory=list)
    note: str = ""
    source: str


class WateringProfile(BaseModel):
    """AI fine-tuning multipliers applied on top of the deterministic model."""
    interval_factor: float = 1.0
    water_factor: float = 1.0
    source: str


class WateringRecommendation(BaseModel):
    interval_days: float
    water_liters: float


class LearningInfo(BaseModel):
    base_interval_days: float
    avg_actual_interval_days: Optional[float] = None
    smoothed_interval_days: Optional[float] = None
    season_factor: float
    weather_factor: float
    plant_factor: float
    final_interval_days: float


class WateringConfirmation(BaseModel):
    """Schema to confirm a watering; defaults to today."""
    watered_at: Optional[date] = None


class WateringHistory(BaseModel):
    """One calendar month of a plant's watering log plus lifetime stats."""
    month: str
    entries: List[WateringLogEntry] = Field(default_factory=list)
    total_waterings: int = 0
    avg_actual_interval_days: Optional[float] = None


class DuePlant(BaseModel):
    plant_id: str
    user_id: Optional[str] = None
    name: str
    due_date: date
    recommendation: WateringRecommendation
