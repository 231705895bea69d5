"""Watering recommendation engine.

A deterministic model turns a plant, the current weather, recent rainfall and
the plant's own watering rhythm into ``(interval_days, water_liters)``. An
optional AI watering profile can nudge both values; the model never depends on
it.

The pure functions below hold all the arithmetic. ``WateringEngine`` only
gathers inputs from the weather, learning and AI services and calls
``compute_recommendation``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from plantcare.ai.advisor import PlantAdvisorService
from plantcare.core.cache import utc_now
from plantcare.core.config import Settings, get_settings
from plantcare.plants.learning import LearningService
from plantcare.plants.models import (
    LearningInfo,
    Location,
    Plant,
    PlantType,
    SoilType,
    SunExposure,
    WateringProfile,
    WateringRecommendation,
)
from plantcare.weather.models import WeatherSample
from plantcare.weather.service import WeatherService

logger = logging.getLogger(__name__)

MIN_INTERVAL_DAYS = 1.0
MAX_INTERVAL_DAYS = 60.0
DORMANCY_INTERVAL_DAYS = 90.0
HEAVY_RAIN_MIN_INTERVAL_DAYS = 2.0
MODERATE_RAIN_INTERVAL_FACTOR = 1.2

SUMMER_MONTHS = {6, 7, 8}
WINTER_MONTHS = {12, 1, 2}

HOT_TEMPERATURE_C = 28.0
COLD_TEMPERATURE_C = 10.0
DRY_HUMIDITY_PERCENT = 40.0
HUMID_HUMIDITY_PERCENT = 70.0

SMALL_POT_LITERS = 1.5
LARGE_POT_LITERS = 3.0
SMALL_BED_M2 = 2.0
LARGE_BED_M2 = 10.0
MULCH_FACTOR = 1.1

SOIL_FACTORS = {
    SoilType.SANDY: 0.85,
    SoilType.LOAMY: 1.0,
    SoilType.CLAY: 1.15,
}

SUN_FACTORS = {
    SunExposure.FULL_SUN: 0.85,
    SunExposure.PARTIAL_SHADE: 1.0,
    SunExposure.SHADE: 1.12,
}

LITERS_PER_M2 = {
    PlantType.SUCCULENT: 2.0,
    PlantType.TROPICAL: 6.0,
    PlantType.FERN: 5.0,
    PlantType.CONIFER: 3.5,
    PlantType.DEFAULT: 4.0,
}

# Floors and ceilings for the water volume
OUTDOOR_MIN_LITERS = 0.5
OUTDOOR_MAX_LITERS = 25.0
OUTDOOR_FLOOR_SHARE = 0.35
INDOOR_MIN_LITERS = 0.12
INDOOR_MAX_LITERS = 3.0
INDOOR_FLOOR_SHARE = 0.85
DEFAULT_AREA_M2 = 1.0
DEFAULT_POT_LITERS = 1.5


@dataclass(frozen=True)
class RainThresholds:
    heavy_24h_mm: float = 8.0
    heavy_72h_mm: float = 16.0
    moderate_24h_mm: float = 4.0
    moderate_72h_mm: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RainThresholds":
        return cls(
            heavy_24h_mm=settings.RAIN_HEAVY_24H_MM,
            heavy_72h_mm=settings.RAIN_HEAVY_72H_MM,
            moderate_24h_mm=settings.RAIN_MODERATE_24H_MM,
            moderate_72h_mm=settings.RAIN_MODERATE_72H_MM,
        )

    def is_heavy(self, rain_24h_mm: float, rain_72h_mm: float) -> bool:
        return rain_24h_mm >= self.heavy_24h_mm or rain_72h_mm >= self.heavy_72h_mm

    def is_moderate(self, rain_24h_mm: float, rain_72h_mm: float) -> bool:
        return rain_24h_mm >= self.moderate_24h_mm or rain_72h_mm >= self.moderate_72h_mm


def round2(value: float) -> float:
    """Round half-up to two decimals; non-finite values become 0.0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def clamp_interval(days: float) -> float:
    return max(MIN_INTERVAL_DAYS, min(MAX_INTERVAL_DAYS, days))


def season_factor(month: int) -> float:
    if month in SUMMER_MONTHS:
        return 0.8
    if month in WINTER_MONTHS:
        return 1.2
    return 1.0


def weather_factor(weather: Optional[WeatherSample]) -> float:
    """Hot or dry shortens the interval; cold or humid lengthens it."""
    if weather is None:
        return 1.0
    factor = 1.0
    if weather.temperature_c >= HOT_TEMPERATURE_C:
        factor *= 0.85
    elif weather.temperature_c <= COLD_TEMPERATURE_C:
        factor *= 1.15
    if weather.humidity_percent <= DRY_HUMIDITY_PERCENT:
        factor *= 0.9
    elif weather.humidity_percent >= HUMID_HUMIDITY_PERCENT:
        factor *= 1.1
    return factor


def _area_factor(area_m2: Optional[float]) -> float:
    if area_m2 is None:
        return 1.0
    if area_m2 < SMALL_BED_M2:
        return 0.9
    if area_m2 > LARGE_BED_M2:
        return 1.1
    return 1.0


def plant_factor(plant: Plant) -> float:
    if plant.is_outdoor:
        factor = _area_factor(plant.outdoor_area_m2)
        factor *= SOIL_FACTORS.get(plant.soil_type, 1.0)
        factor *= SUN_FACTORS.get(plant.sun_exposure, 1.0)
        if plant.mulched:
            factor *= MULCH_FACTOR
        return factor

    pot = plant.pot_volume_liters
    if pot < SMALL_POT_LITERS:
        return 0.9
    if pot > LARGE_POT_LITERS:
        return 1.1
    return 1.0


def water_weather_boost(weather: Optional[WeatherSample]) -> float:
    if weather is None:
        return 1.0
    boost = 1.0
    if weather.temperature_c >= HOT_TEMPERATURE_C:
        boost *= 1.15
    elif weather.temperature_c <= COLD_TEMPERATURE_C:
        boost *= 0.9
    if weather.humidity_percent <= DRY_HUMIDITY_PERCENT:
        boost *= 1.1
    elif weather.humidity_percent >= HUMID_HUMIDITY_PERCENT:
        boost *= 0.9
    return boost


def liters_per_m2(plant_type: PlantType) -> float:
    return LITERS_PER_M2.get(plant_type, LITERS_PER_M2[PlantType.DEFAULT])


def is_winter_dormancy_active(plant: Plant, month: int) -> bool:
    return bool(
        plant.is_outdoor
        and plant.perennial
        and plant.winter_dormancy_enabled
        and month in WINTER_MONTHS
    )


def _effective_area(plant: Plant) -> float:
    area = plant.outdoor_area_m2
    return area if area is not None and area > 0 else DEFAULT_AREA_M2


def _effective_pot(plant: Plant) -> float:
    pot = plant.pot_volume_liters
    return pot if pot > 0 else DEFAULT_POT_LITERS


def base_water_liters(plant: Plant, weather: Optional[WeatherSample]) -> float:
    """Volume before AI tuning: per square metre outdoors, share of the pot otherwise."""
    area = plant.outdoor_area_m2
    if plant.is_outdoor and area is not None and area > 0:
        liters = liters_per_m2(plant.type) * area * water_weather_boost(weather)
        return round2(max(OUTDOOR_MIN_LITERS, liters))
    return round2(plant.pot_volume_liters * plant.type.mid_water_percent)


def enforce_minimum_reasonable_water(plant: Plant, water_liters: float) -> float:
    """Raise a positive volume that is too small to matter to a sensible floor."""
    if water_liters <= 0:
        return water_liters
    if plant.is_outdoor:
        floor = max(OUTDOOR_MIN_LITERS, _effective_area(plant) * liters_per_m2(plant.type) * OUTDOOR_FLOOR_SHARE)
    else:
        floor = max(INDOOR_MIN_LITERS, _effective_pot(plant) * plant.type.min_water_percent * INDOOR_FLOOR_SHARE)
    if water_liters < floor:
        logger.info(
            f"Water volume raised to floor for plant '{plant.name}': "
            f"{water_liters:.2f} -> {floor:.2f} l"
        )
        return round2(floor)
    return round2(water_liters)


def safe_non_zero_liters(plant: Plant, water_liters: float) -> float:
    """Last guard: a watering recommendation always carries some water."""
    if water_liters > 0:
        return round2(water_liters)
    if plant.is_outdoor:
        fallback = max(OUTDOOR_MIN_LITERS, _effective_area(plant) * liters_per_m2(plant.type) * OUTDOOR_FLOOR_SHARE)
        fallback = min(OUTDOOR_MAX_LITERS, max(OUTDOOR_MIN_LITERS, fallback))
    else:
        fallback = max(INDOOR_MIN_LITERS, _effective_pot(plant) * plant.type.mid_water_percent)
        fallback = min(INDOOR_MAX_LITERS, max(INDOOR_MIN_LITERS, fallback))
    fallback = round2(fallback)
    logger.warning(f"Computed zero water for plant '{plant.name}', using fallback {fallback:.2f} l")
    return fallback


def compute_learning_info(
    plant: Plant,
    weather: Optional[WeatherSample],
    avg_actual_interval_days: Optional[float],
    smoothed_interval_days: Optional[float],
    *,
    today: date,
) -> LearningInfo:
    """The factors behind the interval, before dormancy, rain and AI adjustments."""
    base = smoothed_interval_days if smoothed_interval_days is not None else float(plant.base_interval_days)
    s_factor = season_factor(today.month)
    w_factor = weather_factor(weather)
    p_factor = plant_factor(plant)
    return LearningInfo(
        base_interval_days=float(plant.base_interval_days),
        avg_actual_interval_days=avg_actual_interval_days,
        smoothed_interval_days=smoothed_interval_days,
        season_factor=s_factor,
        weather_factor=w_factor,
        plant_factor=p_factor,
        final_interval_days=clamp_interval(base * s_factor * w_factor * p_factor),
    )


def compute_recommendation(
    plant: Plant,
    weather: Optional[WeatherSample],
    learned_interval_days: Optional[float],
    rain_24h_mm: float = 0.0,
    rain_72h_mm: float = 0.0,
    ai_profile: Optional[WateringProfile] = None,
    *,
    today: date,
    thresholds: Optional[RainThresholds] = None,
) -> WateringRecommendation:
    """
    Final interval and water volume for ``plant`` on ``today``.

    Order of application: learned interval x season x weather x plant
    (clamped), winter dormancy, rain suppression for outdoor plants, base
    water volume, AI profile, minimum floor, non-zero fallback.
    """
    thresholds = thresholds or RainThresholds()
    month = today.month
    learned = learned_interval_days if learned_interval_days is not None else float(plant.base_interval_days)
    interval = clamp_interval(learned * season_factor(month) * weather_factor(weather) * plant_factor(plant))

    if is_winter_dormancy_active(plant, month):
        return WateringRecommendation(interval_days=DORMANCY_INTERVAL_DAYS, water_liters=0.0)

    if plant.is_outdoor:
        if thresholds.is_heavy(rain_24h_mm, rain_72h_mm):
            logger.info(
                f"Heavy rain for plant '{plant.name}' (24h={rain_24h_mm:.1f} mm, 72h={rain_72h_mm:.1f} mm)"
            )
            return WateringRecommendation(
                interval_days=max(HEAVY_RAIN_MIN_INTERVAL_DAYS, interval),
                water_liters=safe_non_zero_liters(plant, 0.0),
            )
        if thresholds.is_moderate(rain_24h_mm, rain_72h_mm):
            interval = clamp_interval(interval * MODERATE_RAIN_INTERVAL_FACTOR)

    water = base_water_liters(plant, weather)

    if ai_profile is not None:
        interval = clamp_interval(interval * ai_profile.interval_factor)
        water = round2(water * ai_profile.water_factor)

    water = enforce_minimum_reasonable_water(plant, water)
    water = safe_non_zero_liters(plant, water)
    return WateringRecommendation(interval_days=interval, water_liters=water)


class WateringEngine:
    """Collects the inputs for a plant and runs the recommendation model."""

    def __init__(
        self,
        weather: WeatherService,
        learning: LearningService,
        advisor: Optional[PlantAdvisorService] = None,
        settings: Optional[Settings] = None,
    ):
        self.weather = weather
        self.learning = learning
        self.advisor = advisor
        self.settings = settings or get_settings()
        self.thresholds = RainThresholds.from_settings(self.settings)

    async def aclose(self) -> None:
        await self.weather.aclose()
        if self.advisor is not None:
            await self.advisor.aclose()

    async def current_weather(self, location: Optional[Location]) -> Optional[WeatherSample]:
        if location is None or location.is_empty:
            return None
        return await self.weather.get_current(location.city, location.lat, location.lon)

    def rain_totals(self, location: Optional[Location]) -> Tuple[float, float]:
        if location is None or location.is_empty:
            return 0.0, 0.0
        rain_24h = self.weather.accumulated_rain(location.city, location.lat, location.lon, hours=24)
        rain_72h = self.weather.accumulated_rain(location.city, location.lat, location.lon, hours=72)
        return rain_24h, rain_72h

    async def recommend(
        self,
        plant: Plant,
        location: Optional[Location] = None,
        today: Optional[date] = None,
    ) -> WateringRecommendation:
        today = today or utc_now().date()
        weather = await self.current_weather(location)
        learned = await self.learning.get_smoothed_interval(plant)
        rain_24h, rain_72h = self.rain_totals(location) if plant.is_outdoor else (0.0, 0.0)

        profile = None
        if self.advisor is not None:
            profile = await self.advisor.suggest_watering_profile(plant, weather)

        recommendation = compute_recommendation(
            plant,
            weather,
            learned,
            rain_24h,
            rain_72h,
            profile,
            today=today,
            thresholds=self.thresholds,
        )
        logger.debug(
            f"Recommendation for plant '{plant.name}': interval={recommendation.interval_days:.2f}, "
            f"water={recommendation.water_liters:.2f}, learned={learned}, profile={profile is not None}"
        )
        return recommendation

    async def learning_info(
        self,
        plant: Plant,
        location: Optional[Location] = None,
        today: Optional[date] = None,
    ) -> LearningInfo:
        today = today or utc_now().date()
        weather = await self.current_weather(location)
        return compute_learning_info(
            plant,
            weather,
            await self.learning.get_average_interval(plant),
            await self.learning.get_smoothed_interval(plant),
            today=today,
        )
