"""AI plant advisor over an OpenAI-compatible chat completions API (OpenRouter).

Three call shapes share one resilience pattern:

- ``suggest_interval``: watering interval + type hint from a plant name
- ``suggest_care_advice``: cycle, additives and soil tips for a saved plant
- ``suggest_watering_profile``: multipliers that fine-tune the engine's output

Every call is optional enrichment. It is skipped when no key/model is
configured or while a backoff window is open, and any failure turns into
``None``. Parsed results (including "the model gave nothing usable") are cached
in memory; transport and status errors are not, the backoff covers those.
"""

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx
from openai import APIStatusError, AsyncOpenAI, OpenAIError

from plantcare.ai.parsing import (
    as_float,
    as_int,
    clamp,
    parse_json_object,
    preview,
    russian_only,
    take_strings,
)
from plantcare.core.cache import BackoffRegistry, Clock, TTLCache, utc_now
from plantcare.core.config import Settings, get_settings
from plantcare.core.exceptions import ProviderError
from plantcare.core.http import build_timeout
from plantcare.plants.models import CareAdvice, LookupResult, Plant, PlantType, WateringProfile
from plantcare.plants.query_expansion import normalize_query
from plantcare.weather.models import WeatherSample

logger = logging.getLogger(__name__)

PROVIDER = "openrouter"
BACKOFF_POLICY = "openrouter:policy"  # 404: model unavailable under the account's data policy
BACKOFF_HTTP = "openrouter:http"  # 429 / 5xx

PROFILE_FACTOR_MIN = 0.7
PROFILE_FACTOR_MAX = 1.3

INTERVAL_SYSTEM_PROMPT = """You estimate how often ONE houseplant should be watered.
Reply with ONLY a JSON object, no markdown and no prose, using exactly this schema:
{
  "normalized_name": "string",
  "interval_days": 7,
  "type_hint": "SUCCULENT|TROPICAL|FERN|CONIFER|DEFAULT",
  "confidence": 0.0
}
Rules:
- interval_days is an integer from 1 to 30
- confidence is a number from 0 to 1
- when unsure use DEFAULT and a conservative interval_days"""

CARE_SYSTEM_PROMPT = """You are a careful houseplant assistant.
Reply with ONLY a JSON object, no markdown and no prose, using exactly this schema:
{
  "watering_cycle_days": 7,
  "additives": ["string"],
  "soil_type": "string",
  "soil_composition": ["string"],
  "note": "string"
}
Rules:
- watering_cycle_days is an integer from 1 to 30
- additives: 0 to 3 short items that are safe for the next watering; empty array if none are needed
- soil_type: short recommended soil type
- soil_composition: 2 to 5 short components (e.g. торф, перлит, кора)
- note: short and practical, at most 120 characters
- additives, soil_type, soil_composition and note MUST be written in Russian"""

PROFILE_SYSTEM_PROMPT = """You fine-tune a deterministic plant watering model.
Reply with ONLY a JSON object, no markdown and no prose, using exactly this schema:
{
  "interval_factor": 1.0,
  "water_factor": 1.0
}
Rules:
- interval_factor multiplies the days between waterings, water_factor multiplies the volume
- both are numbers from 0.7 to 1.3; use 1.0 when the model's defaults are already right"""


class PlantAdvisorService:
    """Structured plant advice from a language model, cached and backed off."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff: Optional[BackoffRegistry] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._client: Optional[AsyncOpenAI] = None
        self.backoff = backoff or BackoffRegistry(clock=clock)
        ttl = timedelta(minutes=max(1, self.settings.AI_CARE_CACHE_TTL_MINUTES))
        self.interval_cache: TTLCache[LookupResult] = TTLCache(ttl, clock=clock)
        self.care_cache: TTLCache[CareAdvice] = TTLCache(ttl, clock=clock)
        self.profile_cache: TTLCache[WateringProfile] = TTLCache(ttl, clock=clock)

    @property
    def model(self) -> str:
        return (self.settings.OPENROUTER_MODEL or "").strip()

    @property
    def source(self) -> str:
        return f"OpenRouter:{self.model}"

    @property
    def enabled(self) -> bool:
        return bool((self.settings.OPENROUTER_API_KEY or "").strip() and self.model)

    def is_available(self) -> bool:
        return (
            self.enabled
            and self.backoff.is_available(BACKOFF_POLICY)
            and self.backoff.is_available(BACKOFF_HTTP)
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            headers = {}
            if self.settings.OPENROUTER_SITE_URL:
                headers["HTTP-Referer"] = self.settings.OPENROUTER_SITE_URL
            if self.settings.OPENROUTER_APP_NAME:
                headers["X-Title"] = self.settings.OPENROUTER_APP_NAME
            self._client = AsyncOpenAI(
                api_key=self.settings.OPENROUTER_API_KEY,
                base_url=self.settings.OPENROUTER_BASE_URL,
                timeout=build_timeout(self.settings),
                max_retries=0,
                default_headers=headers or None,
                http_client=self._http_client,
            )
        return self._client

    # ------------------------------------------------------------------
    # Interval suggestion
    # ------------------------------------------------------------------

    async def suggest_interval(self, plant_name: str) -> Optional[LookupResult]:
        """Watering interval and type hint for a free-text plant name."""
        name = (plant_name or "").strip()
        if not name or not self.is_available():
            return None

        key = normalize_query(name)
        cached = self.interval_cache.get(key)
        if cached is not None:
            return cached.value

        try:
            content = await self._complete(INTERVAL_SYSTEM_PROMPT, f"Plant name: {name}")
        except ProviderError as e:
            logger.warning(f"OpenRouter suggestion failed for '{name}': {e}")
            return None

        result = self._parse_interval(content, name)
        self.interval_cache.put(key, result)
        if result is None:
            logger.warning(f"OpenRouter returned no usable interval. input='{name}', rawPreview='{preview(content)}'")
        else:
            logger.info(
                f"OpenRouter interval success. input='{name}', normalized='{result.display_name}', "
                f"interval={result.base_interval_days}, type={result.suggested_type.value}"
            )
        return result

    def _parse_interval(self, content: str, plant_name: str) -> Optional[LookupResult]:
        data = parse_json_object(content)
        if data is None:
            return None
        interval = as_int(data.get("interval_days"), 0)
        if interval <= 0:
            return None
        normalized = data.get("normalized_name")
        normalized = normalized.strip() if isinstance(normalized, str) and normalized.strip() else plant_name
        type_hint = data.get("type_hint") if isinstance(data.get("type_hint"), str) else ""
        return LookupResult(
            display_name=normalized,
            base_interval_days=clamp(interval, 1, 30),
            source=self.source,
            suggested_type=PlantType.parse(type_hint),
        )

    # ------------------------------------------------------------------
    # Care advice
    # ------------------------------------------------------------------

    @staticmethod
    def care_cache_key(plant: Plant, interval_days: float) -> str:
        return "|".join([
            plant.name.strip().lower(),
            plant.type.value,
            f"{plant.pot_volume_liters}",
            f"{round(interval_days, 1)}",
        ])

    async def suggest_care_advice(self, plant: Plant, interval_days: float) -> Optional[CareAdvice]:
        """Short Russian care tips for the next watering of ``plant``."""
        if plant is None or not (plant.name or "").strip() or not self.is_available():
            return None

        key = self.care_cache_key(plant, interval_days)
        cached = self.care_cache.get(key)
        if cached is not None:
            return cached.value

        user_prompt = (
            f"Название растения: {plant.name}\n"
            f"Тип растения: {plant.type.value}\n"
            f"Объем горшка (л): {plant.pot_volume_liters:.2f}\n"
            f"Текущий рекомендуемый интервал (дни): {interval_days:.1f}\n"
            "Цель: предложи практичный цикл следующего полива и необязательные безопасные добавки.\n"
            "Ответ должен быть на русском языке."
        )
        try:
            content = await self._complete(CARE_SYSTEM_PROMPT, user_prompt)
        except ProviderError as e:
            logger.warning(f"OpenRouter care advice failed for '{plant.name}': {e}")
            return None

        advice = self._parse_care_advice(content, interval_days)
        self.care_cache.put(key, advice)
        if advice is not None:
            logger.info(
                f"OpenRouter care advice success. plant='{plant.name}', cycle={advice.watering_cycle_days}, "
                f"additives={advice.additives}, soilType='{advice.soil_type}'"
            )
        return advice

    def _parse_care_advice(self, content: str, interval_days: float) -> Optional[CareAdvice]:
        data = parse_json_object(content)
        if data is None:
            return None
        cycle = as_int(data.get("watering_cycle_days"), int(round(interval_days)))
        return CareAdvice(
            watering_cycle_days=clamp(cycle, 1, 30),
            additives=take_strings(data.get("additives"), 3),
            soil_type=russian_only(data.get("soil_type")),
            soil_composition=take_strings(data.get("soil_composition"), 5, russian=True),
            note=russian_only(data.get("note")),
            source=self.source,
        )

    # ------------------------------------------------------------------
    # Watering profile
    # ------------------------------------------------------------------

    @staticmethod
    def profile_cache_key(plant: Plant, weather: Optional[WeatherSample]) -> str:
        parts = [
            plant.name.strip().lower(),
            plant.type.value,
            plant.placement.value,
            f"{plant.pot_volume_liters}",
            f"{plant.outdoor_area_m2 or 0}",
        ]
        if weather is not None:
            # 5 degree / 10 percent buckets keep the key stable between fetches
            parts.append(f"t{int(weather.temperature_c // 5) * 5}")
            parts.append(f"h{int(weather.humidity_percent // 10) * 10}")
        return "|".join(parts)

    async def suggest_watering_profile(
        self,
        plant: Plant,
        weather: Optional[WeatherSample],
    ) -> Optional[WateringProfile]:
        """Interval/water multipliers for the current plant and conditions."""
        if not self.settings.AI_WATERING_PROFILE_ENABLED or not self.is_available():
            return None

        key = self.profile_cache_key(plant, weather)
        cached = self.profile_cache.get(key)
        if cached is not None:
            return cached.value

        lines = [
            f"Plant: {plant.name}",
            f"Type: {plant.type.value}",
            f"Placement: {plant.placement.value}",
        ]
        if plant.is_outdoor:
            lines.append(f"Bed area (m2): {plant.outdoor_area_m2 or 0:.2f}")
        else:
            lines.append(f"Pot volume (l): {plant.pot_volume_liters:.2f}")
        if weather is not None:
            lines.append(f"Temperature (C): {weather.temperature_c:.1f}")
            lines.append(f"Humidity (%): {weather.humidity_percent:.0f}")
        try:
            content = await self._complete(PROFILE_SYSTEM_PROMPT, "\n".join(lines))
        except ProviderError as e:
            logger.warning(f"OpenRouter watering profile failed for '{plant.name}': {e}")
            return None

        profile = self._parse_profile(content)
        self.profile_cache.put(key, profile)
        return profile

    def _parse_profile(self, content: str) -> Optional[WateringProfile]:
        data = parse_json_object(content)
        if data is None:
            return None
        interval_factor = as_float(data.get("interval_factor"))
        water_factor = as_float(data.get("water_factor"))
        if interval_factor is None and water_factor is None:
            return None
        return WateringProfile(
            interval_factor=clamp(interval_factor or 1.0, PROFILE_FACTOR_MIN, PROFILE_FACTOR_MAX),
            water_factor=clamp(water_factor or 1.0, PROFILE_FACTOR_MIN, PROFILE_FACTOR_MAX),
            source=self.source,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        """One chat completion; returns the assistant text or raises ProviderError."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=0,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except APIStatusError as e:
            self._register_failure(e.status_code)
            raise ProviderError(PROVIDER, f"HTTP {e.status_code}", status_code=e.status_code) from e
        except OpenAIError as e:
            raise ProviderError(PROVIDER, f"request failed: {e!r}") from e

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content: Any = getattr(message, "content", None) if message is not None else None
        return content.strip() if isinstance(content, str) else ""

    def _register_failure(self, status_code: int) -> None:
        if status_code == 404:
            minutes = max(1, self.settings.AI_POLICY_BACKOFF_MINUTES)
            self.backoff.mark_failure(BACKOFF_POLICY, timedelta(minutes=minutes))
            logger.warning(f"OpenRouter returned 404 (model/data policy); backing off for {minutes} minutes")
        elif status_code == 429 or status_code >= 500:
            minutes = max(1, self.settings.AI_BACKOFF_MINUTES)
            self.backoff.mark_failure(BACKOFF_HTTP, timedelta(minutes=minutes))
            logger.warning(f"OpenRouter returned {status_code}; backing off for {minutes} minutes")

    def clear_caches(self) -> Dict[str, int]:
        return {
            "ai_interval": self.interval_cache.clear(),
            "ai_care_advice": self.care_cache.clear(),
            "ai_watering_profile": self.profile_cache.clear(),
        }

    async def aclose(self) -> None:
        """Close the chat client if one was opened."""
        if self._client is not None:
            await self._client.close()
            self._client = None


@lru_cache
def get_advisor_service() -> PlantAdvisorService:
    return PlantAdvisorService()
