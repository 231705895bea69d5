"""Weather service using OpenWeatherMap API.

Current conditions are cached per location for a short TTL. Every fresh fetch
also records the hourly precipitation in a rolling per-location buffer, which
is what the watering engine sums to decide whether recent rain has done the
watering already.
"""

import logging
import threading
from collections import deque
from datetime import timedelta
from functools import lru_cache
from typing import Any, Deque, Dict, List, Optional

import httpx

from plantcare.core.cache import Clock, TTLCache, utc_now
from plantcare.core.config import Settings, get_settings
from plantcare.core.exceptions import ProviderError
from plantcare.core.http import build_http_client, get_json
from plantcare.plants.query_expansion import capitalize_words, normalize_query, transliterate_ru_to_en
from plantcare.weather.models import CityOption, RainSample, WeatherSample

logger = logging.getLogger(__name__)

PROVIDER = "openweather"

# Spellings OpenWeatherMap does not resolve on its own
CITY_ALIASES = {
    "санкт-петербург": "Saint Petersburg",
    "санкт петербург": "Saint Petersburg",
    "питер": "Saint Petersburg",
    "спб": "Saint Petersburg",
    "москва": "Moscow",
    "мск": "Moscow",
    "екатеринбург": "Yekaterinburg",
    "нижний новгород": "Nizhny Novgorod",
}


def _as_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _display_name(node: Dict[str, Any]) -> str:
    parts = [str(node.get(k) or "").strip() for k in ("name", "state", "country")]
    return ", ".join(p for p in parts if p)


class RainAccumulator:
    """Per-location ring buffer of precipitation samples."""

    def __init__(self, *, retention_hours: int = 72, clock: Clock = utc_now):
        self.retention = timedelta(hours=retention_hours)
        self._clock = clock
        self._samples: Dict[str, Deque[RainSample]] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str) -> None:
        samples = self._samples.get(key)
        if not samples:
            return
        cutoff = self._clock() - self.retention
        while samples and samples[0].at < cutoff:
            samples.popleft()

    def append(self, key: str, mm_per_hour: float) -> None:
        sample = RainSample(at=self._clock(), mm_per_hour=mm_per_hour)
        with self._lock:
            self._samples.setdefault(key, deque()).append(sample)
            self._prune(key)

    def total(self, key: str, hours: int) -> float:
        if hours <= 0:
            return 0.0
        cutoff = self._clock() - timedelta(hours=hours)
        with self._lock:
            self._prune(key)
            samples = list(self._samples.get(key) or ())
        return sum(max(0.0, s.mm_per_hour) for s in samples if s.at > cutoff)

    def clear(self) -> int:
        with self._lock:
            count = sum(len(v) for v in self._samples.values())
            self._samples.clear()
            return count


class WeatherService:
    """Fetches current weather, geocodes cities and tracks recent rainfall."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        rain: Optional[RainAccumulator] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or get_settings()
        self.client = client or build_http_client(self.settings)
        self.cache: TTLCache[WeatherSample] = TTLCache(
            timedelta(minutes=max(1, self.settings.WEATHER_CACHE_TTL_MINUTES)), clock=clock
        )
        self.rain = rain or RainAccumulator(retention_hours=self.settings.RAIN_HISTORY_HOURS, clock=clock)
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool((self.settings.OPENWEATHER_API_KEY or "").strip())

    @staticmethod
    def cache_key(city: Optional[str], lat: Optional[float] = None, lon: Optional[float] = None) -> str:
        if lat is not None and lon is not None:
            return f"geo:{lat:.5f}:{lon:.5f}"
        return f"city:{normalize_query(city)}"

    async def get_current(
        self,
        city: Optional[str],
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> Optional[WeatherSample]:
        """Current weather for coordinates (preferred) or a city name."""
        if not self.enabled:
            return None

        key = self.cache_key(city, lat, lon)
        cached = self.cache.get(key)
        if cached is not None and cached.value is not None:
            return cached.value

        sample = await self._request_by_coords(lat, lon)
        if sample is None:
            sample = await self._request_by_city_candidates(city)
        if sample is None:
            logger.warning(f"Weather request failed for city='{city}' lat={lat} lon={lon}")
            return None

        self.rain.append(key, sample.precipitation_mm_per_hour)
        self.cache.put(key, sample)
        return sample

    def accumulated_rain(
        self,
        city: Optional[str],
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        hours: int = 24,
    ) -> float:
        """Millimetres of precipitation recorded for the location over ``hours``."""
        return self.rain.total(self.cache_key(city, lat, lon), hours)

    async def resolve_city_options(self, query: str, limit: int = 5) -> List[CityOption]:
        """Geocode a city name into up to ``limit`` distinct candidates."""
        if not (query or "").strip() or not self.enabled:
            return []
        limit = max(1, min(8, limit))

        found: List[CityOption] = []
        for candidate in self.city_candidates(query):
            if len(found) >= limit:
                break
            found.extend(await self._fetch_geo_candidates(candidate, limit - len(found)))

        seen = set()
        unique: List[CityOption] = []
        for option in found:
            ident = f"{option.lat:.4f}:{option.lon:.4f}"
            if ident in seen:
                continue
            seen.add(ident)
            unique.append(option)
            if len(unique) >= limit:
                break
        return unique

    async def resolve_city_by_coordinates(self, lat: Optional[float], lon: Optional[float]) -> Optional[CityOption]:
        """Reverse-geocode coordinates into a named place."""
        if lat is None or lon is None or not self.enabled:
            return None
        params = {"lat": f"{lat:.6f}", "lon": f"{lon:.6f}", "limit": 1, "appid": self.settings.OPENWEATHER_API_KEY}
        try:
            data = await get_json(self.client, self.settings.OPENWEATHER_GEO_REVERSE_URL, provider=PROVIDER, params=params)
        except ProviderError as e:
            logger.warning(f"Reverse geocoding failed for lat={lat} lon={lon}: {e}")
            return None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        node = data[0]
        if not str(node.get("name") or "").strip():
            return None
        return CityOption(
            display_name=_display_name(node),
            lat=lat,
            lon=lon,
            country_code=str(node.get("country") or "").strip(),
        )

    def city_candidates(self, city: str) -> List[str]:
        """Original spelling, a known alias and a transliteration, each also country-qualified."""
        original = (city or "").strip()
        if not original:
            return []
        normalized = normalize_query(original)
        country = (self.settings.WEATHER_COUNTRY_CODE or "").strip()

        values: List[str] = []

        def add(value: str) -> None:
            if not value:
                return
            for v in (value, f"{value},{country}" if country else ""):
                if v and v not in values:
                    values.append(v)

        add(original)
        add(CITY_ALIASES.get(normalized, ""))
        add(capitalize_words(transliterate_ru_to_en(normalized).replace("-", " ")))
        return values

    def clear_caches(self) -> Dict[str, int]:
        return {"weather": self.cache.clear(), "rain_samples": self.rain.clear()}

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request_by_coords(self, lat: Optional[float], lon: Optional[float]) -> Optional[WeatherSample]:
        if lat is None or lon is None:
            return None
        params = {"lat": f"{lat:.6f}", "lon": f"{lon:.6f}"}
        return await self._execute(params, "lat/lon")

    async def _request_by_city_candidates(self, city: Optional[str]) -> Optional[WeatherSample]:
        for candidate in self.city_candidates(city or ""):
            sample = await self._execute({"q": candidate}, candidate)
            if sample is not None:
                return sample
        return None

    async def _execute(self, params: Dict[str, Any], debug_name: str) -> Optional[WeatherSample]:
        query = dict(params, appid=self.settings.OPENWEATHER_API_KEY, units=self.settings.OPENWEATHER_UNITS)
        try:
            data = await get_json(self.client, self.settings.OPENWEATHER_BASE_URL, provider=PROVIDER, params=query)
        except ProviderError as e:
            if e.status_code is None or e.status_code >= 500:
                logger.warning(f"Weather request error for '{debug_name}': {e}")
            return None
        return self.parse_current(data, fetched_at=self._clock())

    @staticmethod
    def parse_current(data: Any, fetched_at=None) -> Optional[WeatherSample]:
        if not isinstance(data, dict) or not isinstance(data.get("main"), dict):
            return None
        main = data["main"]
        rain = data.get("rain") if isinstance(data.get("rain"), dict) else {}
        snow = data.get("snow") if isinstance(data.get("snow"), dict) else {}
        return WeatherSample(
            temperature_c=_as_float(main.get("temp"), 0.0),
            humidity_percent=_as_float(main.get("humidity"), 0.0),
            precipitation_mm_per_hour=_as_float(rain.get("1h"), 0.0) + _as_float(snow.get("1h"), 0.0),
            fetched_at=fetched_at,
        )

    async def _fetch_geo_candidates(self, city_query: str, limit: int) -> List[CityOption]:
        params = {"q": city_query, "limit": limit, "appid": self.settings.OPENWEATHER_API_KEY}
        try:
            data = await get_json(self.client, self.settings.OPENWEATHER_GEO_URL, provider=PROVIDER, params=params)
        except ProviderError as e:
            logger.warning(f"City geocoding failed for '{city_query}': {e}")
            return []
        if not isinstance(data, list):
            return []
        options = []
        for node in data:
            if not isinstance(node, dict):
                continue
            lat = _as_float(node.get("lat"))
            lon = _as_float(node.get("lon"))
            if not str(node.get("name") or "").strip() or lat is None or lon is None:
                continue
            options.append(CityOption(
                display_name=_display_name(node),
                lat=lat,
                lon=lon,
                country_code=str(node.get("country") or "").strip(),
            ))
        return options


@lru_cache
def get_weather_service() -> WeatherService:
    """Process-wide instance so caches and rain history are shared."""
    return WeatherService()
