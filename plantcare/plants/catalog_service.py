"""Plant catalog lookup: free-text plant name -> base interval and plant type.

Resolution runs an ordered list of resolvers and stops at the first one that
answers:

1. AI advisor (structured JSON answer)
2. Perenual species catalog (skipped while backed off after 429/5xx)
3. GBIF taxonomy suggest, interval derived from the inferred type
4. Keyword heuristic on the raw input (never fails)

Before the resolvers run, a Russian name is expanded into English candidates
(dictionary, translation API, transliteration, iNaturalist aliases). The final
outcome, hit or miss, is cached under the normalized input.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import unquote

import httpx

from plantcare.ai.advisor import PlantAdvisorService, get_advisor_service
from plantcare.core.cache import BackoffRegistry, Clock, utc_now
from plantcare.core.config import Settings, get_settings
from plantcare.core.database import Database
from plantcare.core.exceptions import ProviderError
from plantcare.core.http import build_http_client, get_json
from plantcare.plants.lookup_cache import LookupCacheStore, MemoryLookupCache, MongoLookupCache
from plantcare.plants.models import LookupResult, PlantType
from plantcare.plants.query_expansion import (
    contains_cyrillic,
    dictionary_translate,
    normalize_query,
    transliterate_ru_to_en,
)

logger = logging.getLogger(__name__)

PERENUAL = "perenual"

RANGE_PATTERN = re.compile(r"(\d+)\s*[-–]\s*(\d+)")
SINGLE_PATTERN = re.compile(r"(\d+)")

WATERING_LABEL_DAYS = {
    "frequent": 3,
    "average": 7,
    "minimum": 14,
    "none": 21,
}

TYPE_INTERVAL_DAYS = {
    PlantType.SUCCULENT: 14,
    PlantType.FERN: 4,
    PlantType.TROPICAL: 7,
    PlantType.DEFAULT: 7,
}

SUCCULENT_KEYWORDS = ("cactus", "succulent", "haworthia", "aloe", "jade", "lithops", "minimum")
TROPICAL_KEYWORDS = (
    "orchid", "monstera", "philodendron", "anthurium", "dracaena",
    "ficus", "pothos", "calathea", "alocasia", "zamioculcas",
)

MAX_INATURALIST_ALIASES = 3


def infer_plant_type(*signals: str) -> PlantType:
    joined = " ".join(s for s in signals if s).lower()
    if "fern" in joined:
        return PlantType.FERN
    if any(k in joined for k in SUCCULENT_KEYWORDS):
        return PlantType.SUCCULENT
    if any(k in joined for k in TROPICAL_KEYWORDS):
        return PlantType.TROPICAL
    return PlantType.DEFAULT


def interval_from_type(plant_type: PlantType) -> int:
    return TYPE_INTERVAL_DAYS.get(plant_type, 7)


def parse_days_from_text(text: Any) -> Optional[int]:
    """"7-10 days" -> 8, "every 5 days" -> 5, no number -> None."""
    if not isinstance(text, str) or not text.strip():
        return None
    match = RANGE_PATTERN.search(text)
    if match:
        return (int(match.group(1)) + int(match.group(2))) // 2
    match = SINGLE_PATTERN.search(text)
    if match:
        return int(match.group(1))
    return None


def map_watering_to_days(watering: Any) -> int:
    label = watering.strip().lower() if isinstance(watering, str) else ""
    return WATERING_LABEL_DAYS.get(label, 7)


def clamp_days(days: int) -> int:
    return max(1, min(30, days))


@dataclass
class LookupQuery:
    raw: str
    normalized: str
    candidates: List[str] = field(default_factory=list)


class Resolver(Protocol):
    name: str

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        ...


class AdvisorResolver:
    name = "OPENROUTER"

    def __init__(self, advisor: PlantAdvisorService):
        self.advisor = advisor

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        return await self.advisor.suggest_interval(query.raw)


class PerenualResolver:
    """Species search, then the species' care details for a benchmark interval."""

    name = "PERENUAL"

    def __init__(self, settings: Settings, client: httpx.AsyncClient, backoff: BackoffRegistry):
        self.settings = settings
        self.client = client
        self.backoff = backoff

    def is_available(self) -> bool:
        return bool((self.settings.PERENUAL_API_KEY or "").strip()) and self.backoff.is_available(PERENUAL)

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        if not self.is_available():
            logger.info(f"Perenual skipped for '{query.normalized}' (no key or backoff active)")
            return None

        for candidate in query.candidates:
            try:
                item = await self._search_first_species(candidate)
            except ProviderError as e:
                logger.warning(f"Plant lookup request failed for query='{candidate}': {e}")
                if e.is_throttled:
                    minutes = max(1, self.settings.PERENUAL_BACKOFF_MINUTES)
                    self.backoff.mark_failure(PERENUAL, timedelta(minutes=minutes))
                    logger.warning(f"Perenual backoff enabled for {minutes} minutes")
                    return None
                continue
            if item is None:
                logger.info(f"Plant lookup miss for query='{candidate}'")
                continue

            species_id = item.get("id") if isinstance(item.get("id"), int) else 0
            common_name = item.get("common_name")
            common_name = common_name.strip() if isinstance(common_name, str) and common_name.strip() else query.raw
            watering = item.get("watering") if isinstance(item.get("watering"), str) else ""
            suggested_type = infer_plant_type(common_name, watering, candidate)

            benchmark = await self._fetch_benchmark_days(species_id)
            days = clamp_days(benchmark if benchmark is not None else map_watering_to_days(watering))
            logger.info(
                f"Plant lookup success. query='{candidate}', speciesId={species_id}, "
                f"commonName='{common_name}', intervalDays={days}, suggestedType={suggested_type.value}"
            )
            return LookupResult(
                display_name=common_name,
                base_interval_days=days,
                source="Perenual",
                suggested_type=suggested_type,
            )
        return None

    async def _search_first_species(self, query: str) -> Optional[Dict[str, Any]]:
        data = await get_json(
            self.client,
            f"{self.settings.PERENUAL_BASE_URL}/species-list",
            provider=PERENUAL,
            params={"key": self.settings.PERENUAL_API_KEY, "q": query},
        )
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None
        return items[0]

    async def _fetch_benchmark_days(self, species_id: int) -> Optional[int]:
        if species_id <= 0:
            return None
        try:
            details = await get_json(
                self.client,
                f"{self.settings.PERENUAL_BASE_URL}/species/details/{species_id}",
                provider=PERENUAL,
                params={"key": self.settings.PERENUAL_API_KEY},
            )
        except ProviderError as e:
            logger.warning(f"Failed to read Perenual details for speciesId={species_id}: {e}")
            return None
        if not isinstance(details, dict):
            return None

        benchmark = details.get("watering_general_benchmark")
        if isinstance(benchmark, dict):
            parsed = parse_days_from_text(benchmark.get("value"))
            if parsed is not None:
                return parsed

        guides = details.get("care-guides")
        if isinstance(guides, dict):
            return parse_days_from_text(guides.get("watering"))
        return None


class GbifResolver:
    """Taxonomy fallback: a recognised name gives a type, the type gives an interval."""

    name = "GBIF"

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        for candidate in query.candidates:
            try:
                data = await get_json(
                    self.client,
                    f"{self.settings.GBIF_BASE_URL}/species/suggest",
                    provider="gbif",
                    params={"q": candidate, "limit": 3},
                )
            except ProviderError as e:
                logger.warning(f"GBIF fallback failed for query='{candidate}': {e}")
                continue
            if not isinstance(data, list) or not data or not isinstance(data[0], dict):
                continue

            first = data[0]
            canonical = str(first.get("canonicalName") or "").strip()
            scientific = str(first.get("scientificName") or "").strip()
            display = canonical or scientific
            if not display:
                continue
            plant_type = infer_plant_type(canonical, scientific, candidate)
            interval = interval_from_type(plant_type)
            logger.info(
                f"GBIF fallback success. query='{candidate}', display='{display}', "
                f"type={plant_type.value}, interval={interval}"
            )
            return LookupResult(
                display_name=display,
                base_interval_days=interval,
                source="GBIF",
                suggested_type=plant_type,
            )
        return None


class HeuristicResolver:
    name = "HEURISTIC"

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        plant_type = infer_plant_type(query.raw)
        interval = interval_from_type(plant_type)
        logger.info(f"Fallback heuristic used for '{query.raw}': type={plant_type.value}, interval={interval}")
        return LookupResult(
            display_name=query.raw,
            base_interval_days=interval,
            source="Heuristic",
            suggested_type=plant_type,
        )


class PlantCatalogService:
    """Resolves plant names through the resolver chain with a persistent cache."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        advisor: Optional[PlantAdvisorService] = None,
        cache: Optional[LookupCacheStore] = None,
        backoff: Optional[BackoffRegistry] = None,
        resolvers: Optional[Sequence[Resolver]] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or get_settings()
        self.client = client or build_http_client(self.settings)
        self.advisor = advisor or get_advisor_service()
        self.backoff = backoff or BackoffRegistry(clock=clock)
        self.cache = cache or MemoryLookupCache(
            timedelta(minutes=max(1, self.settings.LOOKUP_CACHE_TTL_MINUTES)), clock=clock
        )
        if resolvers is None:
            resolvers = [
                AdvisorResolver(self.advisor),
                PerenualResolver(self.settings, self.client, self.backoff),
                GbifResolver(self.settings, self.client),
            ]
            if self.settings.LOOKUP_HEURISTIC_FALLBACK:
                resolvers.append(HeuristicResolver())
        self.resolvers: List[Resolver] = list(resolvers)

    async def suggest_interval_days(self, plant_name: Optional[str]) -> Optional[LookupResult]:
        """Base watering interval, display name and type for a free-text name."""
        raw = (plant_name or "").strip()
        key = normalize_query(raw)
        if not key:
            return None

        cached = await self.cache.get(key)
        if cached is not None:
            if cached.value is not None:
                r = cached.value
                logger.info(
                    f"Plant lookup resolved via CACHE: query='{key}', source='{r.source}', "
                    f"interval={r.base_interval_days}, type={r.suggested_type.value}"
                )
            else:
                logger.info(f"Plant lookup resolved via CACHE: query='{key}', source='CACHE_MISS'")
            return cached.value

        query = LookupQuery(raw=raw, normalized=key, candidates=await self.build_query_candidates(key))
        logger.info(f"Plant lookup started. input='{raw}', candidates={query.candidates}")

        for resolver in self.resolvers:
            result = await resolver.resolve(query)
            if result is None:
                continue
            await self.cache.put(key, result)
            logger.info(
                f"Plant lookup resolved via {resolver.name}: query='{key}', source='{result.source}', "
                f"interval={result.base_interval_days}, type={result.suggested_type.value}"
            )
            return result

        logger.warning(f"Plant lookup failed for input='{raw}'")
        await self.cache.put(key, None)
        return None

    async def build_query_candidates(self, normalized: str) -> List[str]:
        """Ordered, de-duplicated queries to try against English-language providers."""
        candidates: List[str] = []
        self._add_candidate(candidates, normalized)
        if contains_cyrillic(normalized):
            self._add_candidate(candidates, dictionary_translate(normalized))
            self._add_candidate(candidates, await self._translate_to_english(normalized))
            self._add_candidate(candidates, transliterate_ru_to_en(normalized))
            for alias in await self._inaturalist_aliases(normalized):
                self._add_candidate(candidates, alias)
        return candidates

    @staticmethod
    def _add_candidate(candidates: List[str], raw: Optional[str]) -> None:
        if not raw or not raw.strip():
            return
        value = normalize_query(raw.replace("+", " "))
        if "%" in value:
            value = normalize_query(unquote(value))
        # still percent-encoded Cyrillic after decoding: garbage from a provider
        if not value or "%d0" in value or "%d1" in value:
            return
        if value not in candidates:
            candidates.append(value)

    async def _translate_to_english(self, text: str) -> Optional[str]:
        try:
            data = await get_json(
                self.client,
                self.settings.TRANSLATE_BASE_URL,
                provider="translate",
                params={"q": text, "langpair": "ru|en"},
            )
        except ProviderError as e:
            logger.warning(f"Translation failed for '{text}': {e}")
            return None
        response_data = data.get("responseData") if isinstance(data, dict) else None
        translated = response_data.get("translatedText") if isinstance(response_data, dict) else None
        if not isinstance(translated, str) or not translated.strip():
            return None
        translated = translated.strip()
        if "%" in translated:
            translated = unquote(translated)
        logger.info(f"Plant query translated ru->en: '{text}' -> '{translated}'")
        return translated

    async def _inaturalist_aliases(self, text: str) -> List[str]:
        try:
            data = await get_json(
                self.client,
                f"{self.settings.INATURALIST_BASE_URL}/taxa/autocomplete",
                provider="inaturalist",
                params={"q": text, "locale": "ru", "all_names": "true", "per_page": 3},
            )
        except ProviderError as e:
            logger.warning(f"iNaturalist request failed for '{text}': {e}")
            return []
        items = data.get("results") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []

        aliases: List[str] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            for field_name in ("preferred_common_name", "name"):
                value = str(item.get(field_name) or "").strip()
                if value and value not in aliases:
                    aliases.append(value)
        aliases = aliases[:MAX_INATURALIST_ALIASES]
        if aliases:
            logger.info(f"iNaturalist aliases for '{text}': {aliases}")
        return aliases

    async def clear_caches(self) -> Dict[str, int]:
        return {"plant_lookup": await self.cache.clear()}


@lru_cache
def get_catalog_service() -> PlantCatalogService:
    settings = get_settings()
    cache = None
    if Database.is_connected():
        cache = MongoLookupCache(timedelta(minutes=max(1, settings.LOOKUP_CACHE_TTL_MINUTES)))
    return PlantCatalogService(settings, cache=cache)
