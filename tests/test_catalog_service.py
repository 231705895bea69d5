from datetime import timedelta
from typing import List, Optional

import httpx
import pytest
from conftest import FakeProvider, make_settings

from plantcare.ai.advisor import PlantAdvisorService
from plantcare.core.cache import BackoffRegistry
from plantcare.plants.catalog_service import (
    HeuristicResolver,
    LookupQuery,
    PlantCatalogService,
    infer_plant_type,
    interval_from_type,
    map_watering_to_days,
    parse_days_from_text,
)
from plantcare.plants.lookup_cache import MemoryLookupCache
from plantcare.plants.models import LookupResult, PlantType

SPECIES_LIST = "/species-list"
SPECIES_DETAILS = "/species/details/"
TRANSLATE = "/get"
INATURALIST = "/taxa/autocomplete"
GBIF = "/species/suggest"


def catalog_for(provider: FakeProvider, clock, *, resolvers=None, **overrides) -> PlantCatalogService:
    settings = make_settings(**overrides)
    return PlantCatalogService(
        settings,
        client=provider.client(),
        advisor=PlantAdvisorService(settings, clock=clock),
        cache=MemoryLookupCache(timedelta(minutes=settings.LOOKUP_CACHE_TTL_MINUTES), clock=clock),
        backoff=BackoffRegistry(clock=clock),
        resolvers=resolvers,
        clock=clock,
    )


# ----------------------------------------------------------------------
# Parsing helpers
# ----------------------------------------------------------------------

@pytest.mark.parametrize("text, expected", [
    ("7-10", 8),
    ('"5 - 7"', 6),
    ("6–9 days", 7),
    ("every 4 days", 4),
    ("water when dry", None),
    ("", None),
    (None, None),
])
def test_parse_days_from_text(text, expected):
    assert parse_days_from_text(text) == expected


def test_watering_label_map():
    assert map_watering_to_days("Frequent") == 3
    assert map_watering_to_days("average") == 7
    assert map_watering_to_days("Minimum") == 14
    assert map_watering_to_days("None") == 21
    assert map_watering_to_days("sometimes") == 7
    assert map_watering_to_days(None) == 7


def test_type_inference_keywords():
    assert infer_plant_type("Boston fern") == PlantType.FERN
    assert infer_plant_type("Aloe vera") == PlantType.SUCCULENT
    assert infer_plant_type("Plant", "Minimum") == PlantType.SUCCULENT
    assert infer_plant_type("Swiss cheese plant", "", "monstera deliciosa") == PlantType.TROPICAL
    assert infer_plant_type("Rose") == PlantType.DEFAULT
    assert interval_from_type(PlantType.SUCCULENT) == 14
    assert interval_from_type(PlantType.FERN) == 4
    assert interval_from_type(PlantType.CONIFER) == 7


# ----------------------------------------------------------------------
# Resolution waterfall
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_blank_input_is_not_looked_up(clock):
    provider = FakeProvider()
    catalog = catalog_for(provider, clock)
    assert await catalog.suggest_interval_days("   ") is None
    assert await catalog.suggest_interval_days(None) is None
    assert provider.requests == []


@pytest.mark.asyncio
async def test_perenual_benchmark_and_cache_idempotence(clock):
    provider = FakeProvider({
        SPECIES_LIST: {"data": [{"id": 728, "common_name": "Aloe vera", "watering": "Minimum"}]},
        SPECIES_DETAILS: {"watering_general_benchmark": {"value": "\"7-10\"", "unit": "days"}},
    })
    catalog = catalog_for(provider, clock, PERENUAL_API_KEY="pk")

    first = await catalog.suggest_interval_days("Aloe Vera")
    assert first == LookupResult(
        display_name="Aloe vera",
        base_interval_days=8,
        source="Perenual",
        suggested_type=PlantType.SUCCULENT,
    )
    assert provider.requests[0].url.params["key"] == "pk"
    assert provider.requests[0].url.params["q"] == "aloe vera"
    calls = len(provider.requests)

    second = await catalog.suggest_interval_days("  aloe vera ")
    assert second == first
    assert len(provider.requests) == calls


@pytest.mark.asyncio
async def test_perenual_watering_label_when_details_have_no_benchmark(clock):
    provider = FakeProvider({
        SPECIES_LIST: {"data": [{"id": 1, "common_name": "Peace lily", "watering": "Frequent"}]},
        SPECIES_DETAILS: {"care-guides": "https://example.invalid/guide"},
    })
    catalog = catalog_for(provider, clock, PERENUAL_API_KEY="pk")

    result = await catalog.suggest_interval_days("peace lily")
    assert result.base_interval_days == 3
    assert result.suggested_type == PlantType.DEFAULT


@pytest.mark.asyncio
async def test_perenual_interval_is_clamped(clock):
    provider = FakeProvider({
        SPECIES_LIST: {"data": [{"id": 2, "common_name": "Desert rose"}]},
        SPECIES_DETAILS: {"watering_general_benchmark": {"value": "40-60"}},
    })
    catalog = catalog_for(provider, clock, PERENUAL_API_KEY="pk")
    assert (await catalog.suggest_interval_days("desert rose")).base_interval_days == 30


@pytest.mark.asyncio
async def test_rate_limit_backs_off_perenual_and_falls_through_to_gbif(clock):
    provider = FakeProvider({
        SPECIES_LIST: httpx.Response(429),
        GBIF: [{"canonicalName": "Nephrolepis exaltata", "scientificName": "Nephrolepis exaltata (L.) Schott"}],
    })
    catalog = catalog_for(provider, clock, PERENUAL_API_KEY="pk", PERENUAL_BACKOFF_MINUTES=60)

    result = await catalog.suggest_interval_days("boston fern")
    assert result.source == "GBIF"
    assert result.display_name == "Nephrolepis exaltata"
    assert result.suggested_type == PlantType.FERN
    assert result.base_interval_days == 4
    assert len(provider.calls_to(SPECIES_LIST)) == 1
    assert not catalog.backoff.is_available("perenual")

    await catalog.suggest_interval_days("lemon tree")
    assert len(provider.calls_to(SPECIES_LIST)) == 1

    clock.advance(minutes=61)
    await catalog.suggest_interval_days("fig tree")
    assert len(provider.calls_to(SPECIES_LIST)) == 2


@pytest.mark.asyncio
async def test_perenual_skipped_without_key(clock):
    provider = FakeProvider({GBIF: [{"canonicalName": "Ficus elastica"}]})
    catalog = catalog_for(provider, clock)

    result = await catalog.suggest_interval_days("rubber plant")
    assert result.source == "GBIF"
    assert result.suggested_type == PlantType.TROPICAL
    assert provider.calls_to(SPECIES_LIST) == []


@pytest.mark.asyncio
async def test_heuristic_result_is_cached(clock):
    provider = FakeProvider({GBIF: []})
    catalog = catalog_for(provider, clock)

    first = await catalog.suggest_interval_days("Golden barrel cactus")
    assert first.source == "Heuristic"
    assert first.display_name == "Golden barrel cactus"
    assert first.suggested_type == PlantType.SUCCULENT
    assert first.base_interval_days == 14
    calls = len(provider.requests)

    second = await catalog.suggest_interval_days("golden barrel cactus")
    assert second == first
    assert len(provider.requests) == calls


@pytest.mark.asyncio
async def test_miss_is_negatively_cached_until_expiry(clock):
    provider = FakeProvider({GBIF: []})
    catalog = catalog_for(provider, clock, LOOKUP_HEURISTIC_FALLBACK=False, LOOKUP_CACHE_TTL_MINUTES=60)

    assert await catalog.suggest_interval_days("zzzz") is None
    calls = len(provider.requests)
    assert calls > 0

    assert await catalog.suggest_interval_days("ZZZZ") is None
    assert len(provider.requests) == calls

    clock.advance(minutes=61)
    assert await catalog.suggest_interval_days("zzzz") is None
    assert len(provider.requests) == 2 * calls


@pytest.mark.asyncio
async def test_clear_caches(clock):
    catalog = catalog_for(FakeProvider({GBIF: []}), clock)
    await catalog.suggest_interval_days("cactus")
    await catalog.suggest_interval_days("fern")
    assert await catalog.clear_caches() == {"plant_lookup": 2}


class RecordingResolver:
    def __init__(self, name: str, result: Optional[LookupResult]):
        self.name = name
        self.result = result
        self.queries: List[LookupQuery] = []

    async def resolve(self, query: LookupQuery) -> Optional[LookupResult]:
        self.queries.append(query)
        return self.result


@pytest.mark.asyncio
async def test_first_answering_resolver_wins(clock):
    hit = LookupResult(display_name="Calathea", base_interval_days=5, source="second", suggested_type=PlantType.TROPICAL)
    first = RecordingResolver("first", None)
    second = RecordingResolver("second", hit)
    third = RecordingResolver("third", hit.model_copy(update={"source": "third"}))
    catalog = catalog_for(FakeProvider(), clock, resolvers=[first, second, third])

    assert await catalog.suggest_interval_days("Calathea") == hit
    assert len(first.queries) == 1
    assert first.queries[0].raw == "Calathea"
    assert first.queries[0].candidates == ["calathea"]
    assert len(second.queries) == 1
    assert third.queries == []


@pytest.mark.asyncio
async def test_heuristic_resolver_never_fails():
    result = await HeuristicResolver().resolve(LookupQuery(raw="Что-то", normalized="что-то"))
    assert result.source == "Heuristic"
    assert result.suggested_type == PlantType.DEFAULT
    assert result.base_interval_days == 7


# ----------------------------------------------------------------------
# Multilingual query expansion
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cyrillic_query_candidates(clock):
    provider = FakeProvider({
        TRANSLATE: {"responseData": {"translatedText": "Monstera%20deliciosa"}},
        INATURALIST: {"results": [
            {"preferred_common_name": "Монстера деликатесная", "name": "Monstera deliciosa"},
            {"preferred_common_name": "Монстера косая", "name": "Monstera adansonii"},
        ]},
    })
    catalog = catalog_for(provider, clock)

    candidates = await catalog.build_query_candidates("монстера")
    assert candidates == [
        "монстера",
        "monstera",
        "monstera deliciosa",
        "монстера деликатесная",
        "монстера косая",
    ]
    translate = provider.calls_to(TRANSLATE)[0]
    assert translate.url.params["langpair"] == "ru|en"
    inat = provider.calls_to(INATURALIST)[0]
    assert inat.url.params["locale"] == "ru"


@pytest.mark.asyncio
async def test_latin_query_is_not_expanded(clock):
    provider = FakeProvider()
    catalog = catalog_for(provider, clock)
    assert await catalog.build_query_candidates("snake plant") == ["snake plant"]
    assert provider.requests == []


@pytest.mark.asyncio
async def test_failed_expansion_providers_leave_local_candidates(clock):
    provider = FakeProvider({
        TRANSLATE: httpx.Response(500),
        INATURALIST: httpx.Response(500),
    })
    catalog = catalog_for(provider, clock)

    assert await catalog.build_query_candidates("пальма") == ["пальма", "palma"]


def test_candidates_are_decoded_and_still_encoded_cyrillic_dropped():
    candidates = []
    PlantCatalogService._add_candidate(candidates, "Snake+Plant")
    PlantCatalogService._add_candidate(candidates, "snake%20plant")
    PlantCatalogService._add_candidate(candidates, "%25D0%25BF%25D0%25B0")
    PlantCatalogService._add_candidate(candidates, "   ")
    assert candidates == ["snake plant"]


@pytest.mark.asyncio
async def test_russian_name_resolves_through_translated_candidate(clock):
    def species_list(request: httpx.Request) -> httpx.Response:
        if request.url.params["q"] == "cactus":
            return httpx.Response(200, json={"data": [{"id": 9, "common_name": "Cactus", "watering": "Minimum"}]})
        return httpx.Response(200, json={"data": []})

    provider = FakeProvider({
        SPECIES_LIST: species_list,
        SPECIES_DETAILS: {},
        TRANSLATE: {"responseData": {"translatedText": "cactus"}},
        INATURALIST: {"results": []},
    })
    catalog = catalog_for(provider, clock, PERENUAL_API_KEY="pk")

    result = await catalog.suggest_interval_days("Кактус")
    assert result.source == "Perenual"
    assert result.base_interval_days == 14
    assert result.suggested_type == PlantType.SUCCULENT
    assert [r.url.params["q"] for r in provider.calls_to(SPECIES_LIST)] == ["кактус", "cactus"]
