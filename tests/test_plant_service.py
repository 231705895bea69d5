from datetime import date, timedelta

import pytest
from conftest import FakeProvider, InMemoryLogs, InMemoryPlants, log_entries, make_settings

from plantcare.ai.advisor import PlantAdvisorService
from plantcare.core.cache import BackoffRegistry
from plantcare.core.exceptions import BadRequestException, NotFoundException
from plantcare.plants.catalog_service import HeuristicResolver, PlantCatalogService
from plantcare.plants.learning import LearningService
from plantcare.plants.lookup_cache import MemoryLookupCache
from plantcare.plants.models import Location, Plant, PlantCreate, PlantType
from plantcare.plants.service import PlantService, WateringLogService
from plantcare.plants.watering_engine import WateringEngine
from plantcare.weather.service import WeatherService


def catalog_with(resolvers, clock) -> PlantCatalogService:
    settings = make_settings()
    return PlantCatalogService(
        settings,
        client=FakeProvider().client(),
        advisor=PlantAdvisorService(settings, clock=clock),
        cache=MemoryLookupCache(timedelta(days=7), clock=clock),
        backoff=BackoffRegistry(clock=clock),
        resolvers=resolvers,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_create_plant_uses_catalog_lookup(clock):
    plants = InMemoryPlants()
    service = PlantService(plants, catalog_with([HeuristicResolver()], clock))

    plant = await service.create_plant("u1", PlantCreate(name=" Echeveria succulent ", pot_volume_liters=0.8))
    assert plant.id == "p1"
    assert plant.name == "Echeveria succulent"
    assert plant.base_interval_days == 14
    assert plant.type == PlantType.SUCCULENT
    assert plant.lookup_source == "Heuristic"
    assert plant.lookup_at is not None
    assert plants.plants["p1"].user_id == "u1"


@pytest.mark.asyncio
async def test_explicit_type_wins_over_lookup_hint(clock):
    service = PlantService(InMemoryPlants(), catalog_with([HeuristicResolver()], clock))
    plant = await service.create_plant(None, PlantCreate(name="cactus", type=PlantType.CONIFER))
    assert plant.base_interval_days == 14
    assert plant.type == PlantType.CONIFER


@pytest.mark.asyncio
async def test_failed_lookup_falls_back_to_a_week(clock):
    service = PlantService(InMemoryPlants(), catalog_with([], clock))
    plant = await service.create_plant(None, PlantCreate(name="Something"))
    assert plant.base_interval_days == 7
    assert plant.type == PlantType.DEFAULT
    assert plant.lookup_source == "Fallback"


@pytest.mark.asyncio
async def test_given_interval_skips_lookup(clock):
    service = PlantService(InMemoryPlants(), catalog_with([HeuristicResolver()], clock))
    plant = await service.create_plant(None, PlantCreate(name="cactus", base_interval_days=3))
    assert plant.base_interval_days == 3
    assert plant.type == PlantType.DEFAULT
    assert plant.lookup_source is None


@pytest.mark.asyncio
async def test_get_plant_not_found(clock):
    service = PlantService(InMemoryPlants(), catalog_with([], clock))
    with pytest.raises(NotFoundException):
        await service.get_plant("missing")


@pytest.mark.asyncio
async def test_record_watering_logs_recommendation_and_weather(clock):
    provider = FakeProvider({"/data/2.5/weather": {"main": {"temp": 24, "humidity": 55}}})
    settings = make_settings(OPENWEATHER_API_KEY="key")
    logs = InMemoryLogs()
    engine = WateringEngine(
        WeatherService(settings, client=provider.client(), clock=clock),
        LearningService(logs, last_n=5, alpha=0.5, window=20),
        None,
        settings,
    )
    plants = InMemoryPlants()
    plant = await PlantService(plants, catalog_with([], clock)).create_plant(
        "u1", PlantCreate(name="Pilea", pot_volume_liters=2.0, base_interval_days=7)
    )

    entry = await WateringLogService(plants, logs, engine).record_watering(
        plant, Location(city="Kazan"), date(2024, 4, 15)
    )
    assert entry.plant_id == plant.id
    assert entry.watered_at == date(2024, 4, 15)
    assert entry.recommended_interval_days == pytest.approx(7.0)
    assert entry.recommended_water_liters == 0.28
    assert entry.temperature_c == 24
    assert entry.humidity_percent == 55
    assert plants.watered[plant.id] == date(2024, 4, 15)
    assert len(logs.entries) == 1
    assert len(provider.requests) == 1


def history_service(logs: InMemoryLogs, clock) -> WateringLogService:
    settings = make_settings()
    engine = WateringEngine(
        WeatherService(settings, client=FakeProvider().client(), clock=clock),
        LearningService(logs, last_n=5, alpha=0.5, window=20),
        None,
        settings,
    )
    return WateringLogService(InMemoryPlants(), logs, engine)


@pytest.mark.asyncio
async def test_month_history_lists_the_month_and_lifetime_stats(clock):
    logs = InMemoryLogs(
        log_entries("p1", date(2024, 4, 30), date(2024, 3, 28), date(2024, 4, 10), date(2024, 5, 2), date(2024, 4, 3))
        + log_entries("other", date(2024, 4, 5))
    )
    history = await history_service(logs, clock).month_history(Plant(id="p1", name="Pilea"), "2024-04")

    assert history.month == "2024-04"
    assert [e.watered_at for e in history.entries] == [date(2024, 4, 3), date(2024, 4, 10), date(2024, 4, 30)]
    assert history.total_waterings == 5
    # gaps 2, 20, 7, 6
    assert history.avg_actual_interval_days == pytest.approx(8.75)


@pytest.mark.asyncio
async def test_month_history_includes_last_day_of_february(clock):
    logs = InMemoryLogs(log_entries("p1", date(2024, 2, 1), date(2024, 2, 29), date(2024, 3, 1)))
    history = await history_service(logs, clock).month_history(Plant(id="p1", name="Pilea"), " 2024-02 ")

    assert [e.watered_at for e in history.entries] == [date(2024, 2, 1), date(2024, 2, 29)]
    assert history.total_waterings == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("month", ["2024-13", "April", "2024/04"])
async def test_month_history_rejects_bad_month(clock, month):
    with pytest.raises(BadRequestException):
        await history_service(InMemoryLogs(), clock).month_history(Plant(id="p1", name="Pilea"), month)
