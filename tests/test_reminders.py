from datetime import date, datetime, timezone

import pytest
from conftest import FakeProvider, InMemoryLogs, InMemoryPlants, make_settings

from plantcare.plants.learning import LearningService
from plantcare.plants.models import Plant, WateringRecommendation
from plantcare.plants.reminders import ReminderSweep, due_date, is_due, reference_date
from plantcare.plants.watering_engine import WateringEngine
from plantcare.weather.service import WeatherService


def engine_without_providers(clock) -> WateringEngine:
    settings = make_settings()
    weather = WeatherService(settings, client=FakeProvider().client(), clock=clock)
    return WateringEngine(weather, LearningService(InMemoryLogs(), last_n=5, alpha=0.5, window=20), None, settings)


def test_due_date_uses_whole_days_of_interval():
    plant = Plant(id="p1", name="Pilea", last_watered_date=date(2024, 4, 1))
    rec = WateringRecommendation(interval_days=7.9, water_liters=0.3)

    assert due_date(plant, rec, date(2024, 4, 5)) == date(2024, 4, 8)
    assert not is_due(plant, rec, date(2024, 4, 7))
    assert is_due(plant, rec, date(2024, 4, 8))
    assert is_due(plant, rec, date(2024, 4, 20))


def test_already_reminded_today_is_not_due():
    plant = Plant(
        id="p1",
        name="Pilea",
        last_watered_date=date(2024, 4, 1),
        last_reminder_date=date(2024, 4, 10),
    )
    rec = WateringRecommendation(interval_days=3, water_liters=0.3)
    assert not is_due(plant, rec, date(2024, 4, 10))
    assert is_due(plant, rec, date(2024, 4, 11))


def test_reference_date_fallbacks():
    today = date(2024, 4, 10)
    created = Plant(name="New", created_at=datetime(2024, 4, 2, 9, 30, tzinfo=timezone.utc))
    assert reference_date(created, today) == date(2024, 4, 2)
    assert reference_date(Plant(name="Unknown"), today) == today


@pytest.mark.asyncio
async def test_sweep_marks_due_plants(clock):
    plants = InMemoryPlants([
        Plant(id="due", name="Pilea", pot_volume_liters=2.0, last_watered_date=date(2024, 4, 1)),
        Plant(id="later", name="Cactus", pot_volume_liters=2.0, base_interval_days=14, last_watered_date=date(2024, 4, 1)),
        Plant(
            id="reminded",
            name="Fern",
            pot_volume_liters=2.0,
            last_watered_date=date(2024, 4, 1),
            last_reminder_date=date(2024, 4, 8),
        ),
    ])
    sweep = ReminderSweep(plants, engine_without_providers(clock), concurrency=2)

    stats = await sweep.run(date(2024, 4, 8))
    assert stats["checked"] == 3
    assert stats["due"] == 1
    assert stats["failed"] == 0
    assert stats["plants"][0]["plant_id"] == "due"
    assert stats["plants"][0]["due_date"] == "2024-04-08"
    assert plants.reminded == {"due": date(2024, 4, 8)}


@pytest.mark.asyncio
async def test_sweep_counts_failures_and_continues(clock):
    class BrokenLocations(InMemoryPlants):
        async def get_owner_location(self, user_id):
            if user_id == "broken":
                raise RuntimeError("users collection unavailable")
            return None

    plants = BrokenLocations([
        Plant(id="a", user_id="broken", name="A", pot_volume_liters=1.0, last_watered_date=date(2024, 1, 1)),
        Plant(id="b", user_id="ok", name="B", pot_volume_liters=1.0, last_watered_date=date(2024, 1, 1)),
    ])
    stats = await ReminderSweep(plants, engine_without_providers(clock)).run(date(2024, 4, 8))

    assert stats["failed"] == 1
    assert stats["due"] == 1
    assert list(plants.reminded) == ["b"]
