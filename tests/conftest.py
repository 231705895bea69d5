"""Shared fixtures: fake clock, in-memory repositories and fake HTTP providers."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from plantcare.core.config import Settings
from plantcare.plants.models import Location, Plant, WateringLogEntry

Responder = Union[Dict[str, Any], List[Any], httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider:
    """
    Routes requests by URL path substring to canned responses.

    A responder is a JSON body (200), an ``httpx.Response`` or a callable
    taking the request. Unrouted requests get a 404.
    """

    def __init__(self, routes: Optional[Dict[str, Responder]] = None):
        self.routes: Dict[str, Responder] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for fragment, responder in self.routes.items():
            if fragment in request.url.path:
                if callable(responder):
                    return responder(request)
                if isinstance(responder, httpx.Response):
                    return responder
                return httpx.Response(200, json=responder)
        return httpx.Response(404, json={"message": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls_to(self, fragment: str) -> List[httpx.Request]:
        return [r for r in self.requests if fragment in r.url.path]


class InMemoryLogs:
    """Watering log with the repository's read contract (newest first)."""

    def __init__(self, entries: Optional[List[WateringLogEntry]] = None):
        self.entries: List[WateringLogEntry] = list(entries or [])

    async def latest(self, plant_id: str, limit: int = 20) -> List[WateringLogEntry]:
        rows = [e for e in self.entries if e.plant_id == plant_id]
        rows.sort(key=lambda e: e.watered_at, reverse=True)
        return rows[:limit]

    async def append(self, entry: WateringLogEntry) -> WateringLogEntry:
        self.entries.append(entry)
        return entry

    async def between(self, plant_id: str, start: date, end: date) -> List[WateringLogEntry]:
        rows = [e for e in self.entries if e.plant_id == plant_id and start <= e.watered_at <= end]
        return sorted(rows, key=lambda e: e.watered_at)

    async def count(self, plant_id: str) -> int:
        return sum(1 for e in self.entries if e.plant_id == plant_id)


class InMemoryPlants:
    def __init__(self, plants: Optional[List[Plant]] = None, location: Optional[Location] = None):
        self.plants: Dict[str, Plant] = {p.id: p for p in plants or []}
        self.location = location
        self.reminded: Dict[str, date] = {}
        self.watered: Dict[str, date] = {}

    async def get(self, plant_id: str) -> Optional[Plant]:
        return self.plants.get(plant_id)

    async def insert(self, plant: Plant) -> Plant:
        saved = plant.model_copy(update={"id": f"p{len(self.plants) + 1}"})
        self.plants[saved.id] = saved
        return saved

    async def list_all(self, limit: int = 10000) -> List[Plant]:
        return list(self.plants.values())[:limit]

    async def get_owner_location(self, user_id: Optional[str]) -> Optional[Location]:
        return self.location

    async def mark_reminded(self, plant_id: str, day: date) -> None:
        self.reminded[plant_id] = day

    async def update_last_watered(self, plant_id: str, watered_at: date) -> None:
        self.watered[plant_id] = watered_at


def log_entries(plant_id: str, *days: date) -> List[WateringLogEntry]:
    return [WateringLogEntry(plant_id=plant_id, watered_at=d) for d in days]


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values: Dict[str, Any] = {
        "OPENWEATHER_API_KEY": "",
        "PERENUAL_API_KEY": "",
        "OPENROUTER_API_KEY": "",
        "OPENROUTER_MODEL": "",
        "OPENROUTER_SITE_URL": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def chat_completion(content: str) -> Dict[str, Any]:
    """Minimal OpenAI-compatible chat completion body."""
    return {
        "id": "gen-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test/model",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return make_settings()
