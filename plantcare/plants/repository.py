"""MongoDB access for plants, owners and the watering log.

Mongo has no date type, so calendar dates are stored as midnight UTC datetimes
and converted back on read.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

from plantcare.core.cache import utc_now
from plantcare.core.database import Database
from plantcare.core.exceptions import BadRequestException
from plantcare.plants.models import Location, Plant, WateringLogEntry


def to_datetime(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def validate_object_id(id_str: str, what: str = "plant") -> ObjectId:
    """Validate and convert string to ObjectId."""
    if not id_str or not ObjectId.is_valid(id_str):
        raise BadRequestException(f"Invalid {what} ID")
    return ObjectId(id_str)


class PlantRepository:
    """Plants and the owner fields the engine needs (city and coordinates)."""

    @staticmethod
    def _plants():
        return Database.get_collection("plants")

    @staticmethod
    def _users():
        return Database.get_collection("users")

    @staticmethod
    def _doc_to_plant(doc: Dict[str, Any]) -> Plant:
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["id"] = str(doc["_id"])
        data["last_watered_date"] = to_date(doc.get("last_watered_date"))
        data["last_reminder_date"] = to_date(doc.get("last_reminder_date"))
        return Plant(**data)

    async def get(self, plant_id: str) -> Optional[Plant]:
        doc = await self._plants().find_one({"_id": validate_object_id(plant_id)})
        return self._doc_to_plant(doc) if doc else None

    async def insert(self, plant: Plant) -> Plant:
        doc = plant.model_dump(exclude={"id"}, mode="python")
        doc["last_watered_date"] = to_datetime(plant.last_watered_date)
        doc["last_reminder_date"] = to_datetime(plant.last_reminder_date)
        for key in ("placement", "type", "soil_type", "sun_exposure"):
            if doc.get(key) is not None:
                doc[key] = doc[key].value
        result = await self._plants().insert_one(doc)
        return plant.model_copy(update={"id": str(result.inserted_id)})

    async def list_all(self, limit: int = 10000) -> List[Plant]:
        cursor = self._plants().find({}).sort("created_at", 1)
        docs = await cursor.to_list(length=limit)
        return [self._doc_to_plant(d) for d in docs]

    async def update_last_watered(self, plant_id: str, watered_at: date) -> None:
        await self._plants().update_one(
            {"_id": validate_object_id(plant_id)},
            {"$set": {"last_watered_date": to_datetime(watered_at)}},
        )

    async def mark_reminded(self, plant_id: str, day: date) -> None:
        await self._plants().update_one(
            {"_id": validate_object_id(plant_id)},
            {"$set": {"last_reminder_date": to_datetime(day)}},
        )

    async def get_owner_location(self, user_id: Optional[str]) -> Optional[Location]:
        if not user_id or not ObjectId.is_valid(user_id):
            return None
        user = await self._users().find_one(
            {"_id": ObjectId(user_id)},
            {"city": 1, "city_lat": 1, "city_lon": 1},
        )
        if not user:
            return None
        location = Location(city=user.get("city"), lat=user.get("city_lat"), lon=user.get("city_lon"))
        return None if location.is_empty else location


class WateringLogRepository:
    """Append-only watering history; read newest first."""

    @staticmethod
    def _logs():
        return Database.get_collection("watering_logs")

    @staticmethod
    def _doc_to_entry(doc: Dict[str, Any]) -> WateringLogEntry:
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["watered_at"] = to_date(doc.get("watered_at"))
        return WateringLogEntry(**data)

    async def latest(self, plant_id: str, limit: int = 20) -> List[WateringLogEntry]:
        cursor = (
            self._logs()
            .find({"plant_id": plant_id})
            .sort([("watered_at", -1), ("created_at", -1)])
            .limit(limit)
        )
        docs = await cursor.to_list(length=limit)
        return [self._doc_to_entry(d) for d in docs]

    async def append(self, entry: WateringLogEntry) -> WateringLogEntry:
        entry = entry.model_copy(update={"created_at": entry.created_at or utc_now()})
        doc = entry.model_dump(mode="python")
        doc["watered_at"] = to_datetime(entry.watered_at)
        await self._logs().insert_one(doc)
        return entry

    async def between(self, plant_id: str, start: date, end: date) -> List[WateringLogEntry]:
        """Entries with ``start <= watered_at <= end``, oldest first."""
        cursor = self._logs().find({
            "plant_id": plant_id,
            "watered_at": {"$gte": to_datetime(start), "$lte": to_datetime(end)},
        }).sort("watered_at", 1)
        docs = await cursor.to_list(length=None)
        return [self._doc_to_entry(d) for d in docs]

    async def count(self, plant_id: str) -> int:
        return await self._logs().count_documents({"plant_id": plant_id})
