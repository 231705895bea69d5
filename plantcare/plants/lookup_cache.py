"""Persistent cache for plant-name lookups.

Entries record both hits and definitive misses (``hit=False``) so a name no
provider recognises is not re-queried until the entry expires. Expired rows are
deleted on read and never served.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from plantcare.core.cache import CacheEntry, Clock, TTLCache, utc_now
from plantcare.core.database import Database
from plantcare.plants.models import LookupResult, PlantType


class LookupCacheStore(Protocol):
    async def get(self, key: str) -> Optional[CacheEntry[LookupResult]]:
        ...

    async def put(self, key: str, value: Optional[LookupResult]) -> None:
        ...

    async def clear(self) -> int:
        ...


class MemoryLookupCache:
    """Process-local store; used when no database is connected and in tests."""

    def __init__(self, ttl: timedelta, *, clock: Clock = utc_now):
        self._cache: TTLCache[LookupResult] = TTLCache(ttl, clock=clock)

    async def get(self, key: str) -> Optional[CacheEntry[LookupResult]]:
        return self._cache.get(key)

    async def put(self, key: str, value: Optional[LookupResult]) -> None:
        self._cache.put(key, value)

    async def clear(self) -> int:
        return self._cache.clear()


class MongoLookupCache:
    """``plant_lookup_cache`` collection, one document per normalized query."""

    def __init__(self, ttl: timedelta, *, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock

    @staticmethod
    def _collection():
        return Database.get_collection("plant_lookup_cache")

    async def get(self, key: str) -> Optional[CacheEntry[LookupResult]]:
        doc = await self._collection().find_one({"query_key": key})
        if not doc:
            return None

        expires_at = doc.get("expires_at")
        if isinstance(expires_at, datetime) and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if not isinstance(expires_at, datetime) or expires_at <= self._clock():
            await self._collection().delete_one({"_id": doc["_id"]})
            return None

        if not doc.get("hit") or not doc.get("display_name") or not doc.get("base_interval_days"):
            return CacheEntry(value=None, expires_at=expires_at)

        result = LookupResult(
            display_name=doc["display_name"],
            base_interval_days=int(doc["base_interval_days"]),
            source=doc.get("source") or "Perenual",
            suggested_type=PlantType.parse(doc.get("suggested_type")),
        )
        return CacheEntry(value=result, expires_at=expires_at)

    async def put(self, key: str, value: Optional[LookupResult]) -> None:
        now = self._clock()
        fields = {
            "query_key": key,
            "hit": value is not None,
            "display_name": value.display_name if value else None,
            "base_interval_days": value.base_interval_days if value else None,
            "source": value.source if value else None,
            "suggested_type": value.suggested_type.value if value else None,
            "expires_at": now + self.ttl,
            "updated_at": now,
        }
        await self._collection().update_one({"query_key": key}, {"$set": fields}, upsert=True)

    async def clear(self) -> int:
        result = await self._collection().delete_many({})
        return int(result.deleted_count)
