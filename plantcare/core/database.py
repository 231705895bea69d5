"""
MongoDB database connection and utilities.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from plantcare.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        cls.client = AsyncIOMotorClient(settings.MONGO_URI)
        cls.db = cls.client[settings.MONGO_DB_NAME]

        # Create indexes
        await cls._create_indexes()

        logger.info(f"Connected to MongoDB: {settings.MONGO_DB_NAME}")

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            cls.client = None
            cls.db = None
            logger.info("Disconnected from MongoDB")

    @classmethod
    async def _create_indexes(cls):
        """Create database indexes for better query performance."""
        # Plants collection
        await cls.db.plants.create_index("user_id")

        # Watering log: learning reads newest-first per plant
        await cls.db.watering_logs.create_index([("plant_id", 1), ("watered_at", -1)])

        # Catalog lookup cache; expired rows are also swept by Mongo's TTL monitor
        await cls.db.plant_lookup_cache.create_index("query_key", unique=True)
        await cls.db.plant_lookup_cache.create_index("expires_at", expireAfterSeconds=0)

    @classmethod
    def is_connected(cls) -> bool:
        return cls.db is not None

    @classmethod
    def get_collection(cls, name: str):
        """Get a collection by name."""
        return cls.db[name]


def get_db() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    return Database.db
