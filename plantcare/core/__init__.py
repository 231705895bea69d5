"""Core module - config, database, caches, exceptions."""

from plantcare.core.config import get_settings, Settings
from plantcare.core.database import Database, get_db
from plantcare.core.cache import TTLCache, CacheEntry, BackoffRegistry
from plantcare.core.exceptions import (
    AppException,
    NotFoundException,
    BadRequestException,
    ForbiddenException,
    ProviderError,
)

__all__ = [
    "get_settings",
    "Settings",
    "Database",
    "get_db",
    "TTLCache",
    "CacheEntry",
    "BackoffRegistry",
    "AppException",
    "NotFoundException",
    "BadRequestException",
    "ForbiddenException",
    "ProviderError",
]
