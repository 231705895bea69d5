"""
Application configuration using Pydantic Settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Plantcare API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "plantcare"

    # Outbound HTTP
    HTTP_CONNECT_TIMEOUT_SECONDS: float = 5.0
    HTTP_READ_TIMEOUT_SECONDS: float = 15.0

    # OpenWeatherMap
    OPENWEATHER_API_KEY: str = ""
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5/weather"
    OPENWEATHER_GEO_URL: str = "https://api.openweathermap.org/geo/1.0/direct"
    OPENWEATHER_GEO_REVERSE_URL: str = "https://api.openweathermap.org/geo/1.0/reverse"
    OPENWEATHER_UNITS: str = "metric"
    WEATHER_COUNTRY_CODE: str = "RU"
    WEATHER_CACHE_TTL_MINUTES: int = 15
    RAIN_HISTORY_HOURS: int = 72

    # Rain suppression thresholds (mm)
    RAIN_HEAVY_24H_MM: float = 8.0
    RAIN_HEAVY_72H_MM: float = 16.0
    RAIN_MODERATE_24H_MM: float = 4.0
    RAIN_MODERATE_72H_MM: float = 10.0

    # Learning
    LEARNING_WINDOW: int = 20
    LEARNING_LAST_N: int = 5
    LEARNING_ALPHA: float = 0.5

    # Plant catalog providers
    PERENUAL_API_KEY: str = ""
    PERENUAL_BASE_URL: str = "https://perenual.com/api"
    TRANSLATE_BASE_URL: str = "https://api.mymemory.translated.net/get"
    INATURALIST_BASE_URL: str = "https://api.inaturalist.org/v1"
    GBIF_BASE_URL: str = "https://api.gbif.org/v1"
    LOOKUP_CACHE_TTL_MINUTES: int = 60 * 24 * 7  # 7 days
    PERENUAL_BACKOFF_MINUTES: int = 60
    LOOKUP_HEURISTIC_FALLBACK: bool = True

    # OpenRouter (OpenAI-compatible chat completions)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_MODEL: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_SITE_URL: str = ""
    OPENROUTER_APP_NAME: str = "plantcare"
    AI_CARE_CACHE_TTL_MINUTES: int = 60 * 24 * 7  # 7 days
    AI_BACKOFF_MINUTES: int = 60
    AI_POLICY_BACKOFF_MINUTES: int = 60
    AI_WATERING_PROFILE_ENABLED: bool = True

    # Worker
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    DAILY_SWEEP_HOUR_UTC: int = 6
    DAILY_SWEEP_MINUTE_UTC: int = 0
    SWEEP_CONCURRENCY: int = 8

    # Admin endpoints; empty denies all admin access
    ADMIN_API_KEY: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
