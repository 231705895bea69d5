"""
Plantcare API - Main application entry point.

Houseplant watering advice adapted to season, weather and watering history.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plantcare.admin.views import router as admin_router
from plantcare.core.config import get_settings
from plantcare.core.database import Database
from plantcare.plants.views import router as plants_router
from plantcare.weather.views import router as weather_router

settings = get_settings()
API_PREFIX = "/api/v1"

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await Database.connect()
    yield
    # Shutdown
    await Database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Plantcare API

Watering advice for houseplants and garden beds.

### Features

- **Recommendations**: days until the next watering and how much water to give
- **Learning**: the interval adapts to when you actually water
- **Weather**: heat, humidity and recent rain adjust the advice
- **Plant lookup**: type a plant name (Russian or English) to get a starting interval
- **Care advice**: optional AI tips for soil and additives

    """,
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (plants_router, weather_router, admin_router):
    app.include_router(router, prefix=API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if Database.is_connected() else "disconnected",
        "version": settings.APP_VERSION,
    }
