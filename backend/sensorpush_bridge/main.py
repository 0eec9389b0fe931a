"""
SensorPush Bridge - Backend API
===============================
FastAPI application that keeps a live copy of a SensorPush account.

ARCHITECTURE:
    [SensorPush Cloud] <--POST every 60s-- [SensorManager] --> [Live sensor state]
                                                                       |
                                                                       v
                                                          [This API / host callbacks]

HOW TO RUN:
    pip install -e .

    # Credentials (or put them in a .env file)
    export SENSORPUSH_EMAIL=me@example.com
    export SENSORPUSH_PASSWORD=secret

    uvicorn sensorpush_bridge.main:app --port 8000
    # or: sensorpush-bridge

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sensorpush_bridge import __version__
from sensorpush_bridge.config import Config
from sensorpush_bridge.exceptions import ConfigError
from sensorpush_bridge.routers import sensors_router, set_sensor_manager
from sensorpush_bridge.services import SensorManager, SensorPushApi

logger = logging.getLogger(__name__)

config = Config()


def setup_logging(level: str) -> None:
    """Set up logging for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


# =============================================================================
# HOST CALLBACKS
# =============================================================================

async def on_discovery_complete(sensors):
    logger.info(f"Tracking {len(sensors)} active sensor(s): {', '.join(s.name or s.id for s in sensors)}")


async def on_sensor_updated(sensor_id, state):
    logger.debug(
        f"[{state.name or sensor_id}] {state.temperature_c:.1f}°C, "
        f"{state.humidity_pct:.1f}%, battery {state.battery_pct:.0f}%"
    )


async def on_sensor_removed(sensor_id):
    logger.info(f"Sensor {sensor_id} is no longer tracked")


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Check configuration (missing credentials stop everything here)
        2. Create the API client and SensorManager
        3. Inject manager into routers
        4. Discover sensors (this starts polling)

    SHUTDOWN:
        1. Stop polling
        2. Close the HTTP client
    """
    setup_logging(config.log_level)

    try:
        config.validate()
    except ConfigError as e:
        logger.error(str(e))
        raise

    api = SensorPushApi(
        email=config.email,
        password=config.password,
        base_url=config.api_base_url,
        request_timeout=config.request_timeout,
    )
    sensor_manager = SensorManager(
        api=api,
        polling_interval=config.polling_interval_ms,
        on_discovery_complete=on_discovery_complete,
        on_sensor_updated=on_sensor_updated,
        on_sensor_removed=on_sensor_removed,
    )
    set_sensor_manager(sensor_manager)

    logger.info(f"SensorPush Bridge {__version__} starting")
    logger.info(f"Polling interval: {sensor_manager.polling_interval / 1000:g} seconds")

    await sensor_manager.discover_devices()

    yield  # Application runs here

    logger.info("Shutting down...")
    await sensor_manager.shutdown()
    set_sensor_manager(None)
    logger.info("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="SensorPush Bridge API",
    description="""
## Overview

Polls the SensorPush cloud for temperature/humidity readings and keeps the
latest value of every active sensor in memory.

## How It Works

1. **Discover** - On startup we log in and list every sensor on the account
2. **Poll** - Every 60 seconds we fetch the newest sample per sensor
3. **Refresh** - Every 10th cycle we re-fetch sensor metadata (battery, names)
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sensors_router)


@app.get("/health", summary="Health Check")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
