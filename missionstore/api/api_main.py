from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI

from missionstore.api.routes_drones import router as drones_router, files_router
from missionstore.config import Settings, settings as env_settings, setup_logging
from missionstore.db.session import Database
from missionstore.service import FleetService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around one Database handle and one FleetService."""
    settings = settings or env_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_file)
        logger.info("Starting mission store (db=%s)", settings.database_url)
        db = Database(settings.database_url, echo=settings.database_echo)
        await db.init()
        app.state.db = db
        app.state.service = FleetService.from_settings(db, settings)

        yield

        logger.info("Shutting down mission store...")
        await db.close()

    app = FastAPI(title="Drone mission store", lifespan=lifespan)
    app.include_router(drones_router)
    app.include_router(files_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
