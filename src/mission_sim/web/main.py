from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mission_sim.config import get_settings
from mission_sim.web.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Mission API starting (store: %s)", "sql" if settings.database_url else "memory")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Mission Deployment Engine", lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()
