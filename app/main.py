from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.applications.router import router as applications_router
from app.api.v1.directory.router import router as directory_router
from app.api.v1.opportunities.router import router as opportunities_router
from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.db.session import AsyncSessionLocal, create_tables
from app.placement.policy import PlacementPolicy
from app.placement.repository import load_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables first, then the in-memory engine is rebuilt from them
    await create_tables()
    async with AsyncSessionLocal() as db:
        app.state.placement = await load_engine(db, PlacementPolicy.from_settings(settings))
    logger.info("placement_service_started")
    yield


def create_app() -> FastAPI:
    configure_logging(level=settings.log_level)
    app = FastAPI(title="Internship Placement Backend", lifespan=lifespan)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(directory_router)
    app.include_router(opportunities_router)
    app.include_router(applications_router)

    return app


app = create_app()
