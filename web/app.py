"""FastAPI web application for the tournament bracket engine."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_default_config
from web.endpoints.system import router as system_router
from web.endpoints.tournaments import get_tournament_api, router as tournaments_router

logger: logging.Logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    # Creates the database schema before the first request
    get_tournament_api()
    logger.info("Bracket engine started")

    yield

    logger.info("Bracket engine stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application with all routers mounted."""
    config = get_default_config()

    application = FastAPI(
        title="Tournament Bracket Engine",
        description="Elimination bracket construction, seeding and result propagation",
        version="1.0.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(system_router)
    application.include_router(tournaments_router)
    return application


app = create_app()
