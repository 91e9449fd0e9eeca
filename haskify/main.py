"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from haskify.api.routes.health import router as health_router
from haskify.api.routes.materials import router as materials_router
from haskify.api.routes.metrics import router as metrics_router
from haskify.api.routes.quiz import router as quiz_router
from haskify.api.routes.run import router as run_router
from haskify.api.routes.sessions import router as sessions_router
from haskify.api.routes.tutor import router as tutor_router
from haskify.config import get_settings
from haskify.services import Services, build_services
from haskify.sweeper import SessionSweeper
from haskify.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(services: Services | None = None, *, start_sweeper: bool = True) -> FastAPI:
    """Build the application.

    Args:
        services: Prebuilt service container (tests); built from settings if None
        start_sweeper: Run the background session sweeper while serving
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = services is None
        svc = services if services is not None else build_services(get_settings())
        configure_logging(svc.settings.log_level)
        app.state.services = svc

        sweeper = SessionSweeper(svc.materials, svc.hash_store, svc.settings.sweep_interval_seconds)
        if start_sweeper:
            sweeper.start()
        logger.info(f"Haskify API started (retrieval mode: {svc.settings.retrieval_mode})")
        try:
            yield
        finally:
            await sweeper.stop()
            if owned:
                await svc.close()

    app = FastAPI(title="Haskify Tutor API", version=VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(tutor_router)
    app.include_router(quiz_router)
    app.include_router(materials_router)
    app.include_router(sessions_router)
    app.include_router(run_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Haskify Tutor API", "version": VERSION}

    return app


app = create_app()
