"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs
startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.analytics_controller import router as analytics_router
from backend.controllers.facility_controller import router as facility_router
from backend.repository.facility_repository import FacilityRepository
from backend.services.assignment_service import AssignmentService
from backend.services.auth_service import AuthService
from backend.services.availability_service import AvailabilityService
from backend.services.compatibility_service import CompatibilityService
from backend.services.recommendation_service import RecommendationService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service is attached to app.state; controllers resolve them from
    there, so tests can build an app around their own settings.
    """
    settings = settings or get_settings()

    # --- Repository (snapshot reader; unconfigured when FACILITY_DB_PATH is empty) ---
    repository = FacilityRepository(settings)

    # --- Services ---
    compatibility_service = CompatibilityService(repository=repository, settings=settings)
    availability_service = AvailabilityService(repository=repository, settings=settings)
    recommendation_service = RecommendationService(repository=repository, settings=settings)
    assignment_service = AssignmentService(repository=repository, settings=settings)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(facility_router)
    app.include_router(analytics_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.compatibility_service = compatibility_service
    app.state.availability_service = availability_service
    app.state.recommendation_service = recommendation_service
    app.state.assignment_service = assignment_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Without a configured snapshot source the service starts in degraded
    mode and skips schema work entirely.
    """
    repository: FacilityRepository = app.state.repository

    if not repository.is_configured:
        if settings.fail_open_when_unconfigured:
            logger.warning(
                "Startup: no FACILITY_DB_PATH configured; gender checks run in degraded "
                "fail-open mode"
            )
        else:
            logger.warning(
                "Startup: no FACILITY_DB_PATH configured; facility endpoints will return 503"
            )
        return

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo facility (skipped if rooms exist)")
        repository.seed_demo_facility()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
