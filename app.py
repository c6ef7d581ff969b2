"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.admin_controller import router as admin_router
from backend.controllers.mass_collection_controller import router as mass_collection_router
from backend.controllers.pickup_controller import router as pickup_router
from backend.repository.data_repository import DataRepository
from backend.services.ai_client import TextCompletionClient, build_completion_client
from backend.services.auth_service import AuthService
from backend.services.district_service import DistrictExtractionService
from backend.services.mass_collection_service import MassCollectionService
from backend.services.pickup_service import PickupWorkflowService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    completion_client: Optional[TextCompletionClient] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    district_service = DistrictExtractionService(
        completion_client=completion_client or build_completion_client(settings),
        settings=settings,
    )
    pickup_service = PickupWorkflowService(
        repository=repository,
        district_service=district_service,
        settings=settings,
    )
    mass_collection_service = MassCollectionService(
        repository=repository,
        settings=settings,
    )
    auth_service = AuthService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "service": settings.app_name,
            "reservation_mode": settings.pickup_reservation_mode,
        }

    # --- Routers ---
    app.include_router(pickup_router)
    app.include_router(mass_collection_router)
    app.include_router(admin_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.district_service = district_service
    app.state.pickup_service = pickup_service
    app.state.mass_collection_service = mass_collection_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before the demo users and devices are seeded.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo users and devices (skipped if users table not empty)")
        repository.seed_demo_data()

    logger.info(
        "Startup complete; pickup reservations run in %s mode",
        settings.pickup_reservation_mode,
    )


# Module-level app object for uvicorn
app = create_app()
