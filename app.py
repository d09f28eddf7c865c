"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repositories and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from staymate.controllers.booking_controller import router as booking_router
from staymate.controllers.dashboard_controller import router as dashboard_router
from staymate.controllers.inventory_controller import router as inventory_router
from staymate.repository.data_repository import DataRepository
from staymate.repository.inventory_repository import InventoryRepository
from staymate.repository.ledger_repository import BookingLedgerRepository
from staymate.services.auth_service import AuthService
from staymate.services.booking_service import BookingService
from staymate.services.dashboard_service import DashboardService
from staymate.services.inventory_service import InventoryService
from staymate.services.notification_service import NotificationService
from staymate.utils.config import Settings, get_settings
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service is created here and parked on app.state, so controllers
    resolve them through dependencies rather than module globals.
    """
    settings = settings or get_settings()

    # --- Storage (one SQLite file, short-lived connections) ---
    repository = DataRepository(settings)
    inventory = InventoryRepository(repository)
    ledger = BookingLedgerRepository(repository)

    # --- Services ---
    auth_service = AuthService()
    notification_service = NotificationService(settings=settings)
    booking_service = BookingService(
        repository=repository,
        inventory=inventory,
        ledger=ledger,
        notification_service=notification_service,
        auth_service=auth_service,
        settings=settings,
    )
    inventory_service = InventoryService(
        repository=repository,
        inventory=inventory,
        auth_service=auth_service,
        settings=settings,
    )
    dashboard_service = DashboardService(
        repository=repository,
        ledger=ledger,
        auth_service=auth_service,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Prepare storage before accepting requests; drain mail on exit."""
        _startup(app)
        yield
        notification_service.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(booking_router)
    app.include_router(dashboard_router)
    app.include_router(inventory_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.notification_service = notification_service
    app.state.booking_service = booking_service
    app.state.inventory_service = inventory_service
    app.state.dashboard_service = dashboard_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema creation must precede seeding; seeding is skipped when any
    hostel already exists.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo marketplace (skipped if hostels exist)")
        repository.seed_demo_data()

    logger.info("Startup complete, booking service ready")


# Module-level app object for uvicorn
app = create_app()
