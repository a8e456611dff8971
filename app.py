"""
app.py: FastAPI application factory and lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the inventory client and services, and registers routers.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from roomadvisor.controllers.recommendation_controller import router as recommendation_router
from roomadvisor.repository.inventory_client import InventoryClient, InventorySource
from roomadvisor.services.inventory_service import InventoryService
from roomadvisor.services.recommendation_service import RoomRecommendationService
from roomadvisor.utils.config import Settings, get_settings
from roomadvisor.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[InventorySource] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services receive their inventory source explicitly and are exposed via
    app.state. When no source is given, an InventoryClient is created here
    and closed when the application shuts down.
    """
    settings = settings or get_settings()
    owned_client: Optional[InventoryClient] = None
    if source is None:
        owned_client = InventoryClient(settings)
        source = owned_client

    # --- Services (business logic, no direct HTTP access) ---
    inventory_service = InventoryService(source, settings=settings)
    recommendation_service = RoomRecommendationService(
        settings=settings,
        inventory_service=inventory_service,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Startup complete | inventory_base_url=%s | missing_nights_as_sold_out=%s",
            settings.inventory_base_url,
            settings.missing_nights_as_sold_out,
        )
        yield
        if owned_client is not None:
            await owned_client.aclose()
            logger.info("Inventory client closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(recommendation_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.inventory_service = inventory_service
    app.state.recommendation_service = recommendation_service

    return app


# Module-level app object for uvicorn
app = create_app()
