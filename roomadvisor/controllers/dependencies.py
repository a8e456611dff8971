"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from roomadvisor.services.inventory_service import InventoryService
from roomadvisor.services.recommendation_service import RoomRecommendationService


def get_recommendation_service(request: Request) -> RoomRecommendationService:
    service = getattr(request.app.state, "recommendation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation service is not initialized",
        )
    return service


def get_inventory_service(request: Request) -> InventoryService:
    service = getattr(request.app.state, "inventory_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory service is not initialized",
        )
    return service
