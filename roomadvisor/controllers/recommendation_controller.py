"""HTTP controller layer for room inventory and stay recommendations."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field, model_validator

from roomadvisor.controllers.dependencies import get_inventory_service, get_recommendation_service
from roomadvisor.domain.models import RecommendationResult, RoomInventoryItem
from roomadvisor.repository.inventory_client import InventoryLookupError
from roomadvisor.services.inventory_service import (
    InventoryService,
    InventoryValidationError,
    lowest_available_price,
)
from roomadvisor.services.recommendation_service import (
    RecommendationValidationError,
    RoomRecommendationService,
)
from roomadvisor.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["recommendation"])

INVENTORY_LOOKUP_FAILED = "Inventory lookup failed"


class RecommendRoomsRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    room_count: int = Field(ge=1)
    adults: int = Field(ge=1)
    children: int = Field(default=0, ge=0)
    check_in: date
    check_out: date
    nights: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_stay_order(self) -> "RecommendRoomsRequest":
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be later than check_in")
        return self


class RoomAllocationResponse(BaseModel):
    room_type_id: int
    name: str
    price: float = Field(ge=0.0)
    max_guests: int = Field(ge=1)
    available_count: int = Field(ge=1)
    count: int = Field(ge=1)


class RecommendationResponse(BaseModel):
    rooms: list[RoomAllocationResponse]
    total_price: float = Field(ge=0.0)
    is_fallback: bool
    fallback_reason: str | None = None


class RecommendRoomsResponse(BaseModel):
    feasible: bool
    recommendation: RecommendationResponse | None = None


class BedResponse(BaseModel):
    type: str
    count: int


class RoomInventoryResponse(BaseModel):
    room_type_id: int
    name: str
    price: float
    max_guests: int
    size: float
    description: str
    beds: list[BedResponse]
    images: list[str]
    facilities: list[str]
    available_count: int = Field(ge=0)
    sold_out: bool


class RoomInventoryListResponse(BaseModel):
    rooms: list[RoomInventoryResponse]
    lowest_price: float | None = None


def _to_recommendation_response(result: RecommendationResult) -> RecommendationResponse:
    return RecommendationResponse(**result.to_dict())


def _to_inventory_response(item: RoomInventoryItem) -> RoomInventoryResponse:
    room_type = item.room_type
    return RoomInventoryResponse(
        room_type_id=room_type.id,
        name=room_type.name,
        price=room_type.price,
        max_guests=room_type.max_guests,
        size=room_type.size,
        description=room_type.description,
        beds=[BedResponse(type=bed.bed_type, count=bed.count) for bed in room_type.beds],
        images=list(room_type.images),
        facilities=list(room_type.facilities),
        available_count=item.available_count,
        sold_out=item.sold_out,
    )


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post(
    "/hotels/{hotel_id}/recommendations",
    response_model=RecommendRoomsResponse,
    status_code=status.HTTP_200_OK,
)
async def recommend_rooms(
    payload: RecommendRoomsRequest,
    hotel_id: int = Path(gt=0),
    service: RoomRecommendationService = Depends(get_recommendation_service),
) -> RecommendRoomsResponse:
    """Cheapest room combination for the party, or ``feasible=false`` when none exists."""
    try:
        result = await service.recommend(
            hotel_id=hotel_id,
            room_count=payload.room_count,
            adults=payload.adults,
            children=payload.children,
            check_in=payload.check_in,
            check_out=payload.check_out,
            nights=payload.nights,
        )
    except RecommendationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except InventoryLookupError as exc:
        logger.warning("Recommendation aborted | hotel_id=%s | error=%s", hotel_id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=INVENTORY_LOOKUP_FAILED,
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected recommendation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to recommend rooms",
        ) from exc

    if result is None:
        return RecommendRoomsResponse(feasible=False, recommendation=None)
    return RecommendRoomsResponse(
        feasible=True,
        recommendation=_to_recommendation_response(result),
    )


@router.get(
    "/hotels/{hotel_id}/rooms",
    response_model=RoomInventoryListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_rooms(
    hotel_id: int = Path(gt=0),
    check_in: date = Query(),
    check_out: date = Query(),
    service: InventoryService = Depends(get_inventory_service),
) -> RoomInventoryListResponse:
    """All room types of a hotel with the units free for the whole stay."""
    try:
        items = await service.list_room_inventory(
            hotel_id=hotel_id,
            check_in=check_in,
            check_out=check_out,
        )
    except InventoryValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except InventoryLookupError as exc:
        logger.warning("Room listing aborted | hotel_id=%s | error=%s", hotel_id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=INVENTORY_LOOKUP_FAILED,
        ) from exc

    return RoomInventoryListResponse(
        rooms=[_to_inventory_response(item) for item in items],
        lowest_price=lowest_available_price(items),
    )
