"""Room combination recommendation: exact room-count search with a greedy fallback."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from roomadvisor.domain.constraints import build_recommendation_request
from roomadvisor.domain.models import (
    AvailableRoom,
    RecommendationRequest,
    RecommendationResult,
    RoomAllocation,
)
from roomadvisor.repository.inventory_client import InventorySource
from roomadvisor.services.inventory_service import InventoryService
from roomadvisor.utils.config import Settings, get_settings
from roomadvisor.utils.logger import get_logger


logger = get_logger(__name__)

FALLBACK_REASON_TEMPLATE = "当前库存无法凑出 {requested} 间满足人数的组合，为您推荐 {offered} 间：{rooms}"


class RecommendationError(Exception):
    """Base exception for recommendation workflow failures."""


class RecommendationValidationError(RecommendationError):
    """Raised when recommendation request inputs are invalid."""


@dataclass(frozen=True)
class PartialSolution:
    index: int
    rooms_left: int
    capacity_left: int
    selection: tuple[RoomAllocation, ...]
    price: float


def _max_reachable_capacity(
    candidates: Sequence[AvailableRoom],
    index: int,
    rooms_left: int,
) -> int:
    return sum(
        room.max_guests * min(room.available_count, rooms_left)
        for room in candidates[index:]
    )


def find_cheapest_combination(
    candidates: Sequence[AvailableRoom],
    room_count: int,
    total_guests: int,
    nights: int,
) -> Optional[RecommendationResult]:
    """Cheapest way to house ``total_guests`` in exactly ``room_count`` rooms.

    ``candidates`` are expected cheapest first. The search is exhaustive
    with two prunes: a branch already as expensive as the best solution,
    and a branch whose remaining candidates cannot seat the guests left.
    Among equally cheap solutions the first one reached wins, i.e. the one
    taking the most rooms of the cheaper types.
    """
    if sum(room.available_count for room in candidates) < room_count:
        return None

    best: Optional[PartialSolution] = None
    stack = [
        PartialSolution(
            index=0,
            rooms_left=room_count,
            capacity_left=total_guests,
            selection=(),
            price=0.0,
        )
    ]
    while stack:
        state = stack.pop()
        if best is not None and state.price >= best.price:
            continue
        if state.rooms_left == 0:
            if state.capacity_left <= 0:
                best = state
            continue
        if state.index >= len(candidates):
            continue
        if _max_reachable_capacity(candidates, state.index, state.rooms_left) < state.capacity_left:
            continue

        room = candidates[state.index]
        max_count = min(room.available_count, state.rooms_left)
        # LIFO: pushed low to high so the largest count is explored first.
        for count in range(0, max_count + 1):
            selection = state.selection
            if count > 0:
                selection = selection + (RoomAllocation(room=room, count=count),)
            stack.append(
                PartialSolution(
                    index=state.index + 1,
                    rooms_left=state.rooms_left - count,
                    capacity_left=state.capacity_left - room.max_guests * count,
                    selection=selection,
                    price=state.price + room.price * count * nights,
                )
            )

    if best is None:
        return None
    return RecommendationResult(
        allocations=best.selection,
        total_price=best.price,
        is_fallback=False,
    )


def find_fallback_by_value(
    candidates: Sequence[AvailableRoom],
    total_guests: int,
    nights: int,
) -> Optional[RecommendationResult]:
    """Greedy allocation by price per guest, ignoring the requested room count."""
    ordered = sorted(candidates, key=lambda room: room.price_per_guest)
    remaining = total_guests
    chosen: list[RoomAllocation] = []
    total_price = 0.0

    for room in ordered:
        if remaining <= 0:
            break
        needed = min(math.ceil(remaining / room.max_guests), room.available_count)
        if needed <= 0:
            continue
        chosen.append(RoomAllocation(room=room, count=needed))
        total_price += room.price * needed * nights
        remaining -= room.max_guests * needed

    if remaining > 0:
        return None
    return RecommendationResult(
        allocations=tuple(chosen),
        total_price=total_price,
        is_fallback=True,
    )


def describe_fallback(requested_rooms: int, result: RecommendationResult) -> str:
    rooms = " + ".join(
        f"{allocation.room.name} x{allocation.count}"
        for allocation in result.allocations
    )
    return FALLBACK_REASON_TEMPLATE.format(
        requested=requested_rooms,
        offered=result.room_count,
        rooms=rooms,
    )


def recommend_from_candidates(
    request: RecommendationRequest,
    candidates: Sequence[AvailableRoom],
) -> Optional[RecommendationResult]:
    """Run exact-fit search, then the fallback, over a resolved candidate list."""
    if not candidates:
        logger.info("No bookable rooms for stay | hotel_id=%s", request.hotel_id)
        return None

    exact = find_cheapest_combination(
        candidates,
        request.room_count,
        request.total_guests,
        request.nights,
    )
    if exact is not None:
        logger.info(
            "Exact recommendation found | hotel_id=%s | rooms=%s | guests=%s | total_price=%.2f",
            request.hotel_id,
            exact.room_count,
            request.total_guests,
            exact.total_price,
        )
        return exact

    fallback = find_fallback_by_value(candidates, request.total_guests, request.nights)
    if fallback is None:
        logger.info(
            "No allocation houses the party | hotel_id=%s | guests=%s | candidates=%s",
            request.hotel_id,
            request.total_guests,
            len(candidates),
        )
        return None

    logger.info(
        "Fallback recommendation used | hotel_id=%s | requested_rooms=%s | offered_rooms=%s | total_price=%.2f",
        request.hotel_id,
        request.room_count,
        fallback.room_count,
        fallback.total_price,
    )
    return RecommendationResult(
        allocations=fallback.allocations,
        total_price=fallback.total_price,
        is_fallback=True,
        fallback_reason=describe_fallback(request.room_count, fallback),
    )


class RoomRecommendationService:
    """Business logic orchestration for inventory lookup + room combination search."""

    def __init__(
        self,
        source: Optional[InventorySource] = None,
        settings: Optional[Settings] = None,
        inventory_service: Optional[InventoryService] = None,
    ) -> None:
        """Use ``inventory_service`` when given, otherwise build one over ``source``."""
        if (source is None) == (inventory_service is None):
            raise ValueError("Provide exactly one of source or inventory_service")
        self._settings = settings or get_settings()
        self._inventory = inventory_service or InventoryService(source, settings=self._settings)

    async def recommend(
        self,
        *,
        hotel_id: int,
        room_count: int,
        adults: int,
        children: int,
        check_in: date,
        check_out: date,
        nights: Optional[int] = None,
    ) -> Optional[RecommendationResult]:
        """Recommend rooms for a party; ``None`` when no allocation can house it.

        Inventory lookup failures propagate as ``InventoryLookupError``.
        """
        try:
            request = build_recommendation_request(
                hotel_id=hotel_id,
                room_count=room_count,
                adults=adults,
                children=children,
                check_in=check_in,
                check_out=check_out,
                nights=nights,
            )
        except ValueError as exc:
            raise RecommendationValidationError(str(exc)) from exc

        candidates = await self._inventory.list_available_rooms(
            hotel_id=request.hotel_id,
            check_in=request.check_in,
            check_out=request.check_out,
        )
        return recommend_from_candidates(request, candidates)
