"""Resolves per-stay room availability from nightly inventory records."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional, Sequence

from roomadvisor.domain.constraints import stay_dates, validate_stay
from roomadvisor.domain.models import (
    AvailableRoom,
    DailyAvailability,
    RoomInventoryItem,
    RoomType,
)
from roomadvisor.repository.inventory_client import InventorySource
from roomadvisor.utils.config import Settings, get_settings
from roomadvisor.utils.logger import get_logger


logger = get_logger(__name__)


class InventoryValidationError(Exception):
    """Raised when an inventory listing is requested for an invalid stay."""


def resolve_availability(
    room_type_ids: Iterable[int],
    records: Iterable[DailyAvailability],
    check_in: date,
    check_out: date,
    *,
    missing_nights_as_sold_out: bool = True,
) -> dict[int, int]:
    """Return the units of each room type free on every night of the stay.

    The scarcest night caps the whole stay. A room type without records is
    not bookable; with ``missing_nights_as_sold_out`` a single night without
    a record is enough to make it unbookable.
    """
    wanted = set(room_type_ids)
    nights = stay_dates(check_in, check_out)
    available_by_date: dict[int, dict[date, int]] = defaultdict(dict)

    for record in records:
        if record.room_type_id not in wanted:
            continue
        if not check_in <= record.date < check_out:
            continue
        nightly = available_by_date[record.room_type_id]
        # Duplicate rows for one night: keep the scarcer one.
        previous = nightly.get(record.date)
        nightly[record.date] = record.available if previous is None else min(previous, record.available)

    resolved: dict[int, int] = {}
    for room_type_id in wanted:
        nightly = available_by_date.get(room_type_id)
        if not nightly:
            resolved[room_type_id] = 0
            continue
        missing = [night for night in nights if night not in nightly]
        if missing_nights_as_sold_out and missing:
            logger.info(
                "Room type has nights without inventory | room_type_id=%s | missing=%s",
                room_type_id,
                ",".join(night.isoformat() for night in missing),
            )
            resolved[room_type_id] = 0
            continue
        resolved[room_type_id] = min(nightly.values())
    return resolved


def build_candidates(
    room_types: Sequence[RoomType],
    availability: dict[int, int],
) -> list[AvailableRoom]:
    """Merge room types with their stay availability, bookable ones only, cheapest first."""
    candidates = [
        AvailableRoom(room_type=room_type, available_count=availability.get(room_type.id, 0))
        for room_type in room_types
    ]
    candidates = [
        room
        for room in candidates
        if room.available_count > 0 and room.max_guests > 0
    ]
    candidates.sort(key=lambda room: room.price)
    return candidates


def lowest_available_price(items: Sequence[RoomInventoryItem]) -> Optional[float]:
    for item in items:
        if not item.sold_out:
            return item.room_type.price
    return None


class InventoryService:
    """Fetches a hotel's inventory snapshot for a stay."""

    def __init__(
        self,
        source: InventorySource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._source = source
        self._settings = settings or get_settings()

    async def fetch_snapshot(
        self,
        *,
        hotel_id: int,
        check_in: date,
        check_out: date,
        bookable_only: bool = True,
    ) -> tuple[list[RoomType], dict[int, int]]:
        """Read room types and nightly stock concurrently and resolve stay availability."""
        # A failing read cancels its sibling; the first failure is re-raised unwrapped.
        try:
            async with asyncio.TaskGroup() as group:
                room_types_task = group.create_task(
                    self._source.fetch_room_types(hotel_id, bookable_only=bookable_only)
                )
                records_task = group.create_task(
                    self._source.fetch_availability(check_in, check_out, hotel_id=hotel_id)
                )
        except ExceptionGroup as grouped:
            raise grouped.exceptions[0]
        room_types = room_types_task.result()
        records = records_task.result()
        availability = resolve_availability(
            (room_type.id for room_type in room_types),
            records,
            check_in,
            check_out,
            missing_nights_as_sold_out=self._settings.missing_nights_as_sold_out,
        )
        logger.info(
            "Inventory resolved | hotel_id=%s | room_types=%s | records=%s | bookable=%s",
            hotel_id,
            len(room_types),
            len(records),
            sum(1 for count in availability.values() if count > 0),
        )
        return room_types, availability

    async def list_available_rooms(
        self,
        *,
        hotel_id: int,
        check_in: date,
        check_out: date,
    ) -> list[AvailableRoom]:
        room_types, availability = await self.fetch_snapshot(
            hotel_id=hotel_id,
            check_in=check_in,
            check_out=check_out,
        )
        return build_candidates(room_types, availability)

    async def list_room_inventory(
        self,
        *,
        hotel_id: int,
        check_in: date,
        check_out: date,
    ) -> list[RoomInventoryItem]:
        """Every room type of the hotel for the stay, sold-out types last."""
        try:
            validate_stay(check_in, check_out)
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        room_types, availability = await self.fetch_snapshot(
            hotel_id=hotel_id,
            check_in=check_in,
            check_out=check_out,
            bookable_only=False,
        )
        items = [
            RoomInventoryItem(room_type=room_type, available_count=availability.get(room_type.id, 0))
            for room_type in room_types
        ]
        items.sort(key=lambda item: (item.sold_out, item.room_type.price))
        return items
