from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date, timedelta

import pytest

from roomadvisor.domain.models import DailyAvailability, RoomType
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
from roomadvisor.utils.config import get_settings


CHECK_IN = date(2026, 7, 10)


class StaticInventory:
    """In-memory inventory source serving a fixed snapshot."""

    def __init__(self, room_types, records, error: Exception | None = None) -> None:
        self.room_types = list(room_types)
        self.records = list(records)
        self.error = error
        self.calls: list[str] = []

    async def fetch_room_types(self, hotel_id, *, bookable_only=True):
        self.calls.append("room_types")
        if self.error is not None:
            raise self.error
        return [
            room_type
            for room_type in self.room_types
            if room_type.hotel_id == hotel_id and (not bookable_only or room_type.max_guests > 0)
        ]

    async def fetch_availability(self, check_in, check_out, *, room_type_ids=None, hotel_id=None):
        self.calls.append("availability")
        hotel_room_ids = {
            room_type.id
            for room_type in self.room_types
            if hotel_id is None or room_type.hotel_id == hotel_id
        }
        return [
            record
            for record in self.records
            if check_in <= record.date < check_out
            and record.room_type_id in hotel_room_ids
            and (room_type_ids is None or record.room_type_id in room_type_ids)
        ]


class RendezvousInventory(StaticInventory):
    """Room types are only served once the availability read has started."""

    def __init__(self, room_types, records) -> None:
        super().__init__(room_types, records)
        self._availability_started = asyncio.Event()

    async def fetch_room_types(self, hotel_id, *, bookable_only=True):
        await asyncio.wait_for(self._availability_started.wait(), timeout=1.0)
        return await super().fetch_room_types(hotel_id, bookable_only=bookable_only)

    async def fetch_availability(self, check_in, check_out, *, room_type_ids=None, hotel_id=None):
        self._availability_started.set()
        return await super().fetch_availability(
            check_in,
            check_out,
            room_type_ids=room_type_ids,
            hotel_id=hotel_id,
        )


def _room_type(room_type_id: int, price: float, max_guests: int, hotel_id: int = 1) -> RoomType:
    return RoomType(
        id=room_type_id,
        hotel_id=hotel_id,
        name=f"Room {room_type_id}",
        price=price,
        max_guests=max_guests,
    )


def _nights(room_type_id: int, free_per_night: list[int]) -> list[DailyAvailability]:
    return [
        DailyAvailability(
            room_type_id=room_type_id,
            date=CHECK_IN + timedelta(days=offset),
            total_count=10,
            booked_count=10 - free,
        )
        for offset, free in enumerate(free_per_night)
    ]


def _recommend(service: RoomRecommendationService, **overrides):
    params = {
        "hotel_id": 1,
        "room_count": 1,
        "adults": 2,
        "children": 0,
        "check_in": CHECK_IN,
        "check_out": CHECK_IN + timedelta(days=2),
    }
    params.update(overrides)
    return asyncio.run(service.recommend(**params))


def test_recommend_uses_scarcest_night_for_the_stay():
    source = StaticInventory(
        [_room_type(1, 150.0, 2), _room_type(2, 260.0, 2)],
        _nights(1, [3, 1]) + _nights(2, [5, 5]),
    )
    service = RoomRecommendationService(source)

    result = _recommend(service, room_count=2, adults=4)

    assert result is not None
    assert result.is_fallback is False
    counts = {allocation.room.id: allocation.count for allocation in result.allocations}
    assert counts == {1: 1, 2: 1}
    assert result.total_price == (150.0 + 260.0) * 2


def test_recommend_falls_back_when_room_count_cannot_house_party():
    source = StaticInventory([_room_type(1, 200.0, 2)], _nights(1, [5, 5]))
    service = RoomRecommendationService(source)

    result = _recommend(service, room_count=1, adults=3)

    assert result is not None
    assert result.is_fallback is True
    assert result.room_count == 2
    assert result.total_price == 800.0
    assert result.fallback_reason


def test_recommend_returns_none_without_inventory():
    source = StaticInventory([_room_type(1, 200.0, 2)], _nights(1, [0, 0]))
    service = RoomRecommendationService(source)

    assert _recommend(service) is None


def test_missing_night_follows_configured_policy():
    source = StaticInventory([_room_type(1, 200.0, 2)], _nights(1, [4]))

    strict = RoomRecommendationService(source, settings=replace(get_settings(), missing_nights_as_sold_out=True))
    lenient = RoomRecommendationService(source, settings=replace(get_settings(), missing_nights_as_sold_out=False))

    assert _recommend(strict) is None
    lenient_result = _recommend(lenient)
    assert lenient_result is not None
    assert lenient_result.allocations[0].room.available_count == 4


def test_inventory_fetches_run_concurrently():
    source = RendezvousInventory([_room_type(1, 200.0, 2)], _nights(1, [5, 5]))
    service = RoomRecommendationService(source)

    result = _recommend(service)

    assert result is not None
    assert result.total_price == 400.0


def test_inventory_failure_propagates():
    source = StaticInventory([], [], error=InventoryLookupError("boom", code="NETWORK_ERROR"))
    service = RoomRecommendationService(source)

    with pytest.raises(InventoryLookupError):
        _recommend(service)


def test_invalid_request_is_rejected_before_any_fetch():
    source = StaticInventory([_room_type(1, 200.0, 2)], _nights(1, [5, 5]))
    service = RoomRecommendationService(source)

    with pytest.raises(RecommendationValidationError):
        _recommend(service, adults=0)
    with pytest.raises(RecommendationValidationError):
        _recommend(service, nights=5)
    assert source.calls == []


def test_room_inventory_lists_sold_out_types_last():
    source = StaticInventory(
        [
            _room_type(1, 100.0, 2),
            _room_type(2, 300.0, 3),
            _room_type(3, 180.0, 2),
            _room_type(4, 90.0, 0),
            _room_type(5, 50.0, 2, hotel_id=2),
        ],
        _nights(1, [0, 2]) + _nights(2, [1, 1]) + _nights(3, [2, 2]) + _nights(4, [3, 3]),
    )
    service = InventoryService(source)

    items = asyncio.run(
        service.list_room_inventory(
            hotel_id=1,
            check_in=CHECK_IN,
            check_out=CHECK_IN + timedelta(days=2),
        )
    )

    assert [item.room_type.id for item in items] == [4, 3, 2, 1]
    assert [item.sold_out for item in items] == [False, False, False, True]
    assert lowest_available_price(items) == 90.0


def test_room_inventory_rejects_inverted_stay():
    service = InventoryService(StaticInventory([], []))

    with pytest.raises(InventoryValidationError):
        asyncio.run(
            service.list_room_inventory(
                hotel_id=1,
                check_in=CHECK_IN,
                check_out=CHECK_IN,
            )
        )


class FailingRoomTypesInventory(StaticInventory):
    """Room types fail once the availability read is in flight; that read never finishes on its own."""

    def __init__(self) -> None:
        super().__init__([], [])
        self._availability_started = asyncio.Event()

    async def fetch_room_types(self, hotel_id, *, bookable_only=True):
        await asyncio.wait_for(self._availability_started.wait(), timeout=1.0)
        raise InventoryLookupError("room types unavailable", code="NETWORK_ERROR")

    async def fetch_availability(self, check_in, check_out, *, room_type_ids=None, hotel_id=None):
        self._availability_started.set()
        try:
            await asyncio.sleep(5.0)
        except asyncio.CancelledError:
            self.calls.append("availability_cancelled")
            raise
        return []


def test_failed_fetch_cancels_the_other_read():
    source = FailingRoomTypesInventory()
    service = RoomRecommendationService(source)

    with pytest.raises(InventoryLookupError, match="room types unavailable"):
        _recommend(service)
    assert source.calls == ["availability_cancelled"]


def test_service_can_reuse_an_existing_inventory_service():
    source = StaticInventory([_room_type(1, 200.0, 2)], _nights(1, [5, 5]))
    service = RoomRecommendationService(inventory_service=InventoryService(source))

    result = _recommend(service)

    assert result is not None
    assert result.total_price == 400.0
    assert source.calls == ["room_types", "availability"]


def test_service_requires_exactly_one_inventory_input():
    source = StaticInventory([], [])

    with pytest.raises(ValueError):
        RoomRecommendationService()
    with pytest.raises(ValueError):
        RoomRecommendationService(source, inventory_service=InventoryService(source))
