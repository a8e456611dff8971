"""Domain models for room inventory and stay recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


@dataclass(frozen=True)
class BedInfo:
    bed_type: str
    count: int


@dataclass(frozen=True)
class RoomType:
    id: int
    hotel_id: int
    name: str
    price: float
    max_guests: int
    description: str = ""
    size: float = 0.0
    beds: tuple[BedInfo, ...] = ()
    images: tuple[str, ...] = ()
    facilities: tuple[str, ...] = ()
    quantity: int = 0


@dataclass(frozen=True)
class DailyAvailability:
    room_type_id: int
    date: date
    total_count: int
    booked_count: int

    @property
    def available(self) -> int:
        """Free units for the night, clamped at zero for overbooked rows."""
        return max(0, self.total_count - self.booked_count)


@dataclass(frozen=True)
class AvailableRoom:
    """A room type together with the units free on every night of a stay."""

    room_type: RoomType
    available_count: int

    @property
    def id(self) -> int:
        return self.room_type.id

    @property
    def name(self) -> str:
        return self.room_type.name

    @property
    def price(self) -> float:
        return self.room_type.price

    @property
    def max_guests(self) -> int:
        return self.room_type.max_guests

    @property
    def price_per_guest(self) -> float:
        return self.room_type.price / self.room_type.max_guests


@dataclass(frozen=True)
class RoomInventoryItem:
    room_type: RoomType
    available_count: int

    @property
    def sold_out(self) -> bool:
        return self.available_count <= 0


@dataclass(frozen=True)
class RecommendationRequest:
    hotel_id: int
    room_count: int
    adults: int
    children: int
    check_in: date
    check_out: date
    nights: int

    @property
    def total_guests(self) -> int:
        return self.adults + self.children


@dataclass(frozen=True)
class RoomAllocation:
    room: AvailableRoom
    count: int

    def subtotal(self, nights: int) -> float:
        return self.room.price * self.count * nights


@dataclass(frozen=True)
class RecommendationResult:
    allocations: tuple[RoomAllocation, ...]
    total_price: float
    is_fallback: bool = False
    fallback_reason: Optional[str] = field(default=None)

    @property
    def room_count(self) -> int:
        return sum(allocation.count for allocation in self.allocations)

    @property
    def capacity(self) -> int:
        return sum(allocation.room.max_guests * allocation.count for allocation in self.allocations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rooms": [
                {
                    "room_type_id": allocation.room.id,
                    "name": allocation.room.name,
                    "price": allocation.room.price,
                    "max_guests": allocation.room.max_guests,
                    "available_count": allocation.room.available_count,
                    "count": allocation.count,
                }
                for allocation in self.allocations
            ],
            "total_price": self.total_price,
            "is_fallback": self.is_fallback,
            "fallback_reason": self.fallback_reason,
        }
