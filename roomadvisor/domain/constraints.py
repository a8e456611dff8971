"""Domain-level validation rules for stay recommendation requests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from roomadvisor.domain.models import RecommendationRequest


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def stay_dates(check_in: date, check_out: date) -> list[date]:
    """Every night of the half-open stay ``[check_in, check_out)``."""
    return [check_in + timedelta(days=offset) for offset in range(nights_between(check_in, check_out))]


def validate_stay(check_in: date, check_out: date) -> None:
    if check_out <= check_in:
        raise ValueError("check_out must be later than check_in")


def build_recommendation_request(
    *,
    hotel_id: int,
    room_count: int,
    adults: int,
    children: int,
    check_in: date,
    check_out: date,
    nights: Optional[int] = None,
) -> RecommendationRequest:
    """Validate raw inputs and derive the nights count from the stay dates."""
    if room_count < 1:
        raise ValueError("room_count must be >= 1")
    if adults < 1:
        raise ValueError("adults must be >= 1")
    if children < 0:
        raise ValueError("children must be >= 0")
    validate_stay(check_in, check_out)

    derived_nights = nights_between(check_in, check_out)
    if nights is not None and nights != derived_nights:
        raise ValueError(
            f"nights={nights} does not match the stay dates ({derived_nights} nights)"
        )

    return RecommendationRequest(
        hotel_id=hotel_id,
        room_count=room_count,
        adults=adults,
        children=children,
        check_in=check_in,
        check_out=check_out,
        nights=derived_nights,
    )
