"""Repository layer responsible for reading hotel inventory from the REST data service."""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Protocol, Sequence

import httpx

from roomadvisor.domain.models import BedInfo, DailyAvailability, RoomType
from roomadvisor.utils.config import Settings, get_settings
from roomadvisor.utils.logger import get_logger


logger = get_logger(__name__)

AVAILABILITY_COLUMNS = "room_type_id,total_count,booked_count,date"


class InventoryLookupError(Exception):
    """Raised when the inventory service cannot answer a read."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response, resource: str) -> "InventoryLookupError":
        try:
            body = response.json()
        except ValueError:
            body = None
        message = f"HTTP {response.status_code}"
        code = str(response.status_code)
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or message
            code = body.get("code") or code
        return cls(
            f"Inventory lookup on {resource} failed: {message}",
            code=code,
            status_code=response.status_code,
        )


class InventorySource(Protocol):
    """Read-only view of room types and their per-night stock."""

    async def fetch_room_types(
        self,
        hotel_id: int,
        *,
        bookable_only: bool = True,
    ) -> list[RoomType]:
        ...

    async def fetch_availability(
        self,
        check_in: date,
        check_out: date,
        *,
        room_type_ids: Optional[Sequence[int]] = None,
        hotel_id: Optional[int] = None,
    ) -> list[DailyAvailability]:
        ...


def _to_bed(raw: Any) -> BedInfo:
    if not isinstance(raw, dict):
        raise ValueError(f"bed entry must be an object, got {type(raw).__name__}")
    return BedInfo(bed_type=str(raw.get("type", "")), count=int(raw.get("count", 0)))


def _to_room_type(row: dict[str, Any]) -> RoomType:
    return RoomType(
        id=int(row["id"]),
        hotel_id=int(row["hotel_id"]),
        name=str(row.get("name") or ""),
        price=float(row["price"]),
        max_guests=int(row.get("max_guests") or 0),
        description=str(row.get("description") or ""),
        size=float(row.get("size") or 0.0),
        beds=tuple(_to_bed(item) for item in row.get("beds") or ()),
        images=tuple(str(item) for item in row.get("images") or ()),
        facilities=tuple(str(item) for item in row.get("facilities") or ()),
        quantity=int(row.get("quantity") or 0),
    )


def _to_availability(row: dict[str, Any]) -> DailyAvailability:
    return DailyAvailability(
        room_type_id=int(row["room_type_id"]),
        date=date.fromisoformat(str(row["date"])[:10]),
        total_count=int(row["total_count"]),
        booked_count=int(row["booked_count"]),
    )


def _in_filter(values: Iterable[int]) -> str:
    return "in.(" + ",".join(str(value) for value in values) + ")"


class InventoryClient:
    """PostgREST client for the ``room_types`` and ``room_availability`` tables.

    Credentials are bound at construction. A user session gets its own
    client through :meth:`with_access_token`, sharing the HTTP connection
    pool of the parent.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        access_token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._access_token = access_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self._settings.inventory_base_url,
            timeout=self._settings.inventory_timeout_seconds,
        )

    async def __aenter__(self) -> "InventoryClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def with_access_token(self, access_token: Optional[str]) -> "InventoryClient":
        return InventoryClient(
            self._settings,
            access_token=access_token,
            http_client=self._client,
        )

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.inventory_api_key
        return {
            "apikey": api_key,
            "Authorization": f"Bearer {self._access_token or api_key}",
            "Accept": "application/json",
        }

    async def _select(self, table: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                f"/rest/v1/{table}",
                params=params,
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            error = InventoryLookupError.from_response(exc.response, table)
            logger.warning(
                "Inventory lookup rejected | table=%s | status=%s | code=%s",
                table,
                error.status_code,
                error.code,
            )
            raise error from exc
        except httpx.RequestError as exc:
            logger.warning("Inventory request failed | table=%s | error=%s", table, exc)
            raise InventoryLookupError(
                f"Inventory lookup on {table} failed: {exc}",
                code="NETWORK_ERROR",
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise InventoryLookupError(f"Inventory lookup on {table} returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise InventoryLookupError(f"Inventory lookup on {table} returned a non-list payload")
        return payload

    async def fetch_room_types(
        self,
        hotel_id: int,
        *,
        bookable_only: bool = True,
    ) -> list[RoomType]:
        params = [("select", "*"), ("hotel_id", f"eq.{hotel_id}")]
        if bookable_only:
            params.append(("max_guests", "gt.0"))
        rows = await self._select(self._settings.room_types_table, params)
        try:
            room_types = [_to_room_type(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise InventoryLookupError(f"Malformed room type row: {exc}") from exc
        logger.debug("Room types fetched | hotel_id=%s | count=%s", hotel_id, len(room_types))
        return room_types

    async def fetch_availability(
        self,
        check_in: date,
        check_out: date,
        *,
        room_type_ids: Optional[Sequence[int]] = None,
        hotel_id: Optional[int] = None,
    ) -> list[DailyAvailability]:
        if room_type_ids is not None and not room_type_ids:
            return []

        select = AVAILABILITY_COLUMNS
        if hotel_id is not None:
            select = f"{select},{self._settings.room_types_table}!inner(hotel_id)"
        params = [
            ("select", select),
            ("date", f"gte.{check_in.isoformat()}"),
            ("date", f"lt.{check_out.isoformat()}"),
        ]
        if room_type_ids is not None:
            params.append(("room_type_id", _in_filter(room_type_ids)))
        if hotel_id is not None:
            params.append((f"{self._settings.room_types_table}.hotel_id", f"eq.{hotel_id}"))

        rows = await self._select(self._settings.availability_table, params)
        try:
            records = [_to_availability(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise InventoryLookupError(f"Malformed availability row: {exc}") from exc
        logger.debug(
            "Availability fetched | hotel_id=%s | check_in=%s | check_out=%s | rows=%s",
            hotel_id,
            check_in,
            check_out,
            len(records),
        )
        return records
