"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    host: str
    port: int

    inventory_base_url: str
    inventory_api_key: str
    inventory_timeout_seconds: float
    room_types_table: str
    availability_table: str

    # When true a room type missing a record for any night of the stay is
    # treated as sold out for the whole stay.
    missing_nights_as_sold_out: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process; use ``dataclasses.replace`` for variants."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Room Advisor"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_env_int("PORT", 8000),
        inventory_base_url=os.getenv("SUPABASE_URL", "http://127.0.0.1:54321").rstrip("/"),
        inventory_api_key=os.getenv("SUPABASE_KEY", ""),
        inventory_timeout_seconds=_env_float("INVENTORY_TIMEOUT_SECONDS", 10.0),
        room_types_table=os.getenv("ROOM_TYPES_TABLE", "room_types"),
        availability_table=os.getenv("ROOM_AVAILABILITY_TABLE", "room_availability"),
        missing_nights_as_sold_out=_env_bool("MISSING_NIGHTS_AS_SOLD_OUT", True),
    )
