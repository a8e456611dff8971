#!/usr/bin/env python3
"""Validate local room recommendation environment readiness."""

from __future__ import annotations

import asyncio
import importlib
import sys
from datetime import date, timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from roomadvisor.domain.constraints import build_recommendation_request
from roomadvisor.domain.models import AvailableRoom, RoomType
from roomadvisor.repository.inventory_client import InventoryClient, InventoryLookupError
from roomadvisor.services.recommendation_service import recommend_from_candidates
from roomadvisor.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


async def _count_room_types(hotel_id: int) -> int:
    async with InventoryClient(get_settings()) as client:
        room_types = await client.fetch_room_types(hotel_id)
    return len(room_types)


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 3: Offline recommendation on a synthetic snapshot
    try:
        check_in = date.today()
        request = build_recommendation_request(
            hotel_id=1,
            room_count=1,
            adults=3,
            children=0,
            check_in=check_in,
            check_out=check_in + timedelta(days=1),
        )
        candidates = [
            AvailableRoom(
                room_type=RoomType(id=1, hotel_id=1, name="Twin", price=200.0, max_guests=2),
                available_count=5,
            )
        ]
        result = recommend_from_candidates(request, candidates)
        if result is None or not result.is_fallback or result.total_price != 400.0:
            raise RuntimeError(f"unexpected recommendation: {result}")
        ok, line = _print_result("Offline recommendation", True, f": total={result.total_price:.0f}")
    except Exception as exc:
        ok, line = _print_result("Offline recommendation", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4: Inventory service reachability (only when credentials are set)
    settings = get_settings()
    if settings.inventory_api_key:
        try:
            count = asyncio.run(_count_room_types(hotel_id=1))
            ok, line = _print_result("Inventory service", True, f": {count} room types for hotel 1")
        except InventoryLookupError as exc:
            ok, line = _print_result("Inventory service", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok
    else:
        results.append("[SKIP] Inventory service: SUPABASE_KEY is not set")

    print(SEPARATOR_LINE)
    print(" Room Advisor Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
