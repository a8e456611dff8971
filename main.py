"""
main.py: Server launcher and entry point.

Run this file to start the room recommendation API:

    python main.py

This file does NOT contain application logic. See app.py for the FastAPI
application and service wiring.

Direct uvicorn usage:
    uvicorn app:app --reload
"""

from __future__ import annotations

import uvicorn

from roomadvisor.utils.config import get_settings


def main() -> None:
    """Start the room recommendation API server."""
    settings = get_settings()
    print("=" * 60)
    print(f"  {settings.app_name} {settings.app_version}")
    print("=" * 60)
    print(f"  Server   : http://{settings.host}:{settings.port}")
    print(f"  API docs : http://{settings.host}:{settings.port}/docs")
    print(f"  Inventory: {settings.inventory_base_url}")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "app:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
