"""
Launcher for the StayMate booking API.

    python main.py

HOST, PORT and RELOAD come from the environment (or .env). The FastAPI
application itself and its wiring live in app.py; uvicorn can also be
pointed at it directly:

    uvicorn app:app --reload
"""

from __future__ import annotations

import os

import uvicorn

from staymate.utils.config import get_settings


HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
RELOAD = os.getenv("RELOAD", "false").strip().lower() in {"1", "true", "yes", "on"}


def main() -> None:
    settings = get_settings()
    print("=" * 60)
    print(f"  {settings.app_name} v{settings.app_version}")
    print("=" * 60)
    print(f"  Database : {settings.database_path}")
    print(f"  Mail     : {settings.smtp_host or 'log only'}")
    print(f"  API docs : http://{HOST}:{PORT}/docs")
    print("=" * 60)

    uvicorn.run(
        "app:app",
        host=HOST,
        port=PORT,
        reload=RELOAD,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
