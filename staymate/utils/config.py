"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str = "StayMate Booking API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    database_path: Path = PROJECT_ROOT / "data" / "staymate.db"
    database_busy_timeout_seconds: float = 10.0
    seed_demo_data: bool = True

    notifications_enabled: bool = True
    notification_async: bool = True
    notification_workers: int = 2
    notification_sender: str = "bookings@staymate.local"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests call ``cache_clear()``."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("APP_NAME", defaults.app_name),
        app_version=os.getenv("APP_VERSION", defaults.app_version),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_path=Path(os.getenv("DATABASE_PATH", str(defaults.database_path))),
        database_busy_timeout_seconds=_env_float(
            "DATABASE_BUSY_TIMEOUT_SECONDS",
            defaults.database_busy_timeout_seconds,
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", defaults.seed_demo_data),
        notifications_enabled=_env_bool(
            "NOTIFICATIONS_ENABLED",
            defaults.notifications_enabled,
        ),
        notification_async=_env_bool("NOTIFICATION_ASYNC", defaults.notification_async),
        notification_workers=_env_int("NOTIFICATION_WORKERS", defaults.notification_workers),
        notification_sender=os.getenv("NOTIFICATION_SENDER", defaults.notification_sender),
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=_env_int("SMTP_PORT", defaults.smtp_port),
        smtp_username=os.getenv("SMTP_USERNAME") or None,
        smtp_password=os.getenv("SMTP_PASSWORD") or None,
        smtp_use_tls=_env_bool("SMTP_USE_TLS", defaults.smtp_use_tls),
        smtp_timeout_seconds=_env_float(
            "SMTP_TIMEOUT_SECONDS",
            defaults.smtp_timeout_seconds,
        ),
    )
