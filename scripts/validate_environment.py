#!/usr/bin/env python3
"""Validate local StayMate environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from staymate.domain.models import Actor, ActorRole, BookingStatus
from staymate.repository.data_repository import DataRepository
from staymate.repository.inventory_repository import InventoryRepository
from staymate.services.booking_service import BookingService
from staymate.services.notification_service import NotificationService
from staymate.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="staymate-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("dotenv", "python-dotenv"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import PackageNotFoundError, version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
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

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "staymate_validation.db",
            notification_async=False,
            smtp_host=None,
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo marketplace seeding
        try:
            if not repository.seed_demo_data():
                raise RuntimeError("seed skipped on an empty database")
            rooms = InventoryRepository(repository).list_hostel_rooms(1)
            if len(rooms) != 3:
                raise RuntimeError(f"expected 3 rooms, got {len(rooms)}")
            ok, line = _print_result("Demo marketplace: 3 rooms", True)
        except Exception as exc:
            ok, line = _print_result("Demo marketplace", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Booking round trip restores the bed
        try:
            inventory = InventoryRepository(repository)
            service = BookingService(
                repository=repository,
                notification_service=NotificationService(settings=validation_settings),
                settings=validation_settings,
            )
            owner = Actor(actor_id=4, role=ActorRole.HOSTEL_OWNER)
            room_before = inventory.get_availability(1)
            booking = service.request_room_booking(
                student_id=1,
                hostel_id=1,
                room_type="Single",
            )
            service.set_booking_status(booking.booking_id, BookingStatus.CONFIRMED, actor=owner)
            service.set_booking_status(booking.booking_id, BookingStatus.CANCELLED, actor=owner)
            room_after = inventory.get_availability(1)
            if room_before != room_after:
                raise RuntimeError(f"beds {room_before} -> {room_after}")
            ok, line = _print_result(
                "Booking round trip",
                True,
                f": beds restored to {room_after}",
            )
        except Exception as exc:
            ok, line = _print_result("Booking round trip", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" StayMate Environment Validation")
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
