from __future__ import annotations

from dataclasses import dataclass, replace

import pytest

from staymate.repository.data_repository import DataRepository
from staymate.repository.inventory_repository import InventoryRepository
from staymate.repository.ledger_repository import BookingLedgerRepository
from staymate.services.booking_service import BookingService
from staymate.services.notification_service import (
    Notification,
    NotificationDeliveryError,
    NotificationService,
)
from staymate.utils.config import get_settings


class RecordingTransport:
    """Collects outgoing mail; can be switched to fail every send."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        if self.fail:
            raise NotificationDeliveryError("SMTP sandbox rejected the message")
        self.sent.append(notification)


@dataclass
class Marketplace:
    repository: DataRepository
    inventory: InventoryRepository
    ledger: BookingLedgerRepository
    hostel_owner_id: int
    other_owner_id: int
    mess_owner_id: int
    student_a: int
    student_b: int
    student_c: int
    hostel_id: int
    single_room_id: int
    double_room_id: int
    mess_id: int


@pytest.fixture
def settings(tmp_path):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / "staymate_test.db",
        seed_demo_data=False,
        notifications_enabled=True,
        notification_async=False,
        smtp_host=None,
    )


@pytest.fixture
def marketplace(settings) -> Marketplace:
    repository = DataRepository(settings)
    repository.initialize_database()

    hostel_owner_id = repository.create_user(
        "Green Nest Owner", "hostel_owner", email="owner@greennest.local"
    )
    other_owner_id = repository.create_user(
        "Blue Door Owner", "hostel_owner", email="owner@bluedoor.local"
    )
    mess_owner_id = repository.create_user(
        "Annapurna Mess", "mess_owner", email="owner@annapurna.local"
    )
    student_a = repository.create_user(
        "Asha Verma", "student", email="asha@student.local", phone_number="9000000001"
    )
    student_b = repository.create_user("Rohan Das", "student", email="rohan@student.local")
    student_c = repository.create_user("Meera Iyer", "student", email="meera@student.local")

    hostel_id = repository.create_hostel(hostel_owner_id, "Green Nest Hostel", "Pune")
    single_room_id = repository.create_room(hostel_id, "Single", total_beds=2, price_per_month=9000.0)
    double_room_id = repository.create_room(hostel_id, "Double", total_beds=4, price_per_month=6500.0)
    mess_id = repository.create_mess(mess_owner_id, "Annapurna Tiffin", 3200.0, city="Pune")

    return Marketplace(
        repository=repository,
        inventory=InventoryRepository(repository),
        ledger=BookingLedgerRepository(repository),
        hostel_owner_id=hostel_owner_id,
        other_owner_id=other_owner_id,
        mess_owner_id=mess_owner_id,
        student_a=student_a,
        student_b=student_b,
        student_c=student_c,
        hostel_id=hostel_id,
        single_room_id=single_room_id,
        double_room_id=double_room_id,
        mess_id=mess_id,
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def failing_transport() -> RecordingTransport:
    return RecordingTransport(fail=True)


@pytest.fixture
def booking_service(settings, marketplace, transport) -> BookingService:
    return BookingService(
        repository=marketplace.repository,
        inventory=marketplace.inventory,
        ledger=marketplace.ledger,
        notification_service=NotificationService(settings=settings, transport=transport),
        settings=settings,
    )
