"""Room availability reads and owner capacity edits."""

from __future__ import annotations

from typing import Optional

from staymate.domain.constraints import validate_total_beds
from staymate.domain.errors import CapacityConflictError, NotFoundError
from staymate.domain.models import Actor, ActorRole, Room
from staymate.repository.data_repository import DataRepository
from staymate.repository.inventory_repository import InventoryRepository
from staymate.services.auth_service import AuthService
from staymate.utils.config import Settings, get_settings
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


class InventoryService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        inventory: Optional[InventoryRepository] = None,
        auth_service: Optional[AuthService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._inventory = inventory or InventoryRepository(self._repository)
        self._auth = auth_service or AuthService()

    def get_availability(self, room_id: int) -> int:
        available = self._inventory.get_availability(room_id)
        if available is None:
            raise NotFoundError(f"Room {room_id} not found")
        return available

    def list_hostel_rooms(self, hostel_id: int) -> list[Room]:
        if self._repository.get_hostel(hostel_id) is None:
            raise NotFoundError(f"Hostel {hostel_id} not found")
        return self._inventory.list_hostel_rooms(hostel_id)

    def update_room_capacity(
        self,
        room_id: int,
        total_beds: int,
        actor: Actor | None = None,
    ) -> Room:
        """Change ``total_beds`` without releasing beds held by confirmed bookings."""
        validate_total_beds(total_beds)
        room = self._repository.get_room(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        if actor is not None:
            hostel = self._repository.get_hostel(room.hostel_id)
            if hostel is None:
                raise NotFoundError(f"Hostel {room.hostel_id} not found")
            self._auth.require_owner(actor, hostel.owner_id, ActorRole.HOSTEL_OWNER)

        if not self._inventory.update_capacity(room_id, total_beds):
            current = self._repository.get_room(room_id)
            if current is None:
                raise NotFoundError(f"Room {room_id} not found")
            held = current.total_beds - current.available_beds
            raise CapacityConflictError(
                f"Room has {held} confirmed bookings; total_beds cannot drop to {total_beds}"
            )

        updated = self._repository.get_room(room_id)
        if updated is None:
            raise NotFoundError(f"Room {room_id} not found")
        logger.info(
            "Room %s capacity set to %s (available %s)",
            room_id,
            updated.total_beds,
            updated.available_beds,
        )
        return updated
