"""HTTP controller layer for room availability and capacity."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from staymate.controllers.dependencies import (
    booking_failure,
    get_inventory_service,
    require_actor,
    unexpected_failure,
)
from staymate.domain.errors import BookingError
from staymate.domain.models import Actor
from staymate.services.inventory_service import InventoryService


router = APIRouter(tags=["inventory"])


class RoomItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: int
    hostel_id: int
    room_type: str
    price_per_month: float
    total_beds: int = Field(gt=0)
    available_beds: int = Field(ge=0)
    has_attached_bath: bool


class HostelRoomsResponse(BaseModel):
    success: bool = True
    rooms: list[RoomItem]


class RoomAvailabilityResponse(BaseModel):
    success: bool = True
    room_id: int
    available_beds: int = Field(ge=0)


class RoomCapacityRequest(BaseModel):
    total_beds: int = Field(gt=0)


class RoomCapacityResponse(BaseModel):
    success: bool = True
    message: str
    room: RoomItem


@router.get(
    "/hostels/{hostel_id}/rooms",
    response_model=HostelRoomsResponse,
    status_code=status.HTTP_200_OK,
)
def hostel_rooms(
    hostel_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> HostelRoomsResponse | JSONResponse:
    try:
        rooms = service.list_hostel_rooms(hostel_id)
        return HostelRoomsResponse(rooms=[RoomItem.model_validate(room) for room in rooms])
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "list rooms") from exc


@router.get(
    "/rooms/{room_id}/availability",
    response_model=RoomAvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
def room_availability(
    room_id: int,
    service: InventoryService = Depends(get_inventory_service),
) -> RoomAvailabilityResponse | JSONResponse:
    try:
        return RoomAvailabilityResponse(
            room_id=room_id,
            available_beds=service.get_availability(room_id),
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "read availability") from exc


@router.put(
    "/rooms/{room_id}/capacity",
    response_model=RoomCapacityResponse,
    status_code=status.HTTP_200_OK,
)
def update_room_capacity(
    room_id: int,
    payload: RoomCapacityRequest,
    actor: Actor = Depends(require_actor),
    service: InventoryService = Depends(get_inventory_service),
) -> RoomCapacityResponse | JSONResponse:
    """Owner resizes a room; confirmed bookings keep their beds."""
    try:
        room = service.update_room_capacity(room_id, payload.total_beds, actor=actor)
        return RoomCapacityResponse(
            message="Room capacity updated successfully!",
            room=RoomItem.model_validate(room),
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "update room capacity") from exc
