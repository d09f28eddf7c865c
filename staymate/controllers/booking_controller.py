"""HTTP controller layer for room bookings and mess subscriptions."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from staymate.controllers.dependencies import (
    booking_failure,
    get_booking_service,
    require_actor,
    unexpected_failure,
)
from staymate.domain.errors import BookingError
from staymate.domain.models import Actor
from staymate.services.booking_service import BookingService


router = APIRouter(tags=["bookings"])


class BookRequest(BaseModel):
    """Either a hostel room request or a mess subscription, never both."""

    student_id: int = Field(gt=0)
    hostel_id: int | None = Field(default=None, gt=0)
    room_type: str | None = None
    mess_id: int | None = Field(default=None, gt=0)
    start_date: date | None = None

    @model_validator(mode="after")
    def validate_target(self) -> "BookRequest":
        wants_room = self.hostel_id is not None
        wants_mess = self.mess_id is not None
        if wants_room == wants_mess:
            raise ValueError("Provide exactly one of hostel_id with room_type, or mess_id")
        if wants_room and not (self.room_type and self.room_type.strip()):
            raise ValueError("Please select a room type")
        if wants_mess and self.room_type is not None:
            raise ValueError("room_type only applies to hostel bookings")
        return self


class BookingStatusRequest(BaseModel):
    status: Literal["confirmed", "cancelled"]


class BookingActionResponse(BaseModel):
    success: bool
    message: str
    booking_id: int | None = None
    subscription_id: int | None = None
    status: str | None = None
    is_active: bool | None = None


@router.post(
    "/book",
    response_model=BookingActionResponse,
    status_code=status.HTTP_200_OK,
)
def book(
    payload: BookRequest,
    actor: Actor = Depends(require_actor),
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse | JSONResponse:
    """Request a hostel room (pending approval) or activate a mess plan."""
    try:
        if payload.hostel_id is not None:
            booking = service.request_room_booking(
                student_id=payload.student_id,
                hostel_id=payload.hostel_id,
                room_type=payload.room_type or "",
                start_date=payload.start_date,
                actor=actor,
            )
            return BookingActionResponse(
                success=True,
                message="Hostel booking request sent! Waiting for owner approval.",
                booking_id=booking.booking_id,
                status=booking.status.value,
            )
        subscription = service.request_mess_subscription(
            student_id=payload.student_id,
            mess_id=payload.mess_id or 0,
            start_date=payload.start_date,
            actor=actor,
        )
        return BookingActionResponse(
            success=True,
            message="Mess subscription activated instantly!",
            subscription_id=subscription.subscription_id,
            is_active=subscription.is_active,
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "create booking") from exc


@router.put(
    "/bookings/{booking_id}/status",
    response_model=BookingActionResponse,
    status_code=status.HTTP_200_OK,
)
def set_booking_status(
    booking_id: int,
    payload: BookingStatusRequest,
    actor: Actor = Depends(require_actor),
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse | JSONResponse:
    """Owner approves or rejects a booking."""
    try:
        booking = service.set_booking_status(booking_id, payload.status, actor=actor)
        return BookingActionResponse(
            success=True,
            message=f"Booking {booking.status.value} successfully!",
            booking_id=booking.booking_id,
            status=booking.status.value,
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "update booking status") from exc


@router.delete(
    "/bookings/{booking_id}",
    response_model=BookingActionResponse,
    status_code=status.HTTP_200_OK,
)
def cancel_booking(
    booking_id: int,
    actor: Actor = Depends(require_actor),
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse | JSONResponse:
    try:
        booking = service.cancel_room_booking(booking_id, actor)
        return BookingActionResponse(
            success=True,
            message="Booking cancelled!",
            booking_id=booking.booking_id,
            status=booking.status.value,
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "cancel booking") from exc


@router.delete(
    "/mess-subscriptions/{subscription_id}",
    response_model=BookingActionResponse,
    status_code=status.HTTP_200_OK,
)
def cancel_mess_subscription(
    subscription_id: int,
    actor: Actor = Depends(require_actor),
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse | JSONResponse:
    try:
        subscription = service.cancel_mess_subscription(subscription_id, actor)
        return BookingActionResponse(
            success=True,
            message="Mess subscription cancelled!",
            subscription_id=subscription.subscription_id,
            is_active=subscription.is_active,
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "cancel mess subscription") from exc
