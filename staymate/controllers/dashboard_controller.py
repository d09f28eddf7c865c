"""HTTP controller layer for student and owner dashboards."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from staymate.controllers.dependencies import (
    booking_failure,
    get_dashboard_service,
    get_optional_actor,
    require_actor,
    unexpected_failure,
)
from staymate.domain.errors import BookingError
from staymate.domain.models import Actor, BookingStatus
from staymate.services.dashboard_service import DashboardService


router = APIRouter(tags=["dashboard"])


class StudentBookingItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    hostel_name: str
    room_type: str
    start_date: str
    status: BookingStatus
    created_at: str


class StudentSubscriptionItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subscription_id: int
    mess_name: str
    monthly_price: float
    start_date: str
    is_active: bool
    created_at: str


class StudentDashboardResponse(BaseModel):
    success: bool = True
    bookings: list[StudentBookingItem]
    subscriptions: list[StudentSubscriptionItem]


class OwnerBookingItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    status: BookingStatus
    start_date: str
    created_at: str
    hostel_name: str
    room_type: str
    student_name: str
    student_email: str | None
    student_phone: str | None


class OwnerBookingsResponse(BaseModel):
    success: bool = True
    bookings: list[OwnerBookingItem]


class MessSubscriberItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subscription_id: int
    start_date: str
    created_at: str
    is_active: bool
    student_name: str
    student_email: str | None
    student_phone: str | None


class MessSubscribersResponse(BaseModel):
    success: bool = True
    subscribers: list[MessSubscriberItem]


@router.get(
    "/bookings",
    response_model=StudentDashboardResponse,
    status_code=status.HTTP_200_OK,
)
def student_bookings(
    student_id: int | None = Query(default=None, gt=0),
    actor: Actor | None = Depends(get_optional_actor),
    service: DashboardService = Depends(get_dashboard_service),
) -> StudentDashboardResponse | JSONResponse:
    """Room bookings and mess subscriptions of one student."""
    try:
        dashboard = service.student_dashboard(student_id, actor=actor)
        return StudentDashboardResponse(
            bookings=[StudentBookingItem.model_validate(item) for item in dashboard.bookings],
            subscriptions=[
                StudentSubscriptionItem.model_validate(item)
                for item in dashboard.subscriptions
            ],
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "load student bookings") from exc


@router.get(
    "/bookings/owner/{owner_id}",
    response_model=OwnerBookingsResponse,
    status_code=status.HTTP_200_OK,
)
def owner_bookings(
    owner_id: int,
    actor: Actor = Depends(require_actor),
    service: DashboardService = Depends(get_dashboard_service),
) -> OwnerBookingsResponse | JSONResponse:
    """Bookings across every hostel of the owner, newest first."""
    try:
        bookings = service.owner_bookings(owner_id, actor=actor)
        return OwnerBookingsResponse(
            bookings=[OwnerBookingItem.model_validate(item) for item in bookings],
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "load owner bookings") from exc


@router.get(
    "/mess-subscribers/{mess_id}",
    response_model=MessSubscribersResponse,
    status_code=status.HTTP_200_OK,
)
def mess_subscribers(
    mess_id: int,
    actor: Actor = Depends(require_actor),
    service: DashboardService = Depends(get_dashboard_service),
) -> MessSubscribersResponse | JSONResponse:
    try:
        subscribers = service.mess_subscribers(mess_id, actor=actor)
        return MessSubscribersResponse(
            subscribers=[MessSubscriberItem.model_validate(item) for item in subscribers],
        )
    except BookingError as exc:
        return booking_failure(exc)
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise unexpected_failure(exc, "load mess subscribers") from exc
