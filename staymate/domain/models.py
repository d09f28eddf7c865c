"""Domain models for room bookings, mess subscriptions and their listings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    STUDENT = "student"
    HOSTEL_OWNER = "hostel_owner"
    MESS_OWNER = "mess_owner"


@dataclass(frozen=True)
class Actor:
    """Caller identity handed over by the external identity layer."""

    actor_id: int
    role: ActorRole


@dataclass(frozen=True)
class UserContact:
    user_id: int
    full_name: str
    email: str | None
    phone_number: str | None


@dataclass(frozen=True)
class Hostel:
    hostel_id: int
    owner_id: int
    name: str
    city: str | None


@dataclass(frozen=True)
class Room:
    room_id: int
    hostel_id: int
    room_type: str
    price_per_month: float
    total_beds: int
    available_beds: int
    has_attached_bath: bool


@dataclass(frozen=True)
class MessService:
    mess_id: int
    owner_id: int
    name: str
    city: str | None
    monthly_price: float
    delivery_radius_km: float | None


@dataclass(frozen=True)
class RoomBooking:
    booking_id: int
    student_id: int
    room_id: int
    start_date: str
    status: BookingStatus
    created_at: str


@dataclass(frozen=True)
class MessSubscription:
    subscription_id: int
    student_id: int
    mess_id: int
    start_date: str
    is_active: bool
    created_at: str


@dataclass(frozen=True)
class StudentRoomBookingView:
    booking_id: int
    hostel_name: str
    room_type: str
    start_date: str
    status: BookingStatus
    created_at: str


@dataclass(frozen=True)
class StudentSubscriptionView:
    subscription_id: int
    mess_name: str
    monthly_price: float
    start_date: str
    is_active: bool
    created_at: str


@dataclass(frozen=True)
class OwnerBookingView:
    booking_id: int
    status: BookingStatus
    start_date: str
    created_at: str
    hostel_name: str
    room_type: str
    student_name: str
    student_email: str | None
    student_phone: str | None


@dataclass(frozen=True)
class MessSubscriberView:
    subscription_id: int
    start_date: str
    created_at: str
    is_active: bool
    student_name: str
    student_email: str | None
    student_phone: str | None
