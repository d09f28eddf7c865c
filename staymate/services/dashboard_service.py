"""Read models for the student and owner dashboards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from staymate.domain.errors import NotFoundError
from staymate.domain.models import (
    Actor,
    ActorRole,
    MessSubscriberView,
    OwnerBookingView,
    StudentRoomBookingView,
    StudentSubscriptionView,
)
from staymate.repository.data_repository import DataRepository
from staymate.repository.ledger_repository import BookingLedgerRepository
from staymate.services.auth_service import AuthService
from staymate.utils.config import Settings, get_settings


@dataclass(frozen=True)
class StudentDashboard:
    bookings: list[StudentRoomBookingView]
    subscriptions: list[StudentSubscriptionView]


class DashboardService:
    """Joins ledger rows with listing names and student contacts."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        ledger: Optional[BookingLedgerRepository] = None,
        auth_service: Optional[AuthService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._ledger = ledger or BookingLedgerRepository(self._repository)
        self._auth = auth_service or AuthService()

    def student_dashboard(
        self,
        student_id: int | None,
        actor: Actor | None = None,
    ) -> StudentDashboard:
        # No student selected yet: the dashboard renders empty lists.
        if student_id is None:
            return StudentDashboard(bookings=[], subscriptions=[])
        if actor is not None:
            self._auth.require_self(actor, student_id)
        return StudentDashboard(
            bookings=self._ledger.list_student_room_bookings(student_id),
            subscriptions=self._ledger.list_student_subscriptions(student_id),
        )

    def owner_bookings(
        self,
        owner_id: int,
        actor: Actor | None = None,
    ) -> list[OwnerBookingView]:
        if actor is not None:
            self._auth.require_owner(actor, owner_id, ActorRole.HOSTEL_OWNER)
        return self._ledger.list_owner_bookings(owner_id)

    def mess_subscribers(
        self,
        mess_id: int,
        actor: Actor | None = None,
    ) -> list[MessSubscriberView]:
        mess = self._repository.get_mess(mess_id)
        if mess is None:
            raise NotFoundError(f"Mess {mess_id} not found")
        if actor is not None:
            self._auth.require_owner(actor, mess.owner_id, ActorRole.MESS_OWNER)
        return self._ledger.list_mess_subscribers(mess_id)
