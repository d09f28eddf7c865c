"""Room booking and mess subscription workflow.

Room bookings are two-phase: a request only records a ``pending`` row, and a
bed is taken when the hostel owner confirms. Confirmation and cancellation
write the status and the bed count inside one ``BEGIN IMMEDIATE``
transaction, with the decrement expressed as a conditional UPDATE, so
concurrent confirmations on the same room cannot oversell it.

Mess subscriptions have no capacity and no approval step; they are active as
soon as they are created, and the ledger allows one active row per
student/mess pair.
"""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date
from typing import Callable, Optional

from staymate.domain.constraints import (
    holds_bed,
    parse_booking_status,
    validate_status_transition,
)
from staymate.domain.errors import (
    BookingValidationError,
    DuplicateSubscriptionError,
    InvalidTransitionError,
    NoAvailabilityError,
    NotFoundError,
    PermissionDeniedError,
)
from staymate.domain.models import (
    Actor,
    ActorRole,
    BookingStatus,
    MessSubscription,
    RoomBooking,
)
from staymate.repository.data_repository import DataRepository
from staymate.repository.inventory_repository import InventoryRepository
from staymate.repository.ledger_repository import (
    BookingLedgerRepository,
    DuplicateActiveSubscription,
)
from staymate.services.auth_service import AuthService
from staymate.services.notification_service import Notification, NotificationService
from staymate.utils.config import Settings, get_settings
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


def normalize_start_date(value: date | str | None) -> str:
    """Default to today, as the booking form does when no date is picked."""
    if value is None:
        return date.today().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError as exc:
        raise BookingValidationError("start_date must follow YYYY-MM-DD format") from exc


def _validate_id(name: str, value: int) -> None:
    if value <= 0:
        raise BookingValidationError(f"{name} must be a positive integer")


class BookingService:
    """Coordinates the inventory store, the booking ledger and notifications."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        inventory: Optional[InventoryRepository] = None,
        ledger: Optional[BookingLedgerRepository] = None,
        notification_service: Optional[NotificationService] = None,
        auth_service: Optional[AuthService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._inventory = inventory or InventoryRepository(self._repository)
        self._ledger = ledger or BookingLedgerRepository(self._repository)
        self._notifications = notification_service or NotificationService(self._settings)
        self._auth = auth_service or AuthService()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_room_booking(
        self,
        *,
        student_id: int,
        hostel_id: int,
        room_type: str,
        start_date: date | str | None = None,
        actor: Actor | None = None,
    ) -> RoomBooking:
        """Record a pending request against the first room with a free bed."""
        _validate_id("student_id", student_id)
        _validate_id("hostel_id", hostel_id)
        if not room_type or not room_type.strip():
            raise BookingValidationError("Please select a room type")
        if actor is not None:
            self._auth.require_self(actor, student_id)
        resolved_start = normalize_start_date(start_date)

        hostel = self._repository.get_hostel(hostel_id)
        if hostel is None:
            raise NotFoundError(f"Hostel {hostel_id} not found")

        with self._repository.transaction() as conn:
            room = self._inventory.find_available_room(hostel_id, room_type.strip(), conn=conn)
            if room is None:
                logger.info(
                    "Room request rejected: hostel=%s type=%s fully booked",
                    hostel_id,
                    room_type,
                )
                raise NoAvailabilityError("Sorry, that room type is fully booked.")
            booking = self._ledger.create_room_booking(
                student_id=student_id,
                room_id=room.room_id,
                start_date=resolved_start,
                conn=conn,
            )

        logger.info(
            "Room booking %s created pending: student=%s room=%s",
            booking.booking_id,
            student_id,
            room.room_id,
        )
        self._notify(
            self._owner_notice,
            owner_id=hostel.owner_id,
            student_id=student_id,
            subject="New Booking Request - StayMate",
            body=(
                "A new booking request is waiting for your approval.\n\n"
                f"Hostel: {hostel.name}\nRoom type: {room.room_type}\n"
                f"Start date: {resolved_start}\nBooking ID: {booking.booking_id}"
            ),
        )
        return booking

    def request_mess_subscription(
        self,
        *,
        student_id: int,
        mess_id: int,
        start_date: date | str | None = None,
        actor: Actor | None = None,
    ) -> MessSubscription:
        """Activate a subscription immediately; one active per student/mess."""
        _validate_id("student_id", student_id)
        _validate_id("mess_id", mess_id)
        if actor is not None:
            self._auth.require_self(actor, student_id)
        resolved_start = normalize_start_date(start_date)

        mess = self._repository.get_mess(mess_id)
        if mess is None:
            raise NotFoundError(f"Mess {mess_id} not found")

        try:
            subscription = self._ledger.create_mess_subscription(
                student_id=student_id,
                mess_id=mess_id,
                start_date=resolved_start,
            )
        except DuplicateActiveSubscription as exc:
            logger.info(
                "Duplicate subscription rejected: student=%s mess=%s",
                student_id,
                mess_id,
            )
            raise DuplicateSubscriptionError(
                "You are already subscribed to this mess!"
            ) from exc

        logger.info(
            "Mess subscription %s activated: student=%s mess=%s",
            subscription.subscription_id,
            student_id,
            mess_id,
        )
        self._notify(
            self._owner_notice,
            owner_id=mess.owner_id,
            student_id=student_id,
            subject="New Mess Subscriber - StayMate",
            body=(
                f"A student subscribed to {mess.name}.\n\n"
                f"Start date: {resolved_start}\n"
                f"Subscription ID: {subscription.subscription_id}"
            ),
        )
        return subscription

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def set_booking_status(
        self,
        booking_id: int,
        new_status: BookingStatus | str,
        actor: Actor | None = None,
    ) -> RoomBooking:
        """Owner approval or rejection of a room booking."""
        target = (
            new_status
            if isinstance(new_status, BookingStatus)
            else parse_booking_status(new_status)
        )
        if target is BookingStatus.PENDING:
            raise InvalidTransitionError("A booking cannot be moved back to pending")

        if actor is not None:
            owner_id = self._ledger.get_booking_owner_id(booking_id)
            if owner_id is None:
                raise NotFoundError("Booking not found")
            self._auth.require_owner(actor, owner_id, ActorRole.HOSTEL_OWNER)

        updated = self._apply_transition(booking_id, target)
        self._notify(
            self._student_notice,
            student_id=updated.student_id,
            subject=f"Booking {target.value.title()} - StayMate",
            body=f"Your booking #{updated.booking_id} is now {target.value}.",
        )
        return updated

    def cancel_room_booking(self, booking_id: int, actor: Actor) -> RoomBooking:
        """Student withdraws their own booking; a held bed goes back."""
        booking = self._ledger.get_room_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        self._auth.require_self(actor, booking.student_id)

        updated = self._apply_transition(booking_id, BookingStatus.CANCELLED)
        self._notify(self._cancellation_notice, booking=booking)
        return updated

    def cancel_mess_subscription(
        self,
        subscription_id: int,
        actor: Actor,
    ) -> MessSubscription:
        """Deactivate a subscription for the subscriber or the mess owner."""
        subscription = self._ledger.get_mess_subscription(subscription_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")

        is_subscriber = (
            actor.role is ActorRole.STUDENT and actor.actor_id == subscription.student_id
        )
        if not is_subscriber:
            mess = self._repository.get_mess(subscription.mess_id)
            if mess is None or actor.role is not ActorRole.MESS_OWNER or actor.actor_id != mess.owner_id:
                raise PermissionDeniedError(
                    "Only the subscriber or the mess owner may cancel this subscription"
                )

        if self._ledger.deactivate_mess_subscription(subscription_id):
            logger.info("Mess subscription %s cancelled by %s", subscription_id, actor.role.value)
        else:
            logger.info("Mess subscription %s was already inactive", subscription_id)
        return replace(subscription, is_active=False)

    def _apply_transition(self, booking_id: int, target: BookingStatus) -> RoomBooking:
        """Write the status change and its bed adjustment as one unit."""
        with self._repository.transaction() as conn:
            booking = self._ledger.get_room_booking(booking_id, conn=conn)
            if booking is None:
                raise NotFoundError("Booking not found")
            validate_status_transition(booking.status, target)

            if target is BookingStatus.CONFIRMED:
                if not self._inventory.decrement(booking.room_id, conn=conn):
                    logger.info(
                        "Confirmation of booking %s refused: room %s is full",
                        booking_id,
                        booking.room_id,
                    )
                    raise NoAvailabilityError("Room is full! Cannot confirm.")
            elif holds_bed(booking.status):
                if not self._inventory.increment(booking.room_id, conn=conn):
                    logger.error(
                        "Booking %s released no bed: room %s already at capacity",
                        booking_id,
                        booking.room_id,
                    )

            if not self._ledger.transition_room_booking(
                booking_id,
                expected=booking.status,
                target=target,
                conn=conn,
            ):
                raise InvalidTransitionError("Booking status changed concurrently")

        logger.info(
            "Booking %s moved %s -> %s",
            booking_id,
            booking.status.value,
            target.value,
        )
        return replace(booking, status=target)

    # ------------------------------------------------------------------
    # Notification content
    # ------------------------------------------------------------------

    def _notify(self, build: Callable[..., Notification | None], **fields) -> None:
        """Build and dispatch a notice once the booking has been committed.

        Recipient lookups hit the database again; if that fails the notice
        is dropped and the committed booking is returned as usual.
        """
        try:
            notification = build(**fields)
        except sqlite3.Error as exc:
            logger.warning("Skipping notification, recipient lookup failed: %s", exc)
            return
        self._notifications.dispatch(notification)

    def _cancellation_notice(self, *, booking: RoomBooking) -> Notification | None:
        owner_id = self._ledger.get_booking_owner_id(booking.booking_id)
        if owner_id is None:
            return None
        return self._owner_notice(
            owner_id=owner_id,
            student_id=booking.student_id,
            subject="Booking Cancelled - StayMate",
            body=f"Booking #{booking.booking_id} was cancelled by the student.",
        )

    def _owner_notice(
        self,
        *,
        owner_id: int,
        student_id: int,
        subject: str,
        body: str,
    ) -> Notification | None:
        owner = self._repository.get_user_contact(owner_id)
        if owner is None or not owner.email:
            logger.info("Owner %s has no email on file; skipping notification", owner_id)
            return None
        student = self._repository.get_user_contact(student_id)
        student_line = (
            f"\nStudent: {student.full_name}" if student is not None else f"\nStudent ID: {student_id}"
        )
        return Notification(recipient=owner.email, subject=subject, body=body + student_line)

    def _student_notice(
        self,
        *,
        student_id: int,
        subject: str,
        body: str,
    ) -> Notification | None:
        student = self._repository.get_user_contact(student_id)
        if student is None or not student.email:
            return None
        return Notification(recipient=student.email, subject=subject, body=body)
