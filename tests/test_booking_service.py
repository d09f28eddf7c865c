"""Room booking lifecycle: requests, approvals, cancellations."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import date

import pytest

from staymate.domain.errors import (
    BookingValidationError,
    InvalidTransitionError,
    NoAvailabilityError,
    NotFoundError,
    PermissionDeniedError,
)
from staymate.domain.models import Actor, ActorRole, BookingStatus
from staymate.services.booking_service import BookingService
from staymate.services.notification_service import NotificationService


def _owner(marketplace) -> Actor:
    return Actor(actor_id=marketplace.hostel_owner_id, role=ActorRole.HOSTEL_OWNER)


def _student(student_id: int) -> Actor:
    return Actor(actor_id=student_id, role=ActorRole.STUDENT)


def _request_single(service: BookingService, marketplace, student_id: int):
    return service.request_room_booking(
        student_id=student_id,
        hostel_id=marketplace.hostel_id,
        room_type="Single",
        start_date="2026-07-01",
    )


def _beds(marketplace) -> int:
    return marketplace.inventory.get_availability(marketplace.single_room_id)


def test_request_creates_pending_booking_without_taking_a_bed(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)

    assert booking.status is BookingStatus.PENDING
    assert booking.room_id == marketplace.single_room_id
    assert booking.start_date == "2026-07-01"
    assert _beds(marketplace) == 2


def test_pending_requests_may_exceed_capacity(booking_service, marketplace) -> None:
    for student_id in (marketplace.student_a, marketplace.student_b, marketplace.student_c):
        _request_single(booking_service, marketplace, student_id)

    assert marketplace.ledger.count_room_bookings(BookingStatus.PENDING) == 3
    assert _beds(marketplace) == 2


def test_two_bed_room_scenario(booking_service, marketplace) -> None:
    owner = _owner(marketplace)

    booking_a = _request_single(booking_service, marketplace, marketplace.student_a)
    assert _beds(marketplace) == 2

    booking_service.set_booking_status(booking_a.booking_id, BookingStatus.CONFIRMED, actor=owner)
    assert _beds(marketplace) == 1

    booking_b = _request_single(booking_service, marketplace, marketplace.student_b)
    booking_c = _request_single(booking_service, marketplace, marketplace.student_c)
    booking_service.set_booking_status(booking_b.booking_id, BookingStatus.CONFIRMED, actor=owner)
    assert _beds(marketplace) == 0

    with pytest.raises(NoAvailabilityError):
        booking_service.set_booking_status(booking_c.booking_id, BookingStatus.CONFIRMED, actor=owner)
    assert marketplace.ledger.get_room_booking(booking_c.booking_id).status is BookingStatus.PENDING
    assert _beds(marketplace) == 0

    cancelled = booking_service.cancel_room_booking(
        booking_a.booking_id,
        _student(marketplace.student_a),
    )
    assert cancelled.status is BookingStatus.CANCELLED
    assert _beds(marketplace) == 1


def test_request_fails_when_room_type_is_fully_booked(booking_service, marketplace) -> None:
    marketplace.inventory.decrement(marketplace.single_room_id)
    marketplace.inventory.decrement(marketplace.single_room_id)

    with pytest.raises(NoAvailabilityError, match="fully booked"):
        _request_single(booking_service, marketplace, marketplace.student_a)
    assert marketplace.ledger.count_room_bookings() == 0


def test_confirm_then_cancel_restores_beds(booking_service, marketplace) -> None:
    owner = _owner(marketplace)
    before = _beds(marketplace)
    booking = _request_single(booking_service, marketplace, marketplace.student_a)

    booking_service.set_booking_status(booking.booking_id, "confirmed", actor=owner)
    booking_service.set_booking_status(booking.booking_id, "cancelled", actor=owner)

    assert _beds(marketplace) == before
    assert marketplace.ledger.get_room_booking(booking.booking_id).status is BookingStatus.CANCELLED


def test_second_confirmation_is_rejected_without_double_decrement(booking_service, marketplace) -> None:
    owner = _owner(marketplace)
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    booking_service.set_booking_status(booking.booking_id, BookingStatus.CONFIRMED, actor=owner)

    with pytest.raises(InvalidTransitionError):
        booking_service.set_booking_status(booking.booking_id, BookingStatus.CONFIRMED, actor=owner)
    assert _beds(marketplace) == 1


def test_cancelling_pending_booking_leaves_inventory_alone(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)

    booking_service.set_booking_status(booking.booking_id, BookingStatus.CANCELLED, actor=_owner(marketplace))

    assert _beds(marketplace) == 2


def test_cancelled_booking_cannot_be_revived(booking_service, marketplace) -> None:
    owner = _owner(marketplace)
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    booking_service.cancel_room_booking(booking.booking_id, _student(marketplace.student_a))

    with pytest.raises(InvalidTransitionError):
        booking_service.set_booking_status(booking.booking_id, BookingStatus.CONFIRMED, actor=owner)
    with pytest.raises(InvalidTransitionError):
        booking_service.cancel_room_booking(booking.booking_id, _student(marketplace.student_a))
    with pytest.raises(InvalidTransitionError):
        booking_service.set_booking_status(booking.booking_id, "pending", actor=owner)
    assert _beds(marketplace) == 2


def test_cancelled_booking_row_is_retained(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    booking_service.cancel_room_booking(booking.booking_id, _student(marketplace.student_a))

    assert marketplace.ledger.count_room_bookings(BookingStatus.CANCELLED) == 1


def test_only_the_hostel_owner_may_change_status(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    stranger = Actor(actor_id=marketplace.other_owner_id, role=ActorRole.HOSTEL_OWNER)

    with pytest.raises(PermissionDeniedError):
        booking_service.set_booking_status(booking.booking_id, "confirmed", actor=stranger)
    with pytest.raises(PermissionDeniedError):
        booking_service.set_booking_status(
            booking.booking_id, "confirmed", actor=_student(marketplace.student_a)
        )
    assert _beds(marketplace) == 2


def test_only_the_booking_student_may_cancel(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)

    with pytest.raises(PermissionDeniedError):
        booking_service.cancel_room_booking(booking.booking_id, _student(marketplace.student_b))


def test_unknown_targets_raise_not_found(booking_service, marketplace) -> None:
    with pytest.raises(NotFoundError):
        booking_service.request_room_booking(
            student_id=marketplace.student_a,
            hostel_id=9999,
            room_type="Single",
        )
    with pytest.raises(NotFoundError):
        booking_service.set_booking_status(9999, "confirmed", actor=_owner(marketplace))
    with pytest.raises(NotFoundError):
        booking_service.set_booking_status(9999, "confirmed")
    with pytest.raises(NotFoundError):
        booking_service.cancel_room_booking(9999, _student(marketplace.student_a))


def test_request_validates_inputs(booking_service, marketplace) -> None:
    with pytest.raises(BookingValidationError):
        booking_service.request_room_booking(
            student_id=marketplace.student_a,
            hostel_id=marketplace.hostel_id,
            room_type="  ",
        )
    with pytest.raises(BookingValidationError):
        booking_service.request_room_booking(
            student_id=marketplace.student_a,
            hostel_id=marketplace.hostel_id,
            room_type="Single",
            start_date="01/07/2026",
        )
    with pytest.raises(PermissionDeniedError):
        booking_service.request_room_booking(
            student_id=marketplace.student_a,
            hostel_id=marketplace.hostel_id,
            room_type="Single",
            actor=_student(marketplace.student_b),
        )


def test_start_date_defaults_to_today(booking_service, marketplace) -> None:
    booking = booking_service.request_room_booking(
        student_id=marketplace.student_a,
        hostel_id=marketplace.hostel_id,
        room_type="Single",
    )

    assert booking.start_date == date.today().isoformat()


def test_concurrent_confirmations_take_the_last_bed_once(booking_service, marketplace) -> None:
    room_id = marketplace.repository.create_room(marketplace.hostel_id, "Attic", total_beds=1)
    owner = _owner(marketplace)
    bookings = [
        booking_service.request_room_booking(
            student_id=student_id,
            hostel_id=marketplace.hostel_id,
            room_type="Attic",
        )
        for student_id in (marketplace.student_a, marketplace.student_b)
    ]
    barrier = threading.Barrier(len(bookings))
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def confirm(booking_id: int) -> None:
        barrier.wait()
        try:
            booking_service.set_booking_status(booking_id, BookingStatus.CONFIRMED, actor=owner)
            result = "confirmed"
        except NoAvailabilityError:
            result = "full"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=confirm, args=(b.booking_id,)) for b in bookings]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["confirmed", "full"]
    assert marketplace.inventory.get_availability(room_id) == 0


def test_many_concurrent_confirmations_never_oversell(booking_service, marketplace) -> None:
    room_id = marketplace.repository.create_room(marketplace.hostel_id, "Dorm", total_beds=3)
    owner = _owner(marketplace)
    bookings = [
        booking_service.request_room_booking(
            student_id=100 + offset,
            hostel_id=marketplace.hostel_id,
            room_type="Dorm",
        )
        for offset in range(8)
    ]
    barrier = threading.Barrier(len(bookings))
    confirmed: list[int] = []
    rejected: list[int] = []
    outcomes_lock = threading.Lock()

    def confirm(booking_id: int) -> None:
        barrier.wait()
        try:
            booking_service.set_booking_status(booking_id, BookingStatus.CONFIRMED, actor=owner)
            bucket = confirmed
        except NoAvailabilityError:
            bucket = rejected
        with outcomes_lock:
            bucket.append(booking_id)

    threads = [threading.Thread(target=confirm, args=(b.booking_id,)) for b in bookings]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(confirmed) == 3
    assert len(rejected) == 5
    assert marketplace.inventory.get_availability(room_id) == 0
    assert marketplace.ledger.count_room_bookings(BookingStatus.CONFIRMED) == 3


def test_request_notifies_hostel_owner(booking_service, marketplace, transport) -> None:
    _request_single(booking_service, marketplace, marketplace.student_a)

    assert len(transport.sent) == 1
    notice = transport.sent[0]
    assert notice.recipient == "owner@greennest.local"
    assert "Green Nest Hostel" in notice.body
    assert "Asha Verma" in notice.body


def test_status_change_notifies_student(booking_service, marketplace, transport) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    booking_service.set_booking_status(booking.booking_id, "confirmed", actor=_owner(marketplace))

    assert transport.sent[-1].recipient == "asha@student.local"
    assert "confirmed" in transport.sent[-1].body


def test_notification_failure_does_not_undo_booking(settings, marketplace, failing_transport) -> None:
    failing = failing_transport
    service = BookingService(
        repository=marketplace.repository,
        notification_service=NotificationService(settings=settings, transport=failing),
        settings=settings,
    )

    booking = _request_single(service, marketplace, marketplace.student_a)
    service.set_booking_status(booking.booking_id, "confirmed", actor=_owner(marketplace))

    stored = marketplace.ledger.get_room_booking(booking.booking_id)
    assert stored.status is BookingStatus.CONFIRMED
    assert _beds(marketplace) == 1
    assert failing.sent == []


def test_background_notifications_are_delivered(settings, marketplace, transport) -> None:
    notifications = NotificationService(
        settings=replace(settings, notification_async=True),
        transport=transport,
    )
    service = BookingService(
        repository=marketplace.repository,
        notification_service=notifications,
        settings=settings,
    )

    _request_single(service, marketplace, marketplace.student_a)
    notifications.shutdown()

    assert [notice.recipient for notice in transport.sent] == ["owner@greennest.local"]


def test_deleting_a_room_removes_its_bookings(booking_service, marketplace) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)

    marketplace.repository.delete_room(marketplace.single_room_id)

    assert marketplace.ledger.get_room_booking(booking.booking_id) is None


def test_recipient_lookup_failure_keeps_the_booking(booking_service, marketplace, monkeypatch, transport) -> None:
    def locked(user_id: int):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(marketplace.repository, "get_user_contact", locked)

    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    confirmed = booking_service.set_booking_status(
        booking.booking_id, BookingStatus.CONFIRMED, actor=_owner(marketplace)
    )
    cancelled = booking_service.cancel_room_booking(
        booking.booking_id, _student(marketplace.student_a)
    )

    assert confirmed.status is BookingStatus.CONFIRMED
    assert cancelled.status is BookingStatus.CANCELLED
    assert marketplace.ledger.count_room_bookings(BookingStatus.CANCELLED) == 1
    assert _beds(marketplace) == 2
    assert transport.sent == []


def test_cancel_logs_when_no_bed_can_be_released(booking_service, marketplace, caplog) -> None:
    booking = _request_single(booking_service, marketplace, marketplace.student_a)
    booking_service.set_booking_status(
        booking.booking_id, BookingStatus.CONFIRMED, actor=_owner(marketplace)
    )
    with marketplace.repository.transaction() as conn:
        conn.execute(
            "UPDATE Rooms SET available_beds = total_beds WHERE id = ?;",
            (marketplace.single_room_id,),
        )

    with caplog.at_level(logging.ERROR, logger="staymate.services.booking_service"):
        cancelled = booking_service.cancel_room_booking(
            booking.booking_id, _student(marketplace.student_a)
        )

    assert cancelled.status is BookingStatus.CANCELLED
    assert _beds(marketplace) == 2
    assert any(
        record.levelno == logging.ERROR and f"Booking {booking.booking_id} released no bed" in record.getMessage()
        for record in caplog.records
    )
