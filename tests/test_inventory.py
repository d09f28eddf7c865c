"""Inventory store: conditional bed updates and capacity edits."""

from __future__ import annotations

import sqlite3

import pytest

from staymate.domain.errors import (
    CapacityConflictError,
    NoAvailabilityError,
    NotFoundError,
    PermissionDeniedError,
)
from staymate.domain.models import Actor, ActorRole, BookingStatus
from staymate.services.inventory_service import InventoryService


def test_decrement_stops_at_zero(marketplace) -> None:
    inventory = marketplace.inventory
    room_id = marketplace.single_room_id

    assert inventory.decrement(room_id) is True
    assert inventory.decrement(room_id) is True
    assert inventory.decrement(room_id) is False
    assert inventory.get_availability(room_id) == 0


def test_increment_never_exceeds_total(marketplace) -> None:
    inventory = marketplace.inventory
    room_id = marketplace.single_room_id

    assert inventory.increment(room_id) is False
    assert inventory.get_availability(room_id) == 2

    inventory.decrement(room_id)
    assert inventory.increment(room_id) is True
    assert inventory.get_availability(room_id) == 2


def test_unknown_room_has_no_availability(marketplace) -> None:
    assert marketplace.inventory.get_availability(9999) is None
    assert marketplace.inventory.decrement(9999) is False


def test_schema_rejects_out_of_range_bed_counts(marketplace) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        with marketplace.repository.transaction() as conn:
            conn.execute(
                "UPDATE Rooms SET available_beds = -1 WHERE id = ?;",
                (marketplace.single_room_id,),
            )
    with pytest.raises(sqlite3.IntegrityError):
        with marketplace.repository.transaction() as conn:
            conn.execute(
                "UPDATE Rooms SET available_beds = total_beds + 1 WHERE id = ?;",
                (marketplace.single_room_id,),
            )
    assert marketplace.inventory.get_availability(marketplace.single_room_id) == 2


def test_find_available_room_skips_full_rooms(marketplace) -> None:
    repository = marketplace.repository
    second_single = repository.create_room(marketplace.hostel_id, "Single", total_beds=1)
    marketplace.inventory.decrement(marketplace.single_room_id)
    marketplace.inventory.decrement(marketplace.single_room_id)

    room = marketplace.inventory.find_available_room(marketplace.hostel_id, "Single")

    assert room is not None
    assert room.room_id == second_single
    assert marketplace.inventory.find_available_room(marketplace.hostel_id, "Suite") is None


def test_capacity_edit_keeps_held_beds(settings, marketplace, booking_service) -> None:
    owner = Actor(actor_id=marketplace.hostel_owner_id, role=ActorRole.HOSTEL_OWNER)
    booking = booking_service.request_room_booking(
        student_id=marketplace.student_a,
        hostel_id=marketplace.hostel_id,
        room_type="Single",
    )
    booking_service.set_booking_status(booking.booking_id, BookingStatus.CONFIRMED, actor=owner)
    service = InventoryService(repository=marketplace.repository, settings=settings)

    grown = service.update_room_capacity(marketplace.single_room_id, 5, actor=owner)
    assert (grown.total_beds, grown.available_beds) == (5, 4)

    shrunk = service.update_room_capacity(marketplace.single_room_id, 1, actor=owner)
    assert (shrunk.total_beds, shrunk.available_beds) == (1, 0)

    booking_service.set_booking_status(booking.booking_id, BookingStatus.CANCELLED, actor=owner)
    assert marketplace.inventory.get_availability(marketplace.single_room_id) == 1


def test_capacity_cannot_drop_below_confirmed_bookings(settings, marketplace, booking_service) -> None:
    owner = Actor(actor_id=marketplace.hostel_owner_id, role=ActorRole.HOSTEL_OWNER)
    for student_id in (marketplace.student_a, marketplace.student_b):
        booking = booking_service.request_room_booking(
            student_id=student_id,
            hostel_id=marketplace.hostel_id,
            room_type="Single",
        )
        booking_service.set_booking_status(booking.booking_id, "confirmed", actor=owner)
    service = InventoryService(repository=marketplace.repository, settings=settings)

    with pytest.raises(CapacityConflictError):
        service.update_room_capacity(marketplace.single_room_id, 1, actor=owner)

    room = marketplace.repository.get_room(marketplace.single_room_id)
    assert (room.total_beds, room.available_beds) == (2, 0)


def test_capacity_edit_requires_hostel_owner(settings, marketplace) -> None:
    service = InventoryService(repository=marketplace.repository, settings=settings)
    stranger = Actor(actor_id=marketplace.other_owner_id, role=ActorRole.HOSTEL_OWNER)

    with pytest.raises(PermissionDeniedError):
        service.update_room_capacity(marketplace.single_room_id, 3, actor=stranger)
    with pytest.raises(NotFoundError):
        service.update_room_capacity(9999, 3)


def test_list_hostel_rooms_reports_availability(settings, marketplace) -> None:
    service = InventoryService(repository=marketplace.repository, settings=settings)
    marketplace.inventory.decrement(marketplace.double_room_id)

    rooms = service.list_hostel_rooms(marketplace.hostel_id)

    assert [(room.room_type, room.available_beds) for room in rooms] == [
        ("Single", 2),
        ("Double", 3),
    ]
    with pytest.raises(NotFoundError):
        service.list_hostel_rooms(9999)


def test_bed_counts_stay_in_range_through_mixed_changes(settings, marketplace, booking_service) -> None:
    owner = Actor(actor_id=marketplace.hostel_owner_id, role=ActorRole.HOSTEL_OWNER)
    service = InventoryService(repository=marketplace.repository, settings=settings)
    room_id = marketplace.single_room_id
    bookings = [
        booking_service.request_room_booking(
            student_id=student_id,
            hostel_id=marketplace.hostel_id,
            room_type="Single",
        )
        for student_id in (marketplace.student_a, marketplace.student_b, marketplace.student_c)
    ]

    def assert_in_range() -> None:
        room = marketplace.repository.get_room(room_id)
        assert 0 <= room.available_beds <= room.total_beds

    def attempt(step) -> None:
        try:
            step()
        except (NoAvailabilityError, CapacityConflictError):
            pass
        assert_in_range()

    steps = [
        lambda: booking_service.set_booking_status(bookings[0].booking_id, "confirmed", actor=owner),
        lambda: booking_service.set_booking_status(bookings[1].booking_id, "confirmed", actor=owner),
        lambda: booking_service.set_booking_status(bookings[2].booking_id, "confirmed", actor=owner),
        lambda: service.update_room_capacity(room_id, 1, actor=owner),
        lambda: service.update_room_capacity(room_id, 3, actor=owner),
        lambda: booking_service.set_booking_status(bookings[2].booking_id, "confirmed", actor=owner),
        lambda: booking_service.set_booking_status(bookings[0].booking_id, "cancelled", actor=owner),
        lambda: service.update_room_capacity(room_id, 2, actor=owner),
        lambda: booking_service.set_booking_status(bookings[1].booking_id, "cancelled", actor=owner),
        lambda: booking_service.set_booking_status(bookings[2].booking_id, "cancelled", actor=owner),
        lambda: service.update_room_capacity(room_id, 1, actor=owner),
    ]
    for step in steps:
        attempt(step)

    room = marketplace.repository.get_room(room_id)
    assert (room.total_beds, room.available_beds) == (1, 1)
