"""Booking ledger: room bookings and mess subscriptions."""

from __future__ import annotations

import sqlite3
from typing import Optional

from staymate.domain.models import (
    BookingStatus,
    MessSubscriberView,
    MessSubscription,
    OwnerBookingView,
    RoomBooking,
    StudentRoomBookingView,
    StudentSubscriptionView,
)
from staymate.repository.data_repository import DataRepository


class DuplicateActiveSubscription(Exception):
    """Raised when the active-subscription unique index rejects an insert."""


def _row_to_booking(row: sqlite3.Row) -> RoomBooking:
    return RoomBooking(
        booking_id=int(row["id"]),
        student_id=int(row["student_id"]),
        room_id=int(row["room_id"]),
        start_date=str(row["start_date"]),
        status=BookingStatus(str(row["status"])),
        created_at=str(row["created_at"]),
    )


def _row_to_subscription(row: sqlite3.Row) -> MessSubscription:
    return MessSubscription(
        subscription_id=int(row["id"]),
        student_id=int(row["student_id"]),
        mess_id=int(row["mess_id"]),
        start_date=str(row["start_date"]),
        is_active=bool(row["is_active"]),
        created_at=str(row["created_at"]),
    )


class BookingLedgerRepository:
    """Persists booking lifecycle rows; status edits are compare-and-set."""

    def __init__(self, database: DataRepository) -> None:
        self._database = database

    def create_room_booking(
        self,
        student_id: int,
        room_id: int,
        start_date: str,
        conn: sqlite3.Connection | None = None,
    ) -> RoomBooking:
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                INSERT INTO RoomBookings (student_id, room_id, start_date, status)
                VALUES (?, ?, ?, ?);
                """,
                (student_id, room_id, start_date, BookingStatus.PENDING.value),
            )
            booking = self.get_room_booking(int(cursor.lastrowid), conn=active)
        if booking is None:
            raise RuntimeError("Room booking insert was not persisted")
        return booking

    def get_room_booking(
        self,
        booking_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[RoomBooking]:
        with self._database.scope(conn) as active:
            row = active.execute(
                """
                SELECT id, student_id, room_id, start_date, status, created_at
                FROM RoomBookings
                WHERE id = ?;
                """,
                (booking_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_booking(row)

    def transition_room_booking(
        self,
        booking_id: int,
        expected: BookingStatus,
        target: BookingStatus,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Set ``target`` only if the row still holds ``expected``."""
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                UPDATE RoomBookings
                SET status = ?
                WHERE id = ? AND status = ?;
                """,
                (target.value, booking_id, expected.value),
            )
            return cursor.rowcount == 1

    def get_booking_owner_id(
        self,
        booking_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[int]:
        """Owner of the hostel the booked room belongs to."""
        with self._database.scope(conn) as active:
            row = active.execute(
                """
                SELECT h.owner_id
                FROM RoomBookings AS rb
                INNER JOIN Rooms AS r ON r.id = rb.room_id
                INNER JOIN Hostels AS h ON h.id = r.hostel_id
                WHERE rb.id = ?;
                """,
                (booking_id,),
            ).fetchone()
        if row is None:
            return None
        return int(row["owner_id"])

    def create_mess_subscription(
        self,
        student_id: int,
        mess_id: int,
        start_date: str,
        conn: sqlite3.Connection | None = None,
    ) -> MessSubscription:
        try:
            with self._database.scope(conn, write=True) as active:
                cursor = active.execute(
                    """
                    INSERT INTO MessSubscriptions (student_id, mess_id, start_date, is_active)
                    VALUES (?, ?, ?, 1);
                    """,
                    (student_id, mess_id, start_date),
                )
                subscription = self.get_mess_subscription(int(cursor.lastrowid), conn=active)
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" in str(exc):
                raise DuplicateActiveSubscription(str(exc)) from exc
            raise
        if subscription is None:
            raise RuntimeError("Mess subscription insert was not persisted")
        return subscription

    def get_mess_subscription(
        self,
        subscription_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[MessSubscription]:
        with self._database.scope(conn) as active:
            row = active.execute(
                """
                SELECT id, student_id, mess_id, start_date, is_active, created_at
                FROM MessSubscriptions
                WHERE id = ?;
                """,
                (subscription_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_subscription(row)

    def find_active_subscription(
        self,
        student_id: int,
        mess_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[MessSubscription]:
        with self._database.scope(conn) as active:
            row = active.execute(
                """
                SELECT id, student_id, mess_id, start_date, is_active, created_at
                FROM MessSubscriptions
                WHERE student_id = ? AND mess_id = ? AND is_active = 1;
                """,
                (student_id, mess_id),
            ).fetchone()
        if row is None:
            return None
        return _row_to_subscription(row)

    def deactivate_mess_subscription(
        self,
        subscription_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                UPDATE MessSubscriptions
                SET is_active = 0
                WHERE id = ? AND is_active = 1;
                """,
                (subscription_id,),
            )
            return cursor.rowcount == 1

    def list_student_room_bookings(self, student_id: int) -> list[StudentRoomBookingView]:
        with self._database.scope() as conn:
            rows = conn.execute(
                """
                SELECT
                    rb.id AS booking_id,
                    h.name AS hostel_name,
                    r.room_type,
                    rb.start_date,
                    rb.status,
                    rb.created_at
                FROM RoomBookings AS rb
                INNER JOIN Rooms AS r ON r.id = rb.room_id
                INNER JOIN Hostels AS h ON h.id = r.hostel_id
                WHERE rb.student_id = ?
                ORDER BY rb.created_at DESC, rb.id DESC;
                """,
                (student_id,),
            ).fetchall()
        return [
            StudentRoomBookingView(
                booking_id=int(row["booking_id"]),
                hostel_name=str(row["hostel_name"]),
                room_type=str(row["room_type"]),
                start_date=str(row["start_date"]),
                status=BookingStatus(str(row["status"])),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]

    def list_student_subscriptions(self, student_id: int) -> list[StudentSubscriptionView]:
        with self._database.scope() as conn:
            rows = conn.execute(
                """
                SELECT
                    ms.id AS subscription_id,
                    m.name AS mess_name,
                    m.monthly_price,
                    ms.start_date,
                    ms.is_active,
                    ms.created_at
                FROM MessSubscriptions AS ms
                INNER JOIN MessServices AS m ON m.id = ms.mess_id
                WHERE ms.student_id = ?
                ORDER BY ms.created_at DESC, ms.id DESC;
                """,
                (student_id,),
            ).fetchall()
        return [
            StudentSubscriptionView(
                subscription_id=int(row["subscription_id"]),
                mess_name=str(row["mess_name"]),
                monthly_price=float(row["monthly_price"]),
                start_date=str(row["start_date"]),
                is_active=bool(row["is_active"]),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]

    def list_owner_bookings(self, owner_id: int) -> list[OwnerBookingView]:
        """All bookings across the owner's hostels with student contact info."""
        with self._database.scope() as conn:
            rows = conn.execute(
                """
                SELECT
                    rb.id AS booking_id,
                    rb.status,
                    rb.start_date,
                    rb.created_at,
                    h.name AS hostel_name,
                    r.room_type,
                    COALESCE(u.full_name, 'Student #' || rb.student_id) AS student_name,
                    u.email AS student_email,
                    u.phone_number AS student_phone
                FROM RoomBookings AS rb
                INNER JOIN Rooms AS r ON r.id = rb.room_id
                INNER JOIN Hostels AS h ON h.id = r.hostel_id
                LEFT JOIN Users AS u ON u.id = rb.student_id
                WHERE h.owner_id = ?
                ORDER BY rb.created_at DESC, rb.id DESC;
                """,
                (owner_id,),
            ).fetchall()
        return [
            OwnerBookingView(
                booking_id=int(row["booking_id"]),
                status=BookingStatus(str(row["status"])),
                start_date=str(row["start_date"]),
                created_at=str(row["created_at"]),
                hostel_name=str(row["hostel_name"]),
                room_type=str(row["room_type"]),
                student_name=str(row["student_name"]),
                student_email=row["student_email"],
                student_phone=row["student_phone"],
            )
            for row in rows
        ]

    def list_mess_subscribers(self, mess_id: int) -> list[MessSubscriberView]:
        with self._database.scope() as conn:
            rows = conn.execute(
                """
                SELECT
                    ms.id AS subscription_id,
                    ms.start_date,
                    ms.created_at,
                    ms.is_active,
                    COALESCE(u.full_name, 'Student #' || ms.student_id) AS student_name,
                    u.email AS student_email,
                    u.phone_number AS student_phone
                FROM MessSubscriptions AS ms
                LEFT JOIN Users AS u ON u.id = ms.student_id
                WHERE ms.mess_id = ?
                ORDER BY ms.created_at DESC, ms.id DESC;
                """,
                (mess_id,),
            ).fetchall()
        return [
            MessSubscriberView(
                subscription_id=int(row["subscription_id"]),
                start_date=str(row["start_date"]),
                created_at=str(row["created_at"]),
                is_active=bool(row["is_active"]),
                student_name=str(row["student_name"]),
                student_email=row["student_email"],
                student_phone=row["student_phone"],
            )
            for row in rows
        ]

    def count_room_bookings(self, status: BookingStatus | None = None) -> int:
        with self._database.scope() as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) AS count FROM RoomBookings;").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS count FROM RoomBookings WHERE status = ?;",
                    (status.value,),
                ).fetchone()
            return int(row["count"])
