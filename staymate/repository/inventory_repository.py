"""Bed inventory primitives.

Every mutation of ``available_beds`` is a single conditional UPDATE whose
WHERE clause carries the bound check; callers inspect ``rowcount`` instead of
reading the counter first. A read-then-write pair would let two confirmations
both see the last bed.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from staymate.domain.models import Room
from staymate.repository.data_repository import DataRepository, row_to_room
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


class InventoryRepository:
    """Reads and atomically adjusts per-room bed counts."""

    def __init__(self, database: DataRepository) -> None:
        self._database = database

    def get_availability(
        self,
        room_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[int]:
        with self._database.scope(conn) as active:
            row = active.execute(
                "SELECT available_beds FROM Rooms WHERE id = ?;",
                (room_id,),
            ).fetchone()
        if row is None:
            return None
        return int(row["available_beds"])

    def decrement(
        self,
        room_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Take one bed; False when the room is full or missing."""
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                UPDATE Rooms
                SET available_beds = available_beds - 1
                WHERE id = ? AND available_beds > 0;
                """,
                (room_id,),
            )
            taken = cursor.rowcount == 1
        if not taken:
            logger.info("Decrement refused for room %s: no free bed", room_id)
        return taken

    def increment(
        self,
        room_id: int,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Return one bed; never lifts the count above ``total_beds``."""
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                UPDATE Rooms
                SET available_beds = available_beds + 1
                WHERE id = ? AND available_beds < total_beds;
                """,
                (room_id,),
            )
            restored = cursor.rowcount == 1
        if not restored:
            logger.warning("Increment refused for room %s: already at capacity", room_id)
        return restored

    def update_capacity(
        self,
        room_id: int,
        total_beds: int,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Resize a room while keeping beds held by confirmed bookings.

        ``available_beds`` shifts by the same delta as ``total_beds``; the
        update is refused when that would leave it negative.
        """
        with self._database.scope(conn, write=True) as active:
            cursor = active.execute(
                """
                UPDATE Rooms
                SET available_beds = available_beds + (? - total_beds),
                    total_beds = ?
                WHERE id = ?
                  AND available_beds + (? - total_beds) >= 0;
                """,
                (total_beds, total_beds, room_id, total_beds),
            )
            return cursor.rowcount == 1

    def find_available_room(
        self,
        hostel_id: int,
        room_type: str,
        conn: sqlite3.Connection | None = None,
    ) -> Optional[Room]:
        """Return the first room of the type that still has a free bed."""
        with self._database.scope(conn) as active:
            row = active.execute(
                """
                SELECT
                    id,
                    hostel_id,
                    room_type,
                    price_per_month,
                    total_beds,
                    available_beds,
                    has_attached_bath
                FROM Rooms
                WHERE hostel_id = ?
                  AND room_type = ?
                  AND available_beds > 0
                ORDER BY id ASC
                LIMIT 1;
                """,
                (hostel_id, room_type),
            ).fetchone()
        if row is None:
            return None
        return row_to_room(row)

    def list_hostel_rooms(self, hostel_id: int) -> list[Room]:
        with self._database.scope() as conn:
            rows = conn.execute(
                """
                SELECT
                    id,
                    hostel_id,
                    room_type,
                    price_per_month,
                    total_beds,
                    available_beds,
                    has_attached_bath
                FROM Rooms
                WHERE hostel_id = ?
                ORDER BY id ASC;
                """,
                (hostel_id,),
            ).fetchall()
        return [row_to_room(row) for row in rows]
