"""Repository layer responsible for connections, schema and listing lookups."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from staymate.domain.models import Hostel, MessService, Room, UserContact
from staymate.utils.config import Settings, get_settings
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


def row_to_room(row: sqlite3.Row) -> Room:
    return Room(
        room_id=int(row["id"]),
        hostel_id=int(row["hostel_id"]),
        room_type=str(row["room_type"]),
        price_per_month=float(row["price_per_month"]),
        total_beds=int(row["total_beds"]),
        available_beds=int(row["available_beds"]),
        has_attached_bath=bool(row["has_attached_bath"]),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_busy_timeout_seconds,
            isolation_level=None,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection holding the write lock until commit.

        ``BEGIN IMMEDIATE`` takes the reserved lock up front, so concurrent
        writers queue on the busy timeout instead of interleaving their
        check-and-update statements.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE;")
            yield conn
            conn.execute("COMMIT;")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK;")
            raise
        finally:
            conn.close()

    @contextmanager
    def scope(
        self,
        conn: sqlite3.Connection | None = None,
        *,
        write: bool = False,
    ) -> Iterator[sqlite3.Connection]:
        """Reuse the caller's transaction, or open a short-lived one."""
        if conn is not None:
            yield conn
            return
        if write:
            with self.transaction() as owned:
                yield owned
            return
        owned = self._connect()
        try:
            yield owned
        finally:
            owned.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self.transaction() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        full_name TEXT NOT NULL,
                        email TEXT,
                        phone_number TEXT,
                        role TEXT NOT NULL
                            CHECK (role IN ('student', 'hostel_owner', 'mess_owner')),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Hostels (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        owner_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        city TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        hostel_id INTEGER NOT NULL,
                        room_type TEXT NOT NULL,
                        price_per_month REAL NOT NULL CHECK (price_per_month >= 0),
                        total_beds INTEGER NOT NULL CHECK (total_beds > 0),
                        available_beds INTEGER NOT NULL,
                        has_attached_bath INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (available_beds >= 0 AND available_beds <= total_beds),
                        FOREIGN KEY (hostel_id) REFERENCES Hostels(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS MessServices (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        owner_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        city TEXT,
                        monthly_price REAL NOT NULL CHECK (monthly_price >= 0),
                        delivery_radius_km REAL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RoomBookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL,
                        room_id INTEGER NOT NULL,
                        start_date TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending', 'confirmed', 'cancelled')),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (room_id) REFERENCES Rooms(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS MessSubscriptions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_id INTEGER NOT NULL,
                        mess_id INTEGER NOT NULL,
                        start_date TEXT NOT NULL,
                        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (mess_id) REFERENCES MessServices(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_rooms_hostel_type
                    ON Rooms(hostel_id, room_type);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_room_bookings_student
                    ON RoomBookings(student_id, created_at);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_room_bookings_room_status
                    ON RoomBookings(room_id, status);
                    """
                )
                cursor.execute(
                    """
                    CREATE UNIQUE INDEX IF NOT EXISTS uq_active_mess_subscription
                    ON MessSubscriptions(student_id, mess_id)
                    WHERE is_active = 1;
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> bool:
        """Seed a small marketplace only when no hostels exist yet."""
        try:
            with self.transaction() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Hostels;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return False

                users = [
                    ("Asha Verma", "asha@student.local", "9000000001", "student"),
                    ("Rohan Das", "rohan@student.local", "9000000002", "student"),
                    ("Meera Iyer", "meera@student.local", "9000000003", "student"),
                    ("Green Nest Owner", "owner@greennest.local", "9000000010", "hostel_owner"),
                    ("Annapurna Mess", "owner@annapurna.local", "9000000020", "mess_owner"),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Users (full_name, email, phone_number, role)
                    VALUES (?, ?, ?, ?);
                    """,
                    users,
                )
                cursor.execute("SELECT id, role FROM Users ORDER BY id ASC;")
                owner_ids = {
                    str(row["role"]): int(row["id"])
                    for row in cursor.fetchall()
                    if str(row["role"]) != "student"
                }

                cursor.execute(
                    "INSERT INTO Hostels (owner_id, name, city) VALUES (?, ?, ?);",
                    (owner_ids["hostel_owner"], "Green Nest Hostel", "Pune"),
                )
                hostel_id = int(cursor.lastrowid)
                cursor.executemany(
                    """
                    INSERT INTO Rooms (
                        hostel_id,
                        room_type,
                        price_per_month,
                        total_beds,
                        available_beds,
                        has_attached_bath
                    )
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (hostel_id, "Single", 9000.0, 2, 2, 1),
                        (hostel_id, "Double", 6500.0, 4, 4, 0),
                        (hostel_id, "Triple", 5000.0, 6, 6, 0),
                    ],
                )
                cursor.execute(
                    """
                    INSERT INTO MessServices (
                        owner_id,
                        name,
                        city,
                        monthly_price,
                        delivery_radius_km
                    )
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    (owner_ids["mess_owner"], "Annapurna Tiffin", "Pune", 3200.0, 5.0),
                )
            logger.info("Demo marketplace seeded")
            return True
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # Listing inserts. Full listing management lives outside this service;
    # these cover seeding and test fixtures.

    def create_user(
        self,
        full_name: str,
        role: str,
        email: str | None = None,
        phone_number: str | None = None,
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO Users (full_name, email, phone_number, role)
                VALUES (?, ?, ?, ?);
                """,
                (full_name, email, phone_number, role),
            )
            return int(cursor.lastrowid)

    def create_hostel(self, owner_id: int, name: str, city: str | None = None) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO Hostels (owner_id, name, city) VALUES (?, ?, ?);",
                (owner_id, name, city),
            )
            return int(cursor.lastrowid)

    def create_room(
        self,
        hostel_id: int,
        room_type: str,
        total_beds: int,
        price_per_month: float = 0.0,
        has_attached_bath: bool = False,
    ) -> int:
        """Insert a room with every bed free."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO Rooms (
                    hostel_id,
                    room_type,
                    price_per_month,
                    total_beds,
                    available_beds,
                    has_attached_bath
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    hostel_id,
                    room_type,
                    price_per_month,
                    total_beds,
                    total_beds,
                    int(has_attached_bath),
                ),
            )
            return int(cursor.lastrowid)

    def create_mess(
        self,
        owner_id: int,
        name: str,
        monthly_price: float,
        city: str | None = None,
        delivery_radius_km: float | None = None,
    ) -> int:
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO MessServices (
                    owner_id,
                    name,
                    city,
                    monthly_price,
                    delivery_radius_km
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (owner_id, name, city, monthly_price, delivery_radius_km),
            )
            return int(cursor.lastrowid)

    def delete_room(self, room_id: int) -> None:
        """Hard-delete a room; its bookings go with it."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM Rooms WHERE id = ?;", (room_id,))

    def get_hostel(self, hostel_id: int) -> Optional[Hostel]:
        with self.scope() as conn:
            row = conn.execute(
                "SELECT id, owner_id, name, city FROM Hostels WHERE id = ?;",
                (hostel_id,),
            ).fetchone()
        if row is None:
            return None
        return Hostel(
            hostel_id=int(row["id"]),
            owner_id=int(row["owner_id"]),
            name=str(row["name"]),
            city=row["city"],
        )

    def get_room(self, room_id: int) -> Optional[Room]:
        with self.scope() as conn:
            row = conn.execute(
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
                WHERE id = ?;
                """,
                (room_id,),
            ).fetchone()
        if row is None:
            return None
        return row_to_room(row)

    def get_mess(self, mess_id: int) -> Optional[MessService]:
        with self.scope() as conn:
            row = conn.execute(
                """
                SELECT id, owner_id, name, city, monthly_price, delivery_radius_km
                FROM MessServices
                WHERE id = ?;
                """,
                (mess_id,),
            ).fetchone()
        if row is None:
            return None
        return MessService(
            mess_id=int(row["id"]),
            owner_id=int(row["owner_id"]),
            name=str(row["name"]),
            city=row["city"],
            monthly_price=float(row["monthly_price"]),
            delivery_radius_km=(
                float(row["delivery_radius_km"])
                if row["delivery_radius_km"] is not None
                else None
            ),
        )

    def get_user_contact(self, user_id: int) -> Optional[UserContact]:
        with self.scope() as conn:
            row = conn.execute(
                "SELECT id, full_name, email, phone_number FROM Users WHERE id = ?;",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return UserContact(
            user_id=int(row["id"]),
            full_name=str(row["full_name"]),
            email=row["email"],
            phone_number=row["phone_number"],
        )
