"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from backend.domain.models import Device, MassCollectionRequest, PickupRequest, User
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_CONNECT_TIMEOUT_SECONDS = 30.0

_PICKUP_SELECT = """
    SELECT
        p.pickup_id,
        p.user_id,
        p.device_id,
        p.address,
        p.district,
        p.scheduled_date,
        p.scheduled_time,
        p.status,
        p.tracking_note,
        p.created_at,
        p.updated_at,
        d.model_name AS device_name,
        d.category,
        d.credits_value,
        u.name AS user_name,
        u.email AS user_email
    FROM pickup_requests AS p
    INNER JOIN devices AS d ON d.device_id = p.device_id
    INNER JOIN users AS u ON u.user_id = p.user_id
"""

_MASS_COLLECTION_SELECT = """
    SELECT
        collection_id,
        org_name,
        org_type,
        contact_person,
        contact_phone,
        contact_email,
        address,
        pincode,
        estimated_items,
        scheduled_date,
        scheduled_time,
        status,
        tracking_note,
        created_at,
        updated_at
    FROM mass_collection_requests
"""


def _count_pickups(
    connection: sqlite3.Connection,
    district: str,
    scheduled_date: str,
) -> int:
    row = connection.execute(
        """
        SELECT COUNT(*) AS count
        FROM pickup_requests
        WHERE district = ? AND scheduled_date = ?;
        """,
        (district, scheduled_date),
    ).fetchone()
    return int(row["count"])


def _insert_pickup(
    connection: sqlite3.Connection,
    *,
    user_id: int,
    device_id: int,
    address: str,
    district: str,
    scheduled_date: str,
    scheduled_time: str,
    tracking_note: str,
) -> int:
    cursor = connection.execute(
        """
        INSERT INTO pickup_requests (
            user_id,
            device_id,
            address,
            district,
            scheduled_date,
            scheduled_time,
            tracking_note
        )
        VALUES (?, ?, ?, ?, ?, ?, ?);
        """,
        (user_id, device_id, address, district, scheduled_date, scheduled_time, tracking_note),
    )
    return int(cursor.lastrowid)


def _row_to_pickup(row: sqlite3.Row) -> PickupRequest:
    return PickupRequest(
        pickup_id=int(row["pickup_id"]),
        user_id=int(row["user_id"]),
        device_id=int(row["device_id"]),
        address=str(row["address"]),
        district=str(row["district"]),
        scheduled_date=str(row["scheduled_date"]),
        scheduled_time=str(row["scheduled_time"]),
        status=str(row["status"]),
        tracking_note=row["tracking_note"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        device_name=row["device_name"],
        category=row["category"],
        credits_value=int(row["credits_value"]),
        user_name=row["user_name"],
        user_email=row["user_email"],
    )


def _row_to_mass_collection(row: sqlite3.Row) -> MassCollectionRequest:
    estimated_items = row["estimated_items"]
    return MassCollectionRequest(
        collection_id=int(row["collection_id"]),
        org_name=str(row["org_name"]),
        org_type=str(row["org_type"]),
        address=str(row["address"]),
        status=str(row["status"]),
        tracking_note=row["tracking_note"],
        contact_person=row["contact_person"],
        contact_phone=row["contact_phone"],
        contact_email=row["contact_email"],
        pincode=row["pincode"],
        estimated_items=int(estimated_items) if estimated_items is not None else None,
        scheduled_date=row["scheduled_date"],
        scheduled_time=row["scheduled_time"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PickupReservation:
    """Count and insert bound to one write-locked transaction."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def count_pickups_for_district(self, district: str, scheduled_date: str) -> int:
        return _count_pickups(self._connection, district, scheduled_date)

    def create_pickup(
        self,
        *,
        user_id: int,
        device_id: int,
        address: str,
        district: str,
        scheduled_date: str,
        scheduled_time: str,
        tracking_note: str,
    ) -> int:
        return _insert_pickup(
            self._connection,
            user_id=user_id,
            device_id=device_id,
            address=address,
            district=district,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            tracking_note=tracking_note,
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
        connection = sqlite3.connect(self._db_path, timeout=_CONNECT_TIMEOUT_SECONDS)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        user_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        email TEXT NOT NULL UNIQUE,
                        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
                        credits INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS devices (
                        device_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        model_name TEXT NOT NULL,
                        category TEXT NOT NULL,
                        credits_value INTEGER NOT NULL DEFAULT 0 CHECK (credits_value >= 0)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS pickup_requests (
                        pickup_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id INTEGER NOT NULL,
                        device_id INTEGER NOT NULL,
                        address TEXT NOT NULL,
                        district TEXT NOT NULL,
                        scheduled_date TEXT NOT NULL,
                        scheduled_time TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending', 'scheduled', 'picked_up', 'completed', 'cancelled')),
                        tracking_note TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (user_id) REFERENCES users(user_id),
                        FOREIGN KEY (device_id) REFERENCES devices(device_id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS mass_collection_requests (
                        collection_id INTEGER PRIMARY KEY AUTOINCREMENT,
                        org_name TEXT NOT NULL,
                        org_type TEXT NOT NULL,
                        contact_person TEXT,
                        contact_phone TEXT,
                        contact_email TEXT,
                        address TEXT NOT NULL,
                        pincode TEXT,
                        estimated_items INTEGER,
                        scheduled_date TEXT,
                        scheduled_time TEXT,
                        status TEXT NOT NULL DEFAULT 'pending',
                        tracking_note TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_pickups_district_date
                    ON pickup_requests(district, scheduled_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_pickups_user
                    ON pickup_requests(user_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_mass_collection_email
                    ON mass_collection_requests(contact_email);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed demo users and devices only when the users table is empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) AS count FROM users;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return

                cursor.executemany(
                    """
                    INSERT INTO users (name, email, role, credits)
                    VALUES (?, ?, ?, ?);
                    """,
                    [
                        ("Admin", "admin@ewaste.local", "admin", 0),
                        ("Asha Rao", "asha@example.com", "user", 0),
                        ("Ravi Kumar", "ravi@example.com", "user", 0),
                    ],
                )
                devices = [
                    ("iPhone 12", "Smartphone", 45),
                    ("Samsung Galaxy S21", "Smartphone", 40),
                    ("Dell Inspiron 15", "Laptop", 120),
                    ("iPad Air", "Tablet", 60),
                    ("Sony WH-1000XM4", "Audio", 15),
                    ("Apple Watch Series 6", "Wearable", 20),
                ]
                cursor.executemany(
                    """
                    INSERT INTO devices (model_name, category, credits_value)
                    VALUES (?, ?, ?);
                    """,
                    devices,
                )
                conn.commit()
            logger.info("Demo seed completed with %s devices", len(devices))
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    def create_user(self, name: str, email: str, role: str = "user") -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO users (name, email, role) VALUES (?, ?, ?);",
                (name, email, role),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT user_id, name, email, role, credits FROM users WHERE user_id = ?;",
                (user_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return User(
                user_id=int(row["user_id"]),
                name=str(row["name"]),
                email=str(row["email"]),
                role=str(row["role"]),
                credits=int(row["credits"]),
            )

    def create_device(self, model_name: str, category: str, credits_value: int) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO devices (model_name, category, credits_value) VALUES (?, ?, ?);",
                (model_name, category, credits_value),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def get_device(self, device_id: int) -> Optional[Device]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT device_id, model_name, category, credits_value
                FROM devices
                WHERE device_id = ?;
                """,
                (device_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return Device(
                device_id=int(row["device_id"]),
                model_name=str(row["model_name"]),
                category=str(row["category"]),
                credits_value=int(row["credits_value"]),
            )

    def count_pickups_for_district(self, district: str, scheduled_date: str) -> int:
        """Count pickups booked for an exact district string on a YYYY-MM-DD date."""
        with self._connect() as conn:
            return _count_pickups(conn, district, scheduled_date)

    def create_pickup(
        self,
        *,
        user_id: int,
        device_id: int,
        address: str,
        district: str,
        scheduled_date: str,
        scheduled_time: str,
        tracking_note: str,
    ) -> int:
        """Insert a pickup row and return the created id."""
        with self._connect() as conn:
            pickup_id = _insert_pickup(
                conn,
                user_id=user_id,
                device_id=device_id,
                address=address,
                district=district,
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
                tracking_note=tracking_note,
            )
            conn.commit()
            return pickup_id

    @contextmanager
    def pickup_reservation(self) -> Iterator[PickupReservation]:
        """Yield a reservation holding the database write lock until exit.

        BEGIN IMMEDIATE takes the RESERVED lock up front, so a second
        reservation blocks before its count query rather than after it.
        The transaction commits on normal exit and rolls back on error.
        """
        connection = self._connect()
        connection.isolation_level = None
        try:
            connection.execute("BEGIN IMMEDIATE;")
            try:
                yield PickupReservation(connection)
            except BaseException:
                connection.execute("ROLLBACK;")
                raise
            connection.execute("COMMIT;")
        finally:
            connection.close()

    def get_pickup(self, pickup_id: int) -> Optional[PickupRequest]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(f"{_PICKUP_SELECT} WHERE p.pickup_id = ?;", (pickup_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_pickup(row)

    def list_pickups_for_user(self, user_id: int) -> list[PickupRequest]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                {_PICKUP_SELECT}
                WHERE p.user_id = ?
                ORDER BY p.updated_at DESC, p.created_at DESC, p.pickup_id DESC;
                """,
                (user_id,),
            )
            return [_row_to_pickup(row) for row in cursor.fetchall()]

    def list_pickups(
        self,
        status: Optional[str] = None,
        scheduled_date: Optional[str] = None,
    ) -> list[PickupRequest]:
        """Return pickups filtered by optional status and date, newest first."""
        conditions: list[str] = []
        params: list[str] = []
        if status:
            conditions.append("p.status = ?")
            params.append(status)
        if scheduled_date:
            conditions.append("p.scheduled_date = ?")
            params.append(scheduled_date)

        query = _PICKUP_SELECT
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY p.created_at DESC, p.pickup_id DESC;"

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [_row_to_pickup(row) for row in cursor.fetchall()]

    def update_pickup_status(
        self,
        pickup_id: int,
        status: str,
        tracking_note: str,
        credits_award: int = 0,
    ) -> None:
        """Update status and note; credit the owner in the same transaction."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE pickup_requests
                SET status = ?, tracking_note = ?, updated_at = CURRENT_TIMESTAMP
                WHERE pickup_id = ?;
                """,
                (status, tracking_note, pickup_id),
            )
            if credits_award > 0:
                cursor.execute(
                    """
                    UPDATE users
                    SET credits = credits + ?
                    WHERE user_id = (
                        SELECT user_id FROM pickup_requests WHERE pickup_id = ?
                    );
                    """,
                    (credits_award, pickup_id),
                )
            conn.commit()

    def create_mass_collection(
        self,
        *,
        org_name: str,
        org_type: str,
        address: str,
        tracking_note: str,
        contact_person: Optional[str] = None,
        contact_phone: Optional[str] = None,
        contact_email: Optional[str] = None,
        pincode: Optional[str] = None,
        estimated_items: Optional[int] = None,
        scheduled_date: Optional[str] = None,
        scheduled_time: Optional[str] = None,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO mass_collection_requests (
                    org_name,
                    org_type,
                    contact_person,
                    contact_phone,
                    contact_email,
                    address,
                    pincode,
                    estimated_items,
                    scheduled_date,
                    scheduled_time,
                    tracking_note
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    org_name,
                    org_type,
                    contact_person,
                    contact_phone,
                    contact_email,
                    address,
                    pincode,
                    estimated_items,
                    scheduled_date,
                    scheduled_time,
                    tracking_note,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def get_mass_collection(self, collection_id: int) -> Optional[MassCollectionRequest]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"{_MASS_COLLECTION_SELECT} WHERE collection_id = ?;",
                (collection_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_mass_collection(row)

    def list_mass_collections(
        self,
        status: Optional[str] = None,
        org_type: Optional[str] = None,
        scheduled_date: Optional[str] = None,
    ) -> list[MassCollectionRequest]:
        conditions: list[str] = []
        params: list[str] = []
        if status:
            conditions.append("status = ?")
            params.append(status)
        if org_type:
            conditions.append("org_type = ?")
            params.append(org_type)
        if scheduled_date:
            conditions.append("scheduled_date = ?")
            params.append(scheduled_date)

        query = _MASS_COLLECTION_SELECT
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC, collection_id DESC;"

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return [_row_to_mass_collection(row) for row in cursor.fetchall()]

    def list_mass_collections_by_email(self, contact_email: str) -> list[MassCollectionRequest]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                {_MASS_COLLECTION_SELECT}
                WHERE contact_email = ?
                ORDER BY created_at DESC, collection_id DESC;
                """,
                (contact_email,),
            )
            return [_row_to_mass_collection(row) for row in cursor.fetchall()]

    def update_mass_collection_status(
        self,
        collection_id: int,
        status: str,
        tracking_note: str,
    ) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE mass_collection_requests
                SET status = ?, tracking_note = ?, updated_at = CURRENT_TIMESTAMP
                WHERE collection_id = ?;
                """,
                (status, tracking_note, collection_id),
            )
            conn.commit()
