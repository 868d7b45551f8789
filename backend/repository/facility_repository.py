"""Repository layer: SQLite-backed facility snapshot reader and writes."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional
from uuid import uuid4

from backend.domain.models import Bed, BedStatus, FacilitySnapshot, Gender, Resident, Room
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class SnapshotSourceNotConfiguredError(RuntimeError):
    """Raised when no database path is configured for facility state."""


class SnapshotUnavailableError(RuntimeError):
    """Raised when the configured database cannot be read or written."""


class BedNoLongerVacantError(RuntimeError):
    """Raised when a bed was taken between evaluation and commit."""


class FacilityRepository:
    """Encapsulates SQLite access so the compatibility rules stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path: Optional[Path] = self._settings.database_path
        if self._db_path is not None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def is_configured(self) -> bool:
        return self._db_path is not None

    @property
    def database_path(self) -> Optional[Path]:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        if self._db_path is None:
            raise SnapshotSourceNotConfiguredError(
                "FACILITY_DB_PATH is not configured; facility state is unavailable."
            )
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Wings (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL UNIQUE
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id TEXT PRIMARY KEY,
                        room_number TEXT NOT NULL,
                        wing_id TEXT,
                        has_shared_bathroom INTEGER NOT NULL DEFAULT 0
                            CHECK (has_shared_bathroom IN (0,1)),
                        shared_bathroom_group_id TEXT,
                        FOREIGN KEY (wing_id) REFERENCES Wings(id)
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Beds (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        bed_letter TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'vacant'
                            CHECK (status IN ('vacant', 'occupied', 'out_of_service')),
                        resident_id TEXT,
                        FOREIGN KEY (room_id) REFERENCES Rooms(id) ON DELETE CASCADE,
                        UNIQUE (room_id, bed_letter)
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Residents (
                        id TEXT PRIMARY KEY,
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        gender TEXT NOT NULL CHECK (gender IN ('male', 'female', 'other')),
                        bed_id TEXT,
                        status TEXT NOT NULL DEFAULT 'active'
                            CHECK (status IN ('active', 'discharged')),
                        FOREIGN KEY (bed_id) REFERENCES Beds(id)
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_rooms_bathroom_group
                    ON Rooms(shared_bathroom_group_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_beds_room
                    ON Beds(room_id);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Database initialization failed: {exc}") from exc

    def seed_demo_facility(self) -> None:
        """Seed a small demo facility only when no rooms exist yet."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Rooms;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Facility data already present; skipping demo seed")
                    return

                cursor.executemany(
                    "INSERT INTO Wings (id, name) VALUES (?, ?);",
                    [("wing-north", "North"), ("wing-south", "South")],
                )
                # room id, number, wing, shared bathroom, bathroom group, bed letters
                rooms = [
                    ("room-101", "101", "wing-north", 0, None, "AB"),
                    ("room-102", "102", "wing-north", 0, None, "AB"),
                    ("room-103", "103", "wing-north", 1, "north-103-104", "A"),
                    ("room-104", "104", "wing-north", 1, "north-103-104", "A"),
                    ("room-105", "105", "wing-north", 0, None, "A"),
                    ("room-201", "201", "wing-south", 0, None, "ABC"),
                    ("room-202", "202", "wing-south", 1, "south-202-204", "A"),
                    ("room-203", "203", "wing-south", 1, "south-202-204", "A"),
                    ("room-204", "204", "wing-south", 1, "south-202-204", "AB"),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Rooms (id, room_number, wing_id, has_shared_bathroom,
                                       shared_bathroom_group_id)
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    [room[:5] for room in rooms],
                )
                cursor.executemany(
                    "INSERT INTO Beds (id, room_id, bed_letter) VALUES (?, ?, ?);",
                    [
                        (f"bed-{number}{letter}", room_id, letter)
                        for room_id, number, _, _, _, letters in rooms
                        for letter in letters
                    ],
                )

                residents = [
                    ("res-1", "John", "Smith", "male", "bed-101A"),
                    ("res-2", "Mary", "Johnson", "female", "bed-102A"),
                    ("res-3", "Patricia", "Brown", "female", "bed-104A"),
                    ("res-4", "Robert", "Williams", "male", "bed-201A"),
                    ("res-5", "Michael", "Jones", "male", None),
                    ("res-6", "Linda", "Davis", "female", None),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Residents (id, first_name, last_name, gender, bed_id)
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    residents,
                )
                cursor.executemany(
                    "UPDATE Beds SET status = 'occupied', resident_id = ? WHERE id = ?;",
                    [(resident[0], resident[4]) for resident in residents if resident[4]],
                )
                conn.commit()
            logger.info("Demo facility seeded with %s rooms", len(rooms))
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Demo facility seeding failed: {exc}") from exc

    def _execute_write(self, action: str, query: str, params: tuple) -> None:
        try:
            with self._connect() as conn:
                conn.execute(query, params)
                conn.commit()
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Failed to {action}: {exc}") from exc

    def create_wing(self, name: str, wing_id: Optional[str] = None) -> str:
        wing_id = wing_id or str(uuid4())
        self._execute_write(
            "create wing",
            "INSERT INTO Wings (id, name) VALUES (?, ?);",
            (wing_id, name),
        )
        return wing_id

    def create_room(
        self,
        room_number: str,
        *,
        wing_id: Optional[str] = None,
        has_shared_bathroom: bool = False,
        bathroom_group_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> str:
        room_id = room_id or str(uuid4())
        self._execute_write(
            "create room",
            """
            INSERT INTO Rooms (id, room_number, wing_id, has_shared_bathroom,
                               shared_bathroom_group_id)
            VALUES (?, ?, ?, ?, ?);
            """,
            (room_id, room_number, wing_id, int(has_shared_bathroom), bathroom_group_id),
        )
        return room_id

    def create_bed(
        self,
        room_id: str,
        bed_letter: str,
        *,
        status: BedStatus = BedStatus.VACANT,
        bed_id: Optional[str] = None,
    ) -> str:
        bed_id = bed_id or str(uuid4())
        self._execute_write(
            "create bed",
            "INSERT INTO Beds (id, room_id, bed_letter, status) VALUES (?, ?, ?, ?);",
            (bed_id, room_id, bed_letter, status.value),
        )
        return bed_id

    def create_resident(
        self,
        first_name: str,
        last_name: str,
        gender: Gender,
        *,
        resident_id: Optional[str] = None,
    ) -> str:
        resident_id = resident_id or str(uuid4())
        self._execute_write(
            "create resident",
            """
            INSERT INTO Residents (id, first_name, last_name, gender)
            VALUES (?, ?, ?, ?);
            """,
            (resident_id, first_name, last_name, gender.value),
        )
        return resident_id

    def set_bed_status(self, bed_id: str, status: BedStatus) -> None:
        """Toggle a bed between vacant and out-of-service."""
        if status is BedStatus.OCCUPIED:
            raise ValueError("Use assign_resident to occupy a bed")
        self._execute_write(
            "update bed status",
            "UPDATE Beds SET status = ? WHERE id = ? AND status != 'occupied';",
            (status.value, bed_id),
        )

    def load_snapshot(self) -> FacilitySnapshot:
        """Read the current facility state as one consistent snapshot."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT
                        r.id,
                        r.room_number,
                        r.wing_id,
                        r.has_shared_bathroom,
                        r.shared_bathroom_group_id,
                        COUNT(b.id) AS bed_count
                    FROM Rooms AS r
                    LEFT JOIN Beds AS b ON b.room_id = r.id
                    GROUP BY r.id
                    ORDER BY r.room_number ASC, r.id ASC;
                    """
                )
                rooms = tuple(
                    Room(
                        room_id=str(row["id"]),
                        room_number=str(row["room_number"]),
                        bed_count=int(row["bed_count"]),
                        has_shared_bathroom=bool(row["has_shared_bathroom"]),
                        bathroom_group_id=row["shared_bathroom_group_id"],
                        wing_id=row["wing_id"],
                    )
                    for row in cursor.fetchall()
                )

                cursor.execute(
                    """
                    SELECT id, room_id, bed_letter, status, resident_id
                    FROM Beds
                    ORDER BY room_id ASC, bed_letter ASC;
                    """
                )
                beds = tuple(
                    Bed(
                        bed_id=str(row["id"]),
                        room_id=row["room_id"],
                        status=BedStatus(row["status"]),
                        resident_id=row["resident_id"],
                        label=str(row["bed_letter"]),
                    )
                    for row in cursor.fetchall()
                )

                cursor.execute(
                    """
                    SELECT id, first_name, last_name, gender, bed_id
                    FROM Residents
                    WHERE status = 'active'
                    ORDER BY last_name ASC, first_name ASC, id ASC;
                    """
                )
                residents = tuple(
                    Resident(
                        resident_id=str(row["id"]),
                        gender=Gender(row["gender"]),
                        bed_id=row["bed_id"],
                        display_name=f"{row['first_name']} {row['last_name']}",
                    )
                    for row in cursor.fetchall()
                )
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Failed to read facility snapshot: {exc}") from exc

        return FacilitySnapshot(beds=beds, rooms=rooms, residents=residents)

    def load_snapshot_or_none(self, fail_open: bool) -> Optional[FacilitySnapshot]:
        """Load the snapshot, or return None in degraded mode.

        With no database configured this returns None when ``fail_open`` is
        set and raises ``SnapshotSourceNotConfiguredError`` otherwise.
        """
        if self.is_configured:
            return self.load_snapshot()
        if not fail_open:
            raise SnapshotSourceNotConfiguredError(
                "Facility data source is not configured and fail-open mode is disabled."
            )
        return None

    def assign_resident(self, resident_id: str, bed_id: str) -> None:
        """Occupy a vacant bed. Callers evaluate compatibility first."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    UPDATE Beds SET status = 'occupied', resident_id = ?
                    WHERE id = ? AND status = 'vacant';
                    """,
                    (resident_id, bed_id),
                )
                if cursor.rowcount != 1:
                    conn.rollback()
                    raise BedNoLongerVacantError(f"Bed '{bed_id}' is no longer vacant")
                cursor.execute(
                    "UPDATE Residents SET bed_id = ? WHERE id = ?;",
                    (bed_id, resident_id),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Failed to assign resident: {exc}") from exc
        logger.info("Resident %s assigned to bed %s", resident_id, bed_id)

    def release_resident(self, resident_id: str, *, discharge: bool = False) -> Optional[str]:
        """Vacate the resident's bed; returns the freed bed id, if any."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT bed_id FROM Residents WHERE id = ?;", (resident_id,))
                row = cursor.fetchone()
                bed_id = row["bed_id"] if row is not None else None
                if bed_id is not None:
                    cursor.execute(
                        """
                        UPDATE Beds SET status = 'vacant', resident_id = NULL
                        WHERE id = ? AND resident_id = ?;
                        """,
                        (bed_id, resident_id),
                    )
                cursor.execute(
                    "UPDATE Residents SET bed_id = NULL, status = ? WHERE id = ?;",
                    ("discharged" if discharge else "active", resident_id),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise SnapshotUnavailableError(f"Failed to release resident: {exc}") from exc
        logger.info("Resident %s released from bed %s", resident_id, bed_id)
        return bed_id
