"""Indexed, read-only access to a facility snapshot."""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from backend.domain.models import Bed, BedStatus, FacilitySnapshot, Resident, Room


class SnapshotError(Exception):
    """Base exception for snapshot lookups."""


class BedNotFoundError(SnapshotError):
    """Raised when a bed id does not exist in the snapshot."""


class RoomNotFoundError(SnapshotError):
    """Raised when a bed references a room missing from the snapshot."""


class ResidentNotFoundError(SnapshotError):
    """Raised when a resident id does not exist in the snapshot."""


class SnapshotIntegrityError(SnapshotError):
    """Raised when the snapshot repeats an entity id."""


def as_index(source: FacilitySnapshot | SnapshotIndex) -> SnapshotIndex:
    if isinstance(source, SnapshotIndex):
        return source
    return SnapshotIndex(source)


class SnapshotIndex:
    """Lookup tables built once per snapshot.

    Bathroom-group membership is grouped here up front so scope resolution
    never rescans the room list per bed.
    """

    def __init__(self, snapshot: FacilitySnapshot) -> None:
        self._snapshot = snapshot
        self._rooms: dict[str, Room] = {}
        self._beds: dict[str, Bed] = {}
        self._residents: dict[str, Resident] = {}
        self._beds_by_room: dict[str, list[Bed]] = defaultdict(list)
        self._rooms_by_group: dict[str, list[Room]] = defaultdict(list)
        self._resident_by_bed: dict[str, Resident] = {}

        for room in snapshot.rooms:
            if room.room_id in self._rooms:
                raise SnapshotIntegrityError(f"Duplicate room id '{room.room_id}' in snapshot")
            self._rooms[room.room_id] = room
            if room.bathroom_group is not None:
                self._rooms_by_group[room.bathroom_group].append(room)

        for bed in snapshot.beds:
            if bed.bed_id in self._beds:
                raise SnapshotIntegrityError(f"Duplicate bed id '{bed.bed_id}' in snapshot")
            self._beds[bed.bed_id] = bed
            if bed.room_id is not None:
                self._beds_by_room[bed.room_id].append(bed)

        for resident in snapshot.residents:
            if resident.resident_id in self._residents:
                raise SnapshotIntegrityError(
                    f"Duplicate resident id '{resident.resident_id}' in snapshot"
                )
            self._residents[resident.resident_id] = resident
            if resident.bed_id is not None:
                self._resident_by_bed.setdefault(resident.bed_id, resident)

        self._bed_by_resident: dict[str, Bed] = {}
        for bed in snapshot.beds:
            occupant = self.occupant(bed)
            if occupant is not None:
                self._bed_by_resident.setdefault(occupant.resident_id, bed)

    @property
    def snapshot(self) -> FacilitySnapshot:
        return self._snapshot

    def bed(self, bed_id: str) -> Bed:
        bed = self._beds.get(bed_id)
        if bed is None:
            raise BedNotFoundError(f"Bed '{bed_id}' not found")
        return bed

    def room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room '{room_id}' not found")
        return room

    def find_room(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    def room_for_bed(self, bed: Bed) -> Room:
        if bed.room_id is None:
            raise RoomNotFoundError(f"Bed '{bed.bed_id}' has no room reference")
        room = self._rooms.get(bed.room_id)
        if room is None:
            raise RoomNotFoundError(
                f"Room '{bed.room_id}' referenced by bed '{bed.bed_id}' not found"
            )
        return room

    def resident(self, resident_id: str) -> Resident:
        resident = self._residents.get(resident_id)
        if resident is None:
            raise ResidentNotFoundError(f"Resident '{resident_id}' not found")
        return resident

    def beds(self) -> tuple[Bed, ...]:
        return self._snapshot.beds

    def rooms(self) -> tuple[Room, ...]:
        return self._snapshot.rooms

    def vacant_beds(self) -> list[Bed]:
        return [bed for bed in self._snapshot.beds if bed.status is BedStatus.VACANT]

    def beds_in_room(self, room_id: str) -> tuple[Bed, ...]:
        return tuple(self._beds_by_room.get(room_id, ()))

    def room_bed_count(self, room: Room) -> int:
        return max(room.bed_count, len(self._beds_by_room.get(room.room_id, ())))

    def is_multi_occupant(self, room: Room) -> bool:
        return self.room_bed_count(room) > 1

    def bathroom_group_rooms(self, room: Room) -> tuple[Room, ...]:
        """Other rooms sharing this room's bathroom group, in snapshot order."""
        group = room.bathroom_group
        if group is None:
            return ()
        return tuple(
            member
            for member in self._rooms_by_group.get(group, ())
            if member.room_id != room.room_id
        )

    def occupant(self, bed: Bed) -> Optional[Resident]:
        if bed.status is not BedStatus.OCCUPIED:
            return None
        if bed.resident_id is not None:
            return self._residents.get(bed.resident_id)
        return self._resident_by_bed.get(bed.bed_id)

    def bed_of_resident(self, resident_id: str) -> Optional[Bed]:
        return self._bed_by_resident.get(resident_id)

    def waiting_residents(self) -> list[Resident]:
        """Residents not currently occupying any bed."""
        return [
            resident
            for resident in self._snapshot.residents
            if resident.resident_id not in self._bed_by_resident
        ]
