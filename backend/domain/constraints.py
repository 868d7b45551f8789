"""Gender constraint scope rules shared by evaluation and aggregation."""

from __future__ import annotations

from dataclasses import dataclass

from backend.domain.models import Bed, BedAvailability, Gender, LockState, Room, ScopeLock
from backend.domain.snapshot import SnapshotIndex


@dataclass(frozen=True)
class ConstraintScope:
    """Rooms that must be checked together for one bed."""

    bed: Bed
    room: Room
    room_bed_count: int
    shared_rooms: tuple[Room, ...]

    @property
    def is_multi_occupant(self) -> bool:
        return self.room_bed_count > 1

    @property
    def rooms(self) -> tuple[Room, ...]:
        return (self.room,) + self.shared_rooms

    @property
    def is_constrained(self) -> bool:
        # A private room whose bathroom is not shared with another room
        # accepts any gender.
        return self.is_multi_occupant or bool(self.shared_rooms)


def resolve_scope(index: SnapshotIndex, bed: Bed) -> ConstraintScope:
    room = index.room_for_bed(bed)
    return ConstraintScope(
        bed=bed,
        room=room,
        room_bed_count=index.room_bed_count(room),
        shared_rooms=index.bathroom_group_rooms(room),
    )


def occupant_genders(index: SnapshotIndex, scope: ConstraintScope) -> dict[Gender, list[Room]]:
    """Map each gender present in scope to the rooms it occupies.

    Ordering follows gender first-seen order, then room order in the scope.
    """
    present: dict[Gender, list[Room]] = {}
    for room in scope.rooms:
        for bed in index.beds_in_room(room.room_id):
            occupant = index.occupant(bed)
            if occupant is None:
                continue
            rooms = present.setdefault(occupant.gender, [])
            if room not in rooms:
                rooms.append(room)
    return present


def scope_lock(index: SnapshotIndex, scope: ConstraintScope) -> ScopeLock:
    if not scope.is_constrained:
        return ScopeLock(state=LockState.OPEN)
    present = occupant_genders(index, scope)
    if not present:
        return ScopeLock(state=LockState.OPEN)
    genders = tuple(present)
    if len(genders) == 1:
        return ScopeLock(state=LockState.LOCKED, gender=genders[0], genders_present=genders)
    return ScopeLock(state=LockState.MIXED, genders_present=genders)


def bed_availability(index: SnapshotIndex, bed: Bed) -> BedAvailability:
    """Classify one bed by the gender its scope currently admits.

    A bed whose room is missing from the snapshot is reported as open;
    availability is over-counted rather than hidden.
    """
    room = index.find_room(bed.room_id)
    if room is None:
        return BedAvailability(
            bed_id=bed.bed_id,
            room_id=bed.room_id,
            room_number="",
            wing_id=None,
            lock=ScopeLock(state=LockState.OPEN),
            bed_label=bed.label,
        )
    return BedAvailability(
        bed_id=bed.bed_id,
        room_id=room.room_id,
        room_number=room.room_number,
        wing_id=room.wing_id,
        lock=scope_lock(index, resolve_scope(index, bed)),
        bed_label=bed.label,
    )
