"""Tests for the bed gender-compatibility rules."""

from __future__ import annotations

import pytest

from backend.domain.models import (
    Bed,
    BedStatus,
    ConflictKind,
    FacilitySnapshot,
    Gender,
    LockState,
    Resident,
    Room,
)
from backend.domain.snapshot import BedNotFoundError, RoomNotFoundError, SnapshotIndex
from backend.services.compatibility_service import (
    compatible_vacant_beds,
    evaluate_compatibility,
    required_gender_for_bed,
)


def _room(room_id: str, beds: int = 1, group: str | None = None) -> Room:
    return Room(
        room_id=room_id,
        room_number=room_id,
        bed_count=beds,
        has_shared_bathroom=group is not None,
        bathroom_group_id=group,
    )


def _vacant(bed_id: str, room_id: str) -> Bed:
    return Bed(bed_id=bed_id, room_id=room_id, status=BedStatus.VACANT)


def _occupied(bed_id: str, room_id: str, resident_id: str) -> Bed:
    return Bed(bed_id=bed_id, room_id=room_id, status=BedStatus.OCCUPIED, resident_id=resident_id)


def _snapshot(rooms, beds, residents=()) -> FacilitySnapshot:
    return FacilitySnapshot(beds=tuple(beds), rooms=tuple(rooms), residents=tuple(residents))


def _semi_private(*occupants: Gender) -> FacilitySnapshot:
    """Room R1 with one bed per occupant plus one vacant bed 'R1-free'."""
    beds = [_occupied(f"R1-{i}", "R1", f"res-{i}") for i in range(len(occupants))]
    beds.append(_vacant("R1-free", "R1"))
    residents = [
        Resident(resident_id=f"res-{i}", gender=gender, bed_id=f"R1-{i}")
        for i, gender in enumerate(occupants)
    ]
    return _snapshot([_room("R1", beds=len(beds))], beds, residents)


# --- Unconstrained private rooms ---

@pytest.mark.parametrize("gender", list(Gender))
def test_private_room_without_shared_bathroom_accepts_every_gender(gender: Gender) -> None:
    snapshot = _snapshot([_room("P1")], [_vacant("P1-A", "P1")])
    result = evaluate_compatibility(snapshot, "P1-A", gender)
    assert result.compatible
    assert result.reason_code is None
    assert result.room_bed_count == 1


def test_private_room_is_unconstrained_even_next_to_occupied_rooms() -> None:
    snapshot = _snapshot(
        [_room("P1"), _room("P2")],
        [_vacant("P1-A", "P1"), _occupied("P2-A", "P2", "res-1")],
        [Resident(resident_id="res-1", gender=Gender.FEMALE, bed_id="P2-A")],
    )
    assert evaluate_compatibility(snapshot, "P1-A", Gender.MALE).compatible


def test_bathroom_group_with_single_member_is_unconstrained() -> None:
    snapshot = _snapshot([_room("P1", group="solo")], [_vacant("P1-A", "P1")])
    result = evaluate_compatibility(snapshot, "P1-A", Gender.MALE)
    assert result.compatible
    assert result.shared_bathroom_rooms == ()


def test_shared_bathroom_flag_without_group_id_is_vacuous() -> None:
    room = Room(room_id="P1", room_number="P1", bed_count=1, has_shared_bathroom=True)
    snapshot = _snapshot([room], [_vacant("P1-A", "P1")])
    assert evaluate_compatibility(snapshot, "P1-A", Gender.OTHER).compatible


def test_group_id_is_ignored_when_room_does_not_share_a_bathroom() -> None:
    detached = Room(
        room_id="R2",
        room_number="R2",
        bed_count=1,
        has_shared_bathroom=False,
        bathroom_group_id="G1",
    )
    snapshot = _snapshot(
        [detached, _room("R3", group="G1")],
        [_vacant("R2-A", "R2"), _occupied("R3-A", "R3", "res-1")],
        [Resident(resident_id="res-1", gender=Gender.FEMALE, bed_id="R3-A")],
    )
    assert evaluate_compatibility(snapshot, "R2-A", Gender.MALE).compatible


# --- Multi-occupant rooms ---

@pytest.mark.parametrize("existing", list(Gender))
def test_multi_occupant_room_only_accepts_existing_gender(existing: Gender) -> None:
    snapshot = _semi_private(existing)

    assert evaluate_compatibility(snapshot, "R1-free", existing).compatible
    for other in Gender:
        if other == existing:
            continue
        result = evaluate_compatibility(snapshot, "R1-free", other)
        assert not result.compatible
        assert result.reason_code is ConflictKind.SAME_ROOM
        assert result.conflicting_gender == existing
        assert result.conflicting_rooms == ("R1",)


def test_two_bed_room_scenario_locks_after_male_assignment() -> None:
    rooms = [_room("R1", beds=2)]
    vacant = _snapshot(rooms, [_vacant("R1-A", "R1"), _vacant("R1-B", "R1")])
    assert evaluate_compatibility(vacant, "R1-A", Gender.FEMALE).compatible

    after_assignment = _snapshot(
        rooms,
        [_occupied("R1-A", "R1", "res-m"), _vacant("R1-B", "R1")],
        [Resident(resident_id="res-m", gender=Gender.MALE, bed_id="R1-A")],
    )
    result = evaluate_compatibility(after_assignment, "R1-B", Gender.FEMALE)
    assert not result.compatible
    assert result.reason_code is ConflictKind.SAME_ROOM
    assert "Room R1" in result.reason
    assert "male" in result.reason


def test_multi_occupancy_is_derived_from_beds_when_bed_count_is_stale() -> None:
    room = Room(room_id="R1", room_number="R1", bed_count=1)
    snapshot = _snapshot(
        [room],
        [_occupied("R1-A", "R1", "res-1"), _vacant("R1-B", "R1")],
        [Resident(resident_id="res-1", gender=Gender.MALE, bed_id="R1-A")],
    )
    result = evaluate_compatibility(snapshot, "R1-B", Gender.FEMALE)
    assert not result.compatible
    assert result.room_bed_count == 2


# --- Shared bathroom groups ---

def test_shared_bathroom_scenario_cites_the_other_room() -> None:
    snapshot = _snapshot(
        [_room("R2", group="G1"), _room("R3", group="G1")],
        [_vacant("R2-A", "R2"), _occupied("R3-A", "R3", "res-f")],
        [Resident(resident_id="res-f", gender=Gender.FEMALE, bed_id="R3-A")],
    )

    male = evaluate_compatibility(snapshot, "R2-A", Gender.MALE)
    assert not male.compatible
    assert male.reason_code is ConflictKind.SHARED_BATHROOM
    assert male.conflicting_gender is Gender.FEMALE
    assert male.conflicting_rooms == ("R3",)
    assert "Room R3" in male.reason
    assert male.shared_bathroom_rooms == ("R3",)

    assert evaluate_compatibility(snapshot, "R2-A", Gender.FEMALE).compatible


def test_every_vacant_bed_in_group_rejects_other_genders() -> None:
    snapshot = _snapshot(
        [_room("A", group="G"), _room("B", beds=2, group="G"), _room("C", group="G")],
        [
            _occupied("A-1", "A", "res-1"),
            _vacant("B-1", "B"),
            _vacant("B-2", "B"),
            _vacant("C-1", "C"),
        ],
        [Resident(resident_id="res-1", gender=Gender.MALE, bed_id="A-1")],
    )
    for bed_id in ("B-1", "B-2", "C-1"):
        assert evaluate_compatibility(snapshot, bed_id, Gender.MALE).compatible
        for gender in (Gender.FEMALE, Gender.OTHER):
            result = evaluate_compatibility(snapshot, bed_id, gender)
            assert not result.compatible
            assert result.reason_code is ConflictKind.SHARED_BATHROOM
            assert result.conflicting_rooms == ("A",)


def test_same_room_conflict_takes_precedence_inside_a_group() -> None:
    snapshot = _snapshot(
        [_room("R1", beds=2, group="G"), _room("R2", group="G")],
        [
            _occupied("R1-A", "R1", "res-1"),
            _vacant("R1-B", "R1"),
            _occupied("R2-A", "R2", "res-2"),
        ],
        [
            Resident(resident_id="res-1", gender=Gender.MALE, bed_id="R1-A"),
            Resident(resident_id="res-2", gender=Gender.MALE, bed_id="R2-A"),
        ],
    )
    result = evaluate_compatibility(snapshot, "R1-B", Gender.FEMALE)
    assert result.reason_code is ConflictKind.SAME_ROOM
    assert result.conflicting_rooms == ("R1",)


# --- Pre-existing violations ---

@pytest.mark.parametrize("candidate", list(Gender))
def test_mixed_scope_rejects_every_candidate(candidate: Gender) -> None:
    snapshot = _semi_private(Gender.MALE, Gender.FEMALE)
    result = evaluate_compatibility(snapshot, "R1-free", candidate)
    assert not result.compatible
    assert result.reason_code is ConflictKind.PREEXISTING_VIOLATION
    assert result.conflicting_gender is None
    assert result.conflicting_rooms == ("R1",)


# --- Occupant resolution ---

def test_occupant_resolved_from_resident_bed_reference() -> None:
    snapshot = _snapshot(
        [_room("R1", beds=2)],
        [Bed(bed_id="R1-A", room_id="R1", status=BedStatus.OCCUPIED), _vacant("R1-B", "R1")],
        [Resident(resident_id="res-1", gender=Gender.FEMALE, bed_id="R1-A")],
    )
    assert not evaluate_compatibility(snapshot, "R1-B", Gender.MALE).compatible


def test_occupied_bed_without_known_resident_adds_no_constraint() -> None:
    snapshot = _snapshot(
        [_room("R1", beds=2)],
        [Bed(bed_id="R1-A", room_id="R1", status=BedStatus.OCCUPIED), _vacant("R1-B", "R1")],
    )
    assert evaluate_compatibility(snapshot, "R1-B", Gender.MALE).compatible


def test_out_of_service_bed_is_not_an_occupant() -> None:
    snapshot = _snapshot(
        [_room("R1", beds=2)],
        [
            Bed(bed_id="R1-A", room_id="R1", status=BedStatus.OUT_OF_SERVICE, resident_id="res-1"),
            _vacant("R1-B", "R1"),
        ],
        [Resident(resident_id="res-1", gender=Gender.FEMALE)],
    )
    assert evaluate_compatibility(snapshot, "R1-B", Gender.MALE).compatible


# --- Lookup failures and idempotence ---

def test_unknown_bed_raises_not_found() -> None:
    snapshot = _semi_private(Gender.MALE)
    with pytest.raises(BedNotFoundError):
        evaluate_compatibility(snapshot, "missing", Gender.MALE)


def test_bed_with_unknown_room_raises_not_found() -> None:
    snapshot = _snapshot([], [_vacant("X-1", "ghost")])
    with pytest.raises(RoomNotFoundError):
        evaluate_compatibility(snapshot, "X-1", Gender.MALE)


def test_evaluation_is_idempotent() -> None:
    snapshot = _semi_private(Gender.MALE)
    index = SnapshotIndex(snapshot)
    first = evaluate_compatibility(index, "R1-free", Gender.FEMALE)
    second = evaluate_compatibility(index, "R1-free", Gender.FEMALE)
    assert first == second
    assert first == evaluate_compatibility(snapshot, "R1-free", Gender.FEMALE)


# --- Required gender and compatible bed listing ---

def test_required_gender_reports_lock_state() -> None:
    assert required_gender_for_bed(_semi_private(), "R1-free").state is LockState.OPEN

    locked = required_gender_for_bed(_semi_private(Gender.FEMALE), "R1-free")
    assert locked.state is LockState.LOCKED
    assert locked.gender is Gender.FEMALE

    mixed = required_gender_for_bed(_semi_private(Gender.FEMALE, Gender.OTHER), "R1-free")
    assert mixed.state is LockState.MIXED
    assert mixed.gender is None
    assert set(mixed.genders_present) == {Gender.FEMALE, Gender.OTHER}


def test_compatible_vacant_beds_filters_by_candidate_gender() -> None:
    snapshot = _snapshot(
        [_room("R1", beds=2), _room("P1")],
        [_occupied("R1-A", "R1", "res-1"), _vacant("R1-B", "R1"), _vacant("P1-A", "P1")],
        [Resident(resident_id="res-1", gender=Gender.MALE, bed_id="R1-A")],
    )
    male_beds = {item.bed_id for item in compatible_vacant_beds(snapshot, Gender.MALE)}
    female_beds = {item.bed_id for item in compatible_vacant_beds(snapshot, Gender.FEMALE)}
    assert male_beds == {"R1-B", "P1-A"}
    assert female_beds == {"P1-A"}


def test_occupied_private_room_in_group_reports_shared_bathroom() -> None:
    snapshot = _snapshot(
        [_room("P1", group="G"), _room("P2", group="G")],
        [_occupied("P1-A", "P1", "res-f"), _vacant("P2-A", "P2")],
        [Resident(resident_id="res-f", gender=Gender.FEMALE, bed_id="P1-A")],
    )

    result = evaluate_compatibility(snapshot, "P1-A", Gender.MALE)

    assert not result.compatible
    assert result.reason_code is ConflictKind.SHARED_BATHROOM
    assert result.room_bed_count == 1
    assert result.conflicting_rooms == ("P1",)
    assert result.shared_bathroom_rooms == ("P2",)
    assert "Multi-occupant" not in result.reason
    assert "Room P2" in result.reason
