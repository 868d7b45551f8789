"""Move suggestions that release gender-locked vacant beds."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Optional

from backend.domain.constraints import ConstraintScope, resolve_scope
from backend.domain.models import (
    Bed,
    BedStatus,
    FacilitySnapshot,
    Gender,
    MoveRecommendation,
    Resident,
    Room,
)
from backend.domain.snapshot import SnapshotIndex, as_index
from backend.repository.facility_repository import FacilityRepository
from backend.services.compatibility_service import evaluate_compatibility
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class _LockedScope:
    rooms: tuple[Room, ...]
    occupant: Resident
    occupant_bed: Bed
    vacant_bed_ids: frozenset[str]


def _scope_key(room: Room) -> str:
    return f"group:{room.bathroom_group}" if room.bathroom_group else f"room:{room.room_id}"


def _locked_by_single_resident(
    index: SnapshotIndex,
    scope: ConstraintScope,
) -> Optional[_LockedScope]:
    occupants: list[tuple[Bed, Resident]] = []
    vacant: set[str] = set()
    for room in scope.rooms:
        for bed in index.beds_in_room(room.room_id):
            if bed.status is BedStatus.VACANT:
                vacant.add(bed.bed_id)
            occupant = index.occupant(bed)
            if occupant is not None:
                occupants.append((bed, occupant))
    if len(occupants) != 1 or not vacant:
        return None
    bed, resident = occupants[0]
    return _LockedScope(
        rooms=scope.rooms,
        occupant=resident,
        occupant_bed=bed,
        vacant_bed_ids=frozenset(vacant),
    )


def _target_rank(
    index: SnapshotIndex,
    bed: Bed,
    gender: Gender,
    committed: dict[str, Gender],
) -> int:
    """0: unconstrained bed, 1: scope already locked to ``gender``, 2: opens a new lock.

    ``committed`` holds scopes that earlier suggestions already send a
    resident into.
    """
    scope = resolve_scope(index, bed)
    if not scope.is_constrained:
        return 0
    if committed.get(_scope_key(scope.room)) == gender:
        return 1
    result = evaluate_compatibility(index, bed.bed_id, gender)
    if result.compatible and any(
        index.occupant(other) is not None
        for room in scope.rooms
        for other in index.beds_in_room(room.room_id)
    ):
        return 1
    return 2


def _is_open_target(
    index: SnapshotIndex,
    bed: Bed,
    gender: Gender,
    committed: dict[str, Gender],
    released: set[str],
) -> bool:
    room = index.find_room(bed.room_id)
    if room is None:
        return False
    key = _scope_key(room)
    if key in released or committed.get(key, gender) != gender:
        return False
    return evaluate_compatibility(index, bed.bed_id, gender).compatible


def recommend_moves(source: FacilitySnapshot | SnapshotIndex) -> list[MoveRecommendation]:
    """Suggest relocating residents who alone lock a scope with vacant beds.

    Only produced when residents of another gender are waiting for a bed.
    Each target bed is checked with the compatibility rules and is never
    inside the scope being released. Suggestions are consistent with each
    other: applying all of them never puts two genders into one scope, and
    no resident is sent into a scope another suggestion empties.
    """
    index = as_index(source)
    waiting = Counter(resident.gender for resident in index.waiting_residents())
    if not waiting:
        return []

    seen_scopes: set[str] = set()
    used_targets: set[str] = set()
    committed: dict[str, Gender] = {}
    released: set[str] = set()
    recommendations: list[MoveRecommendation] = []

    for room in index.rooms():
        beds = index.beds_in_room(room.room_id)
        key = _scope_key(room)
        if not beds or key in seen_scopes:
            continue
        seen_scopes.add(key)
        if key in committed:
            continue

        scope = resolve_scope(index, beds[0])
        if not scope.is_constrained:
            continue
        locked = _locked_by_single_resident(index, scope)
        if locked is None:
            continue

        locked_gender = locked.occupant.gender
        benefiting = tuple(
            gender for gender in Gender if gender != locked_gender and waiting[gender] > 0
        )
        if not benefiting:
            continue

        scope_room_ids = {scope_room.room_id for scope_room in locked.rooms}
        candidates = [
            bed
            for bed in index.vacant_beds()
            if bed.room_id not in scope_room_ids
            and bed.bed_id not in used_targets
            and _is_open_target(index, bed, locked_gender, committed, released)
        ]
        if not candidates:
            continue
        candidates.sort(
            key=lambda bed: (
                _target_rank(index, bed, locked_gender, committed),
                index.room_for_bed(bed).room_number,
                bed.label,
            )
        )
        target = candidates[0]
        used_targets.add(target.bed_id)
        committed[_scope_key(index.room_for_bed(target))] = locked_gender
        released.add(key)

        impact = len(locked.vacant_bed_ids)
        current_room = index.room_for_bed(locked.occupant_bed).room_number
        suggested_room = index.room_for_bed(target).room_number
        for_genders = " or ".join(gender.value for gender in benefiting)
        recommendations.append(
            MoveRecommendation(
                resident_id=locked.occupant.resident_id,
                resident_name=locked.occupant.display_name,
                current_bed_id=locked.occupant_bed.bed_id,
                current_room=current_room,
                suggested_bed_id=target.bed_id,
                suggested_room=suggested_room,
                locked_gender=locked_gender,
                benefiting_genders=benefiting,
                impact=impact,
                reason=(
                    f"Would free {impact} bed{'s' if impact > 1 else ''} "
                    f"for {for_genders} residents"
                ),
            )
        )

    recommendations.sort(key=lambda item: (-item.impact, item.current_room))
    return recommendations


class RecommendationService:
    def __init__(
        self,
        repository: Optional[FacilityRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or FacilityRepository(self._settings)

    def move_recommendations(self) -> list[MoveRecommendation]:
        snapshot = self._repository.load_snapshot_or_none(
            self._settings.fail_open_when_unconfigured
        )
        if snapshot is None:
            logger.warning("Degraded mode: no facility data, no move recommendations")
            return []
        recommendations = recommend_moves(snapshot)
        logger.info("Computed %s move recommendations", len(recommendations))
        return recommendations
