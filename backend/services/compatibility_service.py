"""Bed-assignment gender compatibility evaluation."""

from __future__ import annotations

from typing import Optional

from backend.domain.constraints import (
    bed_availability,
    occupant_genders,
    resolve_scope,
    scope_lock,
)
from backend.domain.models import (
    BedAvailability,
    CompatibilityResult,
    ConflictKind,
    EvaluationMode,
    FacilitySnapshot,
    Gender,
    LockState,
    ScopeLock,
)
from backend.domain.snapshot import SnapshotIndex, as_index
from backend.repository.facility_repository import FacilityRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

DEGRADED_REASON = "No facility data source configured; gender constraints were not enforced."


def _room_labels(rooms) -> tuple[str, ...]:
    return tuple(room.room_number for room in rooms)


def evaluate_compatibility(
    source: FacilitySnapshot | SnapshotIndex,
    bed_id: str,
    candidate_gender: Gender,
) -> CompatibilityResult:
    """Decide whether a resident of ``candidate_gender`` may occupy ``bed_id``.

    Raises ``BedNotFoundError`` / ``RoomNotFoundError`` when the bed or its
    room is absent; a missing bed is never reported as compatible.
    """
    index = as_index(source)
    bed = index.bed(bed_id)
    scope = resolve_scope(index, bed)
    shared_labels = _room_labels(scope.shared_rooms)

    if not scope.is_constrained:
        return CompatibilityResult(compatible=True, room_bed_count=scope.room_bed_count)

    present = occupant_genders(index, scope)
    if not present:
        return CompatibilityResult(
            compatible=True,
            room_bed_count=scope.room_bed_count,
            shared_bathroom_rooms=shared_labels,
        )

    if len(present) > 1:
        occupied_rooms: list[str] = []
        for rooms in present.values():
            for label in _room_labels(rooms):
                if label not in occupied_rooms:
                    occupied_rooms.append(label)
        genders = ", ".join(gender.value for gender in present)
        logger.warning(
            "Bed %s scope already mixes genders (%s) across rooms %s",
            bed_id,
            genders,
            occupied_rooms,
        )
        return CompatibilityResult(
            compatible=False,
            reason_code=ConflictKind.PREEXISTING_VIOLATION,
            reason=(
                f"Room {', '.join(occupied_rooms)} already houses mixed genders ({genders}). "
                "No new resident can be placed until the existing conflict is resolved."
            ),
            conflicting_rooms=tuple(occupied_rooms),
            room_bed_count=scope.room_bed_count,
            shared_bathroom_rooms=shared_labels,
        )

    existing_gender, rooms = next(iter(present.items()))
    if existing_gender == candidate_gender:
        return CompatibilityResult(
            compatible=True,
            room_bed_count=scope.room_bed_count,
            shared_bathroom_rooms=shared_labels,
        )

    if scope.is_multi_occupant and scope.room in rooms:
        return CompatibilityResult(
            compatible=False,
            reason_code=ConflictKind.SAME_ROOM,
            reason=(
                f"Room {scope.room.room_number} already has a {existing_gender.value} resident. "
                "Multi-occupant rooms cannot have mixed genders."
            ),
            conflicting_gender=existing_gender,
            conflicting_rooms=(scope.room.room_number,),
            room_bed_count=scope.room_bed_count,
            shared_bathroom_rooms=shared_labels,
        )

    conflicting = _room_labels(rooms)
    others = _room_labels(room for room in rooms if room != scope.room)
    if others:
        reason = (
            f"Shared bathroom with Room {', '.join(others)} has "
            f"{existing_gender.value} resident(s). Rooms sharing a bathroom cannot have mixed genders."
        )
    else:
        # Only this private room is occupied, yet it still binds its bathroom group.
        reason = (
            f"Room {scope.room.room_number} already has a {existing_gender.value} resident and "
            f"shares a bathroom with Room {', '.join(shared_labels)}. "
            "Rooms sharing a bathroom cannot have mixed genders."
        )
    return CompatibilityResult(
        compatible=False,
        reason_code=ConflictKind.SHARED_BATHROOM,
        reason=reason,
        conflicting_gender=existing_gender,
        conflicting_rooms=conflicting,
        room_bed_count=scope.room_bed_count,
        shared_bathroom_rooms=shared_labels,
    )


def required_gender_for_bed(source: FacilitySnapshot | SnapshotIndex, bed_id: str) -> ScopeLock:
    index = as_index(source)
    bed = index.bed(bed_id)
    return scope_lock(index, resolve_scope(index, bed))


def compatible_vacant_beds(
    source: FacilitySnapshot | SnapshotIndex,
    candidate_gender: Gender,
) -> list[BedAvailability]:
    index = as_index(source)
    return [
        availability
        for availability in (bed_availability(index, bed) for bed in index.vacant_beds())
        if availability.lock.allows(candidate_gender)
    ]


class CompatibilityService:
    """Loads a fresh snapshot per call and applies the compatibility rules.

    With no snapshot source configured the service either fails open
    (``EvaluationMode.DEGRADED``) or raises, depending on
    ``Settings.fail_open_when_unconfigured``.
    """

    def __init__(
        self,
        repository: Optional[FacilityRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or FacilityRepository(self._settings)

    @property
    def degraded(self) -> bool:
        return not self._repository.is_configured

    def _load_index(self) -> Optional[SnapshotIndex]:
        """Return the current index, or None when failing open."""
        snapshot = self._repository.load_snapshot_or_none(
            self._settings.fail_open_when_unconfigured
        )
        return SnapshotIndex(snapshot) if snapshot is not None else None

    def evaluate(self, bed_id: str, candidate_gender: Gender) -> CompatibilityResult:
        index = self._load_index()
        if index is None:
            logger.warning(
                "Degraded mode: bed %s accepted for %s without constraint check",
                bed_id,
                candidate_gender.value,
            )
            return CompatibilityResult(
                compatible=True,
                reason=DEGRADED_REASON,
                mode=EvaluationMode.DEGRADED,
            )
        result = evaluate_compatibility(index, bed_id, candidate_gender)
        if not result.compatible:
            logger.info(
                "Bed %s incompatible for %s: %s",
                bed_id,
                candidate_gender.value,
                result.reason_code.value if result.reason_code else "unknown",
            )
        return result

    def required_gender(self, bed_id: str) -> ScopeLock:
        index = self._load_index()
        if index is None:
            return ScopeLock(state=LockState.OPEN, mode=EvaluationMode.DEGRADED)
        return required_gender_for_bed(index, bed_id)

    def list_compatible_beds(self, candidate_gender: Gender) -> list[BedAvailability]:
        index = self._load_index()
        if index is None:
            return []
        return compatible_vacant_beds(index, candidate_gender)
