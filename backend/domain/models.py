"""Domain models for bed occupancy and gender-compatibility decisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class BedStatus(str, Enum):
    VACANT = "vacant"
    OCCUPIED = "occupied"
    OUT_OF_SERVICE = "out_of_service"


class EvaluationMode(str, Enum):
    """How a decision was reached.

    ``DEGRADED`` marks fail-open answers produced while no snapshot source
    is configured; callers can surface it instead of trusting the result.
    """

    ENFORCED = "enforced"
    DEGRADED = "degraded"


class ConflictKind(str, Enum):
    SAME_ROOM = "same_room"
    SHARED_BATHROOM = "shared_bathroom"
    PREEXISTING_VIOLATION = "preexisting_violation"


class LockState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    MIXED = "mixed"


@dataclass(frozen=True)
class Bed:
    bed_id: str
    room_id: Optional[str]
    status: BedStatus
    resident_id: Optional[str] = None
    label: str = ""


@dataclass(frozen=True)
class Room:
    room_id: str
    room_number: str
    bed_count: int
    has_shared_bathroom: bool = False
    bathroom_group_id: Optional[str] = None
    wing_id: Optional[str] = None

    @property
    def bathroom_group(self) -> Optional[str]:
        """Group id that actually binds this room, or None."""
        if self.has_shared_bathroom and self.bathroom_group_id:
            return self.bathroom_group_id
        return None


@dataclass(frozen=True)
class Resident:
    resident_id: str
    gender: Gender
    bed_id: Optional[str] = None
    display_name: str = ""


@dataclass(frozen=True)
class FacilitySnapshot:
    """Read-only view of facility state supplied by the snapshot reader."""

    beds: tuple[Bed, ...] = ()
    rooms: tuple[Room, ...] = ()
    residents: tuple[Resident, ...] = ()


@dataclass(frozen=True)
class CompatibilityResult:
    compatible: bool
    reason_code: Optional[ConflictKind] = None
    reason: Optional[str] = None
    conflicting_gender: Optional[Gender] = None
    conflicting_rooms: tuple[str, ...] = ()
    room_bed_count: int = 1
    shared_bathroom_rooms: tuple[str, ...] = ()
    mode: EvaluationMode = EvaluationMode.ENFORCED

    def to_dict(self) -> dict[str, object]:
        return {
            "compatible": self.compatible,
            "reason_code": self.reason_code.value if self.reason_code else None,
            "reason": self.reason,
            "conflicting_gender": (
                self.conflicting_gender.value if self.conflicting_gender else None
            ),
            "conflicting_rooms": list(self.conflicting_rooms),
            "room_bed_count": self.room_bed_count,
            "shared_bathroom_rooms": list(self.shared_bathroom_rooms),
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class ScopeLock:
    """Gender restriction currently imposed on a bed by its constraint scope."""

    state: LockState
    gender: Optional[Gender] = None
    genders_present: tuple[Gender, ...] = ()
    mode: EvaluationMode = EvaluationMode.ENFORCED

    def allows(self, candidate: Gender) -> bool:
        if self.state is LockState.OPEN:
            return True
        if self.state is LockState.LOCKED:
            return self.gender == candidate
        return False


@dataclass(frozen=True)
class BedAvailability:
    bed_id: str
    room_id: Optional[str]
    room_number: str
    wing_id: Optional[str]
    lock: ScopeLock
    bed_label: str = ""


@dataclass(frozen=True)
class AvailabilityCounts:
    """Vacant-bed counts by the gender that may occupy them.

    ``male_available`` and ``female_available`` include beds open to either
    gender, so ``male_available == male_only + either_available`` always
    holds. Beds in a mixed-gender scope are counted as ``blocked`` only.

    ``male_available + female_available - either_available`` equals
    ``male_only + female_only + either_available``, which is
    ``total_vacant - other_only - blocked``: beds locked to ``other`` are
    usable by neither male nor female candidates and stay out of that sum.
    """

    male_only: int = 0
    female_only: int = 0
    other_only: int = 0
    either_available: int = 0
    blocked: int = 0
    mode: EvaluationMode = EvaluationMode.ENFORCED

    @property
    def male_available(self) -> int:
        return self.male_only + self.either_available

    @property
    def female_available(self) -> int:
        return self.female_only + self.either_available

    @property
    def total_vacant(self) -> int:
        return (
            self.male_only
            + self.female_only
            + self.other_only
            + self.either_available
            + self.blocked
        )

    def to_dict(self) -> dict[str, int | str]:
        return {
            "male_available": self.male_available,
            "female_available": self.female_available,
            "either_available": self.either_available,
            "male_only": self.male_only,
            "female_only": self.female_only,
            "other_only": self.other_only,
            "blocked": self.blocked,
            "total_vacant": self.total_vacant,
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class MoveRecommendation:
    resident_id: str
    resident_name: str
    current_bed_id: str
    current_room: str
    suggested_bed_id: str
    suggested_room: str
    locked_gender: Gender
    benefiting_genders: tuple[Gender, ...]
    impact: int
    reason: str = ""
