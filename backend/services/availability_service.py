"""Vacant-bed gender availability aggregation for analytics."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from backend.domain.constraints import bed_availability
from backend.domain.models import (
    AvailabilityCounts,
    BedAvailability,
    EvaluationMode,
    FacilitySnapshot,
    Gender,
    LockState,
)
from backend.domain.snapshot import SnapshotIndex, as_index
from backend.repository.facility_repository import FacilityRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

UNASSIGNED_WING = "unassigned"

_LOCKED_BUCKETS = {
    Gender.MALE: "male_only",
    Gender.FEMALE: "female_only",
    Gender.OTHER: "other_only",
}


def classify_vacant_beds(source: FacilitySnapshot | SnapshotIndex) -> list[BedAvailability]:
    index = as_index(source)
    return [bed_availability(index, bed) for bed in index.vacant_beds()]


def count_availability(
    classified: Iterable[BedAvailability],
    mode: EvaluationMode = EvaluationMode.ENFORCED,
) -> AvailabilityCounts:
    """Fold per-bed classifications into exactly one bucket per bed."""
    buckets: Counter[str] = Counter()
    for availability in classified:
        lock = availability.lock
        if lock.state is LockState.OPEN:
            buckets["either_available"] += 1
        elif lock.state is LockState.LOCKED and lock.gender is not None:
            buckets[_LOCKED_BUCKETS[lock.gender]] += 1
        else:
            buckets["blocked"] += 1
    return AvailabilityCounts(mode=mode, **buckets)


def aggregate_availability(source: FacilitySnapshot | SnapshotIndex) -> AvailabilityCounts:
    return count_availability(classify_vacant_beds(source))


def availability_by_wing(
    source: FacilitySnapshot | SnapshotIndex,
) -> dict[str, AvailabilityCounts]:
    grouped: dict[str, list[BedAvailability]] = {}
    for availability in classify_vacant_beds(source):
        grouped.setdefault(availability.wing_id or UNASSIGNED_WING, []).append(availability)
    return {wing: count_availability(rows) for wing, rows in sorted(grouped.items())}


class AvailabilityService:
    """Computes availability counts from the current facility snapshot."""

    def __init__(
        self,
        repository: Optional[FacilityRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or FacilityRepository(self._settings)

    def _load_index(self) -> Optional[SnapshotIndex]:
        snapshot = self._repository.load_snapshot_or_none(
            self._settings.fail_open_when_unconfigured
        )
        if snapshot is None:
            logger.warning("Degraded mode: no facility data, reporting zero availability")
            return None
        return SnapshotIndex(snapshot)

    def aggregate(self) -> AvailabilityCounts:
        index = self._load_index()
        if index is None:
            return AvailabilityCounts(mode=EvaluationMode.DEGRADED)
        counts = aggregate_availability(index)
        if counts.blocked:
            logger.warning("%s vacant beds sit in scopes that already mix genders", counts.blocked)
        return counts

    def aggregate_by_wing(self) -> dict[str, AvailabilityCounts]:
        index = self._load_index()
        if index is None:
            return {}
        return availability_by_wing(index)
