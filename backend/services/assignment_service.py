"""Resident-to-bed assignment workflow guarded by the compatibility rules."""

from __future__ import annotations

from typing import Optional

from backend.domain.models import BedStatus, CompatibilityResult
from backend.domain.snapshot import SnapshotIndex
from backend.repository.facility_repository import (
    BedNoLongerVacantError,
    FacilityRepository,
    SnapshotSourceNotConfiguredError,
)
from backend.services.compatibility_service import evaluate_compatibility
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AssignmentError(Exception):
    """Base exception for assignment workflow failures."""


class BedNotVacantError(AssignmentError):
    """Raised when the target bed is occupied or out of service."""


class ResidentAlreadyPlacedError(AssignmentError):
    """Raised when the resident already occupies a bed."""


class AssignmentRejectedError(AssignmentError):
    """Raised when the gender rules reject the assignment."""

    def __init__(self, result: CompatibilityResult) -> None:
        super().__init__(result.reason or "Assignment rejected by gender compatibility rules")
        self.result = result


class AssignmentService:
    def __init__(
        self,
        repository: Optional[FacilityRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or FacilityRepository(self._settings)

    def _require_source(self) -> SnapshotIndex:
        if not self._repository.is_configured:
            raise SnapshotSourceNotConfiguredError(
                "Facility data source is not configured; assignments cannot be committed."
            )
        return SnapshotIndex(self._repository.load_snapshot())

    def assign(self, resident_id: str, bed_id: str) -> CompatibilityResult:
        index = self._require_source()
        resident = index.resident(resident_id)
        bed = index.bed(bed_id)
        if bed.status is not BedStatus.VACANT:
            raise BedNotVacantError(f"Bed '{bed_id}' is {bed.status.value}")
        current_bed = index.bed_of_resident(resident_id)
        if current_bed is not None:
            raise ResidentAlreadyPlacedError(
                f"Resident '{resident_id}' already occupies bed '{current_bed.bed_id}'"
            )

        result = evaluate_compatibility(index, bed_id, resident.gender)
        if not result.compatible:
            logger.info(
                "Rejected assignment of resident %s to bed %s: %s",
                resident_id,
                bed_id,
                result.reason,
            )
            raise AssignmentRejectedError(result)

        try:
            self._repository.assign_resident(resident_id, bed_id)
        except BedNoLongerVacantError as exc:
            raise BedNotVacantError(str(exc)) from exc
        return result

    def release(self, resident_id: str, *, discharge: bool = False) -> Optional[str]:
        index = self._require_source()
        index.resident(resident_id)
        return self._repository.release_resident(resident_id, discharge=discharge)
