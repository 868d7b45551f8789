"""HTTP controller layer for bed compatibility checks and assignments."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    FACILITY_ERRORS,
    get_assignment_service,
    get_auth_service,
    get_compatibility_service,
    raise_error,
    raise_for_facility_error,
    require_admin,
)
from backend.domain.models import (
    BedAvailability,
    CompatibilityResult,
    ConflictKind,
    EvaluationMode,
    Gender,
    LockState,
    ScopeLock,
)
from backend.services.assignment_service import (
    AssignmentRejectedError,
    AssignmentService,
    BedNotVacantError,
    ResidentAlreadyPlacedError,
)
from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from backend.services.compatibility_service import CompatibilityService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["facility"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class HealthResponse(BaseModel):
    status: str
    snapshot_source_configured: bool
    mode: EvaluationMode


class CompatibilityResponse(BaseModel):
    """Outcome of a gender-compatibility check for one bed."""

    bed_id: str
    gender: Gender
    compatible: bool
    reason_code: Optional[ConflictKind] = None
    reason: Optional[str] = None
    conflicting_gender: Optional[Gender] = None
    conflicting_rooms: list[str] = Field(default_factory=list)
    room_bed_count: int = Field(ge=1)
    shared_bathroom_rooms: list[str] = Field(default_factory=list)
    mode: EvaluationMode

    @classmethod
    def from_result(
        cls,
        bed_id: str,
        gender: Gender,
        result: CompatibilityResult,
    ) -> "CompatibilityResponse":
        return cls(bed_id=bed_id, gender=gender, **result.to_dict())


class RequiredGenderResponse(BaseModel):
    bed_id: str
    state: LockState
    required_gender: Optional[Gender] = None
    genders_present: list[Gender] = Field(default_factory=list)
    mode: EvaluationMode

    @classmethod
    def from_lock(cls, bed_id: str, lock: ScopeLock) -> "RequiredGenderResponse":
        return cls(
            bed_id=bed_id,
            state=lock.state,
            required_gender=lock.gender,
            genders_present=list(lock.genders_present),
            mode=lock.mode,
        )


class BedOptionResponse(BaseModel):
    bed_id: str
    bed_label: str
    room_id: Optional[str] = None
    room_number: str
    wing_id: Optional[str] = None
    state: LockState
    required_gender: Optional[Gender] = None

    @classmethod
    def from_availability(cls, availability: BedAvailability) -> "BedOptionResponse":
        return cls(
            bed_id=availability.bed_id,
            bed_label=availability.bed_label,
            room_id=availability.room_id,
            room_number=availability.room_number,
            wing_id=availability.wing_id,
            state=availability.lock.state,
            required_gender=availability.lock.gender,
        )


class CompatibleBedsResponse(BaseModel):
    gender: Gender
    beds: list[BedOptionResponse]


class AssignmentRequest(BaseModel):
    resident_id: str = Field(min_length=1)
    bed_id: str = Field(min_length=1)


class AssignmentResponse(BaseModel):
    status: str
    resident_id: str
    bed_id: str


class ReleaseResponse(BaseModel):
    status: str
    resident_id: str
    released_bed_id: Optional[str] = None


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        return LoginResponse(access_token=auth_service.login(payload.admin_token))
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": str(exc)},
        ) from exc


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health(
    service: CompatibilityService = Depends(get_compatibility_service),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        snapshot_source_configured=not service.degraded,
        mode=EvaluationMode.DEGRADED if service.degraded else EvaluationMode.ENFORCED,
    )


@router.get(
    "/beds/compatible",
    response_model=CompatibleBedsResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_compatible_beds(
    gender: Gender = Query(...),
    service: CompatibilityService = Depends(get_compatibility_service),
) -> CompatibleBedsResponse:
    try:
        beds = service.list_compatible_beds(gender)
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected compatible-bed listing failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to list compatible beds",
        )
    return CompatibleBedsResponse(
        gender=gender,
        beds=[BedOptionResponse.from_availability(bed) for bed in beds],
    )


@router.get(
    "/beds/{bed_id}/compatibility",
    response_model=CompatibilityResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def check_compatibility(
    bed_id: str,
    gender: Gender = Query(...),
    service: CompatibilityService = Depends(get_compatibility_service),
) -> CompatibilityResponse:
    try:
        result = service.evaluate(bed_id, gender)
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected compatibility evaluation failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to evaluate bed compatibility",
        )
    return CompatibilityResponse.from_result(bed_id, gender, result)


@router.get(
    "/beds/{bed_id}/required_gender",
    response_model=RequiredGenderResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def required_gender(
    bed_id: str,
    service: CompatibilityService = Depends(get_compatibility_service),
) -> RequiredGenderResponse:
    try:
        lock = service.required_gender(bed_id)
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected required-gender lookup failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to resolve required gender",
        )
    return RequiredGenderResponse.from_lock(bed_id, lock)


@router.post(
    "/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def assign_resident(
    payload: AssignmentRequest,
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentResponse:
    try:
        service.assign(payload.resident_id, payload.bed_id)
    except AssignmentRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "gender_incompatible",
                "message": str(exc),
                **exc.result.to_dict(),
            },
        ) from exc
    except (BedNotVacantError, ResidentAlreadyPlacedError) as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "assignment_conflict", "message": str(exc)},
        ) from exc
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to assign resident",
        )
    return AssignmentResponse(
        status="ASSIGNED",
        resident_id=payload.resident_id,
        bed_id=payload.bed_id,
    )


@router.delete(
    "/assignments/{resident_id}",
    response_model=ReleaseResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def release_resident(
    resident_id: str,
    discharge: bool = Query(default=False),
    service: AssignmentService = Depends(get_assignment_service),
) -> ReleaseResponse:
    try:
        bed_id = service.release(resident_id, discharge=discharge)
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected release failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to release resident",
        )
    return ReleaseResponse(
        status="DISCHARGED" if discharge else "RELEASED",
        resident_id=resident_id,
        released_bed_id=bed_id,
    )
