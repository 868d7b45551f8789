"""Controller layer for occupancy analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    FACILITY_ERRORS,
    get_availability_service,
    get_recommendation_service,
    raise_error,
    raise_for_facility_error,
    require_admin,
)
from backend.domain.models import AvailabilityCounts, EvaluationMode, Gender
from backend.services.availability_service import AvailabilityService
from backend.services.recommendation_service import RecommendationService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


class GenderAvailabilityResponse(BaseModel):
    """Vacant beds by usable gender.

    ``male_available`` / ``female_available`` include ``either_available``.
    """

    male_available: int = Field(ge=0)
    female_available: int = Field(ge=0)
    either_available: int = Field(ge=0)
    male_only: int = Field(ge=0)
    female_only: int = Field(ge=0)
    other_only: int = Field(ge=0)
    blocked: int = Field(ge=0)
    total_vacant: int = Field(ge=0)
    mode: EvaluationMode

    @classmethod
    def from_counts(cls, counts: AvailabilityCounts) -> "GenderAvailabilityResponse":
        return cls(**counts.to_dict())


class WingAvailabilityResponse(BaseModel):
    wings: dict[str, GenderAvailabilityResponse]


class MoveRecommendationResponse(BaseModel):
    resident_id: str
    resident_name: str
    current_bed_id: str
    current_room: str
    suggested_bed_id: str
    suggested_room: str
    locked_gender: Gender
    benefiting_genders: list[Gender]
    impact: int = Field(ge=1)
    reason: str


class MoveRecommendationsResponse(BaseModel):
    recommendations: list[MoveRecommendationResponse]


@router.get(
    "/gender_availability",
    response_model=GenderAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def gender_availability(
    service: AvailabilityService = Depends(get_availability_service),
) -> GenderAvailabilityResponse:
    try:
        counts = service.aggregate()
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability aggregation failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to aggregate gender availability",
        )
    return GenderAvailabilityResponse.from_counts(counts)


@router.get(
    "/gender_availability/by_wing",
    response_model=WingAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def gender_availability_by_wing(
    service: AvailabilityService = Depends(get_availability_service),
) -> WingAvailabilityResponse:
    try:
        by_wing = service.aggregate_by_wing()
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected per-wing availability failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to aggregate availability by wing",
        )
    return WingAvailabilityResponse(
        wings={
            wing: GenderAvailabilityResponse.from_counts(counts)
            for wing, counts in by_wing.items()
        }
    )


@router.get(
    "/move_recommendations",
    response_model=MoveRecommendationsResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def move_recommendations(
    service: RecommendationService = Depends(get_recommendation_service),
) -> MoveRecommendationsResponse:
    try:
        recommendations = service.move_recommendations()
    except FACILITY_ERRORS as exc:
        raise_for_facility_error(exc)
    except Exception:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected move recommendation failure")
        raise_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "Failed to compute move recommendations",
        )
    return MoveRecommendationsResponse(
        recommendations=[
            MoveRecommendationResponse(
                resident_id=item.resident_id,
                resident_name=item.resident_name,
                current_bed_id=item.current_bed_id,
                current_room=item.current_room,
                suggested_bed_id=item.suggested_bed_id,
                suggested_room=item.suggested_room,
                locked_gender=item.locked_gender,
                benefiting_genders=list(item.benefiting_genders),
                impact=item.impact,
                reason=item.reason,
            )
            for item in recommendations
        ]
    )
