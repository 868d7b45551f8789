"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any, NoReturn

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.domain.snapshot import (
    BedNotFoundError,
    ResidentNotFoundError,
    RoomNotFoundError,
    SnapshotError,
    SnapshotIntegrityError,
)
from backend.repository.facility_repository import (
    SnapshotSourceNotConfiguredError,
    SnapshotUnavailableError,
)
from backend.services.assignment_service import AssignmentService
from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from backend.services.availability_service import AvailabilityService
from backend.services.compatibility_service import CompatibilityService
from backend.services.recommendation_service import RecommendationService
from backend.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def raise_error(status_code: int, code: str, message: str, **extra: Any) -> NoReturn:
    """Raise an HTTPException whose body is a structured error payload."""
    raise HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message, **extra},
    )


def _service_from_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise_error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "service_unavailable",
            f"{name.replace('_', ' ').capitalize()} is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_compatibility_service(request: Request) -> CompatibilityService:
    return _service_from_state(request, "compatibility_service")


def get_availability_service(request: Request) -> AvailabilityService:
    return _service_from_state(request, "availability_service")


def get_recommendation_service(request: Request) -> RecommendationService:
    return _service_from_state(request, "recommendation_service")


def get_assignment_service(request: Request) -> AssignmentService:
    return _service_from_state(request, "assignment_service")


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    if not auth_service.auth_enabled:
        return
    if credentials is None:
        raise_error(
            status.HTTP_401_UNAUTHORIZED,
            "unauthorized",
            "Authorization header with Bearer token is required",
        )
    try:
        auth_service.validate_bearer_token(credentials.credentials)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": str(exc)},
        ) from exc


FACILITY_ERRORS = (
    SnapshotError,
    SnapshotSourceNotConfiguredError,
    SnapshotUnavailableError,
)


def raise_for_facility_error(exc: Exception) -> NoReturn:
    """Translate snapshot/repository failures into structured HTTP errors."""
    if isinstance(exc, (BedNotFoundError, RoomNotFoundError, ResidentNotFoundError)):
        status_code, code = status.HTTP_404_NOT_FOUND, "not_found"
    elif isinstance(exc, SnapshotSourceNotConfiguredError):
        status_code, code = status.HTTP_503_SERVICE_UNAVAILABLE, "snapshot_source_not_configured"
    elif isinstance(exc, SnapshotUnavailableError):
        status_code, code = status.HTTP_503_SERVICE_UNAVAILABLE, "snapshot_unavailable"
    elif isinstance(exc, SnapshotIntegrityError):
        status_code, code = status.HTTP_500_INTERNAL_SERVER_ERROR, "snapshot_integrity"
    else:
        raise exc
    raise HTTPException(
        status_code=status_code,
        detail={"code": code, "message": str(exc)},
    ) from exc
