#!/usr/bin/env python3
"""Validate local environment readiness for the facility compatibility service."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.models import ConflictKind, Gender
from backend.repository.facility_repository import FacilityRepository
from backend.services.availability_service import AvailabilityService
from backend.services.compatibility_service import CompatibilityService
from backend.utils.config import Settings, get_settings

SEPARATOR_LINE = "=" * 44
REQUIRED_PACKAGES = ("fastapi", "uvicorn", "pydantic", "httpx", "pytest")


def _check_python() -> str:
    version = sys.version.split()[0]
    if sys.version_info < (3, 10):
        raise RuntimeError(f"Python >= 3.10 required, found {version}")
    return version


def _check_packages() -> str:
    missing: list[str] = []
    for module_name in REQUIRED_PACKAGES:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            missing.append(f"{module_name} ({exc})")
    if missing:
        raise RuntimeError("missing/unimportable -> " + "; ".join(missing))
    return "all importable"


def _check_database(repository: FacilityRepository) -> str:
    repository.initialize_database()
    repository.seed_demo_facility()
    snapshot = repository.load_snapshot()
    return f"{len(snapshot.rooms)} rooms, {len(snapshot.beds)} beds"


def _check_evaluation(repository: FacilityRepository, settings: Settings) -> str:
    # Demo room 101 holds a male resident in bed A.
    result = CompatibilityService(repository, settings).evaluate("bed-101B", Gender.FEMALE)
    if result.compatible or result.reason_code is not ConflictKind.SAME_ROOM:
        raise RuntimeError(f"unexpected result {result.to_dict()}")
    return "same-room conflict detected"


def _check_aggregation(repository: FacilityRepository, settings: Settings) -> str:
    counts = AvailabilityService(repository, settings).aggregate()
    return (
        f"male={counts.male_available} female={counts.female_available} "
        f"either={counts.either_available}"
    )


def _run_check(name: str, check: Callable[[], str]) -> tuple[bool, str]:
    try:
        detail = check()
    except Exception as exc:
        return False, f"[FAIL] {name}: {exc}"
    return True, f"[PASS] {name}: {detail}"


def main() -> int:
    temp_dir = tempfile.mkdtemp(prefix="facility-env-")
    try:
        settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "facility_validation.db",
        )
        repository = FacilityRepository(settings)
        outcomes = [
            _run_check("Python version", _check_python),
            _run_check("Required packages", _check_packages),
            _run_check("Database + demo seed", lambda: _check_database(repository)),
            _run_check(
                "Compatibility evaluation",
                lambda: _check_evaluation(repository, settings),
            ),
            _run_check(
                "Availability aggregation",
                lambda: _check_aggregation(repository, settings),
            ),
        ]
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Facility Service Environment Validation")
    print(SEPARATOR_LINE)
    for _, line in outcomes:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all(passed for passed, _ in outcomes):
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
