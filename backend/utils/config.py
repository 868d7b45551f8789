"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_path(name: str, default: str) -> Optional[Path]:
    raw = os.getenv(name, default).strip()
    if not raw:
        return None
    return Path(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    # None means no snapshot source is configured (degraded mode).
    database_path: Optional[Path]
    admin_token: str | None
    session_ttl_minutes: int
    fail_open_when_unconfigured: bool
    seed_demo_data: bool

    @property
    def snapshot_source_configured(self) -> bool:
        return self.database_path is not None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "Facility Bed Compatibility Service"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=_env_path("FACILITY_DB_PATH", "data/facility.db"),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", "480")),
        fail_open_when_unconfigured=_env_flag("FAIL_OPEN_WHEN_UNCONFIGURED", True),
        seed_demo_data=_env_flag("SEED_DEMO_DATA", True),
    )
