"""Operator authentication via a shared admin token."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Optional

from backend.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when a login token or bearer session is invalid."""


class AuthService:
    """Exchanges the admin token for expiring bearer sessions.

    Authentication is disabled entirely when ADMIN_TOKEN is unset.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, datetime] = {}
        self._lock = RLock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def login(self, provided_admin_token: str) -> str:
        expected = self._settings.admin_token
        if not expected:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=self._settings.session_ttl_minutes
        )
        with self._lock:
            self._sessions[token] = expires_at
        return token

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [token for token, expiry in self._sessions.items() if expiry <= now]
            for token in expired:
                del self._sessions[token]
            known = any(secrets.compare_digest(bearer_token, token) for token in self._sessions)
        if not known:
            raise InvalidAdminTokenError("Invalid or expired bearer token. Login first.")
