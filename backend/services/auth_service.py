"""Admin session tokens and end-user identity resolution."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class UserNotAuthenticatedError(AuthenticationError):
    """Raised when the caller's user id does not resolve to a user."""


@dataclass(frozen=True)
class Requester:
    user_id: int
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AuthService:
    """Issues admin bearer sessions and resolves callers to known users."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._session_token: str | None = None

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def _expected_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def login(self, provided_admin_token: str) -> str:
        expected = self._expected_token()
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        self._session_token = secrets.token_urlsafe(32)
        return self._session_token

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        if self._session_token is None:
            raise InvalidAdminTokenError("No active session. Login first.")
        if not secrets.compare_digest(bearer_token, self._session_token):
            raise InvalidAdminTokenError("Invalid bearer token")

    def resolve_requester(self, user_id: Optional[int]) -> Requester:
        if user_id is None:
            raise UserNotAuthenticatedError("Access denied. No user identity provided.")
        user = self._repository.get_user(user_id)
        if user is None:
            raise UserNotAuthenticatedError("Invalid user. User not found.")
        return Requester(user_id=user.user_id, name=user.name, role=user.role)
