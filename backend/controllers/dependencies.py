"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
    Requester,
    UserNotAuthenticatedError,
)
from backend.services.mass_collection_service import MassCollectionService
from backend.services.pickup_service import PickupWorkflowService


bearer_scheme = HTTPBearer(auto_error=False)


def _require_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    return _require_state(request, "auth_service", "Auth service")


def get_pickup_service(request: Request) -> PickupWorkflowService:
    return _require_state(request, "pickup_service", "Pickup service")


def get_mass_collection_service(request: Request) -> MassCollectionService:
    return _require_state(request, "mass_collection_service", "Mass collection service")


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    if not auth_service.auth_enabled:
        return
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        auth_service.validate_bearer_token(credentials.credentials)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


async def get_current_requester(
    x_user_id: Optional[int] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> Requester:
    try:
        return auth_service.resolve_requester(x_user_id)
    except UserNotAuthenticatedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
