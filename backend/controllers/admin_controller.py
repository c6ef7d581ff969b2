"""Controller layer for the admin back-office endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    get_auth_service,
    get_mass_collection_service,
    get_pickup_service,
    require_admin,
)
from backend.controllers.mass_collection_controller import (
    MassCollectionListResponse,
    MassCollectionResponse,
    SingleMassCollectionResponse,
)
from backend.controllers.pickup_controller import PickupResponse
from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from backend.services.mass_collection_service import (
    MassCollectionNotFoundError,
    MassCollectionService,
    MassCollectionValidationError,
)
from backend.services.pickup_service import (
    PickupNotFoundError,
    PickupValidationError,
    PickupWorkflowService,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class StatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1)
    tracking_note: Optional[str] = Field(default=None, max_length=500)


class AdminPickupListResponse(BaseModel):
    success: bool = True
    pickups: list[PickupResponse]


class AdminPickupStatusResponse(BaseModel):
    success: bool = True
    message: str
    pickup: PickupResponse
    credits_awarded: int = Field(ge=0)


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        token = auth_service.login(payload.admin_token)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return LoginResponse(access_token=token)


@router.get(
    "/pickups",
    response_model=AdminPickupListResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_pickups(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    scheduled_date: Optional[date] = Query(default=None, alias="date"),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> AdminPickupListResponse:
    try:
        pickups = service.list_pickups(
            status=status_filter,
            scheduled_date=scheduled_date.isoformat() if scheduled_date else None,
        )
    except PickupValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected admin pickup listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch pickup requests",
        ) from exc
    return AdminPickupListResponse(
        pickups=[PickupResponse.from_domain(item) for item in pickups],
    )


@router.put(
    "/pickups/{pickup_id}/status",
    response_model=AdminPickupStatusResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def update_pickup_status(
    pickup_id: int,
    payload: StatusUpdateRequest,
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> AdminPickupStatusResponse:
    try:
        result = service.update_pickup_status(
            pickup_id=pickup_id,
            status=payload.status,
            tracking_note=payload.tracking_note,
        )
    except PickupValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PickupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected pickup status update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update pickup status",
        ) from exc
    return AdminPickupStatusResponse(
        message="Pickup status updated successfully",
        pickup=PickupResponse.from_domain(result.pickup),
        credits_awarded=result.credits_awarded,
    )


@router.get(
    "/mass-collection",
    response_model=MassCollectionListResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_mass_collections(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    org_type: Optional[str] = Query(default=None),
    scheduled_date: Optional[date] = Query(default=None, alias="date"),
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> MassCollectionListResponse:
    try:
        collections = service.list_collections(
            status=status_filter,
            org_type=org_type,
            scheduled_date=scheduled_date.isoformat() if scheduled_date else None,
        )
    except MassCollectionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected mass collection listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch mass collection requests",
        ) from exc
    return MassCollectionListResponse(
        collections=[MassCollectionResponse.from_domain(item) for item in collections],
    )


@router.get(
    "/mass-collection/{collection_id}",
    response_model=SingleMassCollectionResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_mass_collection(
    collection_id: int,
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> SingleMassCollectionResponse:
    try:
        collection = service.get_collection(collection_id)
    except MassCollectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected mass collection lookup failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch mass collection request",
        ) from exc
    return SingleMassCollectionResponse(collection=MassCollectionResponse.from_domain(collection))


@router.put(
    "/mass-collection/{collection_id}/status",
    response_model=SingleMassCollectionResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def update_mass_collection_status(
    collection_id: int,
    payload: StatusUpdateRequest,
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> SingleMassCollectionResponse:
    try:
        collection = service.update_status(
            collection_id=collection_id,
            status=payload.status,
            tracking_note=payload.tracking_note,
        )
    except MassCollectionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except MassCollectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected mass collection status update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update mass collection status",
        ) from exc
    return SingleMassCollectionResponse(
        message="Mass collection status updated successfully",
        collection=MassCollectionResponse.from_domain(collection),
    )
