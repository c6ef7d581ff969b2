"""HTTP controller layer for end-user pickup requests."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_current_requester, get_pickup_service
from backend.domain.models import PickupRequest
from backend.services.auth_service import Requester
from backend.services.pickup_service import (
    DeviceNotFoundError,
    PickupAccessDeniedError,
    PickupNotFoundError,
    PickupValidationError,
    PickupWorkflowService,
)
from backend.services.scheduling_service import SchedulingCapacityExhaustedError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/pickups", tags=["pickups"])


class CreatePickupRequest(BaseModel):
    device_id: int = Field(gt=0)
    address: str = Field(min_length=1, max_length=500)

    @field_validator("address")
    @classmethod
    def validate_address_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("address must not be blank")
        return value


class ScheduleResponse(BaseModel):
    pickup_date: date
    pickup_time: str = Field(pattern=r"^\d{1,2}:\d{2}$")
    position_in_queue: int = Field(ge=1)


class CreatedPickupResponse(BaseModel):
    pickup_id: int = Field(gt=0)
    device_name: str
    address: str
    district: str
    scheduled_date: date
    scheduled_time: str
    status: str


class CreatePickupResponse(BaseModel):
    success: bool = True
    message: str
    pickup: CreatedPickupResponse
    schedule: ScheduleResponse


class SchedulePreviewResponse(BaseModel):
    district: str
    schedule: ScheduleResponse


class PickupResponse(BaseModel):
    pickup_id: int
    user_id: int
    device_id: int
    address: str
    district: str
    scheduled_date: date
    scheduled_time: str
    status: str
    tracking_note: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    device_name: Optional[str] = None
    category: Optional[str] = None
    credits_value: Optional[int] = None
    user_name: Optional[str] = None

    @classmethod
    def from_domain(cls, pickup: PickupRequest) -> "PickupResponse":
        return cls(
            pickup_id=pickup.pickup_id,
            user_id=pickup.user_id,
            device_id=pickup.device_id,
            address=pickup.address,
            district=pickup.district,
            scheduled_date=pickup.scheduled_date,
            scheduled_time=pickup.scheduled_time,
            status=pickup.status,
            tracking_note=pickup.tracking_note,
            created_at=pickup.created_at,
            updated_at=pickup.updated_at,
            device_name=pickup.device_name,
            category=pickup.category,
            credits_value=pickup.credits_value,
            user_name=pickup.user_name,
        )


class PickupListResponse(BaseModel):
    success: bool = True
    pickups: list[PickupResponse]


class SinglePickupResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    pickup: PickupResponse


@router.post(
    "",
    response_model=CreatePickupResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_pickup(
    payload: CreatePickupRequest,
    requester: Requester = Depends(get_current_requester),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> CreatePickupResponse:
    """Extract the district, book the next free slot and persist the request."""
    try:
        result = service.create_pickup(
            requester=requester,
            device_id=payload.device_id,
            address=payload.address,
        )
    except PickupValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DeviceNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SchedulingCapacityExhaustedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Unexpected pickup creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create pickup request",
        ) from exc

    return CreatePickupResponse(
        message="Pickup request submitted successfully",
        pickup=CreatedPickupResponse(
            pickup_id=result.pickup_id,
            device_name=result.device_name,
            address=result.address,
            district=result.district,
            scheduled_date=result.schedule.pickup_date,
            scheduled_time=result.schedule.pickup_time,
            status=result.status,
        ),
        schedule=ScheduleResponse(**result.schedule.to_dict()),
    )


@router.get(
    "/schedule-preview",
    response_model=SchedulePreviewResponse,
    status_code=status.HTTP_200_OK,
)
def preview_schedule(
    address: Optional[str] = Query(default=None, max_length=500),
    district: Optional[str] = Query(default=None, max_length=120),
    _: Requester = Depends(get_current_requester),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> SchedulePreviewResponse:
    try:
        preview = service.preview_schedule(address=address, district=district)
    except PickupValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SchedulingCapacityExhaustedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Unexpected schedule preview failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute pickup schedule",
        ) from exc
    return SchedulePreviewResponse(
        district=preview.district,
        schedule=ScheduleResponse(**preview.schedule.to_dict()),
    )


@router.get(
    "/single/{pickup_id}",
    response_model=SinglePickupResponse,
    status_code=status.HTTP_200_OK,
)
async def get_pickup(
    pickup_id: int,
    requester: Requester = Depends(get_current_requester),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> SinglePickupResponse:
    try:
        pickup = service.get_pickup(requester, pickup_id)
    except PickupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PickupAccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected pickup lookup failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch pickup request",
        ) from exc
    return SinglePickupResponse(pickup=PickupResponse.from_domain(pickup))


@router.get(
    "/{user_id}",
    response_model=PickupListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_user_pickups(
    user_id: int,
    requester: Requester = Depends(get_current_requester),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> PickupListResponse:
    try:
        pickups = service.list_user_pickups(requester, user_id)
    except PickupAccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected pickup listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch pickup requests",
        ) from exc
    return PickupListResponse(pickups=[PickupResponse.from_domain(item) for item in pickups])


@router.put(
    "/{pickup_id}/cancel",
    response_model=SinglePickupResponse,
    status_code=status.HTTP_200_OK,
)
async def cancel_pickup(
    pickup_id: int,
    requester: Requester = Depends(get_current_requester),
    service: PickupWorkflowService = Depends(get_pickup_service),
) -> SinglePickupResponse:
    try:
        pickup = service.cancel_pickup(requester, pickup_id)
    except PickupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PickupAccessDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except PickupValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected pickup cancellation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel pickup request",
        ) from exc
    return SinglePickupResponse(
        message="Pickup request cancelled successfully",
        pickup=PickupResponse.from_domain(pickup),
    )
