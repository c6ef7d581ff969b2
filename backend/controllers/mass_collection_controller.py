"""Public endpoints for organisation mass collection requests."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_current_requester, get_mass_collection_service
from backend.domain.models import MassCollectionRequest
from backend.services.auth_service import Requester
from backend.services.mass_collection_service import (
    MassCollectionDraft,
    MassCollectionNotFoundError,
    MassCollectionService,
    MassCollectionValidationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/mass-collection", tags=["mass-collection"])


class CreateMassCollectionRequest(BaseModel):
    org_name: str = Field(min_length=1, max_length=200)
    org_type: str = Field(min_length=1)
    address: str = Field(min_length=1, max_length=500)
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    pincode: Optional[str] = None
    estimated_items: Optional[int] = Field(default=None, ge=0)
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")


class MassCollectionResponse(BaseModel):
    collection_id: int
    org_name: str
    org_type: str
    address: str
    status: str
    tracking_note: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    pincode: Optional[str] = None
    estimated_items: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_domain(cls, collection: MassCollectionRequest) -> "MassCollectionResponse":
        return cls(
            collection_id=collection.collection_id,
            org_name=collection.org_name,
            org_type=collection.org_type,
            address=collection.address,
            status=collection.status,
            tracking_note=collection.tracking_note,
            contact_person=collection.contact_person,
            contact_phone=collection.contact_phone,
            contact_email=collection.contact_email,
            pincode=collection.pincode,
            estimated_items=collection.estimated_items,
            scheduled_date=collection.scheduled_date,
            scheduled_time=collection.scheduled_time,
            created_at=collection.created_at,
            updated_at=collection.updated_at,
        )


class MassCollectionListResponse(BaseModel):
    success: bool = True
    collections: list[MassCollectionResponse]


class SingleMassCollectionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    collection: MassCollectionResponse


@router.post(
    "",
    response_model=SingleMassCollectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_mass_collection(
    payload: CreateMassCollectionRequest,
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> SingleMassCollectionResponse:
    try:
        collection = service.create_collection(
            MassCollectionDraft(
                org_name=payload.org_name,
                org_type=payload.org_type,
                address=payload.address,
                contact_person=payload.contact_person,
                contact_phone=payload.contact_phone,
                contact_email=payload.contact_email,
                pincode=payload.pincode,
                estimated_items=payload.estimated_items,
                scheduled_date=(
                    payload.scheduled_date.isoformat() if payload.scheduled_date else None
                ),
                scheduled_time=payload.scheduled_time,
            )
        )
    except MassCollectionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected mass collection creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create mass collection request",
        ) from exc
    return SingleMassCollectionResponse(
        message="Mass collection request submitted successfully",
        collection=MassCollectionResponse.from_domain(collection),
    )


@router.get(
    "/track/{email}",
    response_model=MassCollectionListResponse,
    status_code=status.HTTP_200_OK,
)
async def track_mass_collections(
    email: str,
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> MassCollectionListResponse:
    try:
        collections = service.track_by_email(email)
    except MassCollectionValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected mass collection tracking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch mass collection requests",
        ) from exc
    return MassCollectionListResponse(
        collections=[MassCollectionResponse.from_domain(item) for item in collections],
    )


@router.get(
    "/my",
    response_model=MassCollectionListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_my_mass_collections(
    requester: Requester = Depends(get_current_requester),
    service: MassCollectionService = Depends(get_mass_collection_service),
) -> MassCollectionListResponse:
    try:
        collections = service.list_for_user(requester.user_id)
    except MassCollectionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Unexpected mass collection listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch mass collection requests",
        ) from exc
    return MassCollectionListResponse(
        collections=[MassCollectionResponse.from_domain(item) for item in collections],
    )
