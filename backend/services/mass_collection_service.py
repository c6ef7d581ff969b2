"""Organisation-level bulk collection requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from backend.domain.models import MASS_COLLECTION_STATUSES, MassCollectionRequest
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

RECEIVED_TRACKING_NOTE = (
    "Mass collection request received, awaiting review and team assignment"
)

DEFAULT_STATUS_NOTES = {
    "pending": "Request is pending review and team assignment",
    "scheduled": "Collection has been scheduled with our specialized team",
    "in_progress": "Collection team is on-site and processing the request",
    "completed": "Mass collection completed successfully",
    "cancelled": "Mass collection request has been cancelled",
}


class MassCollectionError(Exception):
    """Base exception for mass collection workflow failures."""


class MassCollectionValidationError(MassCollectionError):
    """Raised when a collection request is malformed."""


class MassCollectionNotFoundError(MassCollectionError):
    """Raised when a collection id does not exist."""


@dataclass(frozen=True)
class MassCollectionDraft:
    org_name: str
    org_type: str
    address: str
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    pincode: Optional[str] = None
    estimated_items: Optional[int] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise MassCollectionValidationError("date must follow YYYY-MM-DD format") from exc


class MassCollectionService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._today = today or date.today

    def create_collection(self, draft: MassCollectionDraft) -> MassCollectionRequest:
        if not draft.org_name.strip() or not draft.org_type.strip() or not draft.address.strip():
            raise MassCollectionValidationError(
                "Organization name, type, and address are required"
            )
        if draft.org_type not in self._settings.mass_collection_org_types:
            raise MassCollectionValidationError("Invalid organization type")
        if draft.estimated_items is not None and draft.estimated_items < 0:
            raise MassCollectionValidationError("estimated_items must be >= 0")
        if draft.scheduled_date:
            if _parse_date(draft.scheduled_date) < self._today():
                raise MassCollectionValidationError("Scheduled date cannot be in the past")

        collection_id = self._repository.create_mass_collection(
            org_name=draft.org_name.strip(),
            org_type=draft.org_type,
            address=draft.address.strip(),
            tracking_note=RECEIVED_TRACKING_NOTE,
            contact_person=draft.contact_person,
            contact_phone=draft.contact_phone,
            contact_email=draft.contact_email,
            pincode=draft.pincode,
            estimated_items=draft.estimated_items,
            scheduled_date=draft.scheduled_date,
            scheduled_time=draft.scheduled_time,
        )
        logger.info("Mass collection request %s created for %s", collection_id, draft.org_name)
        return self.get_collection(collection_id)

    def get_collection(self, collection_id: int) -> MassCollectionRequest:
        collection = self._repository.get_mass_collection(collection_id)
        if collection is None:
            raise MassCollectionNotFoundError("Mass collection request not found")
        return collection

    def list_collections(
        self,
        status: Optional[str] = None,
        org_type: Optional[str] = None,
        scheduled_date: Optional[str] = None,
    ) -> list[MassCollectionRequest]:
        if status == "all":
            status = None
        if org_type == "all":
            org_type = None
        if scheduled_date:
            _parse_date(scheduled_date)
        return self._repository.list_mass_collections(
            status=status,
            org_type=org_type,
            scheduled_date=scheduled_date,
        )

    def track_by_email(self, contact_email: str) -> list[MassCollectionRequest]:
        if not contact_email or not contact_email.strip():
            raise MassCollectionValidationError("Email is required for tracking")
        return self._repository.list_mass_collections_by_email(contact_email.strip())

    def list_for_user(self, user_id: int) -> list[MassCollectionRequest]:
        """Collections whose contact email matches the user's account email."""
        user = self._repository.get_user(user_id)
        if user is None:
            raise MassCollectionNotFoundError(f"User {user_id} not found")
        return self._repository.list_mass_collections_by_email(user.email)

    def update_status(
        self,
        collection_id: int,
        status: str,
        tracking_note: Optional[str] = None,
    ) -> MassCollectionRequest:
        if status not in MASS_COLLECTION_STATUSES:
            raise MassCollectionValidationError("Invalid status")
        current = self.get_collection(collection_id)

        note = tracking_note or DEFAULT_STATUS_NOTES.get(
            status,
            f"Status updated to {status} by admin",
        )
        self._repository.update_mass_collection_status(collection_id, status, note)
        logger.info(
            "Mass collection request %s (%s) status updated to %s",
            collection_id,
            current.org_name,
            status,
        )
        return self.get_collection(collection_id)
