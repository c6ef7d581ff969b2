"""Pickup request lifecycle: scheduling, lookup, cancellation and admin review."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from backend.domain.constraints import SchedulingConfig
from backend.domain.models import PICKUP_STATUSES, PickupRequest, PickupSchedule
from backend.repository.data_repository import DataRepository
from backend.services.auth_service import Requester
from backend.services.district_service import DistrictExtractionService
from backend.services.scheduling_service import Clock, PickupScheduler
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

RECEIVED_TRACKING_NOTE = "Pickup request received, awaiting processing"
CANCELLED_BY_USER_NOTE = "Cancelled by user"

DEFAULT_STATUS_NOTES = {
    "pending": "Request is pending review",
    "scheduled": "Pickup has been scheduled with our team",
    "picked_up": "Device has been picked up and is being processed",
    "completed": "Pickup completed successfully - credits have been awarded",
    "cancelled": "Pickup request has been cancelled",
}


class PickupError(Exception):
    """Base exception for pickup workflow failures."""


class PickupValidationError(PickupError):
    """Raised when pickup inputs or transitions are invalid."""


class PickupNotFoundError(PickupError):
    """Raised when a pickup id does not exist."""


class DeviceNotFoundError(PickupError):
    """Raised when a pickup references an unknown device."""


class PickupAccessDeniedError(PickupError):
    """Raised when a non-admin touches another user's pickup."""


@dataclass(frozen=True)
class PickupCreationResult:
    pickup_id: int
    device_name: str
    address: str
    district: str
    schedule: PickupSchedule
    status: str = "pending"


@dataclass(frozen=True)
class SchedulePreview:
    district: str
    schedule: PickupSchedule


@dataclass(frozen=True)
class StatusUpdateResult:
    pickup: PickupRequest
    credits_awarded: int


def _validate_date(value: str) -> None:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise PickupValidationError("date must follow YYYY-MM-DD format") from exc


class PickupWorkflowService:
    """Coordinates district extraction -> slot search -> persistence."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        district_service: Optional[DistrictExtractionService] = None,
        scheduler: Optional[PickupScheduler] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._district_service = district_service or DistrictExtractionService(
            settings=self._settings,
        )
        self._scheduler = scheduler or PickupScheduler(
            booking_counter=self._repository.count_pickups_for_district,
            config=SchedulingConfig.from_settings(self._settings),
            clock=clock,
        )

    @property
    def transactional_reservations(self) -> bool:
        return self._settings.pickup_reservation_mode == "transactional"

    def _resolve_district(self, address: str) -> str:
        district = self._district_service.extract_district(address)
        return district or address.strip()

    def create_pickup(
        self,
        requester: Requester,
        device_id: int,
        address: str,
    ) -> PickupCreationResult:
        if device_id <= 0:
            raise PickupValidationError("device_id must be a positive integer")
        if not address or not address.strip():
            raise PickupValidationError("address is required")

        device = self._repository.get_device(device_id)
        if device is None:
            raise DeviceNotFoundError("Device not found")

        district = self._resolve_district(address)
        if self.transactional_reservations:
            with self._repository.pickup_reservation() as reservation:
                schedule = self._scheduler.compute_schedule(
                    district,
                    booking_counter=reservation.count_pickups_for_district,
                )
                pickup_id = reservation.create_pickup(
                    user_id=requester.user_id,
                    device_id=device_id,
                    address=address,
                    district=district,
                    scheduled_date=schedule.pickup_date,
                    scheduled_time=schedule.pickup_time,
                    tracking_note=RECEIVED_TRACKING_NOTE,
                )
        else:
            schedule = self._scheduler.compute_schedule(district)
            pickup_id = self._repository.create_pickup(
                user_id=requester.user_id,
                device_id=device_id,
                address=address,
                district=district,
                scheduled_date=schedule.pickup_date,
                scheduled_time=schedule.pickup_time,
                tracking_note=RECEIVED_TRACKING_NOTE,
            )

        logger.info(
            "Pickup %s created for user %s in %r at %s %s (position %s)",
            pickup_id,
            requester.user_id,
            district,
            schedule.pickup_date,
            schedule.pickup_time,
            schedule.position_in_queue,
        )
        return PickupCreationResult(
            pickup_id=pickup_id,
            device_name=device.model_name,
            address=address,
            district=district,
            schedule=schedule,
        )

    def preview_schedule(
        self,
        *,
        address: Optional[str] = None,
        district: Optional[str] = None,
    ) -> SchedulePreview:
        """Compute the next slot without persisting anything."""
        if district and district.strip():
            resolved = district.strip()
        elif address and address.strip():
            resolved = self._resolve_district(address)
        else:
            raise PickupValidationError("address or district is required")
        return SchedulePreview(
            district=resolved,
            schedule=self._scheduler.compute_schedule(resolved),
        )

    def list_user_pickups(self, requester: Requester, user_id: int) -> list[PickupRequest]:
        if requester.user_id != user_id and not requester.is_admin:
            raise PickupAccessDeniedError("Access denied to pickup requests")
        return self._repository.list_pickups_for_user(user_id)

    def get_pickup(self, requester: Requester, pickup_id: int) -> PickupRequest:
        pickup = self._repository.get_pickup(pickup_id)
        if pickup is None:
            raise PickupNotFoundError("Pickup request not found")
        if pickup.user_id != requester.user_id and not requester.is_admin:
            raise PickupAccessDeniedError("Access denied to this pickup request")
        return pickup

    def cancel_pickup(self, requester: Requester, pickup_id: int) -> PickupRequest:
        pickup = self._repository.get_pickup(pickup_id)
        if pickup is None:
            raise PickupNotFoundError("Pickup request not found")
        if pickup.user_id != requester.user_id and not requester.is_admin:
            raise PickupAccessDeniedError("You can only cancel your own pickup requests")
        if pickup.status != "pending":
            raise PickupValidationError("Only pending pickup requests can be cancelled")

        self._repository.update_pickup_status(pickup_id, "cancelled", CANCELLED_BY_USER_NOTE)
        logger.info("Pickup %s cancelled by user %s", pickup_id, requester.user_id)
        return self.get_pickup(requester, pickup_id)

    def list_pickups(
        self,
        status: Optional[str] = None,
        scheduled_date: Optional[str] = None,
    ) -> list[PickupRequest]:
        """Admin listing; status 'all' or None disables the status filter."""
        if status == "all":
            status = None
        if status is not None and status not in PICKUP_STATUSES:
            raise PickupValidationError("Invalid status")
        if scheduled_date:
            _validate_date(scheduled_date)
        return self._repository.list_pickups(status=status, scheduled_date=scheduled_date)

    def update_pickup_status(
        self,
        pickup_id: int,
        status: str,
        tracking_note: Optional[str] = None,
    ) -> StatusUpdateResult:
        if status not in PICKUP_STATUSES:
            raise PickupValidationError("Invalid status")

        current = self._repository.get_pickup(pickup_id)
        if current is None:
            raise PickupNotFoundError("Pickup request not found")

        note = tracking_note or DEFAULT_STATUS_NOTES.get(
            status,
            f"Status updated to {status} by admin",
        )
        credits_award = 0
        if status == "completed" and current.status != "completed":
            credits_award = max(0, current.credits_value or 0)

        self._repository.update_pickup_status(
            pickup_id,
            status,
            note,
            credits_award=credits_award,
        )
        if credits_award:
            logger.info(
                "Awarded %s credits for completed pickup %s to user %s",
                credits_award,
                pickup_id,
                current.user_id,
            )
        logger.info("Pickup %s status updated to %s", pickup_id, status)

        updated = self._repository.get_pickup(pickup_id)
        if updated is None:
            raise PickupNotFoundError("Pickup request not found")
        return StatusUpdateResult(pickup=updated, credits_awarded=credits_award)
