"""Domain models for pickup scheduling and collection requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


PICKUP_STATUSES = ("pending", "scheduled", "picked_up", "completed", "cancelled")
MASS_COLLECTION_STATUSES = ("pending", "scheduled", "in_progress", "completed", "cancelled")


@dataclass(frozen=True)
class User:
    user_id: int
    name: str
    email: str
    role: str
    credits: int


@dataclass(frozen=True)
class Device:
    device_id: int
    model_name: str
    category: str
    credits_value: int


@dataclass(frozen=True)
class PickupSchedule:
    """Slot chosen by the scheduler; time keeps the unpadded hour, e.g. 9:00."""

    pickup_date: str
    pickup_time: str
    position_in_queue: int

    def to_dict(self) -> dict[str, str | int]:
        return {
            "pickup_date": self.pickup_date,
            "pickup_time": self.pickup_time,
            "position_in_queue": self.position_in_queue,
        }


@dataclass(frozen=True)
class PickupRequest:
    pickup_id: int
    user_id: int
    device_id: int
    address: str
    district: str
    scheduled_date: str
    scheduled_time: str
    status: str
    tracking_note: Optional[str]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    device_name: Optional[str] = None
    category: Optional[str] = None
    credits_value: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None


@dataclass(frozen=True)
class MassCollectionRequest:
    collection_id: int
    org_name: str
    org_type: str
    address: str
    status: str
    tracking_note: Optional[str]
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    pincode: Optional[str] = None
    estimated_items: Optional[int] = None
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
