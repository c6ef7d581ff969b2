"""Daily-capacity pickup slot allocation per district."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Optional

from backend.domain.constraints import SchedulingConfig, validate_scheduling_config
from backend.domain.models import PickupSchedule
from backend.utils.logger import get_logger


logger = get_logger(__name__)

BookingCounter = Callable[[str, str], int]
Clock = Callable[[], datetime]


class SchedulingError(Exception):
    """Base exception for slot allocation failures."""


class SchedulingCapacityExhaustedError(SchedulingError):
    """Raised when no day within the lookahead window has free capacity."""


def format_pickup_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_pickup_time(hour: int, minute: int) -> str:
    # Hour stays unpadded: 9:00, not 09:00.
    return f"{hour}:{minute:02d}"


class PickupScheduler:
    """Greedy earliest-slot search over consecutive days.

    Each call reads booking counts only; the caller persists the returned
    slot. Two callers that read the same count for a district/day get the
    same slot unless the counter and the caller's insert share one
    write-locked transaction (see DataRepository.pickup_reservation).
    """

    def __init__(
        self,
        booking_counter: BookingCounter,
        config: Optional[SchedulingConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._booking_counter = booking_counter
        self._config = config or SchedulingConfig()
        validate_scheduling_config(self._config)
        self._clock = clock or datetime.now

    @property
    def config(self) -> SchedulingConfig:
        return self._config

    def compute_schedule(
        self,
        district: str,
        booking_counter: Optional[BookingCounter] = None,
    ) -> PickupSchedule:
        """Return the next free slot for ``district``.

        ``booking_counter`` overrides the default counter for one call, which
        lets a caller count inside its own transaction. Storage errors raised
        by the counter propagate unchanged.
        """
        count_bookings = booking_counter or self._booking_counter
        config = self._config
        now = self._clock()
        today = now.date()
        before_cutoff = now.hour < config.same_day_cutoff_hour
        candidate_date = today if before_cutoff else today + timedelta(days=1)

        for _ in range(config.max_lookahead_days):
            candidate = format_pickup_date(candidate_date)
            count = count_bookings(district, candidate)
            if count < config.daily_capacity:
                slot_hour = config.slot_start_hour + count * config.slot_duration_hours
                slot_minute = 0
                if (
                    candidate_date == today
                    and before_cutoff
                    and (slot_hour, slot_minute) <= (now.hour, now.minute)
                ):
                    slot_hour = now.hour + 1
                    slot_minute = now.minute
                return PickupSchedule(
                    pickup_date=candidate,
                    pickup_time=format_pickup_time(slot_hour, slot_minute),
                    position_in_queue=count + 1,
                )
            candidate_date += timedelta(days=1)

        logger.error(
            "No pickup capacity for district %r within %s days (capacity=%s)",
            district,
            config.max_lookahead_days,
            config.daily_capacity,
        )
        raise SchedulingCapacityExhaustedError(
            f"No pickup slot available for district '{district}' within "
            f"{config.max_lookahead_days} days"
        )
