"""Domain-level validation rules for pickup slot scheduling."""

from __future__ import annotations

from dataclasses import dataclass

from backend.utils.config import Settings


@dataclass(frozen=True)
class SchedulingConfig:
    daily_capacity: int = 5
    slot_start_hour: int = 9
    slot_duration_hours: int = 1
    same_day_cutoff_hour: int = 15
    max_lookahead_days: int = 365

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingConfig":
        return cls(
            daily_capacity=settings.pickup_daily_capacity,
            slot_start_hour=settings.pickup_slot_start_hour,
            slot_duration_hours=settings.pickup_slot_duration_hours,
            same_day_cutoff_hour=settings.pickup_same_day_cutoff_hour,
            max_lookahead_days=settings.pickup_max_lookahead_days,
        )


def validate_scheduling_config(config: SchedulingConfig) -> None:
    if config.daily_capacity <= 0:
        raise ValueError("daily_capacity must be > 0")
    if not 0 <= config.slot_start_hour <= 23:
        raise ValueError("slot_start_hour must be between 0 and 23")
    if config.slot_duration_hours <= 0:
        raise ValueError("slot_duration_hours must be > 0")
    if not 0 <= config.same_day_cutoff_hour <= 24:
        raise ValueError("same_day_cutoff_hour must be between 0 and 24")
    if config.max_lookahead_days <= 0:
        raise ValueError("max_lookahead_days must be > 0")
