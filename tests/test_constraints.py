"""Tests for scheduling constraint validation logic.

Covers every validation branch in validate_scheduling_config().
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from backend.domain.constraints import SchedulingConfig, validate_scheduling_config
from backend.services.scheduling_service import PickupScheduler
from backend.utils.config import get_settings


def valid_config(**overrides) -> SchedulingConfig:
    """Return a valid baseline SchedulingConfig, optionally overriding fields."""
    defaults = {
        "daily_capacity": 5,
        "slot_start_hour": 9,
        "slot_duration_hours": 1,
        "same_day_cutoff_hour": 15,
        "max_lookahead_days": 365,
    }
    defaults.update(overrides)
    return SchedulingConfig(**defaults)


# --- Baseline pass ---

def test_valid_config_passes() -> None:
    """A fully valid config must not raise."""
    validate_scheduling_config(valid_config())


def test_default_config_matches_pickup_policy() -> None:
    config = SchedulingConfig()
    assert config.daily_capacity == 5
    assert config.slot_start_hour == 9
    assert config.same_day_cutoff_hour == 15


def test_from_settings_maps_pickup_fields() -> None:
    settings = replace(
        get_settings(),
        pickup_daily_capacity=3,
        pickup_slot_start_hour=8,
        pickup_max_lookahead_days=30,
    )
    config = SchedulingConfig.from_settings(settings)
    assert config.daily_capacity == 3
    assert config.slot_start_hour == 8
    assert config.max_lookahead_days == 30


# --- daily_capacity ---

def test_zero_daily_capacity_raises() -> None:
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(daily_capacity=0))


def test_scheduler_rejects_invalid_config_at_construction() -> None:
    with pytest.raises(ValueError):
        PickupScheduler(booking_counter=lambda district, day: 0, config=valid_config(daily_capacity=0))


# --- slot hours ---

def test_slot_start_hour_out_of_range_raises() -> None:
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(slot_start_hour=24))
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(slot_start_hour=-1))


def test_slot_duration_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(slot_duration_hours=0))


# --- cutoff ---

def test_cutoff_out_of_range_raises() -> None:
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(same_day_cutoff_hour=25))


def test_cutoff_bounds_are_inclusive() -> None:
    validate_scheduling_config(valid_config(same_day_cutoff_hour=0))
    validate_scheduling_config(valid_config(same_day_cutoff_hour=24))


# --- lookahead ---

def test_lookahead_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_scheduling_config(valid_config(max_lookahead_days=0))
