"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


RESERVATION_MODES = ("optimistic", "transactional")


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_optional_str(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable settings snapshot; use dataclasses.replace for overrides."""

    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    admin_token: Optional[str]
    seed_demo_data: bool

    gemini_api_key: Optional[str]
    gemini_model: str
    gemini_base_url: str
    ai_request_timeout_seconds: float

    pickup_daily_capacity: int
    pickup_slot_start_hour: int
    pickup_slot_duration_hours: int
    pickup_same_day_cutoff_hour: int
    pickup_max_lookahead_days: int
    pickup_reservation_mode: str

    mass_collection_org_types: tuple[str, ...]


def load_settings() -> Settings:
    reservation_mode = _env_str("PICKUP_RESERVATION_MODE", "optimistic").lower()
    if reservation_mode not in RESERVATION_MODES:
        raise ValueError(
            f"PICKUP_RESERVATION_MODE must be one of {RESERVATION_MODES}, got {reservation_mode!r}"
        )

    return Settings(
        app_name=_env_str("APP_NAME", "E-Waste Pickup Scheduler"),
        app_version=_env_str("APP_VERSION", "1.0.0"),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        database_path=Path(_env_str("DATABASE_PATH", "data/ewaste.db")),
        admin_token=_env_optional_str("ADMIN_TOKEN"),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        gemini_api_key=_env_optional_str("GOOGLE_API_KEY", "GEMINI_API_KEY"),
        gemini_model=_env_str("GEMINI_TEXT_MODEL", "gemini-2.5-flash"),
        gemini_base_url=_env_str(
            "GEMINI_BASE_URL",
            "https://generativelanguage.googleapis.com/v1beta",
        ),
        ai_request_timeout_seconds=_env_float("AI_REQUEST_TIMEOUT_SECONDS", 10.0),
        pickup_daily_capacity=_env_int("PICKUP_DAILY_CAPACITY", 5),
        pickup_slot_start_hour=_env_int("PICKUP_SLOT_START_HOUR", 9),
        pickup_slot_duration_hours=_env_int("PICKUP_SLOT_DURATION_HOURS", 1),
        pickup_same_day_cutoff_hour=_env_int("PICKUP_SAME_DAY_CUTOFF_HOUR", 15),
        pickup_max_lookahead_days=_env_int("PICKUP_MAX_LOOKAHEAD_DAYS", 365),
        pickup_reservation_mode=reservation_mode,
        mass_collection_org_types=_env_tuple(
            "MASS_COLLECTION_ORG_TYPES",
            ("College", "Company", "Industry", "Government", "NGO"),
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once from the environment."""
    return load_settings()
