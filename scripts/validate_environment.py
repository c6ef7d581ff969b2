#!/usr/bin/env python3
"""Validate local pickup-scheduler environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.constraints import SchedulingConfig, validate_scheduling_config
from backend.repository.data_repository import DataRepository
from backend.services.scheduling_service import PickupScheduler
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="pickup-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "requests", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        base_settings = get_settings()

        # CHECK 3: Scheduling configuration
        try:
            validate_scheduling_config(SchedulingConfig.from_settings(base_settings))
            ok, line = _print_result(
                "Scheduling config",
                True,
                f" (capacity={base_settings.pickup_daily_capacity}, "
                f"mode={base_settings.pickup_reservation_mode})",
            )
        except ValueError as exc:
            ok, line = _print_result("Scheduling config", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        validation_settings = replace(
            base_settings,
            database_path=Path(temp_dir) / "pickup_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 4: Database initialization and demo seed
        try:
            repository.initialize_database()
            repository.seed_demo_data()
            if repository.get_device(1) is None:
                raise RuntimeError("demo devices missing after seed")
            ok, line = _print_result("Database initialization and seed", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization and seed", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Scheduler smoke test against an empty store
        try:
            scheduler = PickupScheduler(
                booking_counter=repository.count_pickups_for_district,
                config=SchedulingConfig.from_settings(validation_settings),
                clock=lambda: datetime(2030, 1, 7, 8, 0),
            )
            schedule = scheduler.compute_schedule("Validation District")
            if (schedule.pickup_date, schedule.pickup_time) != ("2030-01-07", "9:00"):
                raise RuntimeError(f"unexpected slot {schedule}")
            ok, line = _print_result("Scheduler smoke test", True)
        except Exception as exc:
            ok, line = _print_result("Scheduler smoke test", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 6: AI key presence (warning only; extraction falls back without it)
        if base_settings.gemini_api_key:
            results.append("[PASS] Gemini API key configured")
        else:
            results.append("[WARN] Gemini API key not set; district extraction uses fallback parsing")
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    for line in results:
        print(line)
    print(SEPARATOR_LINE)
    print("READY" if all_passed else "NOT READY")
    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
