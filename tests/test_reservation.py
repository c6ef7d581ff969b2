"""Capacity invariant and concurrent-submission behaviour of both reservation modes.

In "optimistic" mode the count-then-insert sequence is not isolated, so two
submissions that read the same count receive the same slot. In
"transactional" mode the count and insert share one write-locked transaction
and concurrent submissions get consecutive slots.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections import Counter
from dataclasses import replace
from datetime import datetime

import pytest

from backend.domain.constraints import SchedulingConfig
from backend.repository.data_repository import DataRepository, PickupReservation
from backend.services.auth_service import Requester
from backend.services.pickup_service import PickupWorkflowService
from backend.services.scheduling_service import PickupScheduler
from backend.utils.config import get_settings


FIXED_NOW = datetime(2026, 3, 2, 8, 0)
REQUESTER = Requester(user_id=2, name="Asha Rao", role="user")


class FixedDistrictService:
    def __init__(self, district: str, barrier: threading.Barrier | None = None) -> None:
        self._district = district
        self._barrier = barrier

    def extract_district(self, address: str) -> str:
        if self._barrier is not None:
            self._barrier.wait(timeout=10)
        return self._district


def _build_repository(tmp_path, filename: str, reservation_mode: str):
    settings = replace(
        get_settings(),
        database_path=tmp_path / filename,
        pickup_reservation_mode=reservation_mode,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    return settings, repository


def _run_concurrently(target, count: int = 2) -> list:
    results: list = [None] * count
    errors: list[BaseException] = []

    def worker(index: int) -> None:
        try:
            results[index] = target()
        except BaseException as exc:  # surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    assert not errors, errors
    return results


def test_sequential_submissions_never_exceed_daily_capacity(tmp_path):
    settings, repository = _build_repository(tmp_path, "capacity.db", "optimistic")
    service = PickupWorkflowService(
        repository=repository,
        district_service=FixedDistrictService("Bengaluru"),
        settings=settings,
        clock=lambda: FIXED_NOW,
    )

    results = [
        service.create_pickup(REQUESTER, device_id=1, address="12 MG Road, Bengaluru")
        for _ in range(12)
    ]

    per_day = Counter(result.schedule.pickup_date for result in results)
    assert per_day == {"2026-03-02": 5, "2026-03-03": 5, "2026-03-04": 2}
    for day in per_day:
        assert repository.count_pickups_for_district("Bengaluru", day) <= 5
    assert [result.schedule.pickup_time for result in results[:5]] == [
        "9:00",
        "10:00",
        "11:00",
        "12:00",
        "13:00",
    ]
    assert results[5].schedule.position_in_queue == 1


def test_optimistic_mode_preserves_duplicate_slot_race():
    barrier = threading.Barrier(2)
    booked = {"count": 2}

    def racing_counter(district: str, scheduled_date: str) -> int:
        observed = booked["count"]
        barrier.wait(timeout=10)
        return observed

    scheduler = PickupScheduler(
        booking_counter=racing_counter,
        config=SchedulingConfig(),
        clock=lambda: FIXED_NOW,
    )

    first, second = _run_concurrently(lambda: scheduler.compute_schedule("Pune"))

    assert first.position_in_queue == second.position_in_queue == 3
    assert first.pickup_time == second.pickup_time == "11:00"


def test_optimistic_mode_persists_duplicate_slots(tmp_path):
    settings, repository = _build_repository(tmp_path, "optimistic_race.db", "optimistic")
    barrier = threading.Barrier(2)

    def racing_counter(district: str, scheduled_date: str) -> int:
        observed = repository.count_pickups_for_district(district, scheduled_date)
        barrier.wait(timeout=10)
        return observed

    service = PickupWorkflowService(
        repository=repository,
        district_service=FixedDistrictService("Pune"),
        scheduler=PickupScheduler(racing_counter, SchedulingConfig(), clock=lambda: FIXED_NOW),
        settings=settings,
    )

    results = _run_concurrently(
        lambda: service.create_pickup(REQUESTER, device_id=1, address="Baner, Pune")
    )

    assert [result.schedule.position_in_queue for result in results] == [1, 1]
    stored_times = [pickup.scheduled_time for pickup in repository.list_pickups()]
    assert stored_times == ["9:00", "9:00"]


def test_transactional_mode_serializes_concurrent_submissions(tmp_path, monkeypatch):
    settings, repository = _build_repository(tmp_path, "transactional_race.db", "transactional")
    original_count = PickupReservation.count_pickups_for_district

    def slow_count(self, district: str, scheduled_date: str) -> int:
        observed = original_count(self, district, scheduled_date)
        time.sleep(0.2)
        return observed

    monkeypatch.setattr(PickupReservation, "count_pickups_for_district", slow_count)

    service = PickupWorkflowService(
        repository=repository,
        district_service=FixedDistrictService("Pune", barrier=threading.Barrier(2)),
        settings=settings,
        clock=lambda: FIXED_NOW,
    )
    assert service.transactional_reservations

    results = _run_concurrently(
        lambda: service.create_pickup(REQUESTER, device_id=1, address="Baner, Pune")
    )

    assert sorted(result.schedule.position_in_queue for result in results) == [1, 2]
    assert sorted(result.schedule.pickup_time for result in results) == ["10:00", "9:00"]
    assert repository.count_pickups_for_district("Pune", "2026-03-02") == 2


def test_transactional_reservation_rolls_back_on_error(tmp_path):
    _, repository = _build_repository(tmp_path, "rollback.db", "transactional")

    with pytest.raises(RuntimeError, match="abort"):
        with repository.pickup_reservation() as reservation:
            reservation.create_pickup(
                user_id=2,
                device_id=1,
                address="Baner, Pune",
                district="Pune",
                scheduled_date="2026-03-02",
                scheduled_time="9:00",
                tracking_note="test",
            )
            raise RuntimeError("abort")

    assert repository.count_pickups_for_district("Pune", "2026-03-02") == 0


@pytest.mark.parametrize("reservation_mode", ["optimistic", "transactional"])
def test_storage_failure_abandons_submission(tmp_path, monkeypatch, reservation_mode):
    settings, repository = _build_repository(tmp_path, f"{reservation_mode}_failure.db", reservation_mode)

    def failing_count(self, district: str, scheduled_date: str) -> int:
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(DataRepository, "count_pickups_for_district", failing_count)
    monkeypatch.setattr(PickupReservation, "count_pickups_for_district", failing_count)

    service = PickupWorkflowService(
        repository=repository,
        district_service=FixedDistrictService("Pune"),
        settings=settings,
        clock=lambda: FIXED_NOW,
    )

    with pytest.raises(sqlite3.OperationalError, match="disk I/O error"):
        service.create_pickup(REQUESTER, device_id=1, address="Baner, Pune")

    assert repository.list_pickups() == []
