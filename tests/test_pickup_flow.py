from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend.domain.constraints import SchedulingConfig
from backend.services.pickup_service import PickupWorkflowService
from backend.services.scheduling_service import PickupScheduler
from backend.utils.config import get_settings


FIXED_NOW = datetime(2030, 1, 7, 8, 0)
ADMIN_TOKEN = "secret-admin-token"
ASHA = {"X-User-Id": "2"}
RAVI = {"X-User-Id": "3"}
ADMIN_USER = {"X-User-Id": "1"}


class StubCompletionClient:
    def __init__(self, response: str) -> None:
        self._response = response

    def complete(self, prompt: str, model: str) -> str:
        return self._response


@pytest.fixture
def client(tmp_path):
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        database_path=tmp_path / "pickup_flow.db",
        admin_token=ADMIN_TOKEN,
        seed_demo_data=True,
        pickup_reservation_mode="optimistic",
    )
    app = create_app(
        settings=settings,
        completion_client=StubCompletionClient('```json\n{"district": "Bengaluru"}\n```'),
    )
    with TestClient(app) as test_client:
        app.state.pickup_service = PickupWorkflowService(
            repository=app.state.repository,
            district_service=app.state.district_service,
            settings=settings,
            clock=lambda: FIXED_NOW,
        )
        yield test_client


def _admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post("/admin/login", json={"admin_token": ADMIN_TOKEN})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _create(client: TestClient, headers=ASHA, device_id: int = 1):
    return client.post(
        "/pickups",
        json={"device_id": device_id, "address": "12 MG Road, Indiranagar, Bengaluru, 560038"},
        headers=headers,
    )


def test_health_reports_reservation_mode(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["reservation_mode"] == "optimistic"


def test_create_pickup_requires_known_user(client):
    assert _create(client, headers={}).status_code == 401
    assert _create(client, headers={"X-User-Id": "999"}).status_code == 401


def test_create_pickup_books_consecutive_slots(client):
    first = _create(client)
    second = _create(client)

    assert first.status_code == 201
    body = first.json()
    assert body["pickup"]["district"] == "Bengaluru"
    assert body["pickup"]["device_name"] == "iPhone 12"
    assert body["pickup"]["status"] == "pending"
    assert body["schedule"] == {
        "pickup_date": "2030-01-07",
        "pickup_time": "9:00",
        "position_in_queue": 1,
    }
    assert second.json()["schedule"]["pickup_time"] == "10:00"
    assert second.json()["schedule"]["position_in_queue"] == 2


def test_create_pickup_validates_input(client):
    assert _create(client, device_id=999).status_code == 404
    blank = client.post("/pickups", json={"device_id": 1, "address": "   "}, headers=ASHA)
    assert blank.status_code == 422
    missing = client.post("/pickups", json={"address": "Pune"}, headers=ASHA)
    assert missing.status_code == 422


def test_schedule_preview_does_not_persist(client):
    _create(client)

    preview = client.get("/pickups/schedule-preview", params={"district": "Bengaluru"}, headers=ASHA)
    assert preview.status_code == 200
    assert preview.json()["schedule"]["position_in_queue"] == 2

    again = client.get("/pickups/schedule-preview", params={"address": "Baner, Pune"}, headers=ASHA)
    assert again.json()["district"] == "Bengaluru"
    assert again.json()["schedule"]["position_in_queue"] == 2

    assert client.get("/pickups/schedule-preview", headers=ASHA).status_code == 400


def test_user_pickup_listing_enforces_ownership(client):
    created = _create(client).json()["pickup"]

    own = client.get("/pickups/2", headers=ASHA)
    assert own.status_code == 200
    assert [item["pickup_id"] for item in own.json()["pickups"]] == [created["pickup_id"]]
    assert own.json()["pickups"][0]["tracking_note"] == "Pickup request received, awaiting processing"

    assert client.get("/pickups/2", headers=RAVI).status_code == 403
    assert client.get("/pickups/2", headers=ADMIN_USER).status_code == 200

    single = client.get(f"/pickups/single/{created['pickup_id']}", headers=ASHA)
    assert single.status_code == 200
    assert single.json()["pickup"]["scheduled_time"] == "9:00"
    assert client.get(f"/pickups/single/{created['pickup_id']}", headers=RAVI).status_code == 403
    assert client.get("/pickups/single/999", headers=ASHA).status_code == 404


def test_cancel_only_pending_own_pickups(client):
    pickup_id = _create(client).json()["pickup"]["pickup_id"]

    assert client.put(f"/pickups/{pickup_id}/cancel", headers=RAVI).status_code == 403

    cancelled = client.put(f"/pickups/{pickup_id}/cancel", headers=ASHA)
    assert cancelled.status_code == 200
    assert cancelled.json()["pickup"]["status"] == "cancelled"
    assert cancelled.json()["pickup"]["tracking_note"] == "Cancelled by user"

    assert client.put(f"/pickups/{pickup_id}/cancel", headers=ASHA).status_code == 400
    assert client.put("/pickups/999/cancel", headers=ASHA).status_code == 404


def test_cancelled_pickups_still_occupy_their_slot(client):
    pickup_id = _create(client).json()["pickup"]["pickup_id"]
    client.put(f"/pickups/{pickup_id}/cancel", headers=ASHA)

    assert _create(client).json()["schedule"]["pickup_time"] == "10:00"


def test_admin_endpoints_require_login(client):
    assert client.get("/admin/pickups").status_code == 401
    assert client.post("/admin/login", json={"admin_token": "wrong"}).status_code == 401


def test_admin_status_update_awards_credits_once(client):
    pickup_id = _create(client).json()["pickup"]["pickup_id"]
    headers = _admin_headers(client)

    listing = client.get("/admin/pickups", params={"status": "pending"}, headers=headers)
    assert listing.status_code == 200
    assert [item["pickup_id"] for item in listing.json()["pickups"]] == [pickup_id]
    assert client.get("/admin/pickups", params={"status": "bogus"}, headers=headers).status_code == 400
    dated = client.get("/admin/pickups", params={"date": "2030-01-08"}, headers=headers)
    assert dated.json()["pickups"] == []

    scheduled = client.put(
        f"/admin/pickups/{pickup_id}/status",
        json={"status": "scheduled"},
        headers=headers,
    )
    assert scheduled.status_code == 200
    assert scheduled.json()["pickup"]["tracking_note"] == "Pickup has been scheduled with our team"
    assert scheduled.json()["credits_awarded"] == 0

    completed = client.put(
        f"/admin/pickups/{pickup_id}/status",
        json={"status": "completed", "tracking_note": "Collected at the door"},
        headers=headers,
    )
    assert completed.status_code == 200
    assert completed.json()["credits_awarded"] == 45
    assert completed.json()["pickup"]["tracking_note"] == "Collected at the door"

    repeated = client.put(
        f"/admin/pickups/{pickup_id}/status",
        json={"status": "completed"},
        headers=headers,
    )
    assert repeated.json()["credits_awarded"] == 0

    repository = client.app.state.repository
    assert repository.get_user(2).credits == 45

    invalid = client.put(
        f"/admin/pickups/{pickup_id}/status",
        json={"status": "lost"},
        headers=headers,
    )
    assert invalid.status_code == 400
    missing = client.put("/admin/pickups/999/status", json={"status": "scheduled"}, headers=headers)
    assert missing.status_code == 404


def test_storage_failure_returns_500_without_persisting(client):
    def failing_counter(district: str, scheduled_date: str) -> int:
        raise sqlite3.OperationalError("database is locked")

    app = client.app
    app.state.pickup_service = PickupWorkflowService(
        repository=app.state.repository,
        district_service=app.state.district_service,
        scheduler=PickupScheduler(failing_counter, SchedulingConfig(), clock=lambda: FIXED_NOW),
        settings=app.state.settings,
    )

    response = _create(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create pickup request"
    assert app.state.repository.list_pickups() == []


class BrokenPickupService:
    def _fail(self, *args, **kwargs):
        raise sqlite3.OperationalError("no such table: pickup_requests")

    preview_schedule = _fail
    get_pickup = _fail
    list_user_pickups = _fail
    cancel_pickup = _fail
    list_pickups = _fail
    update_pickup_status = _fail


def test_unexpected_errors_map_to_500(client):
    client.app.state.pickup_service = BrokenPickupService()

    preview = client.get("/pickups/schedule-preview", params={"district": "Pune"}, headers=ASHA)
    assert preview.status_code == 500
    assert preview.json()["detail"] == "Failed to compute pickup schedule"

    assert client.get("/pickups/single/1", headers=ASHA).json()["detail"] == (
        "Failed to fetch pickup request"
    )
    assert client.get("/pickups/2", headers=ASHA).status_code == 500
    cancelled = client.put("/pickups/1/cancel", headers=ASHA)
    assert cancelled.status_code == 500
    assert cancelled.json()["detail"] == "Failed to cancel pickup request"

    headers = _admin_headers(client)
    listing = client.get("/admin/pickups", headers=headers)
    assert listing.status_code == 500
    assert listing.json()["detail"] == "Failed to fetch pickup requests"
    status_update = client.put("/admin/pickups/1/status", json={"status": "scheduled"}, headers=headers)
    assert status_update.json()["detail"] == "Failed to update pickup status"
