"""Tests for the reservation HTTP endpoints."""
import pytest
from fastapi.testclient import TestClient

from apps.api.deps import get_reservation_service
from apps.api.main import app


PREFIX = "/api/v1"


@pytest.fixture
def client(reservation_service):
    """Test client wired to the fixture service; lifespan is not run."""
    app.dependency_overrides[get_reservation_service] = lambda: reservation_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def payload():
    return {
        "table_id": "T1",
        "guest_name": "Jane Smith",
        "guest_phone": "+1 555 123 4567",
        "guest_email": "jane@example.com",
        "guest_count": 2,
        "date_time": "2024-03-15T12:00:00Z",
    }


@pytest.mark.integration
class TestReservationEndpoints:
    """Test reservation creation and lookup over HTTP."""

    def test_create_reservation(self, client, restaurant, payload):
        response = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["guest_phone"] == "15551234567"
        assert body["table_label"] == "T1"

    def test_staff_reservation_is_confirmed(self, client, restaurant, payload):
        payload.update(origin_role="STAFF", guest_phone=None, guest_email=None, date_time="2024-03-15T03:00:00Z")

        response = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload)

        assert response.status_code == 201
        assert response.json()["status"] == "CONFIRMED"

    def test_out_of_hours_is_bad_request(self, client, restaurant, payload):
        payload["date_time"] = "2024-03-15T09:00:00Z"

        response = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "OUT_OF_HOURS"
        assert response.json()["retryable"] is False

    def test_conflicts_are_409(self, client, restaurant, payload):
        """Test table and guest conflicts map to 409 with their reason code."""
        url = f"{PREFIX}/restaurants/{restaurant.id}/reservations"
        assert client.post(url, json=payload).status_code == 201

        held = client.post(url, json={**payload, "guest_phone": "555 999 0000", "date_time": "2024-03-15T14:00:00Z"})
        near = client.post(url, json={**payload, "guest_phone": "555 999 0001", "date_time": "2024-03-15T11:30:00Z"})
        duplicate = client.post(url, json={**payload, "table_id": "T2"})

        assert held.status_code == 409
        assert held.json()["code"] == "TABLE_HELD"
        assert near.status_code == 409
        assert near.json()["code"] == "TIME_CONFLICT"
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "DUPLICATE_GUEST"

    def test_missing_phone_is_bad_request(self, client, restaurant, payload):
        payload["guest_phone"] = None

        response = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "PHONE_REQUIRED"

    def test_malformed_body(self, client, restaurant, payload):
        payload["guest_count"] = 0

        response = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload)

        assert response.status_code == 422

    def test_unknown_restaurant(self, client, payload):
        response = client.post(f"{PREFIX}/restaurants/999/reservations", json=payload)

        assert response.status_code == 404
        assert response.json()["code"] == "RESTAURANT_NOT_FOUND"

    def test_get_and_list(self, client, restaurant, payload):
        created = client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload).json()

        fetched = client.get(f"{PREFIX}/reservations/{created['id']}")
        listed = client.get(f"{PREFIX}/restaurants/{restaurant.id}/reservations")

        assert fetched.status_code == 200
        assert fetched.json() == created
        assert [r["id"] for r in listed.json()] == [created["id"]]

    def test_get_unknown_reservation(self, client):
        response = client.get(f"{PREFIX}/reservations/999")

        assert response.status_code == 404
        assert response.json()["code"] == "RESERVATION_NOT_FOUND"


@pytest.mark.integration
class TestStatusEndpoints:
    """Test staff status changes and the expiry sweep over HTTP."""

    def create(self, client, restaurant, payload):
        return client.post(f"{PREFIX}/restaurants/{restaurant.id}/reservations", json=payload).json()

    def test_confirm(self, client, restaurant, payload):
        created = self.create(client, restaurant, payload)

        response = client.put(f"{PREFIX}/reservations/{created['id']}/status", json={"status": "CONFIRMED"})

        assert response.status_code == 200
        assert response.json()["status"] == "CONFIRMED"

    def test_decline_with_reason(self, client, restaurant, payload):
        created = self.create(client, restaurant, payload)

        response = client.put(
            f"{PREFIX}/reservations/{created['id']}/status",
            json={"status": "DECLINED", "decline_reason": "Fully booked"},
        )

        assert response.json()["decline_reason"] == "Fully booked"

    def test_invalid_transition_is_409(self, client, restaurant, payload):
        created = self.create(client, restaurant, payload)

        response = client.put(f"{PREFIX}/reservations/{created['id']}/status", json={"status": "COMPLETED"})

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_sweep_expired(self, client, restaurant, payload, clock):
        created = self.create(client, restaurant, payload)
        clock.advance(hours=2)

        first = client.post(f"{PREFIX}/reservations/sweep-expired")
        second = client.post(f"{PREFIX}/reservations/sweep-expired")

        assert first.status_code == 200
        assert first.json()["updated"] == 1
        assert first.json()["reservations"][0]["id"] == created["id"]
        assert first.json()["reservations"][0]["decline_reason"] == "Automatic cancellation"
        assert second.json() == {"updated": 0, "reservations": []}


@pytest.mark.unit
class TestHealth:
    """Test service endpoints."""

    def test_health(self):
        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
