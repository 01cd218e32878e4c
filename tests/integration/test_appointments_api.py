"""Integration tests for the scheduling HTTP API.

Runs the FastAPI app against an in-memory database with a fixed clock.
"""
import pytest
from fastapi.testclient import TestClient

from appointment_engine.api.dependencies import get_doctor_directory, get_now, get_store
from appointment_engine.api_server import app
from conftest import DOCTOR_EMAIL, at

PATIENT = {
    "X-User-ID": "patient-1",
    "X-User-Role": "patient",
    "X-User-Email": "ana@example.com",
    "X-User-Name": "Ana Lopez",
}
OTHER_PATIENT = {"X-User-ID": "patient-2", "X-User-Role": "patient"}
DOCTOR = {"X-User-ID": "user-doc-1", "X-User-Role": "doctor", "X-User-Email": DOCTOR_EMAIL}
ADMIN = {"X-User-ID": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def client(store, directory, doctor, now):
    """TestClient wired to the test store, directory and clock."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_doctor_directory] = lambda: directory
    app.dependency_overrides[get_now] = lambda: now
    yield TestClient(app)
    app.dependency_overrides.clear()


def book(client, instant="2030-01-07T09:00:00", headers=PATIENT):
    return client.post(
        "/api/v1/appointments",
        json={"doctor_id": "doc-house", "instant": instant},
        headers=headers
    )


def test_health_and_root(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["docs"] == "/docs"


def test_request_id_header(client):
    response = client.get("/health")
    assert response.headers["X-Request-ID"].startswith("req-")

    response = client.get("/health", headers={"X-Request-ID": "req-fromclient"})
    assert response.headers["X-Request-ID"] == "req-fromclient"


class TestSlotsEndpoint:

    def test_lists_slots(self, client):
        response = client.get("/api/v1/doctors/doc-house/slots?date=2030-01-07", headers=PATIENT)

        assert response.status_code == 200
        data = response.json()
        assert data["date"] == "2030-01-07"
        assert data["slots"][0] == "2030-01-07T08:00:00"
        assert len(data["slots"]) == 8

    def test_no_availability_is_empty_list(self, client):
        response = client.get("/api/v1/doctors/doc-house/slots?date=2030-01-08", headers=PATIENT)

        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_unknown_doctor(self, client):
        response = client.get("/api/v1/doctors/doc-nobody/slots?date=2030-01-07", headers=PATIENT)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_requires_identity(self, client):
        response = client.get("/api/v1/doctors/doc-house/slots?date=2030-01-07")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_malformed_date(self, client):
        response = client.get("/api/v1/doctors/doc-house/slots?date=monday", headers=PATIENT)
        assert response.status_code == 422


class TestBookingEndpoint:

    def test_books_pending(self, client):
        response = book(client, "2030-01-07T09:10:00")

        assert response.status_code == 201
        appointment = response.json()["appointment"]
        assert appointment["status"] == "pending"
        assert appointment["instant"] == "2030-01-07T09:00:00"
        assert appointment["patient_id"] == "patient-1"
        assert appointment["patient_name_at_booking"] == "Ana Lopez"
        assert appointment["patient_email_at_booking"] == "ana@example.com"

    def test_double_booking_conflict(self, client):
        assert book(client).status_code == 201

        response = book(client, headers=OTHER_PATIENT)

        assert response.status_code == 409
        assert response.json()["code"] == "SLOT_TAKEN"

    def test_past_slot(self, client):
        response = book(client, "2030-01-07T06:00:00")

        assert response.status_code == 400
        assert response.json()["code"] == "PAST_SLOT"

    def test_outside_availability(self, client):
        response = book(client, "2030-01-07T11:45:00+00:00")
        assert response.status_code == 201  # floors to 11:30, which fits

        response = book(client, "2030-01-07T12:00:00")
        assert response.status_code == 400
        assert response.json()["code"] == "OUTSIDE_AVAILABILITY"

    def test_doctor_cannot_book(self, client):
        response = book(client, headers=DOCTOR)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_unknown_role(self, client):
        response = book(client, headers={"X-User-ID": "x", "X-User-Role": "nurse"})
        assert response.status_code == 401


class TestLifecycleEndpoints:

    def test_approve_then_cancel(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "approved"},
            headers=DOCTOR
        )
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "approved"

        response = client.patch(f"/api/v1/appointments/{appointment_id}/cancel", headers=PATIENT)
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "cancelled_by_patient"

        # Cancelled appointments are kept
        response = client.get(f"/api/v1/appointments/{appointment_id}", headers=PATIENT)
        assert response.json()["appointment"]["status"] == "cancelled_by_patient"

    def test_invalid_decision_status(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "cancelled_by_doctor"},
            headers=DOCTOR
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    def test_approve_rejected_conflicts(self, client):
        appointment_id = book(client).json()["appointment"]["id"]
        url = f"/api/v1/appointments/{appointment_id}/status"

        client.patch(url, json={"status": "rejected"}, headers=DOCTOR)
        response = client.patch(url, json={"status": "approved"}, headers=DOCTOR)

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_STATE"

    def test_patient_cannot_decide(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "approved"},
            headers=PATIENT
        )
        assert response.status_code == 403

    def test_stranger_cannot_cancel_or_read(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        assert client.patch(
            f"/api/v1/appointments/{appointment_id}/cancel", headers=OTHER_PATIENT
        ).status_code == 403
        assert client.get(
            f"/api/v1/appointments/{appointment_id}", headers=OTHER_PATIENT
        ).status_code == 403

    def test_admin_cancel(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        response = client.patch(f"/api/v1/appointments/{appointment_id}/cancel", headers=ADMIN)

        assert response.json()["appointment"]["status"] == "cancelled_by_doctor"

    def test_missing_appointment(self, client):
        response = client.patch("/api/v1/appointments/appt-missing/cancel", headers=PATIENT)
        assert response.status_code == 404

    def test_listing(self, client):
        book(client)
        book(client, "2030-01-07T10:00:00", headers=OTHER_PATIENT)

        assert client.get("/api/v1/appointments", headers=PATIENT).json()["total"] == 1
        assert client.get("/api/v1/appointments", headers=DOCTOR).json()["total"] == 2
        assert client.get("/api/v1/appointments", headers=ADMIN).json()["total"] == 2


class TestRescheduleEndpoint:

    def test_reschedule(self, client):
        appointment_id = book(client).json()["appointment"]["id"]

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}/reschedule",
            json={"instant": "2030-01-07T10:00:00"},
            headers=PATIENT
        )

        assert response.status_code == 200
        assert response.json()["appointment"]["instant"] == "2030-01-07T10:00:00"

        slots = client.get(
            "/api/v1/doctors/doc-house/slots?date=2030-01-07", headers=PATIENT
        ).json()["slots"]
        assert "2030-01-07T09:00:00" in slots
        assert "2030-01-07T10:00:00" not in slots

    def test_reschedule_to_taken_slot(self, client, store):
        appointment_id = book(client).json()["appointment"]["id"]
        book(client, "2030-01-07T10:00:00", headers=OTHER_PATIENT)

        response = client.patch(
            f"/api/v1/appointments/{appointment_id}/reschedule",
            json={"instant": "2030-01-07T10:00:00"},
            headers=PATIENT
        )

        assert response.status_code == 409
        assert store.get(appointment_id).instant == at(9, 0)
