import uuid

import pytest

from callrelay.main import app
from tests.helpers import CUSTOMER, PROVIDER, auth_headers, join, open_client, ws_url


@pytest.fixture
def booking_id(directory):
    # Call logs share one SQLite file across tests
    booking_id = f"booking-{uuid.uuid4()}"
    directory.add(booking_id)
    return booking_id


def test_call_info_for_participant(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": booking_id, "callerType": "user"},
            headers=auth_headers(CUSTOMER),
        )

    assert r.status_code == 200
    data = r.json()
    assert data["caller_id"] == CUSTOMER
    assert data["caller_name"] == "Asha Customer"
    assert data["receiver_id"] == PROVIDER
    assert data["receiver_name"] == "Ravi Provider"
    assert data["service_name"] == "Plumbing"
    assert data["receiver_online"] is False


def test_call_info_requires_token(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post("/api/calls/initiate", json={"bookingId": booking_id})
    assert r.status_code == 401


def test_call_info_hides_foreign_bookings(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": booking_id},
            headers=auth_headers("stranger"),
        )
    assert r.status_code == 404


def test_call_info_rejects_wrong_caller_type(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": booking_id, "callerType": "provider"},
            headers=auth_headers(CUSTOMER),
        )
    assert r.status_code == 403


def test_call_info_for_closed_booking(app_signaling, directory):
    directory.add("done", status="completed")
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": "done"},
            headers=auth_headers(PROVIDER),
        )
    assert r.status_code == 400


def test_log_and_read_call_history(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/log",
            json={"bookingId": booking_id, "duration": 95, "callerType": "provider"},
            headers=auth_headers(PROVIDER),
        )
        assert r.status_code == 200
        assert r.json()["message"] == "Call logged successfully"

        r = client.get(f"/api/calls/history/{booking_id}", headers=auth_headers(CUSTOMER))
        assert r.status_code == 200
        [call] = r.json()["calls"]
        assert call["id"]
        assert call["caller_id"] == PROVIDER
        assert call["duration"] == 95
        assert call["call_status"] == "completed"

        r = client.get(f"/api/calls/history/{booking_id}", headers=auth_headers("stranger"))
        assert r.status_code == 404


def test_call_info_reports_permission_codes(app_signaling, directory):
    parties = directory.add("unverified")
    parties.verified[PROVIDER] = False
    directory.add("unpaid", payment_status="pending")

    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": "unverified"},
            headers=auth_headers(CUSTOMER),
        )
        assert r.status_code == 403
        assert r.json()["detail"]["code"] == "RECEIVER_NOT_VERIFIED"

        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": "unpaid"},
            headers=auth_headers(CUSTOMER),
        )
        assert r.status_code == 403
        assert r.json()["detail"]["code"] == "PROVIDER_CALLS_DISABLED"

        r = client.post(
            "/api/calls/initiate",
            json={"bookingId": "unpaid"},
            headers=auth_headers(PROVIDER),
        )
        assert r.status_code == 200


def test_log_rejects_negative_duration(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/log",
            json={"bookingId": booking_id, "duration": -1, "callerType": "user"},
            headers=auth_headers(CUSTOMER),
        )
    assert r.status_code == 422


def test_active_call_snapshot(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.get(f"/api/calls/active/{booking_id}", headers=auth_headers(CUSTOMER))
        assert r.status_code == 404

        with client.websocket_connect(ws_url(CUSTOMER)) as ws:
            join(ws)
            ws.send_json({"type": "call:initiate", "bookingId": booking_id})
            ws.receive_json()

            r = client.get(f"/api/calls/active/{booking_id}", headers=auth_headers(PROVIDER))
            assert r.status_code == 200
            data = r.json()
            assert data["status"] == "ringing"
            assert data["caller_identity"] == CUSTOMER
            assert data["receiver_identity"] == PROVIDER
            assert data["accepted_at"] is None

            r = client.get(f"/api/calls/active/{booking_id}", headers=auth_headers("stranger"))
            assert r.status_code == 404


def test_health_endpoints(app_signaling):
    with open_client(app, app_signaling) as client:
        assert client.get("/api/health").json() == {"status": "ok"}
        assert client.get("/").json()["status"] == "running"


def test_log_rejects_unknown_status(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/log",
            json={"bookingId": booking_id, "duration": 3, "callerType": "user", "status": "x" * 40},
            headers=auth_headers(CUSTOMER),
        )
    assert r.status_code == 422


def test_log_requires_matching_caller_type(app_signaling, booking_id):
    with open_client(app, app_signaling) as client:
        r = client.post(
            "/api/calls/log",
            json={"bookingId": booking_id, "duration": 3, "callerType": "provider"},
            headers=auth_headers(CUSTOMER),
        )
        assert r.status_code == 403

        r = client.get(f"/api/calls/history/{booking_id}", headers=auth_headers(CUSTOMER))
        assert r.json()["calls"] == []
