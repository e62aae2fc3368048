import asyncio
from typing import Dict, List, Optional

from fastapi.testclient import TestClient

from callrelay.config.settings import Settings
from callrelay.services.auth_service import create_access_token
from callrelay.services.signaling import BookingParties, CallRecord


CUSTOMER = "customer-1"
PROVIDER = "provider-1"


def make_settings(**overrides) -> Settings:
    values = {
        "CALL_RING_TIMEOUT_SEC": 30.0,
        "SESSION_SWEEP_INTERVAL_SEC": 3600.0,
        "WS_AUTH_REQUIRED": True,
    }
    values.update(overrides)
    return Settings(**values)


class FakeWebSocket:
    """Collects whatever the relay sends."""

    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.fail = fail

    async def send_json(self, data: dict):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def of_type(self, msg_type: str) -> List[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]


class FakeBookingDirectory:
    """In-memory booking lookup with an optional gate to hold lookups open."""

    def __init__(self):
        self.bookings: Dict[str, BookingParties] = {}
        self.fail = False
        self.gate: Optional[asyncio.Event] = None
        self.lookups = 0

    def add(
        self,
        booking_id: str,
        customer: str = CUSTOMER,
        provider: str = PROVIDER,
        status: str = "accepted",
        payment_status: Optional[str] = "active",
    ) -> BookingParties:
        parties = BookingParties(
            booking_id=booking_id,
            customer_identity=customer,
            provider_identity=provider,
            status=status,
            display_names={customer: "Asha Customer", provider: "Ravi Provider"},
            service_name="Plumbing",
            phones={customer: "+15550100", provider: "+15550199"},
            verified={customer: True, provider: True},
            provider_payment_status=payment_status,
        )
        self.bookings[booking_id] = parties
        return parties

    async def get_booking_parties(self, booking_id: str) -> Optional[BookingParties]:
        self.lookups += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ConnectionError("database unreachable")
        return self.bookings.get(booking_id)


class RecordingHistorySink:
    def __init__(self, fail: bool = False):
        self.records: List[CallRecord] = []
        self.fail = fail

    async def record_call(self, record: CallRecord) -> None:
        if self.fail:
            raise RuntimeError("insert failed")
        self.records.append(record)


def auth_headers(identity: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


def ws_url(identity: str) -> str:
    return f"/ws?token={create_access_token(identity)}"


def join(ws, identity: Optional[str] = None) -> dict:
    """Send join and return the `joined` acknowledgement."""
    message = {"type": "join"}
    if identity is not None:
        message["identity"] = identity
    ws.send_json(message)
    reply = ws.receive_json()
    assert reply["type"] == "joined"
    return reply


def open_client(app, signaling) -> TestClient:
    """TestClient for the app with a pre-built signaling service."""
    app.state.signaling = signaling
    return TestClient(app)
