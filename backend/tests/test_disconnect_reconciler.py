import pytest

from callrelay.services.signaling import CallStatus, Connection
from tests.helpers import CUSTOMER, PROVIDER, FakeWebSocket


@pytest.fixture
def booking(directory):
    return directory.add("B1")


@pytest.mark.asyncio
async def test_dropped_caller_ends_active_call(signaling, connect, booking, history_sink):
    caller, receiver = connect(CUSTOMER), connect(PROVIDER)
    await signaling.relay.initiate(caller, "B1")
    await signaling.relay.accept(receiver, "B1")

    ended = await signaling.reconciler.on_disconnect(caller)
    await signaling.relay.drain()

    assert [s.booking_id for s in ended] == ["B1"]
    assert not signaling.registry.is_online(CUSTOMER)
    assert signaling.store.get("B1") is None
    assert receiver.websocket.of_type("call:ended") == [
        {"type": "call:ended", "bookingId": "B1", "durationSeconds": 0, "reason": "disconnect"}
    ]
    assert history_sink.records[0].end_reason == "disconnect"


@pytest.mark.asyncio
async def test_dropped_receiver_ends_ringing_call(signaling, connect, booking):
    caller, receiver = connect(CUSTOMER), connect(PROVIDER)
    await signaling.relay.initiate(caller, "B1")

    await signaling.reconciler.on_disconnect(receiver)

    assert caller.websocket.of_type("call:ended")[0]["reason"] == "disconnect"
    assert not signaling.supervisor.is_armed("B1")


@pytest.mark.asyncio
async def test_any_device_dropping_ends_the_call(signaling, connect, booking):
    caller = connect(CUSTOMER)
    phone, tablet = connect(PROVIDER), connect(PROVIDER)
    await signaling.relay.initiate(caller, "B1")
    await signaling.relay.accept(phone, "B1")

    ended = await signaling.reconciler.on_disconnect(phone)

    assert [s.booking_id for s in ended] == ["B1"]
    assert signaling.store.get("B1") is None
    assert signaling.registry.is_online(PROVIDER)
    assert caller.websocket.of_type("call:ended") == [
        {"type": "call:ended", "bookingId": "B1", "durationSeconds": 0, "reason": "disconnect"}
    ]
    assert len(tablet.websocket.of_type("call:ended")) == 1

    # Nothing left to end when the other device goes too
    assert await signaling.reconciler.on_disconnect(tablet) == []


@pytest.mark.asyncio
async def test_disconnect_without_calls_or_join(signaling, connect):
    assert await signaling.reconciler.on_disconnect(Connection(FakeWebSocket())) == []
    assert await signaling.reconciler.on_disconnect(connect("idle")) == []
