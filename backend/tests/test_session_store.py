from datetime import datetime, timedelta, UTC

import pytest

from callrelay.services.signaling import (
    AlreadyEndedError,
    CallEvent,
    CallSessionStore,
    CallStatus,
    DuplicateSessionError,
    InvalidTransitionError,
    SessionNotFoundError,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return CallSessionStore(
        max_age=timedelta(hours=24),
        ended_retention=timedelta(seconds=60),
        clock=clock,
    )


def test_create_starts_ringing(store, clock):
    session = store.create("B1", "caller", "receiver")

    assert session.status == CallStatus.RINGING
    assert session.started_at == clock.now
    assert store.get("B1") is session
    assert "B1" in store


def test_second_live_session_for_booking_is_rejected(store):
    store.create("B1", "caller", "receiver")

    with pytest.raises(DuplicateSessionError) as exc:
        store.create("B1", "caller", "receiver")
    assert exc.value.code == "DUPLICATE_SESSION"
    assert len(store) == 1


def test_accept_then_end(store, clock):
    store.create("B1", "caller", "receiver")
    clock.advance(seconds=5)
    session = store.transition("B1", CallEvent.ACCEPT)
    assert session.status == CallStatus.ACTIVE
    assert session.accepted_at == clock.now

    clock.advance(seconds=42)
    session = store.transition("B1", CallEvent.END)
    assert session.status == CallStatus.ENDED
    assert session.duration_seconds() == 42
    assert store.get("B1") is None


@pytest.mark.parametrize("event", [
    CallEvent.REJECT, CallEvent.TIMEOUT, CallEvent.DISCONNECT, CallEvent.END,
])
def test_ringing_terminal_events(store, event):
    store.create("B1", "caller", "receiver")
    session = store.transition("B1", event)

    assert session.status == CallStatus.ENDED
    assert session.duration_seconds() == 0
    assert store.get("B1") is None


@pytest.mark.parametrize("event", [CallEvent.ACCEPT, CallEvent.REJECT, CallEvent.TIMEOUT])
def test_invalid_events_on_active_call(store, event):
    store.create("B1", "caller", "receiver")
    store.transition("B1", CallEvent.ACCEPT)

    with pytest.raises(InvalidTransitionError):
        store.transition("B1", event)
    assert store.get("B1").status == CallStatus.ACTIVE


def test_events_after_end_report_already_ended(store):
    store.create("B1", "caller", "receiver")
    store.transition("B1", CallEvent.REJECT)

    with pytest.raises(AlreadyEndedError):
        store.transition("B1", CallEvent.END)


def test_unknown_booking_is_not_found(store):
    with pytest.raises(SessionNotFoundError):
        store.transition("nope", CallEvent.ACCEPT)
    assert store.get("nope") is None


def test_booking_can_be_called_again_after_end(store):
    store.create("B1", "caller", "receiver")
    store.transition("B1", CallEvent.TIMEOUT)

    session = store.create("B1", "caller", "receiver")
    assert session.status == CallStatus.RINGING
    # The tombstone is gone with the new session
    store.transition("B1", CallEvent.REJECT)
    with pytest.raises(AlreadyEndedError):
        store.transition("B1", CallEvent.END)


def test_sessions_for_identity(store):
    store.create("B1", "alice", "bob")
    store.create("B2", "carol", "alice")
    store.create("B3", "carol", "dave")

    ids = sorted(s.booking_id for s in store.sessions_for("alice"))
    assert ids == ["B1", "B2"]


def test_sweep_ends_sessions_past_max_age(store, clock):
    store.create("old", "caller", "receiver")
    store.transition("old", CallEvent.ACCEPT)
    clock.advance(hours=23)
    store.create("young", "caller", "receiver")

    clock.advance(hours=1)
    expired = store.sweep_expired()

    assert [s.booking_id for s in expired] == ["old"]
    assert expired[0].status == CallStatus.ENDED
    assert expired[0].ended_at == clock.now
    assert store.get("old") is None
    with pytest.raises(AlreadyEndedError):
        store.transition("old", CallEvent.END)
    assert store.get("young") is not None


def test_sweep_forgets_tombstones_after_retention(store, clock):
    store.create("B1", "caller", "receiver")
    store.transition("B1", CallEvent.REJECT)

    clock.advance(seconds=61)
    store.sweep_expired()

    with pytest.raises(SessionNotFoundError):
        store.transition("B1", CallEvent.END)
