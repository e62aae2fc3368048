"""
Call Session Store

Owns the lifecycle of every call session, keyed by booking id.

State machine:

    ringing --accept-->     active
    ringing --reject-->     ended
    ringing --timeout-->    ended
    ringing --disconnect--> ended
    ringing --end-->        ended
    active  --end-->        ended
    active  --disconnect--> ended

Ended sessions leave the live table immediately. A tombstone is kept for
a short retention window so repeated events report ALREADY_ENDED.
"""
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
import logging

from .exceptions import (
    AlreadyEndedError,
    DuplicateSessionError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from .models import CallEvent, CallSession, CallStatus, utcnow

logger = logging.getLogger(__name__)


TRANSITIONS: Dict[Tuple[CallStatus, CallEvent], CallStatus] = {
    (CallStatus.RINGING, CallEvent.ACCEPT): CallStatus.ACTIVE,
    (CallStatus.RINGING, CallEvent.REJECT): CallStatus.ENDED,
    (CallStatus.RINGING, CallEvent.TIMEOUT): CallStatus.ENDED,
    (CallStatus.RINGING, CallEvent.DISCONNECT): CallStatus.ENDED,
    (CallStatus.RINGING, CallEvent.END): CallStatus.ENDED,
    (CallStatus.ACTIVE, CallEvent.END): CallStatus.ENDED,
    (CallStatus.ACTIVE, CallEvent.DISCONNECT): CallStatus.ENDED,
}


class CallSessionStore:
    """In-memory table of call sessions, at most one live session per booking."""

    def __init__(
        self,
        max_age: timedelta = timedelta(hours=24),
        ended_retention: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_age = max_age
        self.ended_retention = ended_retention
        self._clock = clock
        self._sessions: Dict[str, CallSession] = {}
        self._ended: Dict[str, CallSession] = {}

    def create(
        self,
        booking_id: str,
        caller_identity: str,
        receiver_identity: str,
        **details,
    ) -> CallSession:
        """Start a ringing session; fails if the booking already has a live one."""
        existing = self._sessions.get(booking_id)
        if existing is not None:
            raise DuplicateSessionError(booking_id=booking_id)

        self._ended.pop(booking_id, None)
        session = CallSession(
            booking_id=booking_id,
            caller_identity=caller_identity,
            receiver_identity=receiver_identity,
            started_at=self._clock(),
            **details,
        )
        self._sessions[booking_id] = session
        logger.info(f"[Store] Session {booking_id} ringing: {caller_identity} -> {receiver_identity}")
        return session

    def transition(self, booking_id: str, event: CallEvent) -> CallSession:
        """Apply an event to a session and return it in its new state."""
        event = CallEvent(event)
        session = self.require(booking_id)

        new_status = TRANSITIONS.get((session.status, event))
        if new_status is None:
            raise InvalidTransitionError(
                f"Cannot {event.value} a {session.status.value} call",
                booking_id=booking_id,
            )

        now = self._clock()
        session.status = new_status
        if new_status == CallStatus.ACTIVE:
            session.accepted_at = now
        elif new_status == CallStatus.ENDED:
            session.ended_at = now
            self._sessions.pop(booking_id, None)
            self._ended[booking_id] = session

        logger.info(f"[Store] Session {booking_id} --{event.value}--> {new_status.value}")
        return session

    def get(self, booking_id: str) -> Optional[CallSession]:
        return self._sessions.get(booking_id)

    def require(self, booking_id: str) -> CallSession:
        """Like get(), but raises ALREADY_ENDED / SESSION_NOT_FOUND instead of returning None."""
        session = self._sessions.get(booking_id)
        if session is None:
            if booking_id in self._ended:
                raise AlreadyEndedError(booking_id=booking_id)
            raise SessionNotFoundError(booking_id=booking_id)
        return session

    def sessions_for(self, identity: str) -> List[CallSession]:
        """Live sessions where identity is caller or receiver."""
        return [s for s in self._sessions.values() if s.involves(identity)]

    def sweep_expired(self, now: Optional[datetime] = None) -> List[CallSession]:
        """
        End sessions past the hard maximum lifetime, whatever their status,
        and drop tombstones past the retention window. Expired sessions are
        tombstoned like any other ended session.

        Returns:
            The sessions that were ended by the sweep.
        """
        now = now or self._clock()

        stale = [
            booking_id for booking_id, s in self._ended.items()
            if s.ended_at is None or now - s.ended_at >= self.ended_retention
        ]
        for booking_id in stale:
            del self._ended[booking_id]

        expired = [
            s for s in self._sessions.values()
            if now - s.started_at >= self.max_age
        ]
        for session in expired:
            logger.warning(
                f"[Store] Session {session.booking_id} expired in state {session.status.value}"
            )
            self._sessions.pop(session.booking_id, None)
            session.status = CallStatus.ENDED
            session.ended_at = now
            self._ended[session.booking_id] = session

        return expired

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, booking_id: str) -> bool:
        return booking_id in self._sessions
