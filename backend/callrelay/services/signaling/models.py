"""
Signaling Models

In-memory records for connections and call sessions. Nothing here is
persisted; all of it lives for the lifetime of the process.
"""
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import WebSocket

from callrelay.config.constants import CALLER_TYPE_PROVIDER, CALLER_TYPE_USER

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class CallStatus(str, Enum):
    RINGING = "ringing"
    ACTIVE = "active"
    ENDED = "ended"


class CallEvent(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    END = "end"
    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"
    EXPIRED = "expired"


class EndReason(str, Enum):
    DECLINED = "declined"
    CALLER_ENDED = "caller_ended"
    RECEIVER_ENDED = "receiver_ended"
    TIMEOUT = "timeout"
    DISCONNECT = "disconnect"


class DeliveryPolicy(str, Enum):
    """Which of an identity's connections receive an event."""
    BROADCAST = "broadcast"
    MOST_RECENT = "most_recent"


class Connection:
    """A single WebSocket connection, optionally bound to an identity."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or str(uuid.uuid4())
        self.identity: Optional[str] = None
        self.joined_at: Optional[datetime] = None

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.identity} ({self.connection_id}): {e}")
            return False

    def __repr__(self):
        return f"<Connection(id={self.connection_id}, identity={self.identity})>"


@dataclass
class CallSession:
    """Server-side record of one call attempt for one booking."""
    booking_id: str
    caller_identity: str
    receiver_identity: str
    caller_display_name: Optional[str] = None
    receiver_display_name: Optional[str] = None
    caller_type: Optional[str] = None
    status: CallStatus = CallStatus.RINGING
    started_at: datetime = field(default_factory=utcnow)
    accepted_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    end_reason: Optional[EndReason] = None

    @property
    def is_ended(self) -> bool:
        return self.status == CallStatus.ENDED

    def involves(self, identity: str) -> bool:
        return identity in (self.caller_identity, self.receiver_identity)

    def counterpart(self, identity: str) -> str:
        if identity == self.caller_identity:
            return self.receiver_identity
        return self.caller_identity

    def duration_seconds(self) -> int:
        """Whole seconds the call spent active (0 if never answered)."""
        if not self.accepted_at:
            return 0
        end = self.ended_at or utcnow()
        return max(0, int((end - self.accepted_at).total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookingId": self.booking_id,
            "callerIdentity": self.caller_identity,
            "receiverIdentity": self.receiver_identity,
            "status": self.status.value,
            "startedAt": self.started_at.isoformat(),
            "acceptedAt": self.accepted_at.isoformat() if self.accepted_at else None,
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
            "endReason": self.end_reason.value if self.end_reason else None,
        }


@dataclass
class BookingParties:
    """Result of a booking-authorization lookup."""
    booking_id: str
    customer_identity: str
    provider_identity: str
    status: str
    display_names: Dict[str, str] = field(default_factory=dict)
    service_name: Optional[str] = None
    # identity -> phone number on file, identity -> account verified
    phones: Dict[str, Optional[str]] = field(default_factory=dict)
    verified: Dict[str, bool] = field(default_factory=dict)
    provider_payment_status: Optional[str] = None

    def role_of(self, identity: str) -> Optional[str]:
        if identity == self.customer_identity:
            return CALLER_TYPE_USER
        if identity == self.provider_identity:
            return CALLER_TYPE_PROVIDER
        return None

    def counterpart(self, identity: str) -> str:
        if identity == self.customer_identity:
            return self.provider_identity
        return self.customer_identity

    def display_name(self, identity: str) -> str:
        return self.display_names.get(identity) or "Unknown"

    def has_phone(self, identity: str) -> bool:
        return bool(self.phones.get(identity))

    def is_verified(self, identity: str) -> bool:
        return bool(self.verified.get(identity))


@dataclass
class CallRecord:
    """What the call-history sink receives when a session ends."""
    booking_id: str
    caller_identity: str
    caller_type: Optional[str]
    duration: int
    status: str
    end_reason: str
    started_at: datetime
    ended_at: datetime
