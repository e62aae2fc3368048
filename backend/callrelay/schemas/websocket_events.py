"""
WebSocket Event Schemas

Pydantic models for type-safe WebSocket event handling. Wire keys are
camelCase; models accept them through aliases.
"""

from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# WebSocket Event Models (client -> server)
# =============================================================================

class WebSocketEventBase(BaseModel):
    """Base model for all WebSocket events."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str


class JoinEvent(WebSocketEventBase):
    """Register this connection under an identity."""
    type: Literal["join"] = "join"
    identity: Optional[str] = None


class HeartbeatEvent(WebSocketEventBase):
    """Client heartbeat to keep presence alive."""
    type: Literal["heartbeat"] = "heartbeat"


class PingEvent(WebSocketEventBase):
    """Simple ping for latency check."""
    type: Literal["ping"] = "ping"


class BookingEvent(WebSocketEventBase):
    """Any call event scoped to a booking."""
    booking_id: str = Field(alias="bookingId", min_length=1)


class CallInitiateEvent(BookingEvent):
    type: Literal["call:initiate"] = "call:initiate"
    caller_type: Optional[Literal["user", "provider"]] = Field(None, alias="callerType")


class CallAcceptEvent(BookingEvent):
    type: Literal["call:accept"] = "call:accept"


class CallRejectEvent(BookingEvent):
    type: Literal["call:reject"] = "call:reject"
    reason: Optional[str] = None


class CallEndEvent(BookingEvent):
    type: Literal["call:end"] = "call:end"


class CallOfferEvent(BookingEvent):
    type: Literal["call:offer"] = "call:offer"
    sdp: Any
    to: Optional[str] = None


class CallAnswerEvent(BookingEvent):
    type: Literal["call:answer"] = "call:answer"
    sdp: Any
    to: Optional[str] = None


class CallIceCandidateEvent(BookingEvent):
    type: Literal["call:ice-candidate"] = "call:ice-candidate"
    candidate: Any
    to: Optional[str] = None


class CallDiagnosticsEvent(WebSocketEventBase):
    """Client-side connection state / error / quality reports."""
    booking_id: Optional[str] = Field(None, alias="bookingId")
    state: Optional[str] = None
    error: Optional[Any] = None
    details: Optional[Any] = None
    metrics: Optional[Any] = None
