"""
Schemas Package

Pydantic models for API and WebSocket events.
"""

from callrelay.schemas.websocket_events import (
    WebSocketEventBase,
    JoinEvent,
    HeartbeatEvent,
    PingEvent,
    CallInitiateEvent,
    CallAcceptEvent,
    CallRejectEvent,
    CallEndEvent,
    CallOfferEvent,
    CallAnswerEvent,
    CallIceCandidateEvent,
    CallDiagnosticsEvent,
)

__all__ = [
    "WebSocketEventBase",
    "JoinEvent",
    "HeartbeatEvent",
    "PingEvent",
    "CallInitiateEvent",
    "CallAcceptEvent",
    "CallRejectEvent",
    "CallEndEvent",
    "CallOfferEvent",
    "CallAnswerEvent",
    "CallIceCandidateEvent",
    "CallDiagnosticsEvent",
]
