"""
Application-wide constants for signaling and tuning.

Environment-dependent settings (DB, Redis, timeouts that operators tune)
belong in settings.py. This file is for protocol values that rarely change.
"""

# ==============================================================================
# WEBSOCKET EVENTS (client -> server)
# ==============================================================================

EVENT_JOIN: str = "join"
EVENT_HEARTBEAT: str = "heartbeat"
EVENT_PING: str = "ping"

EVENT_CALL_INITIATE: str = "call:initiate"
EVENT_CALL_ACCEPT: str = "call:accept"
EVENT_CALL_REJECT: str = "call:reject"
EVENT_CALL_OFFER: str = "call:offer"
EVENT_CALL_ANSWER: str = "call:answer"
EVENT_CALL_ICE_CANDIDATE: str = "call:ice-candidate"
EVENT_CALL_END: str = "call:end"

# Client diagnostics, logged only
EVENT_CALL_CONNECTION_STATE: str = "call:connection-state"
EVENT_CALL_CLIENT_ERROR: str = "call:error"
EVENT_CALL_QUALITY: str = "call:quality"

# ==============================================================================
# WEBSOCKET EVENTS (server -> client)
# ==============================================================================

EVENT_JOINED: str = "joined"
EVENT_HEARTBEAT_ACK: str = "heartbeat_ack"
EVENT_PONG: str = "pong"

EVENT_CALL_INITIATED: str = "call:initiated"
EVENT_CALL_INCOMING: str = "call:incoming"
EVENT_CALL_ACCEPTED: str = "call:accepted"
EVENT_CALL_REJECTED: str = "call:rejected"
EVENT_CALL_ENDED: str = "call:ended"
EVENT_CALL_ERROR: str = "call:error"

# ==============================================================================
# OPAQUE PAYLOAD RELAY
# ==============================================================================

# Event type -> key holding the opaque blob
RELAY_PAYLOAD_KEYS: dict[str, str] = {
    EVENT_CALL_OFFER: "sdp",
    EVENT_CALL_ANSWER: "sdp",
    EVENT_CALL_ICE_CANDIDATE: "candidate",
}

# ==============================================================================
# BOOKING AUTHORIZATION
# ==============================================================================

# Booking statuses that allow the two parties to call each other
CALLABLE_BOOKING_STATUSES: frozenset[str] = frozenset({"pending", "accepted", "in_progress"})

CALLER_TYPE_USER: str = "user"
CALLER_TYPE_PROVIDER: str = "provider"

# Provider listing payment status that lets customers call the provider
PROVIDER_PAYMENT_ACTIVE: str = "active"

# ==============================================================================
# PRESENCE
# ==============================================================================

# Redis key TTL for presence, refreshed by heartbeats (seconds)
PRESENCE_TTL_SEC: int = 60

PRESENCE_KEY_PREFIX: str = "online:"

# ==============================================================================
# WEBSOCKET CLOSE CODES
# ==============================================================================

WS_POLICY_VIOLATION: int = 1008

# ==============================================================================
# API LIMITS
# ==============================================================================

DEFAULT_CALL_HISTORY_LIMIT: int = 50
