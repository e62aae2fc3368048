"""Business Logic Services.

This package contains the service modules behind the call relay.

Service Categories:
- Signaling: Connection registry, call sessions, timeouts, relay
- Session: Per-WebSocket message loop
- Presence: Redis mirror of who is online

External integrations:
- booking_directory: Booking-authorization lookup (SQL)
- call_history: Call log persistence (SQL)
"""
