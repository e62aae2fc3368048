"""Booking call relay: WebRTC signaling between the two parties of a booking."""

__version__ = "1.0.0"
