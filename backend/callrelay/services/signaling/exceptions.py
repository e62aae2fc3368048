"""
Signaling Exceptions

Recoverable errors reported back to the originating connection as a
`call:error` event. Each carries the wire code clients switch on.
"""
from typing import Optional

from callrelay.config.constants import EVENT_CALL_ERROR


class SignalingError(Exception):
    """Base exception for signaling errors"""
    code = "SIGNALING_ERROR"

    def __init__(self, message: str = "", booking_id: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.booking_id = booking_id

    def to_event(self, request: Optional[str] = None) -> dict:
        event = {
            "type": EVENT_CALL_ERROR,
            "code": self.code,
            "message": str(self),
        }
        if self.booking_id is not None:
            event["bookingId"] = self.booking_id
        if request is not None:
            event["request"] = request
        return event


class UnauthorizedError(SignalingError):
    """Caller is not a party of this booking"""
    code = "UNAUTHORIZED"


class BookingNotFoundError(SignalingError):
    """Booking not found or access denied"""
    code = "BOOKING_NOT_FOUND"


class CallNotAllowedError(SignalingError):
    """Calls are only allowed for active bookings"""
    code = "CALL_NOT_ALLOWED"


class DuplicateSessionError(SignalingError):
    """A call is already in progress for this booking"""
    code = "DUPLICATE_SESSION"


class SessionNotFoundError(SignalingError):
    """No call in progress for this booking"""
    code = "SESSION_NOT_FOUND"


class NotAParticipantError(SignalingError):
    """Sender is not a participant of this call"""
    code = "NOT_A_PARTICIPANT"


class AlreadyEndedError(SignalingError):
    """Call has already ended"""
    code = "ALREADY_ENDED"


class InvalidTransitionError(SignalingError):
    """Event not valid in the call's current state"""
    code = "INVALID_TRANSITION"


class InvalidMessageError(SignalingError):
    """Malformed signaling message"""
    code = "INVALID_MESSAGE"


class NotJoinedError(SignalingError):
    """Connection must send `join` before signaling"""
    code = "NOT_JOINED"


class CallerPhoneMissingError(SignalingError):
    """Caller is missing a verified phone number"""
    code = "CALLER_PHONE_MISSING"


class CallerNotVerifiedError(SignalingError):
    """Caller must complete verification to place calls"""
    code = "CALLER_NOT_VERIFIED"


class ReceiverPhoneMissingError(SignalingError):
    """Receiver is missing a verified phone number"""
    code = "RECEIVER_PHONE_MISSING"


class ReceiverNotVerifiedError(SignalingError):
    """Receiver must complete verification to place calls"""
    code = "RECEIVER_NOT_VERIFIED"


class ProviderCallsDisabledError(SignalingError):
    """Provider is unavailable for calls at this time"""
    code = "PROVIDER_CALLS_DISABLED"
