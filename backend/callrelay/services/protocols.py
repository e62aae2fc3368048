"""
Protocol definitions for the relay's external collaborators.

The relay never talks to the database directly. It is handed objects that
satisfy these interfaces, which allows:
- Swapping the SQL implementations for in-memory fakes in tests
- Clear contracts between the relay and the marketplace data

Usage:
    from callrelay.services.protocols import BookingDirectoryProtocol

    async def who_can_call(directory: BookingDirectoryProtocol, booking_id: str):
        parties = await directory.get_booking_parties(booking_id)
"""

from typing import Optional, Protocol

from callrelay.services.signaling.models import BookingParties, CallRecord


class BookingDirectoryProtocol(Protocol):
    """
    Booking-authorization lookup.

    Implementations return who may call whom for a booking, or None when the
    booking does not exist. They may raise on infrastructure failures; the
    relay reports those as BOOKING_NOT_FOUND.
    """

    async def get_booking_parties(self, booking_id: str) -> Optional[BookingParties]:
        """
        Look up the two parties of a booking.

        Args:
            booking_id: Booking identifier

        Returns:
            BookingParties with customer/provider identities, display names
            and booking status, or None if the booking is unknown.
        """
        ...


class CallHistorySinkProtocol(Protocol):
    """Audit sink for finished calls. Invoked fire-and-forget."""

    async def record_call(self, record: CallRecord) -> None:
        """Persist one finished call attempt."""
        ...
