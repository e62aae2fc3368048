"""
Booking Directory - SQL-backed booking-authorization lookup.

Resolves the customer and provider of a booking together with their
display names, phone/verification flags and the provider listing's
payment status, in one query.
"""
import logging
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import aliased

from callrelay.models.booking import Booking
from callrelay.models.provider_service import ProviderService
from callrelay.models.user import User
from callrelay.services.signaling.models import BookingParties

logger = logging.getLogger(__name__)


class SqlBookingDirectory:
    """Looks up booking parties in the marketplace database."""

    def __init__(self, session_factory: Optional[Callable] = None):
        self._session_factory = session_factory

    def _sessions(self):
        if self._session_factory is not None:
            return self._session_factory()
        # Resolved late so tests can rebind the module's factory
        from callrelay.models import database
        return database.AsyncSessionLocal()

    async def get_booking_parties(self, booking_id: str) -> Optional[BookingParties]:
        customer = aliased(User)
        provider = aliased(User)

        async with self._sessions() as db:
            result = await db.execute(
                select(Booking, customer, provider, ProviderService.payment_status)
                .outerjoin(customer, Booking.user_id == customer.id)
                .outerjoin(provider, Booking.provider_user_id == provider.id)
                .outerjoin(ProviderService, Booking.provider_service_id == ProviderService.id)
                .where(Booking.id == booking_id)
            )
            row = result.first()

        if row is None:
            logger.info(f"[Directory] Booking not found: {booking_id}")
            return None

        booking, customer_user, provider_user, payment_status = row
        users = [u for u in (customer_user, provider_user) if u is not None]
        return BookingParties(
            booking_id=booking.id,
            customer_identity=booking.user_id,
            provider_identity=booking.provider_user_id,
            status=booking.status,
            display_names={u.id: u.full_name for u in users},
            service_name=booking.service_name,
            phones={u.id: u.phone for u in users},
            verified={u.id: bool(u.is_verified) for u in users},
            provider_payment_status=payment_status,
        )
