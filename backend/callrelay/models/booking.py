"""
Booking Model - Scheduled service engagements

A booking ties one customer to one provider. It is the only thing that
authorizes two accounts to call each other.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from datetime import datetime
import uuid

from .database import Base


class Booking(Base):
    """Booking between a customer and a provider"""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Customer who booked
    user_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    # Provider account serving the booking
    provider_user_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    # Listing the booking was made against (carries the payment status)
    provider_service_id = Column(String(36), ForeignKey('provider_services.id', ondelete='SET NULL'), nullable=True)

    service_name = Column(String(255), nullable=True)

    # pending, accepted, in_progress, completed, cancelled
    status = Column(String(20), nullable=False, default='pending', index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
