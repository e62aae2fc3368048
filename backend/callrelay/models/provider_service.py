"""
Provider Service Model - A provider's paid service listing

Read-only mirror of the marketplace `provider_services` table. The relay
only reads `payment_status`: customers may call a provider only while the
listing is paid up.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from datetime import datetime
import uuid

from .database import Base


class ProviderService(Base):
    """Service listing offered by a provider"""
    __tablename__ = "provider_services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    service_name = Column(String(255), nullable=True)

    # active, pending, expired
    payment_status = Column(String(20), nullable=False, default='pending')

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
