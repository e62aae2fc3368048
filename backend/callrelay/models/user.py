"""
User Model - Marketplace accounts

Read-only mirror of the marketplace `users` table. Customers and providers
share this table; the relay only needs the display name for call screens.
"""
from sqlalchemy import Column, String, DateTime, Boolean
from datetime import datetime
import uuid

from .database import Base


class User(Base):
    """Marketplace account (customer or provider)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), unique=True, nullable=True, index=True)
    role = Column(String(20), nullable=False, default='user')  # user, provider
    is_verified = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, full_name={self.full_name}, role={self.role})>"
