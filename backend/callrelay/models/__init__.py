"""
Database Models Package

Tables:
1. users - marketplace accounts (read-only here)
2. bookings - customer/provider engagements (read-only here)
3. provider_services - provider listings and payment status (read-only here)
4. call_logs - call history written by the relay
"""

from .database import (
    engine,
    AsyncSessionLocal,
    Base,
    init_db,
)

from .user import User
from .booking import Booking
from .provider_service import ProviderService
from .call_log import CallLog

__all__ = [
    # Database utilities
    "engine",
    "AsyncSessionLocal",
    "Base",
    "init_db",

    # Models
    "User",
    "Booking",
    "ProviderService",
    "CallLog",
]
