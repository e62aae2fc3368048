"""
Call Log Model - Call history per booking

One row per finished call attempt. Written by the relay when a session
ends and by clients through POST /api/calls/log.
"""
from sqlalchemy import Column, String, DateTime, Integer
from datetime import datetime
import uuid

from .database import Base


class CallLog(Base):
    """Finished call attempt for a booking"""
    __tablename__ = "call_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), nullable=False, index=True)

    caller_id = Column(String(36), nullable=True, index=True)
    caller_type = Column(String(20), nullable=True)  # user, provider

    # completed, missed, declined, cancelled, failed, expired
    call_status = Column(String(20), nullable=False, default='completed', index=True)
    duration = Column(Integer, nullable=False, default=0)
    end_reason = Column(String(32), nullable=True, index=True)

    call_started_at = Column(DateTime, nullable=True)
    call_ended_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "caller_id": self.caller_id,
            "caller_type": self.caller_type,
            "call_status": self.call_status,
            "duration": self.duration,
            "end_reason": self.end_reason,
            "call_started_at": self.call_started_at.isoformat() if self.call_started_at else None,
            "call_ended_at": self.call_ended_at.isoformat() if self.call_ended_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
