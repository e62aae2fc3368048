"""
Call History - persistence sink and queries for call logs.
"""
import logging
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.config.constants import DEFAULT_CALL_HISTORY_LIMIT
from callrelay.models.call_log import CallLog
from callrelay.services.signaling.models import CallRecord

logger = logging.getLogger(__name__)


class SqlCallHistorySink:
    """Writes one call_logs row per finished call."""

    def __init__(self, session_factory: Optional[Callable] = None):
        self._session_factory = session_factory

    def _sessions(self):
        if self._session_factory is not None:
            return self._session_factory()
        from callrelay.models import database
        return database.AsyncSessionLocal()

    async def record_call(self, record: CallRecord) -> None:
        async with self._sessions() as db:
            db.add(CallLog(
                booking_id=record.booking_id,
                caller_id=record.caller_identity,
                caller_type=record.caller_type,
                call_status=record.status,
                duration=record.duration,
                end_reason=record.end_reason,
                # Stored naive UTC like the other timestamp columns
                call_started_at=record.started_at.replace(tzinfo=None),
                call_ended_at=record.ended_at.replace(tzinfo=None),
            ))
            await db.commit()
        logger.info(f"[History] Logged call {record.booking_id}: {record.status} ({record.duration}s)")


async def get_booking_call_history(
    db: AsyncSession,
    booking_id: str,
    limit: int = DEFAULT_CALL_HISTORY_LIMIT
) -> List[CallLog]:
    """
    Get call logs for a booking, newest first.

    Args:
        db: Database session
        booking_id: ID of the booking
        limit: Maximum number of rows to return
    """
    result = await db.execute(
        select(CallLog)
        .where(CallLog.booking_id == booking_id)
        .order_by(CallLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
