"""
Calls API - REST endpoints around call signaling

Implements:
- Call info lookup before a WebRTC call
- Client-reported call logging
- Call history per booking
- Live session snapshot
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from callrelay.api.deps import get_current_identity, get_db, get_signaling
from callrelay.models.call_log import CallLog
from callrelay.schemas.call import (
    ActiveCallResponse,
    CallHistoryResponse,
    CallInfoRequest,
    CallInfoResponse,
    CallLogItem,
    CallLogRequest,
    CallLogResponse,
)
from callrelay.services.call_history import get_booking_call_history
from callrelay.services.signaling import (
    BookingParties,
    CallNotAllowedError,
    SignalingError,
    SignalingRelay,
    SignalingService,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_booking(signaling: SignalingService, booking_id: str, identity: str) -> BookingParties:
    """Booking parties for a booking the identity belongs to, or 404."""
    try:
        parties = await signaling.relay.directory.get_booking_parties(booking_id)
    except Exception as e:
        logger.error(f"[Calls] Booking lookup failed for {booking_id}: {e}")
        parties = None

    if parties is None or parties.role_of(identity) is None:
        raise HTTPException(status_code=404, detail="Booking not found or access denied")
    return parties


@router.post("/calls/initiate", response_model=CallInfoResponse)
async def get_call_info(
    req: CallInfoRequest,
    identity: str = Depends(get_current_identity),
    signaling: SignalingService = Depends(get_signaling),
):
    """
    Get call information for a WebRTC call.

    Validates:
    - Caller belongs to the booking (and matches callerType)
    - Booking is in a callable status
    - Both parties have a phone number and are verified
    - Provider accepts customer calls (listing paid up)
    """
    parties = await _load_booking(signaling, req.booking_id, identity)
    try:
        SignalingRelay.authorize(parties, identity, req.caller_type)
    except CallNotAllowedError as e:
        raise HTTPException(status_code=400, detail={"code": e.code, "message": str(e)})
    except SignalingError as e:
        raise HTTPException(status_code=403, detail={"code": e.code, "message": str(e)})

    receiver = parties.counterpart(identity)
    receiver_online = signaling.registry.is_online(receiver)
    if not receiver_online and signaling.presence is not None:
        # Another relay process may hold the receiver's socket
        receiver_online = await signaling.presence.is_online(receiver)

    return CallInfoResponse(
        booking_id=req.booking_id,
        caller_id=identity,
        caller_name=parties.display_name(identity),
        receiver_id=receiver,
        receiver_name=parties.display_name(receiver),
        service_name=parties.service_name,
        receiver_online=receiver_online,
    )


@router.post("/calls/log", response_model=CallLogResponse)
async def log_call(
    req: CallLogRequest,
    identity: str = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    signaling: SignalingService = Depends(get_signaling),
):
    """Log WebRTC call details reported by a client."""
    parties = await _load_booking(signaling, req.booking_id, identity)
    if parties.role_of(identity) != req.caller_type:
        raise HTTPException(status_code=403, detail="Invalid caller type provided for booking")

    log = CallLog(
        booking_id=req.booking_id,
        caller_id=identity,
        caller_type=req.caller_type,
        call_status=req.status,
        duration=req.duration,
    )
    db.add(log)
    await db.commit()

    return CallLogResponse(id=log.id, message="Call logged successfully")


@router.get("/calls/history/{booking_id}", response_model=CallHistoryResponse)
async def get_call_history(
    booking_id: str,
    identity: str = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    signaling: SignalingService = Depends(get_signaling),
):
    """Get call history for a booking."""
    await _load_booking(signaling, booking_id, identity)

    logs = await get_booking_call_history(db, booking_id)
    return CallHistoryResponse(calls=[CallLogItem(**log.to_dict()) for log in logs])


@router.get("/calls/active/{booking_id}", response_model=ActiveCallResponse)
async def get_active_call(
    booking_id: str,
    identity: str = Depends(get_current_identity),
    signaling: SignalingService = Depends(get_signaling),
):
    """Snapshot of the ringing/active call for a booking, if any."""
    session = signaling.store.get(booking_id)
    if session is None or not session.involves(identity):
        raise HTTPException(status_code=404, detail="No call in progress for this booking")

    return ActiveCallResponse(
        booking_id=session.booking_id,
        caller_identity=session.caller_identity,
        receiver_identity=session.receiver_identity,
        status=session.status.value,
        started_at=session.started_at.isoformat(),
        accepted_at=session.accepted_at.isoformat() if session.accepted_at else None,
    )
