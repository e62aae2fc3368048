"""
Signaling Relay

Forwards call signaling between the two parties of a booking:
- Call initiation with booking authorization
- Accept / reject / end handling
- Opaque offer/answer/ICE forwarding

Every state change, including timeouts and disconnects, goes through
`_apply`, so ordering is decided by the store's transition table alone.
"""
import asyncio
import logging
from typing import Any, Optional, Set

from callrelay.config.constants import (
    CALLABLE_BOOKING_STATUSES,
    CALLER_TYPE_USER,
    EVENT_CALL_ACCEPTED,
    EVENT_CALL_ENDED,
    EVENT_CALL_INCOMING,
    EVENT_CALL_INITIATED,
    EVENT_CALL_REJECTED,
    PROVIDER_PAYMENT_ACTIVE,
    RELAY_PAYLOAD_KEYS,
)
from callrelay.services import metrics
from callrelay.services.protocols import BookingDirectoryProtocol, CallHistorySinkProtocol

from .exceptions import (
    AlreadyEndedError,
    BookingNotFoundError,
    CallerNotVerifiedError,
    CallerPhoneMissingError,
    CallNotAllowedError,
    DuplicateSessionError,
    InvalidMessageError,
    InvalidTransitionError,
    NotAParticipantError,
    NotJoinedError,
    ProviderCallsDisabledError,
    ReceiverNotVerifiedError,
    ReceiverPhoneMissingError,
    SessionNotFoundError,
    UnauthorizedError,
)
from .models import (
    BookingParties,
    CallEvent,
    CallRecord,
    CallSession,
    CallStatus,
    Connection,
    EndReason,
    utcnow,
)
from .registry import ConnectionRegistry
from .store import CallSessionStore
from .timeouts import TimeoutSupervisor

logger = logging.getLogger(__name__)


def history_status(session: CallSession) -> str:
    """Call-log status for a finished session."""
    if session.end_reason == EndReason.EXPIRED:
        return "expired"
    if session.accepted_at is not None:
        return "completed"
    return {
        EndReason.TIMEOUT: "missed",
        EndReason.DECLINED: "declined",
        EndReason.CALLER_ENDED: "cancelled",
        EndReason.RECEIVER_ENDED: "cancelled",
        EndReason.DISCONNECT: "failed",
    }.get(session.end_reason, "failed")


class SignalingRelay:
    """
    Relays call signaling between connected parties.

    Collaborators are injected; the relay owns no global state.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: CallSessionStore,
        supervisor: TimeoutSupervisor,
        directory: BookingDirectoryProtocol,
        history_sink: Optional[CallHistorySinkProtocol] = None,
    ):
        self.registry = registry
        self.store = store
        self.supervisor = supervisor
        self.directory = directory
        self.history_sink = history_sink
        self._background: Set[asyncio.Task] = set()

        if self.supervisor.on_timeout is None:
            self.supervisor.on_timeout = self.handle_timeout

    # === Initiation ===

    async def initiate(
        self,
        connection: Connection,
        booking_id: str,
        caller_type: Optional[str] = None,
    ) -> CallSession:
        """
        Start a call for a booking.

        Validates:
        - Caller is a party of the booking (and matches callerType if given)
        - Booking is in a callable status
        - Both parties have a phone number and a verified account
        - Provider accepts calls from customers (listing paid up)
        - No live session exists for the booking

        Raises:
            UnauthorizedError, BookingNotFoundError, CallNotAllowedError,
            DuplicateSessionError, or one of the participant checks
            (CallerPhoneMissingError, ReceiverNotVerifiedError, ...)
        """
        caller = self._identity_of(connection)

        if self.store.get(booking_id) is not None:
            raise DuplicateSessionError(booking_id=booking_id)

        parties = await self._lookup_booking(booking_id)
        self.authorize(parties, caller, caller_type)
        receiver = parties.counterpart(caller)

        # The lookup awaited; another initiate may have won meanwhile
        session = self.store.create(
            booking_id,
            caller,
            receiver,
            caller_display_name=parties.display_name(caller),
            receiver_display_name=parties.display_name(receiver),
            caller_type=parties.role_of(caller),
        )
        self.supervisor.arm(booking_id)
        metrics.calls_initiated.inc()
        metrics.live_sessions_gauge.set(len(self.store))

        receiver_online = self.registry.is_online(receiver)
        if receiver_online:
            await self.registry.send_to_identity(receiver, {
                "type": EVENT_CALL_INCOMING,
                "bookingId": booking_id,
                "callerIdentity": caller,
                "callerDisplayName": session.caller_display_name,
            })
        else:
            logger.info(f"[Relay] Receiver {receiver} offline, call {booking_id} rings until timeout")

        await connection.send_json({
            "type": EVENT_CALL_INITIATED,
            "bookingId": booking_id,
            "receiverIdentity": receiver,
            "receiverOnline": receiver_online,
        })
        return session

    async def _lookup_booking(self, booking_id: str) -> BookingParties:
        try:
            parties = await self.directory.get_booking_parties(booking_id)
        except Exception as e:
            logger.error(f"[Relay] Booking lookup failed for {booking_id}: {e}")
            raise BookingNotFoundError(booking_id=booking_id) from e

        if parties is None:
            raise BookingNotFoundError(booking_id=booking_id)
        return parties

    @staticmethod
    def authorize(parties: BookingParties, caller: str, caller_type: Optional[str]) -> None:
        booking_id = parties.booking_id
        role = parties.role_of(caller)
        if role is None:
            raise UnauthorizedError(booking_id=booking_id)

        if caller_type and caller_type != role:
            raise UnauthorizedError("Invalid caller type provided for booking", booking_id=booking_id)

        if parties.status not in CALLABLE_BOOKING_STATUSES:
            raise CallNotAllowedError(booking_id=booking_id)

        receiver = parties.counterpart(caller)
        if not receiver or receiver == caller:
            raise UnauthorizedError(
                "Caller and receiver cannot be the same account", booking_id=booking_id
            )

        if not parties.has_phone(caller):
            raise CallerPhoneMissingError(booking_id=booking_id)
        if not parties.is_verified(caller):
            raise CallerNotVerifiedError(booking_id=booking_id)
        if not parties.has_phone(receiver):
            raise ReceiverPhoneMissingError(booking_id=booking_id)
        if not parties.is_verified(receiver):
            raise ReceiverNotVerifiedError(booking_id=booking_id)

        # Customers can only reach providers whose listing is paid up
        if role == CALLER_TYPE_USER and parties.provider_payment_status != PROVIDER_PAYMENT_ACTIVE:
            raise ProviderCallsDisabledError(booking_id=booking_id)

    # === Responses ===

    async def accept(self, connection: Connection, booking_id: str) -> CallSession:
        identity = self._identity_of(connection)
        session = self.store.require(booking_id)
        if identity != session.receiver_identity:
            raise NotAParticipantError("Only the receiver can answer this call", booking_id=booking_id)
        return await self._apply(booking_id, CallEvent.ACCEPT)

    async def reject(
        self,
        connection: Connection,
        booking_id: str,
        reason: Optional[str] = None,
    ) -> CallSession:
        identity = self._identity_of(connection)
        session = self.store.require(booking_id)
        if identity != session.receiver_identity:
            raise NotAParticipantError("Only the receiver can decline this call", booking_id=booking_id)
        return await self._apply(
            booking_id, CallEvent.REJECT, EndReason.DECLINED, detail=reason or EndReason.DECLINED.value
        )

    async def end(self, connection: Connection, booking_id: str) -> CallSession:
        identity = self._identity_of(connection)
        session = self.store.require(booking_id)
        if not session.involves(identity):
            raise NotAParticipantError(booking_id=booking_id)

        reason = (
            EndReason.CALLER_ENDED if identity == session.caller_identity
            else EndReason.RECEIVER_ENDED
        )
        return await self._apply(booking_id, CallEvent.END, reason)

    # === Opaque relay ===

    async def relay_payload(
        self,
        connection: Connection,
        kind: str,
        booking_id: str,
        payload: Any,
        to: Optional[str] = None,
    ) -> int:
        """
        Forward an offer/answer/ICE candidate to the other participant.

        The payload object is passed through untouched; only `bookingId`
        and `from` are added around it.

        Returns:
            Number of connections the message was delivered to.
        """
        payload_key = RELAY_PAYLOAD_KEYS.get(kind)
        if payload_key is None:
            raise InvalidMessageError(f"Cannot relay {kind}", booking_id=booking_id)

        identity = self._identity_of(connection)
        session = self.store.get(booking_id)
        if session is None:
            raise SessionNotFoundError(booking_id=booking_id)
        if not session.involves(identity):
            raise NotAParticipantError(booking_id=booking_id)

        counterpart = session.counterpart(identity)
        if to is not None and to != counterpart:
            raise NotAParticipantError(
                "Recipient is not the other participant of this call", booking_id=booking_id
            )

        delivered = await self.registry.send_to_identity(counterpart, {
            "type": kind,
            "bookingId": booking_id,
            payload_key: payload,
            "from": identity,
        })
        metrics.messages_relayed.labels(kind=kind).inc()
        return delivered

    # === Synthesized events ===

    async def handle_timeout(self, booking_id: str) -> None:
        """Ring timeout fired: end the call if nobody answered yet."""
        session = self.store.get(booking_id)
        if session is None or session.status != CallStatus.RINGING:
            return

        logger.info(f"[Relay] Call {booking_id} timed out - no answer")
        try:
            await self._apply(booking_id, CallEvent.TIMEOUT, EndReason.TIMEOUT)
        except (AlreadyEndedError, SessionNotFoundError, InvalidTransitionError):
            pass

    async def handle_disconnect(self, booking_id: str) -> Optional[CallSession]:
        """A participant vanished: end the call and tell the other side."""
        try:
            return await self._apply(booking_id, CallEvent.DISCONNECT, EndReason.DISCONNECT)
        except (AlreadyEndedError, SessionNotFoundError):
            return None

    async def expire_stale_sessions(self) -> int:
        """
        Safety-net sweep: end sessions past their maximum lifetime.

        Participants get `call:ended{reason:"expired"}` and the call is
        recorded like any other. Returns the number of sessions ended.
        """
        expired = self.store.sweep_expired()
        for session in expired:
            self.supervisor.disarm(session.booking_id)
            session.end_reason = EndReason.EXPIRED
            metrics.calls_ended.labels(reason=EndReason.EXPIRED.value).inc()
            await self._notify_ended(session)
            self._record(session)
        if expired:
            metrics.live_sessions_gauge.set(len(self.store))
        return len(expired)

    # === State machine entry point ===

    async def _apply(
        self,
        booking_id: str,
        event: CallEvent,
        reason: Optional[EndReason] = None,
        detail: Optional[str] = None,
    ) -> CallSession:
        session = self.store.transition(booking_id, event)

        if session.status != CallStatus.RINGING:
            self.supervisor.disarm(booking_id)

        if session.status == CallStatus.ACTIVE:
            await self.registry.send_to_identity(session.caller_identity, {
                "type": EVENT_CALL_ACCEPTED,
                "bookingId": booking_id,
            })

        elif session.status == CallStatus.ENDED:
            session.end_reason = reason
            metrics.calls_ended.labels(reason=reason.value if reason else "unknown").inc()
            metrics.live_sessions_gauge.set(len(self.store))

            if event == CallEvent.REJECT:
                await self.registry.send_to_identity(session.caller_identity, {
                    "type": EVENT_CALL_REJECTED,
                    "bookingId": booking_id,
                    "reason": detail,
                })

            await self._notify_ended(session)
            self._record(session)

        return session

    async def _notify_ended(self, session: CallSession) -> None:
        message = {
            "type": EVENT_CALL_ENDED,
            "bookingId": session.booking_id,
            "durationSeconds": session.duration_seconds(),
            "reason": session.end_reason.value if session.end_reason else None,
        }
        for identity in (session.caller_identity, session.receiver_identity):
            await self.registry.send_to_identity(identity, message)

    # === Call history ===

    def _record(self, session: CallSession) -> None:
        """Hand the finished call to the history sink without waiting for it."""
        if self.history_sink is None:
            return

        record = CallRecord(
            booking_id=session.booking_id,
            caller_identity=session.caller_identity,
            caller_type=session.caller_type,
            duration=session.duration_seconds(),
            status=history_status(session),
            end_reason=session.end_reason.value if session.end_reason else "unknown",
            started_at=session.started_at,
            ended_at=session.ended_at or utcnow(),
        )
        task = asyncio.create_task(self._persist(record))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _persist(self, record: CallRecord) -> None:
        try:
            await self.history_sink.record_call(record)
        except Exception as e:
            logger.error(f"[Relay] Failed to log call {record.booking_id}: {e}")

    async def drain(self) -> None:
        """Wait for pending history writes (shutdown, tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # === Helpers ===

    @staticmethod
    def _identity_of(connection: Connection) -> str:
        if connection.identity is None:
            raise NotJoinedError()
        return connection.identity
