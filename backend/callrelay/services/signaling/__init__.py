"""
Call Signaling Module

Wires the registry, session store, timeout supervisor, relay and
disconnect reconciler into one service object. Built once per application
and stored on `app.state.signaling`.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from callrelay.config.settings import Settings, settings as default_settings

from .exceptions import (
    SignalingError,
    UnauthorizedError,
    BookingNotFoundError,
    CallNotAllowedError,
    DuplicateSessionError,
    SessionNotFoundError,
    NotAParticipantError,
    AlreadyEndedError,
    InvalidTransitionError,
    InvalidMessageError,
    NotJoinedError,
    CallerPhoneMissingError,
    CallerNotVerifiedError,
    ReceiverPhoneMissingError,
    ReceiverNotVerifiedError,
    ProviderCallsDisabledError,
)
from .models import (
    BookingParties,
    CallEvent,
    CallRecord,
    CallSession,
    CallStatus,
    Connection,
    DeliveryPolicy,
    EndReason,
)
from .registry import ConnectionRegistry
from .store import CallSessionStore
from .timeouts import TimeoutSupervisor
from .relay import SignalingRelay
from .reconciler import DisconnectReconciler

logger = logging.getLogger(__name__)


class SignalingService:
    """Container for one relay instance and its background sweep."""

    def __init__(
        self,
        directory,
        history_sink=None,
        presence=None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.registry = ConnectionRegistry(policy=DeliveryPolicy(self.config.CALL_DELIVERY_POLICY))
        self.store = CallSessionStore(
            max_age=timedelta(seconds=self.config.CALL_SESSION_MAX_AGE_SEC),
            ended_retention=timedelta(seconds=self.config.ENDED_SESSION_RETENTION_SEC),
        )
        self.supervisor = TimeoutSupervisor(default_timeout=self.config.CALL_RING_TIMEOUT_SEC)
        self.relay = SignalingRelay(
            registry=self.registry,
            store=self.store,
            supervisor=self.supervisor,
            directory=directory,
            history_sink=history_sink,
        )
        self.reconciler = DisconnectReconciler(self.registry, self.relay)
        self.presence = presence
        self._sweeper: Optional[asyncio.Task] = None

    async def sweep_forever(self) -> None:
        """Background task removing sessions past their maximum lifetime."""
        logger.info("Starting call session sweep background task")
        while True:
            await asyncio.sleep(self.config.SESSION_SWEEP_INTERVAL_SEC)
            try:
                removed = await self.relay.expire_stale_sessions()
                if removed:
                    logger.warning(f"Sweep ended {removed} expired call sessions")
            except Exception as e:
                logger.error(f"Session sweep error: {e}")

    def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self.sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
        self.supervisor.shutdown()
        await self.relay.drain()


__all__ = [
    "SignalingService",
    "ConnectionRegistry",
    "CallSessionStore",
    "TimeoutSupervisor",
    "SignalingRelay",
    "DisconnectReconciler",
    "BookingParties",
    "CallEvent",
    "CallRecord",
    "CallSession",
    "CallStatus",
    "Connection",
    "DeliveryPolicy",
    "EndReason",
    "SignalingError",
    "UnauthorizedError",
    "BookingNotFoundError",
    "CallNotAllowedError",
    "DuplicateSessionError",
    "SessionNotFoundError",
    "NotAParticipantError",
    "AlreadyEndedError",
    "InvalidTransitionError",
    "InvalidMessageError",
    "NotJoinedError",
    "CallerPhoneMissingError",
    "CallerNotVerifiedError",
    "ReceiverPhoneMissingError",
    "ReceiverNotVerifiedError",
    "ProviderCallsDisabledError",
]
