"""
Disconnect Reconciler

Turns an abrupt connection loss into ordinary `disconnect` transitions so
the remaining participant always gets a `call:ended` instead of silence.
"""
import logging
from typing import List

from .models import CallSession, Connection
from .registry import ConnectionRegistry
from .relay import SignalingRelay

logger = logging.getLogger(__name__)


class DisconnectReconciler:
    """Ends the calls of identities whose connection went away."""

    def __init__(self, registry: ConnectionRegistry, relay: SignalingRelay):
        self.registry = registry
        self.relay = relay

    async def on_disconnect(self, connection: Connection) -> List[CallSession]:
        """
        Unregister a closed connection and end every live call of its identity.

        Other devices of the same identity stay registered, but the calls
        still end: a call never outlives the connection loss of a party.

        Returns:
            Sessions that were ended because of this disconnect.
        """
        identity = self.registry.unregister(connection)
        if identity is None:
            return []

        ended = []
        for session in self.relay.store.sessions_for(identity):
            logger.info(f"[Reconciler] {identity} dropped, ending call {session.booking_id}")
            result = await self.relay.handle_disconnect(session.booking_id)
            if result is not None:
                ended.append(result)
        return ended
