"""
Connection Registry

Maps identities to their live WebSocket connections. One identity may be
connected from several devices at once; connections are kept in
registration order so the most recent one is last.
"""
from typing import Dict, List, Optional
import logging

from .models import Connection, DeliveryPolicy, utcnow

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks which identity is reachable through which connections."""

    def __init__(self, policy: DeliveryPolicy = DeliveryPolicy.BROADCAST):
        self.policy = DeliveryPolicy(policy)
        # identity -> connections, oldest first
        self._connections: Dict[str, List[Connection]] = {}

    def register(self, identity: str, connection: Connection) -> None:
        """Add a connection to an identity's set (re-registering moves it to most recent)."""
        if connection.identity and connection.identity != identity:
            self.unregister(connection)

        conns = self._connections.setdefault(identity, [])
        if connection in conns:
            conns.remove(connection)
        conns.append(connection)

        connection.identity = identity
        connection.joined_at = utcnow()
        logger.info(f"[Registry] {identity} registered connection {connection.connection_id} ({len(conns)} live)")

    def unregister(self, connection: Connection) -> Optional[str]:
        """
        Remove a connection from whichever identity holds it.

        Returns:
            The identity the connection was registered under, or None.
        """
        identity = connection.identity
        if identity is None:
            return None

        conns = self._connections.get(identity, [])
        if connection in conns:
            conns.remove(connection)
        if not conns:
            self._connections.pop(identity, None)
            logger.info(f"[Registry] {identity} is offline")
        return identity

    def is_online(self, identity: str) -> bool:
        return bool(self._connections.get(identity))

    def connections_for(self, identity: str) -> List[Connection]:
        """Delivery targets for an identity under the configured policy."""
        conns = self._connections.get(identity, [])
        if not conns:
            return []
        if self.policy == DeliveryPolicy.MOST_RECENT:
            return [conns[-1]]
        return list(conns)

    async def send_to_identity(self, identity: str, message: dict) -> int:
        """Send a message to an identity; returns how many connections got it."""
        sent_count = 0
        for conn in self.connections_for(identity):
            if await conn.send_json(message):
                sent_count += 1

        if not sent_count:
            logger.debug(f"[Registry] {identity} not reachable for {message.get('type')}")
        return sent_count

    def get_online_count(self) -> int:
        return len(self._connections)

    def get_total_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())
