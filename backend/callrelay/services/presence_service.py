"""
Presence Service - Redis mirror of relay presence

The connection registry is the source of truth inside this process. This
service mirrors it into Redis so the marketplace API (push fallback,
provider availability badges) can ask whether an account is reachable:

1. Identity joins over WebSocket -> set_online() writes `online:{id}` with TTL
2. Client sends heartbeat every 30s -> heartbeat() refreshes the TTL
3. Identity's last connection closes -> set_offline() deletes the key
4. Process dies -> keys expire on their own after PRESENCE_TTL_SEC

Redis trouble is logged and otherwise ignored; signaling never depends on it.
"""
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis

from callrelay.config.constants import PRESENCE_KEY_PREFIX, PRESENCE_TTL_SEC
from callrelay.config.redis import get_redis

logger = logging.getLogger(__name__)


class PresenceService:
    """Tracks online identities in Redis with TTL-based expiry."""

    def __init__(
        self,
        redis_getter: Callable[[], Awaitable[redis.Redis]] = get_redis,
        ttl: int = PRESENCE_TTL_SEC,
    ):
        self._get_redis = redis_getter
        self.ttl = ttl

    @staticmethod
    def _key(identity: str) -> str:
        return f"{PRESENCE_KEY_PREFIX}{identity}"

    async def set_online(self, identity: str) -> None:
        try:
            r = await self._get_redis()
            await r.set(self._key(identity), "1", ex=self.ttl)
            logger.info(f"[Presence] {identity} marked online")
        except Exception as e:
            logger.error(f"[Presence] Failed to mark {identity} online: {e}")

    async def set_offline(self, identity: str) -> None:
        try:
            r = await self._get_redis()
            await r.delete(self._key(identity))
            logger.info(f"[Presence] {identity} marked offline")
        except Exception as e:
            logger.error(f"[Presence] Failed to mark {identity} offline: {e}")

    async def heartbeat(self, identity: str) -> None:
        """Refresh the TTL; re-creates the key if it already expired."""
        try:
            r = await self._get_redis()
            if not await r.expire(self._key(identity), self.ttl):
                await r.set(self._key(identity), "1", ex=self.ttl)
        except Exception as e:
            logger.error(f"[Presence] Heartbeat failed for {identity}: {e}")

    async def is_online(self, identity: str) -> Optional[bool]:
        """True/False from Redis, or None when Redis is unreachable."""
        try:
            r = await self._get_redis()
            return bool(await r.exists(self._key(identity)))
        except Exception as e:
            logger.error(f"[Presence] Lookup failed for {identity}: {e}")
            return None
