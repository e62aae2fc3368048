import pytest
from fakeredis import aioredis

from callrelay.services.presence_service import PresenceService


@pytest.fixture
def fake_redis():
    return aioredis.FakeRedis()


@pytest.fixture
def presence(fake_redis):
    async def _get_fake():
        return fake_redis

    return PresenceService(redis_getter=_get_fake, ttl=60)


@pytest.mark.asyncio
async def test_online_offline_roundtrip(presence, fake_redis):
    await presence.set_online("u1")

    assert await presence.is_online("u1") is True
    assert 0 < await fake_redis.ttl("online:u1") <= 60

    await presence.set_offline("u1")
    assert await presence.is_online("u1") is False


@pytest.mark.asyncio
async def test_heartbeat_refreshes_ttl(presence, fake_redis):
    await presence.set_online("u1")
    await fake_redis.expire("online:u1", 5)

    await presence.heartbeat("u1")

    assert await fake_redis.ttl("online:u1") > 5


@pytest.mark.asyncio
async def test_heartbeat_recreates_expired_key(presence, fake_redis):
    await presence.heartbeat("u1")

    assert await presence.is_online("u1") is True


@pytest.mark.asyncio
async def test_redis_outage_is_not_fatal():
    async def _broken():
        raise ConnectionError("redis down")

    presence = PresenceService(redis_getter=_broken)

    await presence.set_online("u1")
    await presence.heartbeat("u1")
    await presence.set_offline("u1")
    assert await presence.is_online("u1") is None
