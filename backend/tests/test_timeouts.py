import asyncio

import pytest

from callrelay.services.signaling import TimeoutSupervisor


class Recorder:
    def __init__(self):
        self.fired = []

    async def __call__(self, booking_id: str):
        self.fired.append(booking_id)


@pytest.mark.asyncio
async def test_armed_timeout_fires_once():
    recorder = Recorder()
    supervisor = TimeoutSupervisor(on_timeout=recorder, default_timeout=0.01)

    supervisor.arm("B1")
    assert supervisor.is_armed("B1")
    await asyncio.sleep(0.05)

    assert recorder.fired == ["B1"]
    assert not supervisor.is_armed("B1")
    assert len(supervisor) == 0


@pytest.mark.asyncio
async def test_disarm_cancels_pending_timeout():
    recorder = Recorder()
    supervisor = TimeoutSupervisor(on_timeout=recorder, default_timeout=0.02)

    supervisor.arm("B1")
    assert supervisor.disarm("B1") is True
    await asyncio.sleep(0.05)

    assert recorder.fired == []
    assert supervisor.disarm("B1") is False


@pytest.mark.asyncio
async def test_rearm_restarts_countdown():
    recorder = Recorder()
    supervisor = TimeoutSupervisor(on_timeout=recorder)

    supervisor.arm("B1", timeout=0.01)
    supervisor.arm("B1", timeout=10)
    await asyncio.sleep(0.05)

    assert recorder.fired == []
    supervisor.shutdown()


@pytest.mark.asyncio
async def test_disarm_from_inside_callback_does_not_cancel_it():
    supervisor = TimeoutSupervisor(default_timeout=0.01)
    finished = []

    async def on_timeout(booking_id):
        supervisor.disarm(booking_id)
        await asyncio.sleep(0)
        finished.append(booking_id)

    supervisor.on_timeout = on_timeout
    supervisor.arm("B1")
    await asyncio.sleep(0.05)

    assert finished == ["B1"]


@pytest.mark.asyncio
async def test_callback_errors_are_contained():
    async def boom(booking_id):
        raise RuntimeError("boom")

    supervisor = TimeoutSupervisor(on_timeout=boom, default_timeout=0.01)
    supervisor.arm("B1")
    await asyncio.sleep(0.05)

    assert not supervisor.is_armed("B1")


@pytest.mark.asyncio
async def test_shutdown_cancels_everything():
    recorder = Recorder()
    supervisor = TimeoutSupervisor(on_timeout=recorder, default_timeout=0.01)
    supervisor.arm("B1")
    supervisor.arm("B2")

    supervisor.shutdown()
    await asyncio.sleep(0.05)

    assert recorder.fired == []
    assert len(supervisor) == 0
