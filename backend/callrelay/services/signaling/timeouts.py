"""
Timeout Supervisor

Arms one countdown per ringing call. When a countdown runs out the
supervisor hands the booking id to its callback; deciding whether the call
is still ringing is the callback's job.
"""
import asyncio
from typing import Awaitable, Callable, Dict, Optional
import logging

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[str], Awaitable[None]]


class TimeoutSupervisor:
    """Schedules and cancels ring timeouts keyed by booking id."""

    def __init__(self, on_timeout: Optional[TimeoutCallback] = None, default_timeout: float = 30.0):
        self.on_timeout = on_timeout
        self.default_timeout = default_timeout
        self._timers: Dict[str, asyncio.Task] = {}

    def arm(self, booking_id: str, timeout: Optional[float] = None) -> None:
        """Start (or restart) the countdown for a booking."""
        self.disarm(booking_id)
        delay = self.default_timeout if timeout is None else timeout
        self._timers[booking_id] = asyncio.create_task(
            self._countdown(booking_id, delay),
            name=f"call-timeout:{booking_id}",
        )
        logger.debug(f"[Timeout] Armed {booking_id} for {delay}s")

    def disarm(self, booking_id: str) -> bool:
        """Cancel a pending countdown. Returns True if one was pending."""
        task = self._timers.pop(booking_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug(f"[Timeout] Disarmed {booking_id}")
        return True

    def is_armed(self, booking_id: str) -> bool:
        return booking_id in self._timers

    async def _countdown(self, booking_id: str, delay: float) -> None:
        await asyncio.sleep(delay)

        # Drop the handle first so a disarm during the callback is a no-op
        if self._timers.get(booking_id) is asyncio.current_task():
            del self._timers[booking_id]

        if self.on_timeout is None:
            return
        try:
            await self.on_timeout(booking_id)
        except Exception as e:
            logger.error(f"[Timeout] Error handling timeout for {booking_id}: {e}")

    def shutdown(self) -> None:
        """Cancel every pending countdown."""
        for task in self._timers.values():
            task.cancel()
        count = len(self._timers)
        self._timers.clear()
        if count:
            logger.info(f"[Timeout] Cancelled {count} pending timeouts")

    def __len__(self) -> int:
        return len(self._timers)
