"""Clock collaborator.

The scheduler reads wall-clock time and arranges wake-ups only through this
interface, so tests can drive it with a fake clock.
"""
import asyncio
from typing import Any, Callable, Protocol

from loguru import logger

from .schedule import now_ms

logger = logger.bind(module="scheduler.clock")


class Clock(Protocol):
    """Protocol for time source and timed callbacks."""

    def now_ms(self) -> int:
        """Current wall-clock time in milliseconds."""
        ...

    def schedule_at(self, at_ms: int, callback: Callable[[], None]) -> Any:
        """Run callback once at at_ms; returns a cancellation handle."""
        ...

    def schedule_repeating(self, interval_ms: int, callback: Callable[[], None]) -> Any:
        """Run callback every interval_ms; returns a cancellation handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by one of the schedule methods."""
        ...


class AsyncioClock:
    """Clock backed by the running asyncio event loop.

    The loop's timers run on a monotonic clock, which may stop while the
    host sleeps. Callers that care about wall-clock deadlines should also
    re-check now_ms() periodically.
    """

    def now_ms(self) -> int:
        return now_ms()

    def schedule_at(self, at_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        delay_ms = max(0, at_ms - self.now_ms())
        return asyncio.get_running_loop().call_later(delay_ms / 1000.0, callback)

    def schedule_repeating(self, interval_ms: int, callback: Callable[[], None]) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(_repeat(interval_ms / 1000.0, callback))

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


async def _repeat(interval_seconds: float, callback: Callable[[], None]) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            callback()
        except Exception as e:
            logger.error(f"Repeating callback error: {e}")
