"""Deferred callbacks for the quiz feedback delay."""
import asyncio
import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class FeedbackScheduler(Protocol):
    """Anything that can run a callback once after a delay."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledCall: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop with ``loop.call_later``.

    Callbacks therefore run on the same thread as the async endpoints, so the
    quiz engine only ever sees one actor at a time.
    """

    def schedule(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        logger.debug(f"Scheduling {getattr(callback, '__name__', callback)!s} in {delay}s")
        return loop.call_later(delay, callback)
