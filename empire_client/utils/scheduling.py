"""Cancellable scheduled tasks on the asyncio event loop.

Timers in the client (reveal playback, turn countdown) are expressed as a
handle that can be stopped rather than as chains of callbacks. Everything
runs on the single event loop; cancelling a handle that already finished is
a no-op.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a coroutine running on the event loop."""

    def __init__(self, coro: Awaitable[None], name: str | None = None):
        """Start the coroutine as a task on the running loop.

        Args:
            coro: Coroutine to run
            name: Optional task name for debugging
        """
        self._task = asyncio.get_running_loop().create_task(coro, name=name)

    @property
    def done(self) -> bool:
        """True once the task finished, failed or was cancelled."""
        return self._task.done()

    def cancel(self) -> None:
        """Stop the task. Safe to call repeatedly or after completion."""
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the task to end, treating cancellation as a normal end."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise




def schedule_repeating(
    interval: float, callback: Callable[[], bool | None]
) -> ScheduledTask:
    """Call a callback immediately and then every `interval` seconds.

    The loop stops when the callback returns True or the handle is cancelled.

    Args:
        interval: Seconds between calls
        callback: Function to call; return True to stop repeating

    Returns:
        Handle that can stop the repetition
    """

    async def _run() -> None:
        while True:
            if callback():
                return
            await asyncio.sleep(interval)

    return ScheduledTask(_run(), name="schedule_repeating")
