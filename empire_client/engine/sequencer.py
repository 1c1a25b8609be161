"""Reveal Sequencer: timed, cancellable playback of a turn summary.

Items are consumed strictly FIFO. After each item the sequencer waits a
delay that depends on the item kind (short after headers and separators,
long after events and details). `skip()` drains the rest of the queue
immediately, rendering every remaining item as already revealed.

Completion, natural or skipped, fires `on_complete` exactly once per
playback. Starting a new playback while one is running skips the old one
first.

A render callback that raises is logged and playback moves on to the next
item, so a faulty item cannot stall the queue or suppress completion.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from ..config import ClientConfig
from ..models.reveal import RevealItem
from ..utils.scheduling import ScheduledTask

logger = logging.getLogger(__name__)

RenderCallback = Callable[[RevealItem, bool], None]
CompleteCallback = Callable[[], None]


class RevealSequencer:
    """Single-consumer playback engine for reveal items."""

    def __init__(
        self,
        on_render: RenderCallback,
        on_complete: CompleteCallback | None = None,
        config: ClientConfig | None = None,
    ):
        """Initialize sequencer.

        Args:
            on_render: Called with (item, revealed) for each item; revealed is
                True for items rendered by skip()
            on_complete: Called once when a playback ends
            config: Source of the header and item delays
        """
        config = config or ClientConfig()
        self.on_render = on_render
        self.on_complete = on_complete
        self.header_delay = config.header_delay
        self.item_delay = config.item_delay
        self._queue: deque[RevealItem] = deque()
        self._task: ScheduledTask | None = None
        self._finished = True
        self.playbacks = 0

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def is_running(self) -> bool:
        return not self._finished

    def delay_for(self, item: RevealItem) -> float:
        return self.header_delay if item.is_heading else self.item_delay

    def start(self, items: list[RevealItem]) -> None:
        """Begin playing items, skipping any playback still in progress.

        Must be called from a running event loop.
        """
        if self.is_running:
            logger.debug("New playback requested, skipping the current one")
            self.skip()

        self._queue = deque(items)
        self._finished = False
        self.playbacks += 1
        logger.debug(f"Starting reveal playback #{self.playbacks} with {len(items)} items")
        self._task = ScheduledTask(self._play(), name=f"reveal-{self.playbacks}")

    def _render_item(self, item: RevealItem, revealed: bool) -> None:
        try:
            self.on_render(item, revealed)
        except Exception:
            logger.exception(f"Rendering reveal item {item.content!r} failed, continuing playback")

    async def _play(self) -> None:
        while self._queue:
            item = self._queue.popleft()
            self._render_item(item, False)
            if self._queue:
                await asyncio.sleep(self.delay_for(item))
        self._complete()

    def skip(self) -> None:
        """Render every remaining item at once and end the playback.

        Safe to call when nothing is playing or the queue is empty.
        """
        if self._finished:
            return
        if self._task is not None:
            self._task.cancel()
        while self._queue:
            self._render_item(self._queue.popleft(), True)
        self._complete()

    def stop(self) -> None:
        """Abandon the current playback without rendering or completing it."""
        if self._task is not None:
            self._task.cancel()
        self._queue.clear()
        self._finished = True

    def _complete(self) -> None:
        if self._finished:
            return
        self._finished = True
        logger.debug(f"Reveal playback #{self.playbacks} complete")
        if self.on_complete is not None:
            self.on_complete()

    async def wait(self) -> None:
        """Wait until the current playback task has ended."""
        if self._task is not None:
            await self._task.wait()
