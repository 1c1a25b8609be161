"""Turn deadline countdown.

Ticks on a repeating scheduled task and reports the time left until the
turn deadline. When the deadline passes, `on_expire` fires once, which the
controller uses to auto-submit. Installing a new deadline or cancelling
stops the previous timer so no stale expiry can fire.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timezone

from ..utils.constants import COUNTDOWN_TICK
from ..utils.scheduling import ScheduledTask, schedule_repeating

logger = logging.getLogger(__name__)

TickCallback = Callable[[int, str], None]


def format_countdown(seconds: float) -> str:
    """Format remaining seconds as H:MM:SS, or M:SS under an hour.

    Examples:
        >>> format_countdown(3725)
        '1:02:05'
        >>> format_countdown(65)
        '1:05'
        >>> format_countdown(-3)
        '0:00'
    """
    total = max(0, math.ceil(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TurnCountdown:
    """Cancellable countdown to one turn deadline at a time."""

    def __init__(
        self,
        on_tick: TickCallback | None = None,
        on_expire: Callable[[], None] | None = None,
        tick: float = COUNTDOWN_TICK,
        now: Callable[[], datetime] | None = None,
    ):
        """Initialize countdown.

        Args:
            on_tick: Called with (seconds_left, formatted) on every tick
            on_expire: Called once when the deadline passes
            tick: Seconds between ticks
            now: Clock returning the current time, UTC by default
        """
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.tick = tick
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.deadline: datetime | None = None
        self._task: ScheduledTask | None = None
        self.expired = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done

    def seconds_left(self) -> float | None:
        if self.deadline is None:
            return None
        return (self.deadline - _utc(self._now())).total_seconds()

    def same_deadline(self, deadline: datetime | None) -> bool:
        """Check whether deadline is the one already installed, naive times read as UTC."""
        if deadline is None or self.deadline is None:
            return deadline is None and self.deadline is None
        return _utc(deadline) == self.deadline

    def install(self, deadline: datetime | None) -> None:
        """Start counting down to a new deadline, replacing any previous one.

        A None deadline just stops the countdown. Must be called from a
        running event loop.
        """
        self.cancel()
        self.deadline = _utc(deadline) if deadline is not None else None
        self.expired = False
        if self.deadline is None:
            return
        logger.debug(f"Turn countdown installed for {self.deadline.isoformat()}")
        self._task = schedule_repeating(self.tick, self._on_tick)

    def cancel(self) -> None:
        """Stop the countdown. Safe to call when nothing is running."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _on_tick(self) -> bool:
        left = self.seconds_left()
        if left is None:
            return True
        if self.on_tick is not None:
            self.on_tick(max(0, math.ceil(left)), format_countdown(left))
        if left > 0:
            return False
        self.expired = True
        logger.info("Turn deadline reached")
        if self.on_expire is not None:
            self.on_expire()
        return True
