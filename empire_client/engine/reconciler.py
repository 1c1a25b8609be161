"""Snapshot reconciliation and lifecycle transitions.

Each new Snapshot is compared with the previous one and classified:

1. turn_changed: the turn number moved
2. just_eliminated: the player was knocked out
3. just_won: the player became the victor of a running game
4. game_just_ended: the game status became finished
5. just_started: the game left the lobby

The first matching cause decides the transition (started, eliminated, won,
observer turn, turn advanced), which carries the new lifecycle state and
the turn whose summary should be played, if any. A game that just left
the lobby gets an opening playback of its first turn.

When the turn advances, the staged orders for the old turn are evicted and
the ledger is emptied before any listener sees the new Snapshot. A Snapshot
is applied whole or not at all; a fetch that fails or arrives out of order
leaves the previous Snapshot and lifecycle in place.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import PersistenceError, ReconciliationError
from ..models.lifecycle import ACTIVE, DEFEATED, FINISHED, LOBBY, VICTOR, LifecycleState
from ..models.snapshot import GameStatus, Snapshot
from ..storage.staging import StagingStore
from .ledger import OrderLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotChange:
    """Causes detected between two consecutive Snapshots."""

    turn_changed: bool = False
    just_eliminated: bool = False
    just_won: bool = False
    game_just_ended: bool = False
    just_started: bool = False

    @classmethod
    def between(cls, prev: Snapshot, new: Snapshot) -> "SnapshotChange":
        """Classify the change from prev to new."""
        return cls(
            turn_changed=new.turn_number != prev.turn_number,
            just_eliminated=not prev.is_eliminated and new.is_eliminated,
            just_won=new.is_victor and prev.status != GameStatus.FINISHED,
            game_just_ended=prev.status != GameStatus.FINISHED
            and new.status == GameStatus.FINISHED,
            just_started=prev.status == GameStatus.WAITING
            and new.status != GameStatus.WAITING,
        )

    @property
    def any(self) -> bool:
        return (
            self.turn_changed
            or self.just_eliminated
            or self.just_won
            or self.game_just_ended
            or self.just_started
        )


class TransitionKind(Enum):
    """Outcome of applying one Snapshot."""

    INITIAL = "initial"
    NONE = "none"
    GAME_STARTED = "game_started"
    ELIMINATED = "eliminated"
    WON = "won"
    OBSERVER_TURN = "observer_turn"
    TURN_ADVANCED = "turn_advanced"
    STALE = "stale"


@dataclass(frozen=True)
class Transition:
    """What the Reconciler decided for one Snapshot.

    Attributes:
        kind: Which rule matched
        lifecycle: Lifecycle state after the Snapshot
        summary_turn: Turn whose events should be played back, None for no playback
        game_over: The playback accompanies defeat, victory or the end of the game
        opening: The playback opens the game; it covers the current turn and
            has no battles or previous-turn content
        change: Detected causes, None on initial load or for discarded Snapshots
    """

    kind: TransitionKind
    lifecycle: LifecycleState
    summary_turn: int | None = None
    game_over: bool = False
    opening: bool = False
    change: SnapshotChange | None = None

    @property
    def shows_summary(self) -> bool:
        return self.summary_turn is not None

    @property
    def applied(self) -> bool:
        return self.kind != TransitionKind.STALE


SnapshotListener = Callable[[Snapshot, Transition], None]


def lifecycle_for(snapshot: Snapshot) -> LifecycleState:
    """Derive the lifecycle state from a Snapshot alone."""
    if snapshot.status == GameStatus.WAITING:
        return LOBBY
    if snapshot.status == GameStatus.FINISHED:
        return FINISHED
    if snapshot.is_victor:
        return VICTOR
    if snapshot.is_eliminated or snapshot.is_observer:
        return DEFEATED
    return ACTIVE


def decide(prev: Snapshot, new: Snapshot, lifecycle: LifecycleState) -> Transition:
    """Resolve the transition for a new Snapshot, first matching cause wins.

    Args:
        prev: Snapshot currently applied
        new: Incoming Snapshot
        lifecycle: Lifecycle state before the Snapshot

    Returns:
        Transition to apply
    """
    change = SnapshotChange.between(prev, new)

    if change.just_started:
        return Transition(
            TransitionKind.GAME_STARTED,
            ACTIVE,
            summary_turn=new.turn_number,
            opening=True,
            change=change,
        )

    if change.just_eliminated:
        return Transition(
            TransitionKind.ELIMINATED,
            DEFEATED,
            summary_turn=new.turn_number,
            game_over=True,
            change=change,
        )

    if change.just_won:
        return Transition(
            TransitionKind.WON,
            VICTOR,
            summary_turn=new.turn_number,
            game_over=True,
            change=change,
        )

    if change.turn_changed or change.game_just_ended:
        if lifecycle.is_observer:
            return Transition(
                TransitionKind.OBSERVER_TURN,
                FINISHED if new.is_finished else lifecycle,
                change=change,
            )
        # A finished game keeps its turn number, so the resolved turn is the current one
        resolved = new.turn_number - 1 if change.turn_changed else new.turn_number
        return Transition(
            TransitionKind.TURN_ADVANCED,
            FINISHED if new.is_finished else ACTIVE,
            summary_turn=resolved if resolved >= 1 else None,
            game_over=new.is_finished,
            change=change,
        )

    return Transition(TransitionKind.NONE, lifecycle, change=change)


class Reconciler:
    """Owns the current Snapshot and lifecycle state of one game."""

    def __init__(self, ledger: OrderLedger, store: StagingStore, game_id: int):
        """Initialize reconciler.

        Args:
            ledger: Order Ledger to restore, reset and rebase on each Snapshot
            store: Staging Store holding staged orders and the last seen turn
            game_id: Game this reconciler follows
        """
        self.ledger = ledger
        self.store = store
        self.game_id = game_id
        self.snapshot: Snapshot | None = None
        self.lifecycle: LifecycleState = LOBBY
        self._listeners: list[SnapshotListener] = []
        self._fetch_seq = 0
        self._applied_seq = 0

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a callback run after every applied Snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def refresh(self, fetch: Callable[[], Awaitable[Snapshot]]) -> Transition:
        """Fetch a Snapshot and apply it unless a newer fetch got there first.

        Args:
            fetch: Coroutine function returning the latest Snapshot

        Returns:
            The applied transition, or a STALE transition if the result was discarded

        Raises:
            ReconciliationError: If the fetch failed; prior state is kept
        """
        self._fetch_seq += 1
        seq = self._fetch_seq
        try:
            snapshot = await fetch()
        except ReconciliationError as e:
            logger.warning(f"Snapshot fetch #{seq} for game {self.game_id} failed: {e}")
            raise

        if seq < self._applied_seq:
            logger.warning(
                f"Discarding snapshot fetch #{seq} for game {self.game_id}: "
                f"fetch #{self._applied_seq} was already applied"
            )
            return Transition(TransitionKind.STALE, self.lifecycle)

        transition = self.apply(snapshot)
        if transition.applied:
            self._applied_seq = seq
        return transition

    def apply(self, snapshot: Snapshot) -> Transition:
        """Apply a new Snapshot and run the side effects of its transition.

        Raises:
            ReconciliationError: If the Snapshot belongs to another game
        """
        if snapshot.game_id != self.game_id:
            raise ReconciliationError(
                f"Snapshot for game {snapshot.game_id} given to reconciler of game {self.game_id}"
            )

        prev = self.snapshot
        if prev is None:
            transition = self._initial_transition(snapshot)
            self._restore_staged_orders(snapshot)
        elif snapshot.turn_number < prev.turn_number:
            logger.warning(
                f"Discarding stale snapshot for game {self.game_id}: "
                f"turn {snapshot.turn_number} < current turn {prev.turn_number}"
            )
            return Transition(TransitionKind.STALE, self.lifecycle)
        else:
            transition = decide(prev, snapshot, self.lifecycle)
            if transition.change.turn_changed:
                self._evict(prev.turn_number)
                self.ledger.reset(snapshot.credits)

        self.snapshot = snapshot
        if transition.lifecycle != self.lifecycle:
            logger.info(
                f"Game {self.game_id} lifecycle {self.lifecycle} -> {transition.lifecycle} "
                f"({transition.kind.value}, turn {snapshot.turn_number})"
            )
        self.lifecycle = transition.lifecycle
        self.ledger.sync_with_snapshot(snapshot)
        self._mark_seen(snapshot.turn_number)

        for listener in list(self._listeners):
            listener(snapshot, transition)
        return transition

    def rename_planet_locally(self, planet_id: int, name: str) -> None:
        """Show a confirmed rename before the next fetch replaces the Snapshot."""
        if self.snapshot is not None:
            self.snapshot = self.snapshot.with_planet_name(planet_id, name)

    def _initial_transition(self, snapshot: Snapshot) -> Transition:
        lifecycle = lifecycle_for(snapshot)
        last_seen = self.store.get_last_seen_turn(self.game_id)
        summary_turn = None
        if last_seen is not None and last_seen < snapshot.turn_number and snapshot.turn_number > 1:
            summary_turn = snapshot.turn_number - 1
            logger.info(
                f"Game {self.game_id} advanced from turn {last_seen} to "
                f"{snapshot.turn_number} while away"
            )
        return Transition(
            TransitionKind.INITIAL,
            lifecycle,
            summary_turn=summary_turn,
            game_over=snapshot.is_finished,
        )

    def _restore_staged_orders(self, snapshot: Snapshot) -> None:
        for turn in self.store.staged_turns(self.game_id):
            if turn < snapshot.turn_number:
                self._evict(turn)

        staged = self.store.load(self.game_id, snapshot.turn_number)
        if staged is None:
            return
        self.ledger.server_credits = snapshot.credits
        self.ledger.restore(staged.moves, staged.builds)
        logger.info(
            f"Restored {len(staged)} staged orders for game {self.game_id} "
            f"turn {snapshot.turn_number}"
        )

    def _evict(self, turn_number: int) -> None:
        try:
            self.store.evict(self.game_id, turn_number)
        except PersistenceError as e:
            logger.warning(f"Could not evict staged orders for turn {turn_number}: {e}")

    def _mark_seen(self, turn_number: int) -> None:
        try:
            self.store.set_last_seen_turn(self.game_id, turn_number)
        except PersistenceError as e:
            logger.warning(f"Could not record last seen turn {turn_number}: {e}")
