"""Game controller: the single context object of a client session.

The controller owns the current Snapshot (through the Reconciler), the
Order Ledger, the Staging Store, the Reveal Sequencer and the turn
countdown, and exposes the operations the UI calls. It is driven by push
messages from the server:

    controller = GameController(api, game_id)
    await controller.load()
    ...
    await controller.handle_push({"type": "turn_resolved"})

Every ledger mutation is staged to durable storage right away so that a
restart does not lose queued orders.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from ..config import ClientConfig, get_client_config
from ..engine.countdown import TickCallback, TurnCountdown
from ..engine.ledger import LedgerResult, OrderLedger
from ..engine.reconciler import Reconciler, Transition
from ..engine.reveal_builder import build_reveal_queue
from ..engine.sequencer import RenderCallback, RevealSequencer
from ..errors import (
    ApiError,
    PersistenceError,
    ReconciliationError,
    RejectReason,
    SubmissionError,
)
from ..models.combat_log import CombatLogEntry
from ..models.lifecycle import LifecycleState
from ..models.snapshot import Snapshot
from ..storage.kv import create_key_value_store
from ..storage.staging import StagingStore
from ..utils.constants import MAX_PLANET_NAME_LENGTH, cost_of
from ..utils.scheduling import ScheduledTask
from .api import fetch_snapshot

logger = logging.getLogger(__name__)

# Push messages that carry no state change
PASSIVE_MESSAGES = {"connected", "heartbeat"}

HistoryCallback = Callable[[list[CombatLogEntry], Snapshot], None]


class GameController:
    """Client session for one game."""

    def __init__(
        self,
        api,
        game_id: int,
        config: ClientConfig | None = None,
        store: StagingStore | None = None,
        on_render: RenderCallback | None = None,
        on_history: HistoryCallback | None = None,
        on_tick: TickCallback | None = None,
        observe: bool = False,
    ):
        """Initialize controller.

        Args:
            api: GameApi implementation
            game_id: Game to follow
            config: Client configuration, read from the environment by default
            store: Staging Store, built from config by default
            on_render: Receives each reveal item as (item, revealed)
            on_history: Receives all combat-log entries when the event log
                should be redrawn
            on_tick: Receives (seconds_left, formatted) from the countdown
            observe: Fetch the spectator view of the game
        """
        self.api = api
        self.game_id = game_id
        self.config = config or get_client_config()
        self.store = store or StagingStore(create_key_value_store(self.config))
        self.observe = observe
        self.on_render = on_render
        self.on_history = on_history

        self.ledger = OrderLedger()
        self.reconciler = Reconciler(self.ledger, self.store, game_id)
        self.sequencer = RevealSequencer(self._render, self._reveal_complete, self.config)
        self.countdown = TurnCountdown(
            on_tick=on_tick, on_expire=self._deadline_reached, tick=self.config.countdown_tick
        )
        self.submitted = False
        self.last_transition: Transition | None = None
        self._auto_submit: ScheduledTask | None = None

        self.reconciler.add_listener(self._on_snapshot)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot | None:
        return self.reconciler.snapshot

    @property
    def lifecycle(self) -> LifecycleState:
        return self.reconciler.lifecycle

    @property
    def accepting_orders(self) -> bool:
        """Orders may be changed only while active and before submission."""
        return (
            self.snapshot is not None and self.lifecycle.accepts_orders and not self.submitted
        )

    # ------------------------------------------------------------------
    # Snapshot flow
    # ------------------------------------------------------------------

    async def _fetch(self) -> Snapshot:
        return await fetch_snapshot(self.api, self.game_id, self.config, observe=self.observe)

    async def load(self) -> Transition:
        """Fetch the first Snapshot and restore staged orders.

        Raises:
            ReconciliationError: If the game state could not be fetched
        """
        logger.info(f"Loading game {self.game_id}")
        return await self.refresh()

    async def refresh(self) -> Transition:
        """Fetch and apply the latest Snapshot.

        Raises:
            ReconciliationError: If the fetch failed; prior state is kept
        """
        return await self.reconciler.refresh(self._fetch)

    async def handle_push(self, message: dict[str, Any] | str) -> Transition | None:
        """React to a push notification from the server.

        Fetch failures are logged and left for the next push to retry.

        Args:
            message: Decoded or raw JSON message with a "type" field

        Returns:
            The resulting transition, or None if nothing was applied
        """
        if isinstance(message, str):
            try:
                message = json.loads(message)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring undecodable push message: {message!r}")
                return None
        if not isinstance(message, dict):
            logger.warning(f"Ignoring push message without a type: {message!r}")
            return None

        message_type = message.get("type")
        if message_type in PASSIVE_MESSAGES:
            logger.debug(f"Push message {message_type} for game {self.game_id}")
            return None

        logger.debug(f"Push message {message_type} for game {self.game_id}, refreshing")
        try:
            return await self.refresh()
        except ReconciliationError as e:
            logger.warning(f"Refresh after {message_type} failed, keeping last state: {e}")
            return None

    def _on_snapshot(self, snapshot: Snapshot, transition: Transition) -> None:
        self.last_transition = transition
        turn_moved = transition.change is not None and transition.change.turn_changed
        self.submitted = snapshot.has_submitted_turn or (self.submitted and not turn_moved)

        if not self.lifecycle.accepts_orders:
            self.countdown.cancel()
        elif not self.countdown.same_deadline(snapshot.turn_deadline):
            self.countdown.install(snapshot.turn_deadline)

        if transition.shows_summary:
            items = build_reveal_queue(
                snapshot.combat_logs,
                transition.summary_turn,
                snapshot.player_name,
                game_over=transition.game_over,
                opening=transition.opening,
            )
            logger.info(
                f"Playing summary of turn {transition.summary_turn} ({len(items)} items)"
            )
            self.sequencer.start(items)
        elif not self.sequencer.is_running:
            self._show_history()

    def _render(self, item, revealed: bool) -> None:
        if self.on_render is not None:
            self.on_render(item, revealed)

    def _reveal_complete(self) -> None:
        self._show_history()

    def _show_history(self) -> None:
        if self.on_history is not None and self.snapshot is not None:
            self.on_history(self.snapshot.combat_logs, self.snapshot)

    def skip_reveal(self) -> None:
        """Show the rest of the current turn summary at once."""
        self.sequencer.skip()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def _closed(self) -> LedgerResult | None:
        if self.accepting_orders:
            return None
        reason = "turn already submitted" if self.submitted else f"game is {self.lifecycle}"
        return LedgerResult.rejected(
            RejectReason.NOT_ACCEPTING_ORDERS, f"Not accepting orders: {reason}"
        )

    def _stage(self) -> None:
        try:
            self.store.save(self.game_id, self.snapshot.turn_number, self.ledger)
        except PersistenceError as e:
            logger.warning(f"Could not stage orders for game {self.game_id}: {e}")

    def add_build(self, planet_id: int, kind: str, subtype: str) -> LedgerResult:
        """Queue a building or mech on one of the player's planets at catalog price."""
        closed = self._closed()
        if closed is not None:
            return closed
        planet = self.snapshot.planet(planet_id)
        if planet is None or planet.owner_id != self.snapshot.player_id:
            return LedgerResult.rejected(
                RejectReason.NOT_OWNED, f"Planet {planet_id} is not yours"
            )

        result = self.ledger.add_build(planet_id, kind, subtype, cost_of(kind, subtype) or 0)
        if result.ok:
            self._stage()
        return result

    def add_move(self, mech_id: int, to_x: int, to_y: int) -> LedgerResult:
        """Queue a move of one of the player's mechs from its current tile."""
        closed = self._closed()
        if closed is not None:
            return closed
        mech = self.snapshot.mech(mech_id)
        if mech is None or mech.owner_id != self.snapshot.player_id:
            return LedgerResult.rejected(RejectReason.NOT_OWNED, f"Mech {mech_id} is not yours")

        result = self.ledger.add_move(mech_id, (mech.x, mech.y), (to_x, to_y))
        if result.ok:
            self._stage()
        return result

    def remove_order(self, list_name: str, index: int) -> LedgerResult:
        """Remove a queued order; removing a build refunds its cost.

        Raises:
            ValueError: If list_name is not "moves" or "builds"
            IndexError: If index is out of range
        """
        closed = self._closed()
        if closed is not None:
            return closed
        self.ledger.remove_order(list_name, index)
        self._stage()
        return LedgerResult.accepted()

    def clear_orders(self) -> LedgerResult:
        """Drop every queued order and the staged record of this turn."""
        closed = self._closed()
        if closed is not None:
            return closed
        self.ledger.clear_all()
        try:
            self.store.evict(self.game_id, self.snapshot.turn_number)
        except PersistenceError as e:
            logger.warning(f"Could not remove staged orders for game {self.game_id}: {e}")
        return LedgerResult.accepted()

    # ------------------------------------------------------------------
    # Server actions
    # ------------------------------------------------------------------

    async def submit_turn(self) -> dict[str, Any]:
        """Send the queued orders for this turn.

        The ledger and its staging record are kept so the orders stay
        visible until the turn resolves.

        Returns:
            Server response

        Raises:
            SubmissionError: If orders are not accepted now or the server
                refused them; nothing is changed
        """
        if not self.accepting_orders:
            reason = "turn already submitted" if self.submitted else f"game is {self.lifecycle}"
            raise SubmissionError(f"Cannot submit turn: {reason}")

        payload = self.ledger.to_payload()
        turn = self.snapshot.turn_number
        try:
            response = await self.api.submit_turn(self.game_id, payload)
        except (ApiError, ConnectionError, TimeoutError) as e:
            logger.warning(f"Turn {turn} submission for game {self.game_id} failed: {e}")
            raise SubmissionError(f"Failed to submit turn: {e}") from e

        self.submitted = True
        logger.info(
            f"Submitted turn {turn} for game {self.game_id}: "
            f"{len(payload['moves'])} moves, {len(payload['builds'])} builds"
        )
        return response

    def _deadline_reached(self) -> None:
        if not self.accepting_orders:
            return
        logger.info(f"Turn deadline reached for game {self.game_id}, submitting queued orders")
        self._auto_submit = ScheduledTask(self._submit_on_deadline(), name="auto-submit")

    async def _submit_on_deadline(self) -> None:
        try:
            await self.submit_turn()
        except SubmissionError as e:
            logger.error(f"Automatic submission failed: {e}")

    async def rename_planet(self, planet_id: int, name: str) -> str:
        """Rename one of the player's planets.

        Returns:
            The name as stored

        Raises:
            ValueError: If the name is empty, too long, or the planet is not yours
            ApiError: If the server refused the rename
        """
        trimmed = name.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        if len(trimmed) > MAX_PLANET_NAME_LENGTH:
            raise ValueError(f"Name cannot exceed {MAX_PLANET_NAME_LENGTH} characters")
        planet = self.snapshot.planet(planet_id) if self.snapshot is not None else None
        if planet is None or planet.owner_id != self.snapshot.player_id:
            raise ValueError(f"Planet {planet_id} is not yours")

        response = await self.api.rename_planet(planet_id, trimmed)
        stored = response.get("name", trimmed) if isinstance(response, dict) else trimmed
        self.reconciler.rename_planet_locally(planet_id, stored)
        logger.info(f"Renamed planet {planet_id} to {stored!r}")
        return stored

    def close(self) -> None:
        """Stop timers and abandon any playback."""
        self.countdown.cancel()
        if self._auto_submit is not None:
            self._auto_submit.cancel()
        self.sequencer.stop()
