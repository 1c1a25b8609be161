"""Staging Store: durable persistence of the Order Ledger.

One record per (game_id, turn_number) holds the orders staged for that turn,
so a reload does not lose them. A separate "last seen turn" marker per game
tells the client whether a turn summary is owed on load.

Malformed or unreadable records are logged and treated as absent. Stale
records are evicted by the Reconciler when it sees the turn advance; there
is no background sweep.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..engine.ledger import OrderLedger
from ..errors import PersistenceError
from ..models.order import BuildOrder, MoveOrder
from .kv import KeyValueStore

logger = logging.getLogger(__name__)

RECORD_VERSION = 1


class StagingRecord(BaseModel):
    """Serialized ledger for one game turn."""

    version: int = RECORD_VERSION
    game_id: int
    turn_number: int
    server_credits: int
    speculative_credits: int
    moves: list[dict[str, Any]] = Field(default_factory=list)
    builds: list[dict[str, Any]] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def staging_key(game_id: int, turn_number: int) -> str:
    return f"staged_orders:{game_id}:{turn_number}"


def last_seen_key(game_id: int) -> str:
    return f"last_seen_turn:{game_id}"


class StagingStore:
    """Turn-scoped persistence for staged orders."""

    def __init__(self, kv: KeyValueStore):
        """Initialize store.

        Args:
            kv: Backend holding the records
        """
        self.kv = kv

    def save(self, game_id: int, turn_number: int, ledger: OrderLedger) -> None:
        """Write the ledger for (game_id, turn_number), replacing any previous record.

        Raises:
            PersistenceError: If the backend cannot be written
        """
        record = StagingRecord(
            game_id=game_id,
            turn_number=turn_number,
            server_credits=ledger.server_credits,
            speculative_credits=ledger.speculative_credits,
            moves=[m.to_wire() for m in ledger.moves],
            builds=[b.to_wire() for b in ledger.builds],
        )
        self.kv.set(staging_key(game_id, turn_number), record.model_dump_json())

    def load(self, game_id: int, turn_number: int) -> OrderLedger | None:
        """Read the staged ledger for (game_id, turn_number).

        Returns:
            Restored ledger, or None if there is no usable record
        """
        try:
            return self._load(game_id, turn_number)
        except PersistenceError as e:
            logger.warning(f"Ignoring staged orders for game {game_id} turn {turn_number}: {e}")
            return None

    def _load(self, game_id: int, turn_number: int) -> OrderLedger | None:
        raw = self.kv.get(staging_key(game_id, turn_number))
        if raw is None:
            return None

        try:
            record = StagingRecord.model_validate_json(raw)
            moves = [MoveOrder.from_wire(m) for m in record.moves]
            builds = [BuildOrder.from_wire(b) for b in record.builds]
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed staging record: {e}") from e

        if record.version != RECORD_VERSION:
            raise PersistenceError(f"Unsupported staging record version {record.version}")
        if (record.game_id, record.turn_number) != (game_id, turn_number):
            raise PersistenceError(
                f"Record belongs to game {record.game_id} turn {record.turn_number}"
            )

        ledger = OrderLedger(server_credits=record.server_credits)
        ledger.restore(moves, builds)
        if ledger.speculative_credits != record.speculative_credits:
            logger.warning(
                f"Staged credits for game {game_id} turn {turn_number} were "
                f"{record.speculative_credits}, recomputed {ledger.speculative_credits}"
            )
        return ledger

    def evict(self, game_id: int, turn_number: int) -> bool:
        """Remove the record for (game_id, turn_number).

        Returns:
            True if a record was removed
        """
        removed = self.kv.delete(staging_key(game_id, turn_number))
        if removed:
            logger.debug(f"Evicted staged orders for game {game_id} turn {turn_number}")
        return removed

    def staged_turns(self, game_id: int) -> list[int]:
        """Turn numbers that currently have a staging record for this game."""
        prefix = staging_key(game_id, 0).rsplit(":", 1)[0] + ":"
        turns = []
        for key in self.kv.keys(prefix):
            suffix = key[len(prefix):]
            if suffix.isdigit():
                turns.append(int(suffix))
        return sorted(turns)

    def get_last_seen_turn(self, game_id: int) -> int | None:
        """Last turn number this client applied for the game, if recorded."""
        try:
            raw = self.kv.get(last_seen_key(game_id))
        except PersistenceError as e:
            logger.warning(f"Ignoring last seen turn for game {game_id}: {e}")
            return None
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed last seen turn for game {game_id}: {raw!r}")
            return None

    def set_last_seen_turn(self, game_id: int, turn_number: int) -> None:
        self.kv.set(last_seen_key(game_id), str(turn_number))
