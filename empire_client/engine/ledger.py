"""Order Ledger: local staging of unsubmitted orders.

The ledger holds the player's queued move and build orders for the current
turn and a speculative credit balance:

    speculative_credits == server_credits - sum(cost of queued builds)

Builds debit the balance when queued and refund their stored cost when
removed. Moves have no credit effect. Validation failures never raise; they
come back as a LedgerResult so the UI can show them inline.

The ledger does no I/O. Persistence goes through the Staging Store and
presentation listens to LedgerChange notifications.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import RejectReason
from ..models.order import BUILD_KINDS, BuildOrder, MoveOrder
from ..models.snapshot import Snapshot
from ..utils.constants import cost_of
from .movement import check_move

logger = logging.getLogger(__name__)

ORDER_LISTS = ("moves", "builds")


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a ledger operation."""

    ok: bool
    reason: RejectReason | None = None
    message: str = ""

    @classmethod
    def accepted(cls) -> "LedgerResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "LedgerResult":
        logger.debug(f"Order rejected ({reason.value}): {message}")
        return cls(ok=False, reason=reason, message=message)


class ChangeKind(Enum):
    """What happened to the ledger."""

    MOVE_ADDED = "move_added"
    MOVE_REMOVED = "move_removed"
    BUILD_ADDED = "build_added"
    BUILD_REMOVED = "build_removed"
    CLEARED = "cleared"
    RESET = "reset"
    RESTORED = "restored"


@dataclass(frozen=True)
class LedgerChange:
    """Notification sent to ledger listeners after every mutation."""

    kind: ChangeKind
    order: MoveOrder | BuildOrder | None = None

    @property
    def affects_movement(self) -> bool:
        """True when movement indicators on the map must be recomputed."""
        return self.kind in (
            ChangeKind.MOVE_ADDED,
            ChangeKind.MOVE_REMOVED,
            ChangeKind.CLEARED,
            ChangeKind.RESET,
            ChangeKind.RESTORED,
        )


LedgerListener = Callable[[LedgerChange], None]


class OrderLedger:
    """Queued orders for one turn plus speculative credit accounting."""

    def __init__(self, server_credits: int = 0, grid_size: int | None = None):
        """Initialize an empty ledger.

        Args:
            server_credits: Authoritative credit balance
            grid_size: Grid dimension used to validate moves, None to skip
                bounds checks until a snapshot is synced
        """
        self.moves: list[MoveOrder] = []
        self.builds: list[BuildOrder] = []
        self.server_credits = server_credits
        self.speculative_credits = server_credits
        self.grid_size = grid_size
        # Planet id -> building types standing on it; None until synced
        self._planet_buildings: dict[int, set[str]] | None = None
        self._listeners: list[LedgerListener] = []

    def __len__(self) -> int:
        return len(self.moves) + len(self.builds)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderLedger):
            return NotImplemented
        return (
            self.moves == other.moves
            and self.builds == other.builds
            and self.server_credits == other.server_credits
            and self.speculative_credits == other.speculative_credits
        )

    def __repr__(self) -> str:
        return (
            f"OrderLedger(moves={len(self.moves)}, builds={len(self.builds)}, "
            f"speculative_credits={self.speculative_credits})"
        )

    @property
    def is_empty(self) -> bool:
        return not self.moves and not self.builds

    @property
    def queued_cost(self) -> int:
        return sum(order.cost for order in self.builds)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: LedgerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LedgerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: ChangeKind, order: MoveOrder | BuildOrder | None = None) -> None:
        change = LedgerChange(kind=kind, order=order)
        for listener in list(self._listeners):
            listener(change)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def add_build(self, planet_id: int, kind: str, subtype: str, cost: int) -> LedgerResult:
        """Queue a build and debit its cost.

        Args:
            planet_id: Planet to build on
            kind: "building" or "mech"
            subtype: Building type or mech type
            cost: Price captured now and refunded verbatim on removal

        Returns:
            LedgerResult; on rejection the ledger is unchanged
        """
        if kind not in BUILD_KINDS or cost_of(kind, subtype) is None:
            return LedgerResult.rejected(
                RejectReason.UNKNOWN_SUBTYPE, f"Unknown {kind} type: {subtype}"
            )

        if self.speculative_credits < cost:
            return LedgerResult.rejected(
                RejectReason.INSUFFICIENT_CREDITS,
                f"Insufficient credits (need {cost}, have {self.speculative_credits})",
            )

        known_buildings = (
            self._planet_buildings.get(planet_id) if self._planet_buildings is not None else None
        )

        if kind == "mech":
            if any(b.kind == "mech" and b.planet_id == planet_id for b in self.builds):
                return LedgerResult.rejected(
                    RejectReason.ALREADY_QUEUED,
                    f"Planet {planet_id} already has a mech queued (factories build one per turn)",
                )
            if known_buildings is not None and "factory" not in known_buildings:
                return LedgerResult.rejected(
                    RejectReason.MISSING_FACTORY, f"Planet {planet_id} has no factory"
                )
        else:
            if any(
                b.kind == "building" and b.planet_id == planet_id and b.subtype == subtype
                for b in self.builds
            ):
                return LedgerResult.rejected(
                    RejectReason.ALREADY_QUEUED,
                    f"A {subtype} is already queued on planet {planet_id}",
                )
            if known_buildings is not None and subtype in known_buildings:
                return LedgerResult.rejected(
                    RejectReason.ALREADY_BUILT,
                    f"Planet {planet_id} already has a {subtype}",
                )

        order = BuildOrder(planet_id=planet_id, kind=kind, subtype=subtype, cost=cost)
        self.builds.append(order)
        self.speculative_credits -= cost
        self._notify(ChangeKind.BUILD_ADDED, order)
        return LedgerResult.accepted()

    def add_move(
        self, mech_id: int, from_: tuple[int, int], to: tuple[int, int]
    ) -> LedgerResult:
        """Queue a move, replacing any earlier move for the same mech.

        Args:
            mech_id: Mech to move
            from_: Current (x, y) of the mech
            to: Destination (x, y), must be a neighbouring tile

        Returns:
            LedgerResult; on rejection the ledger is unchanged
        """
        (from_x, from_y), (to_x, to_y) = from_, to
        if self.grid_size is not None:
            problem = check_move(from_x, from_y, to_x, to_y, self.grid_size)
            if problem is not None:
                return LedgerResult.rejected(
                    problem, f"Mech {mech_id} cannot move from {from_} to {to}"
                )
        elif from_ == to:
            return LedgerResult.rejected(
                RejectReason.NOT_ADJACENT, f"Mech {mech_id} is already at {to}"
            )

        order = MoveOrder(mech_id=mech_id, from_x=from_x, from_y=from_y, to_x=to_x, to_y=to_y)
        self.moves = [m for m in self.moves if m.mech_id != mech_id]
        self.moves.append(order)
        self._notify(ChangeKind.MOVE_ADDED, order)
        return LedgerResult.accepted()

    def move_for(self, mech_id: int) -> MoveOrder | None:
        return next((m for m in self.moves if m.mech_id == mech_id), None)

    def remove_order(self, list_name: str, index: int) -> None:
        """Remove one order. Build removals refund the stored cost.

        Raises:
            ValueError: If list_name is not "moves" or "builds"
            IndexError: If index is out of range
        """
        if list_name not in ORDER_LISTS:
            raise ValueError(f"Invalid order list: {list_name} (must be 'moves' or 'builds')")
        if index < 0:
            raise IndexError(f"Invalid order index: {index} (must be >= 0)")

        if list_name == "moves":
            order = self.moves.pop(index)
            self._notify(ChangeKind.MOVE_REMOVED, order)
        else:
            order = self.builds.pop(index)
            self.speculative_credits += order.cost
            self._notify(ChangeKind.BUILD_REMOVED, order)

    def clear_all(self) -> None:
        """Refund every queued build, then empty both lists."""
        if self.is_empty:
            return
        for order in self.builds:
            self.speculative_credits += order.cost
        self.builds = []
        self.moves = []
        self._notify(ChangeKind.CLEARED)

    # ------------------------------------------------------------------
    # Server synchronisation
    # ------------------------------------------------------------------

    def recompute_from_builds(self, server_credits: int) -> None:
        """Rebase the speculative balance on an authoritative credit value."""
        self.server_credits = server_credits
        self.speculative_credits = server_credits - self.queued_cost

    def sync_with_snapshot(self, snapshot: Snapshot) -> None:
        """Pick up credits, grid size and planet buildings from a snapshot."""
        self.grid_size = snapshot.grid_size
        self._planet_buildings = snapshot.buildings_by_planet()
        self.recompute_from_builds(snapshot.credits)

    def reset(self, server_credits: int) -> None:
        """Drop all orders without refund; the server has consumed them."""
        self.moves = []
        self.builds = []
        self.server_credits = server_credits
        self.speculative_credits = server_credits
        self._notify(ChangeKind.RESET)

    def restore(self, moves: list[MoveOrder], builds: list[BuildOrder]) -> None:
        """Replace the queued orders with previously staged ones."""
        self.moves = list(moves)
        self.builds = list(builds)
        self.speculative_credits = self.server_credits - self.queued_cost
        self._notify(ChangeKind.RESTORED)

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_payload(self) -> dict[str, Any]:
        """Orders in the server's submission format."""
        return {
            "moves": [m.to_wire() for m in self.moves],
            "builds": [b.to_wire() for b in self.builds],
        }
