"""Order data models for player commands."""

from dataclasses import dataclass
from typing import Any

BUILD_KINDS = ("building", "mech")


@dataclass(frozen=True)
class MoveOrder:
    """Move one mech to a neighbouring tile.

    At most one move order per mech is staged at a time; a newer order for
    the same mech replaces the older one.
    """

    mech_id: int
    from_x: int
    from_y: int
    to_x: int
    to_y: int

    def __post_init__(self):
        """Validate order data after initialization."""
        if (self.from_x, self.from_y) == (self.to_x, self.to_y):
            raise ValueError(f"Mech {self.mech_id} cannot move to its own tile")

    def to_wire(self) -> dict[str, Any]:
        """Convert to the server's order payload format."""
        return {
            "mechId": self.mech_id,
            "fromX": self.from_x,
            "fromY": self.from_y,
            "toX": self.to_x,
            "toY": self.to_y,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "MoveOrder":
        """Reconstruct from the server's order payload format."""
        return cls(
            mech_id=data["mechId"],
            from_x=data["fromX"],
            from_y=data["fromY"],
            to_x=data["toX"],
            to_y=data["toY"],
        )


@dataclass(frozen=True)
class BuildOrder:
    """Build a building or a mech on a planet.

    The cost is captured when the order is queued and refunded from this
    stored value, so catalog changes never desynchronize a refund from the
    original debit.
    """

    planet_id: int
    kind: str  # "building" or "mech"
    subtype: str  # Building type ("mining", ...) or mech type ("light", ...)
    cost: int

    def __post_init__(self):
        """Validate order data after initialization."""
        if self.kind not in BUILD_KINDS:
            raise ValueError(f"Invalid build kind: {self.kind} (must be 'building' or 'mech')")
        if not self.subtype:
            raise ValueError("subtype cannot be empty")
        if self.cost < 0:
            raise ValueError(f"Invalid cost: {self.cost} (must be >= 0)")

    def to_wire(self) -> dict[str, Any]:
        """Convert to the server's order payload format."""
        subtype_key = "mechType" if self.kind == "mech" else "buildingType"
        return {
            "planetId": self.planet_id,
            "type": self.kind,
            subtype_key: self.subtype,
            "cost": self.cost,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "BuildOrder":
        """Reconstruct from the server's order payload format."""
        kind = data["type"]
        subtype = data.get("mechType") if kind == "mech" else data.get("buildingType")
        return cls(
            planet_id=data["planetId"],
            kind=kind,
            subtype=subtype or "",
            cost=data["cost"],
        )
