"""Player lifecycle phases."""

from dataclasses import dataclass
from enum import Enum


class LifecyclePhase(Enum):
    """Phase of the game from the current player's point of view."""

    LOBBY = "lobby"
    ACTIVE = "active"
    OBSERVER = "observer"
    FINISHED = "finished"


class ObserverReason(Enum):
    """Why a player stopped giving orders but keeps watching."""

    DEFEATED = "defeated"
    VICTOR = "victor"


@dataclass(frozen=True)
class LifecycleState:
    """Current lifecycle phase, with the observer reason when relevant."""

    phase: LifecyclePhase
    reason: ObserverReason | None = None

    def __post_init__(self):
        """Validate that only observers carry a reason."""
        if self.phase == LifecyclePhase.OBSERVER and self.reason is None:
            raise ValueError("Observer state requires a reason")
        if self.phase != LifecyclePhase.OBSERVER and self.reason is not None:
            raise ValueError(f"{self.phase.value} state cannot carry a reason")

    @property
    def is_observer(self) -> bool:
        return self.phase == LifecyclePhase.OBSERVER

    @property
    def accepts_orders(self) -> bool:
        """Only active players may queue and submit orders."""
        return self.phase == LifecyclePhase.ACTIVE

    def __str__(self) -> str:
        if self.reason is not None:
            return f"{self.phase.value}({self.reason.value})"
        return self.phase.value


LOBBY = LifecycleState(LifecyclePhase.LOBBY)
ACTIVE = LifecycleState(LifecyclePhase.ACTIVE)
FINISHED = LifecycleState(LifecyclePhase.FINISHED)
DEFEATED = LifecycleState(LifecyclePhase.OBSERVER, ObserverReason.DEFEATED)
VICTOR = LifecycleState(LifecyclePhase.OBSERVER, ObserverReason.VICTOR)
