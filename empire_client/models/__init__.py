"""Data models for the Empire client."""

from .combat_log import CombatLogEntry, parse_combat_log
from .lifecycle import LifecyclePhase, LifecycleState, ObserverReason
from .order import BuildOrder, MoveOrder
from .reveal import RevealItem, RevealKind
from .snapshot import Building, GameStatus, Mech, Planet, PlayerSummary, Snapshot

__all__ = [
    "CombatLogEntry",
    "parse_combat_log",
    "LifecyclePhase",
    "LifecycleState",
    "ObserverReason",
    "BuildOrder",
    "MoveOrder",
    "RevealItem",
    "RevealKind",
    "Building",
    "GameStatus",
    "Mech",
    "Planet",
    "PlayerSummary",
    "Snapshot",
]
