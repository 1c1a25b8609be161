"""Authoritative game state as seen by one player.

A Snapshot is validated from the server's `/games/{id}/state` payload and
replaced wholesale on every fetch. The only local edits are narrow ones
(a planet rename) made through `model_copy`, which the next fetch discards.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from .combat_log import CombatLogEntry, WireModel, valid_combat_log_rows


class GameStatus(str, Enum):
    """Server-side game status."""

    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class Building(WireModel):
    """A building on a planet."""

    id: int | None = None
    type: str
    hp: int = 0
    max_hp: int | None = None


class Planet(WireModel):
    """A visible planet. Planet rows arrive with snake_case keys."""

    id: int
    name: str | None = None
    x: int
    y: int
    owner_id: int | None = None
    base_income: int = 0
    buildings: list[Building] = Field(default_factory=list)


class Mech(WireModel):
    """A visible mech."""

    id: int
    owner_id: int | None = None
    type: str
    hp: int
    max_hp: int
    x: int
    y: int


class PlayerSummary(WireModel):
    """Public information about one player in the game."""

    id: int
    player_number: int | None = None
    display_name: str | None = None
    empire_name: str | None = None
    empire_color: str | None = None
    is_eliminated: bool = False
    is_ai: bool = False
    has_submitted_turn: bool = False
    planet_count: int = 0
    mech_count: int = 0

    @property
    def label(self) -> str:
        """Best available display name."""
        return self.empire_name or self.display_name or f"Player {self.id}"


class Snapshot(WireModel):
    """One point-in-time view of server truth for the current player."""

    game_id: int
    name: str = ""
    grid_size: int = 25
    turn_number: int = Field(validation_alias=AliasChoices("turnNumber", "currentTurn", "turn_number"))
    status: GameStatus
    turn_deadline: datetime | None = None
    player_id: int | None = None
    credits: int = 0
    income: int = 0
    income_breakdown: dict[str, Any] = Field(default_factory=dict)
    has_submitted_turn: bool = False
    is_observer: bool = False
    is_eliminated: bool = False
    is_victor: bool = False
    winner_id: int | None = None
    players: list[PlayerSummary] = Field(default_factory=list)
    planets: list[Planet] = Field(default_factory=list)
    mechs: list[Mech] = Field(default_factory=list)
    visible_tiles: list[str] = Field(default_factory=list)
    combat_logs: list[CombatLogEntry] = Field(default_factory=list)

    @field_validator("combat_logs", mode="before")
    @classmethod
    def drop_malformed_logs(cls, v: Any) -> Any:
        """Validate log rows one by one so a bad row cannot sink the snapshot."""
        if isinstance(v, list):
            return valid_combat_log_rows(v)
        return v

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    def planet(self, planet_id: int) -> Planet | None:
        return next((p for p in self.planets if p.id == planet_id), None)

    def mech(self, mech_id: int) -> Mech | None:
        return next((m for m in self.mechs if m.id == mech_id), None)

    def player_name(self, player_id: int | None) -> str:
        """Display name for a player id, falling back to a generic label."""
        if player_id is None:
            return "Neutral"
        if player_id == self.player_id:
            return "You"
        for player in self.players:
            if player.id == player_id:
                return player.label
        return f"Player {player_id}"

    def buildings_by_planet(self) -> dict[int, set[str]]:
        """Map each owned planet to the building types already standing on it."""
        return {
            p.id: {b.type for b in p.buildings}
            for p in self.planets
            if self.player_id is not None and p.owner_id == self.player_id
        }

    def with_planet_name(self, planet_id: int, name: str) -> "Snapshot":
        """Return a copy with one planet renamed locally."""
        planets = [
            p.model_copy(update={"name": name}) if p.id == planet_id else p
            for p in self.planets
        ]
        return self.model_copy(update={"planets": planets})
