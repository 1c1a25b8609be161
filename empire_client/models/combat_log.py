"""Typed combat-log entries emitted by turn resolution.

The server records every resolved event as a combat-log row with a
`logType` and a `detailedLog` payload whose shape depends on that type.
Each type gets its own pydantic model here, and entries are validated on
ingest through a discriminated union, so the rest of the client never
checks optional fields ad hoc.

Non-participants receive `detailedLog: null`, which every variant accepts.
"""

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

Side = Literal["attacker", "defender", "fortification"]


class WireModel(BaseModel):
    """Base for server payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True
    )


# ========== Battle payload ==========


class AttackRoll(WireModel):
    """One unit's attack roll in a combat round."""

    side: Side
    mech_type: str | None = None  # None for the fortification
    roll: int


class DamageLine(WireModel):
    """Damage applied to one unit, with the hit points it has left."""

    side: Side
    target: str
    amount: int
    hp_remaining: int


class DestroyedLine(WireModel):
    """A unit destroyed during a round."""

    side: Side
    target: str


class BattleRound(WireModel):
    """All rolls, damage and losses of one combat round."""

    round: int
    attacks: list[AttackRoll] = Field(default_factory=list)
    damage: list[DamageLine] = Field(default_factory=list)
    destroyed: list[DestroyedLine] = Field(default_factory=list)


class CaptureInfo(WireModel):
    """Planet ownership change caused by a battle."""

    planet_id: int | None = None
    planet_name: str | None = None
    previous_owner_id: int | None = None
    new_owner_id: int | None = None


class MechStatus(WireModel):
    """A surviving mech after the battle."""

    owner_id: int | None = None
    mech_type: str
    hp: int
    max_hp: int


class FortificationStatus(WireModel):
    """The defending fortification after the battle."""

    hp: int
    max_hp: int
    destroyed: bool = False


class BattleDetail(WireModel):
    """Full battle transcript, only sent to participants."""

    rounds: list[BattleRound] = Field(default_factory=list)
    outcome: Literal["attackers", "defenders", "stalemate"] | None = None
    capture_info: CaptureInfo | None = None
    final_mech_status: list[MechStatus] = Field(default_factory=list)
    final_fortification_status: FortificationStatus | None = None


# ========== Economy and territory payloads ==========


class IncomeDetail(WireModel):
    amount: int
    breakdown: dict[str, int] = Field(default_factory=dict)


class BuildMechDetail(WireModel):
    mech_type: str
    planet_name: str | None = None


class BuildBuildingDetail(WireModel):
    building_type: str
    planet_name: str | None = None


class TerritoryDetail(WireModel):
    planet_name: str | None = None
    previous_owner_id: int | None = None
    new_owner_id: int | None = None


class RepairEntry(WireModel):
    mech_id: int | None = None
    mech_type: str
    amount: int
    hp: int
    max_hp: int


class RepairDetail(WireModel):
    repairs: list[RepairEntry] = Field(default_factory=list)


class MaintenanceDetail(WireModel):
    cost: int
    mech_count: int = 0


class DamagedMech(WireModel):
    mech_id: int | None = None
    mech_type: str
    damage: int
    hp_remaining: int
    destroyed: bool = False


class MaintenanceFailureDetail(WireModel):
    shortfall: int = 0
    damaged_mechs: list[DamagedMech] = Field(default_factory=list)


class DefeatDetail(WireModel):
    reason: str | None = None


class VictoryDetail(WireModel):
    message: str | None = None


class PlayerDefeatedDetail(WireModel):
    player_id: int | None = None
    player_name: str | None = None


class GameWonDetail(WireModel):
    winner_id: int | None = None
    winner_name: str | None = None


# ========== Log entries ==========


class LogEntryBase(WireModel):
    """Fields shared by every combat-log row."""

    id: int | None = None
    turn_number: int
    x: int | None = None
    y: int | None = None
    participants: list[int] = Field(default_factory=list)
    is_participant: bool = False

    @property
    def location(self) -> str:
        """Tile coordinates as "(x, y)", or "" when the event has none."""
        if self.x is None or self.y is None:
            return ""
        return f"({self.x}, {self.y})"


class BattleLog(LogEntryBase):
    log_type: Literal["battle"]
    winner_id: int | None = None
    attacker_id: int | None = None
    defender_id: int | None = None
    attacker_casualties: int = 0
    defender_casualties: int = 0
    detailed_log: BattleDetail | None = None


class IncomeLog(LogEntryBase):
    log_type: Literal["income"]
    detailed_log: IncomeDetail | None = None


class BuildMechLog(LogEntryBase):
    log_type: Literal["build_mech"]
    detailed_log: BuildMechDetail | None = None


class BuildBuildingLog(LogEntryBase):
    log_type: Literal["build_building"]
    detailed_log: BuildBuildingDetail | None = None


class CaptureLog(LogEntryBase):
    log_type: Literal["capture"]
    winner_id: int | None = None
    detailed_log: TerritoryDetail | None = None


class PlanetLostLog(LogEntryBase):
    log_type: Literal["planet_lost"]
    detailed_log: TerritoryDetail | None = None


class RepairLog(LogEntryBase):
    log_type: Literal["repair"]
    detailed_log: RepairDetail | None = None


class MaintenanceLog(LogEntryBase):
    log_type: Literal["maintenance"]
    detailed_log: MaintenanceDetail | None = None


class MaintenanceFailureLog(LogEntryBase):
    log_type: Literal["maintenance_failure"]
    detailed_log: MaintenanceFailureDetail | None = None


class DefeatLog(LogEntryBase):
    log_type: Literal["defeat"]
    detailed_log: DefeatDetail | None = None


class VictoryLog(LogEntryBase):
    log_type: Literal["victory"]
    detailed_log: VictoryDetail | None = None


class PlayerDefeatedLog(LogEntryBase):
    log_type: Literal["player_defeated"]
    detailed_log: PlayerDefeatedDetail | None = None


class GameWonLog(LogEntryBase):
    log_type: Literal["game_won"]
    detailed_log: GameWonDetail | None = None


class TurnStartLog(LogEntryBase):
    log_type: Literal["turn_start"]
    detailed_log: dict[str, Any] | None = None


CombatLogEntry = Annotated[
    Union[
        BattleLog,
        IncomeLog,
        BuildMechLog,
        BuildBuildingLog,
        CaptureLog,
        PlanetLostLog,
        RepairLog,
        MaintenanceLog,
        MaintenanceFailureLog,
        DefeatLog,
        VictoryLog,
        PlayerDefeatedLog,
        GameWonLog,
        TurnStartLog,
    ],
    Field(discriminator="log_type"),
]

_ENTRY_ADAPTER: TypeAdapter = TypeAdapter(CombatLogEntry)


def parse_combat_log(data: Any) -> CombatLogEntry:
    """Validate one raw combat-log row.

    Raises:
        ValidationError: If the row has an unknown logType or a payload that
            does not match its type's schema
    """
    return _ENTRY_ADAPTER.validate_python(data)


def valid_combat_log_rows(rows: list[Any]) -> list[Any]:
    """Filter raw combat-log rows down to the ones that validate.

    A single bad row must not make the whole snapshot unusable, so invalid
    rows are logged and skipped.
    """
    entries = []
    for row in rows:
        try:
            parse_combat_log(row)
            entries.append(row)
        except ValidationError as e:
            log_type = row.get("logType") if isinstance(row, dict) else None
            logger.warning(f"Dropping malformed combat log entry (logType={log_type}): {e}")
    return entries
