"""Turn summary construction.

Flattens the combat-log entries of one resolved turn into the ordered list
of RevealItems the Reveal Sequencer plays back:

1. Battles, each expanded round by round, then its outcome, faction status
   lines and the capture it caused
2. Separator ("Start of Turn N+1" or "Game Over")
3. Income
4. Maintenance, then a critical-failure block with per-mech damage
5. Construction
6. Repairs, one item per repaired mech
7. Territory: captures, then losses
8. Game status: eliminations, defeat, game won, victory

Every group that has entries starts with a header item. A turn with no
entries yields a single placeholder item. The opening playback of a game
that just started has no battles, begins with "Start of Turn N" and never
uses the placeholder.
"""

from collections.abc import Callable
from itertools import groupby

from ..models.combat_log import (
    BattleLog,
    BuildBuildingLog,
    BuildMechLog,
    CaptureLog,
    CombatLogEntry,
    DefeatLog,
    GameWonLog,
    IncomeLog,
    MaintenanceFailureLog,
    MaintenanceLog,
    PlanetLostLog,
    PlayerDefeatedLog,
    RepairLog,
    VictoryLog,
)
from ..models.reveal import RevealItem, RevealKind

NameResolver = Callable[[int | None], str]

REPORT_EMOJIS = {
    "battle": "⚔️",
    "income": "💰",
    "maintenance": "🔧",
    "maintenance_failure": "⚠️",
    "construction": "🏗️",
    "repair": "🩹",
    "territory": "🚩",
    "status": "🏆",
}

EMPTY_TURN_MESSAGE = "No events were recorded for this turn."

GAME_STATUS_ORDER = ("player_defeated", "defeat", "game_won", "victory")


def default_names(player_id: int | None) -> str:
    return "Neutral" if player_id is None else f"Player {player_id}"


def _header(text: str) -> RevealItem:
    return RevealItem(RevealKind.HEADER, text)


def _event(text: str, log_type: str) -> RevealItem:
    return RevealItem(RevealKind.EVENT, text, log_type)


def _detail(text: str, log_type: str) -> RevealItem:
    return RevealItem(RevealKind.DETAIL, text, log_type)


def _at(entry: CombatLogEntry) -> str:
    return f" at {entry.location}" if entry.location else ""


# ========== Battles ==========


def battle_items(battle: BattleLog, names: NameResolver) -> list[RevealItem]:
    """Expand one battle into detail lines, outcome, status lines and capture.

    Args:
        battle: Battle log entry
        names: Maps player ids to display names

    Returns:
        Reveal items for this battle, in playback order
    """
    items: list[RevealItem] = []
    attacker = names(battle.attacker_id)
    defender = names(battle.defender_id)
    detail = battle.detailed_log

    if detail is not None:
        items.append(_detail(f"Battle{_at(battle)}: {attacker} attacks {defender}", "battle"))
        for rnd in detail.rounds:
            items.append(_detail(f"--- Round {rnd.round} ---", "battle"))
            for attack in rnd.attacks:
                unit = attack.mech_type or "fortification"
                side = "Fortification" if attack.side == "fortification" else attack.side.title()
                label = side if attack.side == "fortification" else f"{side} {unit}"
                items.append(_detail(f"{label} rolls {attack.roll}", "battle"))
            for hit in rnd.damage:
                items.append(
                    _detail(
                        f"{hit.side.title()} {hit.target} takes {hit.amount} damage "
                        f"({hit.hp_remaining} HP remaining)",
                        "battle",
                    )
                )
            for lost in rnd.destroyed:
                items.append(_detail(f"{lost.side.title()} {lost.target} destroyed!", "battle"))

    items.append(_event(_battle_outcome(battle, names), "battle"))

    if detail is not None:
        items.extend(_faction_status(battle, names))
        capture = detail.capture_info
        if capture is not None and capture.new_owner_id != capture.previous_owner_id:
            planet = capture.planet_name or f"the planet{_at(battle)}"
            items.append(
                _event(f"{names(capture.new_owner_id)} captured {planet}!", "battle")
            )

    return items


def _battle_outcome(battle: BattleLog, names: NameResolver) -> str:
    emoji = REPORT_EMOJIS["battle"]
    losses = (
        f"Losses: attackers {battle.attacker_casualties}, "
        f"defenders {battle.defender_casualties}"
    )
    if battle.winner_id is None:
        return f"{emoji} Battle{_at(battle)} ended with no victor. {losses}"
    return f"{emoji} {names(battle.winner_id)} won the battle{_at(battle)}. {losses}"


def _faction_status(battle: BattleLog, names: NameResolver) -> list[RevealItem]:
    detail = battle.detailed_log
    items = []
    by_owner = sorted(detail.final_mech_status, key=lambda m: (m.owner_id is None, m.owner_id or 0))
    for owner_id, mechs in groupby(by_owner, key=lambda m: m.owner_id):
        mechs = list(mechs)
        units = ", ".join(f"{m.mech_type} {m.hp}/{m.max_hp} HP" for m in mechs)
        plural = "mech" if len(mechs) == 1 else "mechs"
        items.append(
            _detail(f"{names(owner_id)}: {len(mechs)} {plural} remaining ({units})", "battle")
        )
    fort = detail.final_fortification_status
    if fort is not None:
        if fort.destroyed or fort.hp <= 0:
            items.append(_detail("Fortification destroyed", "battle"))
        else:
            items.append(_detail(f"Fortification holds ({fort.hp}/{fort.max_hp} HP)", "battle"))
    return items


# ========== One-line descriptions ==========


def describe_entry(entry: CombatLogEntry, names: NameResolver = default_names) -> str:
    """Summarize any non-battle entry as a single line.

    Also used by the persistent event log, which shows one line per entry.
    """
    if isinstance(entry, BattleLog):
        return _battle_outcome(entry, names)

    if isinstance(entry, IncomeLog):
        if entry.detailed_log is None:
            return f"{REPORT_EMOJIS['income']} Income collected"
        text = f"{REPORT_EMOJIS['income']} +{entry.detailed_log.amount} credits income"
        breakdown = entry.detailed_log.breakdown
        if breakdown:
            parts = ", ".join(f"{k} {v}" for k, v in breakdown.items())
            text += f" ({parts})"
        return text

    if isinstance(entry, MaintenanceLog):
        if entry.detailed_log is None:
            return f"{REPORT_EMOJIS['maintenance']} Maintenance paid"
        d = entry.detailed_log
        plural = "mech" if d.mech_count == 1 else "mechs"
        return f"{REPORT_EMOJIS['maintenance']} Paid {d.cost} credits upkeep for {d.mech_count} {plural}"

    if isinstance(entry, MaintenanceFailureLog):
        shortfall = entry.detailed_log.shortfall if entry.detailed_log else 0
        return f"{REPORT_EMOJIS['maintenance_failure']} Could not pay upkeep (short {shortfall} credits)"

    if isinstance(entry, BuildMechLog):
        if entry.detailed_log is None:
            return f"{REPORT_EMOJIS['construction']} Mech built{_at(entry)}"
        where = entry.detailed_log.planet_name or entry.location
        return f"{REPORT_EMOJIS['construction']} Built {entry.detailed_log.mech_type} mech at {where}"

    if isinstance(entry, BuildBuildingLog):
        if entry.detailed_log is None:
            return f"{REPORT_EMOJIS['construction']} Building completed{_at(entry)}"
        where = entry.detailed_log.planet_name or entry.location
        return f"{REPORT_EMOJIS['construction']} Built {entry.detailed_log.building_type} on {where}"

    if isinstance(entry, RepairLog):
        return f"{REPORT_EMOJIS['repair']} Mechs repaired{_at(entry)}"

    if isinstance(entry, CaptureLog):
        planet = (entry.detailed_log and entry.detailed_log.planet_name) or f"planet{_at(entry)}"
        return f"{REPORT_EMOJIS['territory']} {names(entry.winner_id)} captured {planet}"

    if isinstance(entry, PlanetLostLog):
        d = entry.detailed_log
        planet = (d and d.planet_name) or f"planet{_at(entry)}"
        if d is not None and d.new_owner_id is not None:
            return f"{REPORT_EMOJIS['territory']} Lost {planet} to {names(d.new_owner_id)}"
        return f"{REPORT_EMOJIS['territory']} Lost {planet}"

    if isinstance(entry, PlayerDefeatedLog):
        d = entry.detailed_log
        who = (d and d.player_name) or names(d.player_id if d else None)
        return f"{REPORT_EMOJIS['status']} {who} has been eliminated"

    if isinstance(entry, DefeatLog):
        reason = entry.detailed_log.reason if entry.detailed_log else None
        return f"{REPORT_EMOJIS['status']} You have been defeated" + (f": {reason}" if reason else "")

    if isinstance(entry, GameWonLog):
        d = entry.detailed_log
        who = (d and d.winner_name) or names(d.winner_id if d else None)
        return f"{REPORT_EMOJIS['status']} {who} has won the game"

    if isinstance(entry, VictoryLog):
        message = entry.detailed_log.message if entry.detailed_log else None
        return f"{REPORT_EMOJIS['status']} Victory!" + (f" {message}" if message else "")

    return f"{entry.log_type}{_at(entry)}"


# ========== Groups ==========


def _maintenance_items(
    paid: list[MaintenanceLog], failures: list[MaintenanceFailureLog], names: NameResolver
) -> list[RevealItem]:
    items = [_event(describe_entry(entry, names), "maintenance") for entry in paid]
    if failures:
        items.append(_header(f"{REPORT_EMOJIS['maintenance_failure']} Critical maintenance failure"))
        for failure in failures:
            detail = failure.detailed_log
            if detail is None or not detail.damaged_mechs:
                items.append(_detail(describe_entry(failure, names), "maintenance_failure"))
                continue
            for mech in detail.damaged_mechs:
                if mech.destroyed:
                    text = f"{mech.mech_type.title()} mech took {mech.damage} damage and was destroyed"
                else:
                    text = (
                        f"{mech.mech_type.title()} mech took {mech.damage} damage "
                        f"({mech.hp_remaining} HP remaining)"
                    )
                items.append(_detail(text, "maintenance_failure"))
    return items


def _repair_items(repairs: list[RepairLog], names: NameResolver) -> list[RevealItem]:
    items = []
    for entry in repairs:
        if entry.detailed_log is None or not entry.detailed_log.repairs:
            items.append(_event(describe_entry(entry, names), "repair"))
            continue
        for fix in entry.detailed_log.repairs:
            items.append(
                _event(
                    f"{REPORT_EMOJIS['repair']} {fix.mech_type.title()} mech repaired "
                    f"+{fix.amount} HP ({fix.hp}/{fix.max_hp})",
                    "repair",
                )
            )
    return items


def build_reveal_queue(
    logs: list[CombatLogEntry],
    turn_number: int,
    names: NameResolver = default_names,
    game_over: bool = False,
    opening: bool = False,
) -> list[RevealItem]:
    """Build the playback items for one resolved turn.

    Args:
        logs: Combat-log entries; only those of turn_number are used and
            turn_start markers are ignored
        turn_number: The resolved turn being summarized
        names: Maps player ids to display names
        game_over: Use a "Game Over" separator instead of "Start of Turn N+1"
        opening: The game just started; play "Start of Turn N" followed by
            any entries already recorded for turn N, with no battles

    Returns:
        Reveal items in strict playback order
    """
    entries = [
        log for log in logs if log.turn_number == turn_number and log.log_type != "turn_start"
    ]
    if not entries and not opening:
        return [RevealItem(RevealKind.EVENT, EMPTY_TURN_MESSAGE)]

    def of(cls):
        return [e for e in entries if isinstance(e, cls)]

    items: list[RevealItem] = []

    battles = [] if opening else of(BattleLog)
    if battles:
        items.append(_header(f"{REPORT_EMOJIS['battle']} Battles"))
        for battle in battles:
            items.extend(battle_items(battle, names))

    if opening:
        separator = f"Start of Turn {turn_number}"
    elif game_over:
        separator = "Game Over"
    else:
        separator = f"Start of Turn {turn_number + 1}"
    items.append(RevealItem(RevealKind.SEPARATOR, separator))

    income = of(IncomeLog)
    if income:
        items.append(_header(f"{REPORT_EMOJIS['income']} Income"))
        items.extend(_event(describe_entry(e, names), "income") for e in income)

    paid, failures = of(MaintenanceLog), of(MaintenanceFailureLog)
    if paid or failures:
        items.append(_header(f"{REPORT_EMOJIS['maintenance']} Maintenance"))
        items.extend(_maintenance_items(paid, failures, names))

    construction = [e for e in entries if isinstance(e, (BuildMechLog, BuildBuildingLog))]
    if construction:
        items.append(_header(f"{REPORT_EMOJIS['construction']} Construction"))
        items.extend(_event(describe_entry(e, names), e.log_type) for e in construction)

    repairs = of(RepairLog)
    if repairs:
        items.append(_header(f"{REPORT_EMOJIS['repair']} Repairs"))
        items.extend(_repair_items(repairs, names))

    territory = of(CaptureLog) + of(PlanetLostLog)
    if territory:
        items.append(_header(f"{REPORT_EMOJIS['territory']} Territory"))
        items.extend(_event(describe_entry(e, names), e.log_type) for e in territory)

    status = sorted(
        (e for e in entries if e.log_type in GAME_STATUS_ORDER),
        key=lambda e: GAME_STATUS_ORDER.index(e.log_type),
    )
    if status:
        items.append(_header(f"{REPORT_EMOJIS['status']} Game Status"))
        items.extend(_event(describe_entry(e, names), e.log_type) for e in status)

    return items
