"""Shared fixtures and state factories for client tests."""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from empire_client.config import ClientConfig, StagingBackend
from empire_client.errors import ApiError
from empire_client.models.snapshot import Snapshot
from empire_client.storage import MemoryKeyValueStore, StagingStore

GAME_ID = 12
PLAYER_ID = 1
ENEMY_ID = 2


def make_state(
    turn: int = 3,
    status: str = "active",
    credits: int = 100,
    combat_logs: list[dict[str, Any]] | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """Build a raw state payload shaped like the server's /state response."""
    state = {
        "gameId": GAME_ID,
        "name": "Test Game",
        "gridSize": 25,
        "currentTurn": turn,
        "status": status,
        "turnDeadline": None,
        "winnerId": None,
        "playerId": PLAYER_ID,
        "credits": credits,
        "income": 12,
        "incomeBreakdown": {"planets": 10, "mining": 2},
        "hasSubmittedTurn": False,
        "isEliminated": False,
        "isObserver": False,
        "isVictor": False,
        "players": [
            {"id": PLAYER_ID, "displayName": "alice", "empireName": "Red Empire"},
            {"id": ENEMY_ID, "displayName": "bob", "empireName": "Blue Empire"},
        ],
        "planets": [
            {
                "id": 1,
                "name": "Home",
                "x": 5,
                "y": 5,
                "owner_id": PLAYER_ID,
                "base_income": 5,
                "buildings": [{"id": 1, "type": "factory", "hp": 30, "max_hp": 30}],
            },
            {"id": 2, "name": "Outpost", "x": 8, "y": 8, "owner_id": PLAYER_ID, "buildings": []},
            {"id": 3, "name": "Far Rock", "x": 15, "y": 15, "owner_id": ENEMY_ID, "buildings": []},
        ],
        "mechs": [
            {"id": 7, "owner_id": PLAYER_ID, "type": "light", "hp": 4, "max_hp": 4, "x": 5, "y": 5},
            {"id": 9, "owner_id": ENEMY_ID, "type": "heavy", "hp": 12, "max_hp": 12, "x": 15, "y": 15},
        ],
        "visibleTiles": ["5,5", "8,8"],
        "combatLogs": combat_logs or [],
    }
    state.update(overrides)
    return state


def make_snapshot(**kwargs: Any) -> Snapshot:
    return Snapshot.model_validate(make_state(**kwargs))


# ========== Combat log rows ==========


def battle_row(turn: int = 3, capture: bool = True) -> dict[str, Any]:
    """A two-round battle in which one defending mech is destroyed."""
    detail: dict[str, Any] = {
        "rounds": [
            {
                "round": 1,
                "attacks": [
                    {"side": "attacker", "mechType": "heavy", "roll": 5},
                    {"side": "defender", "mechType": "light", "roll": 2},
                ],
                "damage": [{"side": "defender", "target": "light", "amount": 5, "hpRemaining": 0}],
                "destroyed": [{"side": "defender", "target": "light"}],
            },
            {
                "round": 2,
                "attacks": [{"side": "attacker", "mechType": "heavy", "roll": 4}],
                "damage": [],
                "destroyed": [],
            },
        ],
        "outcome": "attackers",
        "finalMechStatus": [{"ownerId": PLAYER_ID, "mechType": "heavy", "hp": 10, "maxHp": 12}],
    }
    if capture:
        detail["captureInfo"] = {
            "planetId": 4,
            "planetName": "Border World",
            "previousOwnerId": ENEMY_ID,
            "newOwnerId": PLAYER_ID,
        }
    return {
        "id": 100,
        "turnNumber": turn,
        "logType": "battle",
        "x": 9,
        "y": 9,
        "participants": [PLAYER_ID, ENEMY_ID],
        "isParticipant": True,
        "winnerId": PLAYER_ID,
        "attackerId": PLAYER_ID,
        "defenderId": ENEMY_ID,
        "attackerCasualties": 0,
        "defenderCasualties": 1,
        "detailedLog": detail,
    }


def log_row(log_type: str, turn: int = 3, detail: dict[str, Any] | None = None, **extra: Any):
    """A non-battle combat log row."""
    row = {
        "turnNumber": turn,
        "logType": log_type,
        "x": 5,
        "y": 5,
        "participants": [PLAYER_ID],
        "isParticipant": True,
        "detailedLog": detail,
    }
    row.update(extra)
    return row


def income_row(turn: int = 3, amount: int = 12) -> dict[str, Any]:
    return log_row("income", turn, {"amount": amount, "breakdown": {"planets": amount}})


def capture_row(turn: int = 3) -> dict[str, Any]:
    return log_row(
        "capture",
        turn,
        {"planetName": "Quiet Moon", "previousOwnerId": None, "newOwnerId": PLAYER_ID},
        winnerId=PLAYER_ID,
    )


# ========== Fakes ==========


class FakeGameApi:
    """In-process GameApi serving prepared state payloads."""

    def __init__(self, state: dict[str, Any] | None = None):
        self.state = state or make_state()
        self.failures: list[BaseException] = []
        self.submit_error: BaseException | None = None
        self.fetch_count = 0
        self.submissions: list[tuple[int, dict[str, Any]]] = []
        self.renames: list[tuple[int, str]] = []

    async def get_game_state(self, game_id: int, observe: bool = False) -> dict[str, Any]:
        self.fetch_count += 1
        if self.failures:
            raise self.failures.pop(0)
        return copy.deepcopy(self.state)

    async def submit_turn(self, game_id: int, orders: dict[str, Any]) -> dict[str, Any]:
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append((game_id, copy.deepcopy(orders)))
        return {"success": True, "allSubmitted": False}

    async def rename_planet(self, planet_id: int, name: str) -> dict[str, Any]:
        if len(name) > 30:
            raise ApiError("Name cannot exceed 30 characters", status=400)
        self.renames.append((planet_id, name))
        return {"success": True, "name": name}


def deadline_in(seconds: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(seconds=seconds)).isoformat()


@pytest.fixture
def fast_config():
    """Configuration with no playback delays and no retry backoff."""
    return ClientConfig(
        staging_backend=StagingBackend.MEMORY,
        header_delay=0,
        item_delay=0,
        countdown_tick=0.01,
        fetch_attempts=3,
        retry_backoff=0,
    )


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv):
    return StagingStore(kv)


@pytest.fixture
def api():
    return FakeGameApi()
