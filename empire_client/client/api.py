"""Boundary to the game server.

GameApi is the only way the client talks to the server. Implementations
own transport and authentication; they raise ApiError for answered
failures and ConnectionError/TimeoutError for transport failures.

Snapshot fetches are retried with exponential backoff on transient errors
before they surface as ReconciliationError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import ClientConfig
from ..errors import ApiError, ReconciliationError
from ..models.snapshot import Snapshot

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = {429, 502, 503, 504}


class GameApi(ABC):
    """Server operations used by the client."""

    @abstractmethod
    async def get_game_state(self, game_id: int, observe: bool = False) -> dict[str, Any]:
        """Fetch the raw state payload of a game for the current player.

        Args:
            game_id: Game to fetch
            observe: Request the spectator view

        Raises:
            ApiError: If the server refused the request
        """
        pass

    @abstractmethod
    async def submit_turn(self, game_id: int, orders: dict[str, Any]) -> dict[str, Any]:
        """Submit the player's orders for the current turn.

        Args:
            game_id: Game to submit to
            orders: {"moves": [...], "builds": [...]} in wire format

        Returns:
            Server response, e.g. {"success": true, "allSubmitted": false}

        Raises:
            ApiError: If the server rejected the submission
        """
        pass

    @abstractmethod
    async def rename_planet(self, planet_id: int, name: str) -> dict[str, Any]:
        """Rename one of the player's planets.

        Raises:
            ApiError: If the server rejected the name
        """
        pass


def is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception is transient.

    Args:
        exception: Exception to check

    Returns:
        True for transport failures and overloaded-server responses
    """
    if isinstance(exception, (ConnectionError, TimeoutError)):
        return True
    if isinstance(exception, ApiError):
        return exception.status in RETRYABLE_STATUSES
    return False


async def fetch_snapshot(
    api: GameApi, game_id: int, config: ClientConfig | None = None, observe: bool = False
) -> Snapshot:
    """Fetch and validate the current Snapshot of a game.

    Args:
        api: Server boundary
        game_id: Game to fetch
        config: Retry settings
        observe: Request the spectator view

    Returns:
        Validated Snapshot

    Raises:
        ReconciliationError: If the fetch failed after retries or the payload
            did not validate
    """
    config = config or ClientConfig()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.fetch_attempts),
        wait=wait_exponential(multiplier=config.retry_backoff, max=10),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                payload = await api.get_game_state(game_id, observe=observe)
    except (ApiError, ConnectionError, TimeoutError) as e:
        raise ReconciliationError(f"Failed to fetch state of game {game_id}: {e}") from e

    try:
        return Snapshot.model_validate(payload)
    except ValidationError as e:
        raise ReconciliationError(f"Invalid state payload for game {game_id}: {e}") from e
