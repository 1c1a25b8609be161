"""Server boundary and client session."""

from .api import GameApi, fetch_snapshot, is_retryable_error
from .controller import GameController

__all__ = ["GameApi", "fetch_snapshot", "is_retryable_error", "GameController"]
