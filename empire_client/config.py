"""Client configuration.

Defaults can be overridden through environment variables:
    EMPIRE_CLIENT_STAGING_BACKEND: "memory" or "file" (default: "file")
    EMPIRE_CLIENT_STAGING_PATH: Directory for staged orders (default: "staging")
    EMPIRE_CLIENT_HEADER_DELAY: Reveal delay after headers, seconds
    EMPIRE_CLIENT_ITEM_DELAY: Reveal delay after events and details, seconds
    EMPIRE_CLIENT_COUNTDOWN_TICK: Countdown refresh interval, seconds
    EMPIRE_CLIENT_FETCH_ATTEMPTS: Attempts per snapshot fetch
    EMPIRE_CLIENT_RETRY_BACKOFF: Exponential backoff multiplier, seconds
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

from .utils.constants import COUNTDOWN_TICK, HEADER_DELAY, ITEM_DELAY

logger = logging.getLogger(__name__)

ENV_PREFIX = "EMPIRE_CLIENT_"


class StagingBackend(Enum):
    """Available staging store backends."""

    MEMORY = "memory"
    FILE = "file"


@dataclass(frozen=True)
class ClientConfig:
    """Tunable settings for one client session."""

    staging_backend: StagingBackend = StagingBackend.FILE
    staging_path: str = "staging"
    header_delay: float = HEADER_DELAY
    item_delay: float = ITEM_DELAY
    countdown_tick: float = COUNTDOWN_TICK
    fetch_attempts: int = 3
    retry_backoff: float = 1.0

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.fetch_attempts < 1:
            raise ValueError(f"Invalid fetch_attempts: {self.fetch_attempts} (must be >= 1)")
        for name in ("header_delay", "item_delay", "retry_backoff"):
            if getattr(self, name) < 0:
                raise ValueError(f"Invalid {name}: {getattr(self, name)} (must be >= 0)")
        if self.countdown_tick <= 0:
            raise ValueError(f"Invalid countdown_tick: {self.countdown_tick} (must be > 0)")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {ENV_PREFIX}{name}={raw!r}: not a number")
        return default


def get_staging_backend() -> StagingBackend:
    """Get configured staging backend from environment."""
    backend_str = os.environ.get(ENV_PREFIX + "STAGING_BACKEND", "file").lower()
    if backend_str == "memory":
        return StagingBackend.MEMORY
    return StagingBackend.FILE


def get_client_config() -> ClientConfig:
    """Build a ClientConfig from defaults and environment overrides."""
    defaults = ClientConfig()
    return ClientConfig(
        staging_backend=get_staging_backend(),
        staging_path=os.environ.get(ENV_PREFIX + "STAGING_PATH", defaults.staging_path),
        header_delay=_env_float("HEADER_DELAY", defaults.header_delay),
        item_delay=_env_float("ITEM_DELAY", defaults.item_delay),
        countdown_tick=_env_float("COUNTDOWN_TICK", defaults.countdown_tick),
        fetch_attempts=int(_env_float("FETCH_ATTEMPTS", defaults.fetch_attempts)),
        retry_backoff=_env_float("RETRY_BACKOFF", defaults.retry_backoff),
    )
