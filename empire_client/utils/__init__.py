"""Utility functions and constants for the Empire client."""

from .constants import (
    BUILDING_COSTS,
    BUILDING_TYPES,
    COUNTDOWN_TICK,
    HEADER_DELAY,
    ITEM_DELAY,
    MAX_PLANET_NAME_LENGTH,
    MECH_COSTS,
    MECH_TYPES,
    cost_of,
)
from .distance import chebyshev_distance
from .scheduling import ScheduledTask, schedule_repeating

__all__ = [
    "BUILDING_COSTS",
    "BUILDING_TYPES",
    "COUNTDOWN_TICK",
    "HEADER_DELAY",
    "ITEM_DELAY",
    "MAX_PLANET_NAME_LENGTH",
    "MECH_COSTS",
    "MECH_TYPES",
    "cost_of",
    "chebyshev_distance",
    "ScheduledTask",
    "schedule_repeating",
]
