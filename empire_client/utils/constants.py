"""Game catalog constants shared by the client.

Prices and stats mirror the server's turn validation so the ledger can
reject orders the server would refuse.
"""

# Build prices in credits (server-side turn validation catalog)
BUILDING_COSTS = {
    "mining": 10,
    "factory": 30,
    "fortification": 25,
}

MECH_COSTS = {
    "light": 2,
    "medium": 5,
    "heavy": 12,
    "assault": 20,
}

BUILDING_TYPES = tuple(BUILDING_COSTS)
MECH_TYPES = tuple(MECH_COSTS)

# Planet names longer than this are rejected by the server
MAX_PLANET_NAME_LENGTH = 30

# Reveal playback (seconds)
HEADER_DELAY = 0.4  # Headers and separators
ITEM_DELAY = 1.2  # Events and details

# Countdown refresh interval (seconds)
COUNTDOWN_TICK = 1.0


def cost_of(kind: str, subtype: str) -> int | None:
    """Look up the catalog price for a build.

    Args:
        kind: "building" or "mech"
        subtype: Building type or mech type

    Returns:
        Price in credits, or None if the subtype is not in the catalog
    """
    if kind == "mech":
        return MECH_COSTS.get(subtype)
    if kind == "building":
        return BUILDING_COSTS.get(subtype)
    return None
