"""Distance calculations for the game grid."""


def chebyshev_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    """Calculate Chebyshev distance between two tiles.

    Chebyshev distance is the maximum absolute difference of coordinates.
    A mech moves one tile per turn in any of the eight directions, so
    a destination is reachable this turn exactly when the distance is 1.

    Args:
        x1: X coordinate of first tile
        y1: Y coordinate of first tile
        x2: X coordinate of second tile
        y2: Y coordinate of second tile

    Returns:
        Chebyshev distance between the two tiles

    Examples:
        >>> chebyshev_distance(5, 5, 6, 6)
        1  # Diagonal neighbour
        >>> chebyshev_distance(5, 5, 7, 5)
        2  # Two tiles away, not reachable in one turn
    """
    return max(abs(x2 - x1), abs(y2 - y1))
