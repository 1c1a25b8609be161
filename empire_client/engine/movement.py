"""Move validation.

A mech moves one tile per turn to any of its eight neighbours, staying
inside the square grid.
"""

from ..errors import RejectReason
from ..utils.distance import chebyshev_distance


def check_move(
    from_x: int, from_y: int, to_x: int, to_y: int, grid_size: int
) -> RejectReason | None:
    """Check whether a move is legal this turn.

    Args:
        from_x: Current mech X coordinate
        from_y: Current mech Y coordinate
        to_x: Destination X coordinate
        to_y: Destination Y coordinate
        grid_size: Width and height of the grid

    Returns:
        None if the move is legal, otherwise the reason it is not
    """
    if not (0 <= to_x < grid_size and 0 <= to_y < grid_size):
        return RejectReason.OUT_OF_BOUNDS
    if chebyshev_distance(from_x, from_y, to_x, to_y) != 1:
        return RejectReason.NOT_ADJACENT
    return None
