from __future__ import annotations

from typing import Iterable, List, Set

from ..core.grid import Grid, is_open, is_valid_position
from ..core.organism import Organism, Position


def occupied_footprint(organism: Organism) -> List[Position]:
    px, py = organism.position
    return [Position(px + cell.relative_pos.x, py + cell.relative_pos.y) for cell in organism.cells]


def footprint_set(organism: Organism) -> Set[Position]:
    return set(occupied_footprint(organism))


def can_place(
    candidate: Organism,
    grid: Grid,
    organisms: Iterable[Organism],
    width: int,
    height: int,
) -> bool:
    """
    Check whether `candidate` fits at its current position.

    Fails when any footprint cell is off the grid, sits on a wall, or overlaps
    a cell of any other organism. Organisms sharing the candidate's id are
    skipped so a moving organism never collides with itself.
    """

    positions = occupied_footprint(candidate)
    for pos in positions:
        if not is_valid_position(pos.x, pos.y, width, height):
            return False
        if not is_open(grid, pos):
            return False

    for other in organisms:
        if other.id == candidate.id:
            continue
        for other_pos in occupied_footprint(other):
            for pos in positions:
                if pos == other_pos:
                    return False
    return True
