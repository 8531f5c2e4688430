from __future__ import annotations

from enum import Enum
from typing import List, Sequence

from ..core.organism import BODY_CELL_TYPES, MAX_ORGANISM_CELLS, OrganismCell, random_direction
from ..core.rng import DeterministicRng

MIN_CELLS_FOR_REMOVAL = 3


class MutationKind(Enum):
    ADD = 0
    REMOVE = 1
    CHANGE_TYPE = 2


_KINDS = (MutationKind.ADD, MutationKind.REMOVE, MutationKind.CHANGE_TYPE)


def copy_cells(cells: Sequence[OrganismCell]) -> List[OrganismCell]:
    return [cell.copy() for cell in cells]


def mutate(cells: Sequence[OrganismCell], mutation_rate: float, rng: DeterministicRng) -> List[OrganismCell]:
    """Return a fresh cell layout for an offspring; the parent's cells are never touched."""
    new_cells = copy_cells(cells)
    if rng.next_float() >= mutation_rate:
        return new_cells

    kind = rng.choice(_KINDS)
    if kind is MutationKind.ADD:
        _add_cell(new_cells, rng)
    elif kind is MutationKind.REMOVE:
        if len(new_cells) >= MIN_CELLS_FOR_REMOVAL:
            del new_cells[rng.next_int(len(new_cells))]
    else:
        target = new_cells[rng.next_int(len(new_cells))]
        target.type = rng.choice(BODY_CELL_TYPES)
    return new_cells


def _add_cell(cells: List[OrganismCell], rng: DeterministicRng) -> None:
    if len(cells) >= MAX_ORGANISM_CELLS:
        return
    anchor = cells[rng.next_int(len(cells))]
    step = random_direction(rng).unit
    candidate = anchor.relative_pos.offset(step.x, step.y)
    if any(cell.relative_pos == candidate for cell in cells):
        return
    cells.append(OrganismCell(rng.choice(BODY_CELL_TYPES), candidate))
