from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple

from .rng import DeterministicRng

MAX_ORGANISM_CELLS = 20


class CellType(str, Enum):
    EMPTY = "empty"
    FOOD = "food"
    WALL = "wall"
    MOUTH = "mouth"
    PRODUCER = "producer"
    MOVER = "mover"
    KILLER = "killer"


BODY_CELL_TYPES: tuple[CellType, ...] = (
    CellType.MOUTH,
    CellType.PRODUCER,
    CellType.MOVER,
    CellType.KILLER,
)


class Position(NamedTuple):
    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def unit(self) -> Position:
        return _DIRECTION_OFFSETS[self]


_DIRECTION_OFFSETS = {
    Direction.UP: Position(0, -1),
    Direction.DOWN: Position(0, 1),
    Direction.LEFT: Position(-1, 0),
    Direction.RIGHT: Position(1, 0),
}

DIRECTIONS: tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


def random_direction(rng: DeterministicRng) -> Direction:
    return rng.choice(DIRECTIONS)


@dataclass(slots=True)
class OrganismCell:
    type: CellType
    relative_pos: Position

    def copy(self) -> "OrganismCell":
        return OrganismCell(self.type, self.relative_pos)


def default_body() -> List[OrganismCell]:
    return [
        OrganismCell(CellType.MOUTH, Position(0, 0)),
        OrganismCell(CellType.MOVER, Position(1, 0)),
    ]


@dataclass(slots=True)
class Organism:
    id: int
    position: Position
    cells: List[OrganismCell] = field(default_factory=default_body)
    energy: int = 0
    age: int = 0
    direction: Direction = Direction.RIGHT
    move_counter: int = 0
    color: str = ""

    def clone(self) -> "Organism":
        return Organism(
            id=self.id,
            position=self.position,
            cells=[cell.copy() for cell in self.cells],
            energy=self.energy,
            age=self.age,
            direction=self.direction,
            move_counter=self.move_counter,
            color=self.color,
        )

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def has_mover(self) -> bool:
        return any(cell.type is CellType.MOVER for cell in self.cells)

    @property
    def reach(self) -> int:
        """Largest Manhattan distance of any cell from the organism origin."""
        return max(abs(cell.relative_pos.x) + abs(cell.relative_pos.y) for cell in self.cells)


def validate_organism(organism: Organism) -> None:
    if not organism.cells:
        raise ValueError(f"organism {organism.id} has no cells")
    if len(organism.cells) > MAX_ORGANISM_CELLS:
        raise ValueError(
            f"organism {organism.id} has {len(organism.cells)} cells (max {MAX_ORGANISM_CELLS})"
        )
    seen: set[Position] = set()
    for cell in organism.cells:
        if cell.relative_pos in seen:
            raise ValueError(f"organism {organism.id} has two cells at {tuple(cell.relative_pos)}")
        seen.add(cell.relative_pos)
