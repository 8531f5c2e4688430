from __future__ import annotations

from typing import Iterable, Iterator, List

from .organism import CellType, Position

Grid = List[List[CellType]]

GRID_CELL_TYPES = frozenset({CellType.EMPTY, CellType.FOOD, CellType.WALL})

# Neighbour scan order: left, right, up, down.
_ADJACENT_OFFSETS: tuple[tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


def create_grid(width: int, height: int) -> Grid:
    return [[CellType.EMPTY] * width for _ in range(height)]


def copy_grid(grid: Grid) -> Grid:
    return [list(row) for row in grid]


def is_valid_position(x: int, y: int, width: int, height: int) -> bool:
    return 0 <= x < width and 0 <= y < height


def adjacent_positions(pos: Position) -> List[Position]:
    return [Position(pos.x + dx, pos.y + dy) for dx, dy in _ADJACENT_OFFSETS]


def is_open(grid: Grid, pos: Position) -> bool:
    """Organisms may stand on empty or food cells only."""
    cell = grid[pos.y][pos.x]
    return cell is CellType.EMPTY or cell is CellType.FOOD


def place_walls(grid: Grid, positions: Iterable[tuple[int, int]]) -> int:
    height = len(grid)
    width = len(grid[0]) if height else 0
    placed = 0
    for x, y in positions:
        if is_valid_position(x, y, width, height):
            grid[y][x] = CellType.WALL
            placed += 1
    return placed


def iter_cells(grid: Grid, cell_type: CellType) -> Iterator[Position]:
    for y, row in enumerate(grid):
        for x, cell in enumerate(row):
            if cell is cell_type:
                yield Position(x, y)


def count_cells(grid: Grid, cell_type: CellType) -> int:
    return sum(row.count(cell_type) for row in grid)


def validate_grid(grid: Grid, width: int, height: int) -> None:
    if len(grid) != height:
        raise ValueError(f"grid has {len(grid)} rows, expected {height}")
    for y, row in enumerate(grid):
        if len(row) != width:
            raise ValueError(f"grid row {y} has {len(row)} columns, expected {width}")
        for cell in row:
            if cell not in GRID_CELL_TYPES:
                raise ValueError(f"grid row {y} holds {cell!r}; only empty, food and wall live on the grid")
