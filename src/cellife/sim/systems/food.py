from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..core.grid import Grid, is_valid_position
from ..core.organism import CellType, Organism
from ..core.rng import DeterministicRng
from .placement import occupied_footprint

if TYPE_CHECKING:
    from ..core.engine import TickContext


def spawn_food(tick: TickContext) -> bool:
    """Single spawn attempt per tick; the trigger is the literal rate * area product."""
    state = tick.state
    config = tick.config
    if tick.rng.next_float() >= config.food_spawn_rate * state.width * state.height:
        return False
    x = tick.rng.next_between(0, state.width - 1)
    y = tick.rng.next_between(0, state.height - 1)
    if state.grid[y][x] is CellType.EMPTY:
        state.grid[y][x] = CellType.FOOD
        return True
    return False


def scatter_food(grid: Grid, width: int, height: int, density: float, rng: DeterministicRng) -> int:
    placed = 0
    for _ in range(math.ceil(width * height * density)):
        x = rng.next_between(0, width - 1)
        y = rng.next_between(0, height - 1)
        if grid[y][x] is CellType.EMPTY:
            grid[y][x] = CellType.FOOD
            placed += 1
    return placed


def decompose(grid: Grid, organism: Organism, width: int, height: int) -> None:
    for pos in occupied_footprint(organism):
        if is_valid_position(pos.x, pos.y, width, height):
            grid[pos.y][pos.x] = CellType.FOOD
