from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ..core.grid import adjacent_positions, is_valid_position
from ..core.organism import (
    CellType,
    Organism,
    OrganismCell,
    Position,
    default_body,
    random_direction,
)
from ..core.rng import DeterministicRng
from ..core.state import SimulationState
from ..utils.colors import random_color
from .food import decompose
from .mutation import mutate
from .placement import can_place, occupied_footprint

if TYPE_CHECKING:
    from ..core.engine import TickContext

MOVE_COUNTER_RANGE = (5, 15)
SPAWN_GAP = 3


def create_organism(
    state: SimulationState,
    rng: DeterministicRng,
    position: Position,
    cells: Optional[List[OrganismCell]] = None,
) -> Organism:
    return Organism(
        id=state.allocate_id(),
        position=position,
        cells=cells if cells is not None else default_body(),
        direction=random_direction(rng),
        move_counter=rng.next_between(*MOVE_COUNTER_RANGE),
        color=random_color(rng),
    )


def update_organism(tick: TickContext, organism: Organism) -> bool:
    """Advance one organism by a tick. Returns False when it died."""
    if _age(tick, organism):
        return False
    _apply_cell_actions(tick, organism)
    if organism.has_mover:
        _move(tick, organism)
    _reproduce(tick, organism)
    return True


def _age(tick: TickContext, organism: Organism) -> bool:
    organism.age += 1
    if organism.age <= organism.size * tick.config.lifespan_multiplier:
        return False
    state = tick.state
    decompose(state.grid, organism, state.width, state.height)
    return True


def _apply_cell_actions(tick: TickContext, organism: Organism) -> None:
    state = tick.state
    width = state.width
    height = state.height
    for cell, pos in zip(organism.cells, occupied_footprint(organism)):
        if not is_valid_position(pos.x, pos.y, width, height):
            continue
        if cell.type is CellType.MOUTH:
            _eat(tick, organism, pos)
        elif cell.type is CellType.PRODUCER:
            _produce(tick, pos)
        # Killer cells have no effect yet; movers only matter for _move.


def _eat(tick: TickContext, organism: Organism, pos: Position) -> None:
    grid = tick.state.grid
    for adj in adjacent_positions(pos):
        if not is_valid_position(adj.x, adj.y, tick.state.width, tick.state.height):
            continue
        if grid[adj.y][adj.x] is CellType.FOOD:
            grid[adj.y][adj.x] = CellType.EMPTY
            organism.energy += 1
            return


def _produce(tick: TickContext, pos: Position) -> None:
    if not tick.rng.chance(tick.config.producer_food_chance):
        return
    state = tick.state
    grid = state.grid
    empty = [
        adj
        for adj in adjacent_positions(pos)
        if is_valid_position(adj.x, adj.y, state.width, state.height) and grid[adj.y][adj.x] is CellType.EMPTY
    ]
    if empty:
        target = tick.rng.choice(empty)
        grid[target.y][target.x] = CellType.FOOD


def _move(tick: TickContext, organism: Organism) -> None:
    rng = tick.rng
    organism.move_counter -= 1
    if organism.move_counter <= 0:
        organism.direction = random_direction(rng)
        organism.move_counter = rng.next_between(*MOVE_COUNTER_RANGE)

    step = organism.direction.unit
    target = organism.position.offset(step.x, step.y)
    probe = organism.clone()
    probe.position = target
    state = tick.state
    # Offspring born earlier this tick occupy cells too.
    if can_place(probe, state.grid, tick.roster + tick.offspring, state.width, state.height):
        organism.position = target
    else:
        organism.direction = random_direction(rng)


def _reproduce(tick: TickContext, organism: Organism) -> None:
    if organism.energy < organism.size:
        return
    if len(tick.roster) + len(tick.offspring) >= tick.config.max_organisms:
        return
    organism.energy = 0

    rng = tick.rng
    state = tick.state
    child_cells = mutate(organism.cells, tick.config.mutation_rate, rng)
    step = random_direction(rng).unit
    distance = organism.reach + SPAWN_GAP
    child_pos = organism.position.offset(step.x * distance, step.y * distance)

    child = create_organism(state, rng, child_pos, child_cells)
    child.color = organism.color
    if rng.chance(tick.config.color_mutation_chance):
        child.color = random_color(rng)

    if can_place(child, state.grid, tick.roster + tick.offspring, state.width, state.height):
        tick.offspring.append(child)
