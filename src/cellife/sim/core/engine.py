from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..systems import food, lifecycle
from .config import SimulationConfig
from .grid import copy_grid
from .organism import Organism
from .rng import DeterministicRng
from .state import SimulationState, validate_state


@dataclass
class TickContext:
    """Working set for a single tick.

    `state` is the outgoing state being built. `roster` is the tick-start
    organism list (already cloned); movement and birth placement are checked
    against it plus `offspring`. Organisms that die mid-tick keep blocking
    until the tick ends, and moves made earlier in the tick are visible to
    later organisms.
    """

    state: SimulationState
    config: SimulationConfig
    rng: DeterministicRng
    roster: List[Organism]
    offspring: List[Organism] = field(default_factory=list)


def _check_dimensions(state: SimulationState, config: SimulationConfig) -> None:
    if state.width != config.width or state.height != config.height:
        raise ValueError(
            f"state is {state.width}x{state.height} but config expects {config.width}x{config.height}"
        )


def update_simulation(state: SimulationState, config: SimulationConfig, rng: DeterministicRng) -> SimulationState:
    """
    Advance the simulation by one tick and return the new state.

    The incoming state is left untouched: the grid rows and every organism are
    copied before any update is applied.
    """

    _check_dimensions(state, config)
    validate_state(state)

    roster = [organism.clone() for organism in state.organisms]
    next_state = SimulationState(
        grid=copy_grid(state.grid),
        width=state.width,
        height=state.height,
        organisms=roster,
        generation=state.generation,
        tick=state.tick,
        running=state.running,
        next_organism_id=state.next_organism_id,
    )
    tick = TickContext(state=next_state, config=config, rng=rng, roster=roster)

    food.spawn_food(tick)

    survivors = [organism for organism in roster if lifecycle.update_organism(tick, organism)]

    next_state.organisms = survivors + tick.offspring
    if tick.offspring:
        next_state.generation += 1
    next_state.tick += 1
    return next_state
