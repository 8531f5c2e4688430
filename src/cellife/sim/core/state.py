from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .grid import Grid, validate_grid
from .organism import Organism, validate_organism


@dataclass
class SimulationState:
    grid: Grid
    width: int
    height: int
    organisms: List[Organism] = field(default_factory=list)
    generation: int = 1
    tick: int = 0
    running: bool = False
    next_organism_id: int = 1

    def allocate_id(self) -> int:
        organism_id = self.next_organism_id
        self.next_organism_id += 1
        return organism_id


def validate_state(state: SimulationState) -> None:
    validate_grid(state.grid, state.width, state.height)
    seen_ids: set[int] = set()
    for organism in state.organisms:
        validate_organism(organism)
        if organism.id in seen_ids:
            raise ValueError(f"organism id {organism.id} appears twice")
        seen_ids.add(organism.id)
