from __future__ import annotations

from ..core.grid import count_cells
from ..core.organism import CellType
from ..core.state import SimulationState
from ..types.metrics import TickMetrics


def create_metrics(
    state: SimulationState,
    births: int,
    deaths: int,
    duration_ms: float,
) -> TickMetrics:
    organisms = state.organisms
    population = len(organisms)
    if population:
        average_size = sum(org.size for org in organisms) / population
        average_energy = sum(org.energy for org in organisms) / population
        average_age = sum(org.age for org in organisms) / population
    else:
        average_size = average_energy = average_age = 0.0
    return TickMetrics(
        tick=state.tick,
        generation=state.generation,
        population=population,
        births=births,
        deaths=deaths,
        species=len({org.color for org in organisms}),
        average_size=average_size,
        average_energy=average_energy,
        average_age=average_age,
        food=count_cells(state.grid, CellType.FOOD),
        tick_duration_ms=duration_ms,
    )


def count_births_and_deaths(previous: SimulationState, current: SimulationState) -> tuple[int, int]:
    before = {org.id for org in previous.organisms}
    births = sum(1 for org in current.organisms if org.id not in before)
    deaths = len(previous.organisms) + births - len(current.organisms)
    return births, deaths
