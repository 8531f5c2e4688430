from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    generation: int
    population: int
    births: int
    deaths: int
    species: int
    average_size: float
    average_energy: float
    average_age: float
    food: int
    tick_duration_ms: float = 0.0
