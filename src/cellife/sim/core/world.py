from __future__ import annotations

import logging
from collections import deque
from time import perf_counter
from typing import Any, Deque, Dict, List, Mapping, Optional

from ..systems import food, lifecycle, metrics as metrics_system
from ..systems.placement import can_place
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotGrid, SnapshotMetadata
from ..utils.colors import palette
from .config import SimulationConfig, apply_settings, validate_config
from .engine import update_simulation
from .grid import create_grid, iter_cells, place_walls
from .organism import CellType, Organism, Position
from .rng import DeterministicRng
from .state import SimulationState

logger = logging.getLogger(__name__)

_HISTORY_LENGTH = 300


def _spawn_coordinate(rng: DeterministicRng, size: int, margin: int) -> int:
    low, high = margin, min(size - margin, size - 1)
    if low > high:
        low, high = 0, size - 1
    return rng.next_between(low, high)


def init_simulation(config: SimulationConfig, rng: Optional[DeterministicRng] = None) -> SimulationState:
    """
    Build a fresh simulation state.

    Walls from the config are laid first, then `initial_organisms` spawn attempts
    are made (failed placements are dropped, not retried), then food is scattered
    over roughly `initial_food_density` of the grid.
    """

    validate_config(config)
    if rng is None:
        rng = DeterministicRng(config.seed)
    width, height = config.width, config.height
    state = SimulationState(grid=create_grid(width, height), width=width, height=height)
    place_walls(state.grid, config.walls)

    for _ in range(config.initial_organisms):
        x = _spawn_coordinate(rng, width, config.spawn_margin)
        y = _spawn_coordinate(rng, height, config.spawn_margin)
        organism = lifecycle.create_organism(state, rng, Position(x, y))
        if can_place(organism, state.grid, state.organisms, width, height):
            state.organisms.append(organism)

    food.scatter_food(state.grid, width, height, config.initial_food_density, rng)
    return state


def reset_simulation(config: SimulationConfig, rng: Optional[DeterministicRng] = None) -> SimulationState:
    """Start over from scratch; organism ids restart at 1 because the counter lives in the state."""
    return init_simulation(config, rng)


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._state = init_simulation(config, self._rng)
        self._metrics: TickMetrics | None = None
        self._history: Deque[TickMetrics] = deque(maxlen=_HISTORY_LENGTH)
        logger.info(
            "World initialised: %dx%d grid, seed=%d, %d/%d organisms placed",
            config.width,
            config.height,
            config.seed,
            len(self._state.organisms),
            config.initial_organisms,
        )

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def organisms(self) -> List[Organism]:
        return self._state.organisms

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def history(self) -> List[TickMetrics]:
        return list(self._history)

    @property
    def running(self) -> bool:
        return self._state.running

    @running.setter
    def running(self, value: bool) -> None:
        self._state.running = value

    def reset(self) -> None:
        self._rng.reset()
        self._state = reset_simulation(self._config, self._rng)
        self._metrics = None
        self._history.clear()
        logger.info("World reset: seed=%d, %d organisms placed", self._rng.seed, len(self._state.organisms))

    def update_settings(self, changes: Mapping[str, Any]) -> SimulationConfig:
        updated = apply_settings(self._config, changes)
        if updated is not self._config:
            logger.info(
                "Settings updated: mutation_rate=%.2f food_spawn_rate=%.4f max_organisms=%d",
                updated.mutation_rate,
                updated.food_spawn_rate,
                updated.max_organisms,
            )
            self._config = updated
        return self._config

    def step(self) -> TickMetrics:
        start = perf_counter()
        previous = self._state
        self._state = update_simulation(previous, self._config, self._rng)
        elapsed_ms = (perf_counter() - start) * 1000.0

        births, deaths = metrics_system.count_births_and_deaths(previous, self._state)
        metrics = metrics_system.create_metrics(self._state, births, deaths, elapsed_ms)
        self._metrics = metrics
        self._history.append(metrics)
        logger.debug(
            "tick=%d population=%d births=%d deaths=%d food=%d",
            metrics.tick,
            metrics.population,
            births,
            deaths,
            metrics.food,
        )
        if previous.organisms and not self._state.organisms:
            logger.info("Population went extinct at tick %d", self._state.tick)
        return metrics

    def snapshot(self) -> Snapshot:
        state = self._state
        metrics = self._metrics
        if metrics is None or metrics.tick != state.tick:
            metrics = metrics_system.create_metrics(state, 0, 0, 0.0)
        return Snapshot(
            tick=state.tick,
            generation=state.generation,
            metrics=metrics,
            organisms=[self._organism_snapshot(org) for org in state.organisms],
            grid=SnapshotGrid(
                food=[[pos.x, pos.y] for pos in iter_cells(state.grid, CellType.FOOD)],
                walls=[[pos.x, pos.y] for pos in iter_cells(state.grid, CellType.WALL)],
            ),
            metadata=SnapshotMetadata(
                width=state.width,
                height=state.height,
                cell_size=self._config.cell_size,
                tick_rate=1.0 / self._config.time_step,
                seed=self._rng.seed,
                config_version=self._config.config_version,
            ),
            palette=palette(),
        )

    @staticmethod
    def _organism_snapshot(organism: Organism) -> Dict[str, Any]:
        return {
            "id": organism.id,
            "x": organism.position.x,
            "y": organism.position.y,
            "energy": organism.energy,
            "age": organism.age,
            "direction": organism.direction.value,
            "move_counter": organism.move_counter,
            "color": organism.color,
            "cells": [
                {"type": cell.type.value, "x": cell.relative_pos.x, "y": cell.relative_pos.y}
                for cell in organism.cells
            ],
        }
