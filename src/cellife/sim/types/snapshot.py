from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    generation: int
    metrics: TickMetrics
    organisms: List[Dict[str, Any]]
    grid: "SnapshotGrid"
    metadata: "SnapshotMetadata"
    palette: Dict[str, str]


@dataclass(slots=True)
class SnapshotGrid:
    food: List[List[int]]
    walls: List[List[int]]


@dataclass(slots=True)
class SnapshotMetadata:
    width: int
    height: int
    cell_size: int
    tick_rate: float
    seed: int
    config_version: str
