from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml


@dataclass
class SimulationConfig:
    width: int = 100
    height: int = 60
    cell_size: int = 8  # render-only
    food_spawn_rate: float = 0.001  # chance per cell per tick
    lifespan_multiplier: int = 10  # ticks of life per body cell
    mutation_rate: float = 0.3
    initial_organisms: int = 20
    max_organisms: int = 500
    initial_food_density: float = 0.05
    spawn_margin: int = 5
    producer_food_chance: float = 0.02
    color_mutation_chance: float = 0.1
    walls: List[Tuple[int, int]] = field(default_factory=list)
    time_step: float = 1.0 / 30.0
    seed: int = 42
    config_version: str = "v1"

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 1


# Runtime-adjustable settings and the ranges the settings panel allows.
SETTINGS_RANGES: Dict[str, tuple[float, float]] = {
    "mutation_rate": (0.0, 1.0),
    "food_spawn_rate": (0.0, 0.005),
    "max_organisms": (100, 1000),
}

_PROBABILITIES = ("food_spawn_rate", "mutation_rate", "initial_food_density", "producer_food_chance", "color_mutation_chance")


def load_config(raw: Mapping[str, Any]) -> SimulationConfig:
    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown simulation config keys: {', '.join(unknown)}")
    values = dict(raw)
    if "walls" in values:
        values["walls"] = [(int(x), int(y)) for x, y in values["walls"] or []]
    config = SimulationConfig(**values)
    validate_config(config)
    return config


def load_app_config(raw: Mapping[str, Any]) -> AppConfig:
    simulation = load_config(raw.get("simulation", {}))
    return AppConfig(simulation=simulation, broadcast_interval=int(raw.get("broadcast_interval", 1)))


def validate_config(config: SimulationConfig) -> None:
    if config.width <= 0 or config.height <= 0:
        raise ValueError(f"Grid must be at least 1x1, got {config.width}x{config.height}")
    if config.lifespan_multiplier < 0:
        raise ValueError("lifespan_multiplier must be non-negative")
    if config.initial_organisms < 0 or config.max_organisms < 0:
        raise ValueError("organism counts must be non-negative")
    if config.spawn_margin < 0:
        raise ValueError("spawn_margin must be non-negative")
    if config.time_step <= 0:
        raise ValueError("time_step must be positive")
    for name in _PROBABILITIES:
        value = getattr(config, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be within [0, 1], got {value}")


def _clamp_setting(name: str, value: float) -> float:
    low, high = SETTINGS_RANGES[name]
    return max(low, min(high, value))


def apply_settings(config: SimulationConfig, changes: Mapping[str, Any]) -> SimulationConfig:
    """Return a new config with the runtime settings in `changes` clamped to their ranges.

    Keys other than the runtime settings are ignored, as are values that are not numbers.
    """

    updates: Dict[str, Any] = {}
    for name, value in changes.items():
        if name not in SETTINGS_RANGES or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isnan(number):
            continue
        clamped = _clamp_setting(name, number)
        updates[name] = int(round(clamped)) if name == "max_organisms" else clamped
    if not updates:
        return config
    return replace(config, **updates)
