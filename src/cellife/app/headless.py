from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "generation",
    "population",
    "births",
    "deaths",
    "species",
    "avg_size",
    "avg_energy",
    "avg_age",
    "food",
    "tick_ms",
]


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.generation,
        metrics.population,
        metrics.births,
        metrics.deaths,
        metrics.species,
        f"{metrics.average_size:.4f}",
        f"{metrics.average_energy:.4f}",
        f"{metrics.average_age:.4f}",
        metrics.food,
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config_path: Optional[Path] = None,
) -> World:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)
    logger.info("Headless run: %d steps, seed=%d", steps, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    tick_ms_series: list[float] = []
    population_series: list[int] = []
    food_series: list[int] = []
    max_population = (-1, -1)
    extinct_at: Optional[int] = None

    try:
        for _ in range(steps):
            metrics = world.step()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            population_series.append(metrics.population)
            food_series.append(metrics.food)
            if metrics.population > max_population[0]:
                max_population = (metrics.population, metrics.tick)
            if metrics.population == 0 and extinct_at is None:
                extinct_at = metrics.tick
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(population_series) - window), len(population_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "deterministic_log": deterministic_log,
            "final_tick": world.state.tick,
            "final_generation": world.state.generation,
            "final_population": len(world.organisms),
            "extinct_at": extinct_at,
            "tick_ms": _summary_stats(tick_ms_series),
            "population": _summary_stats([float(v) for v in population_series]),
            "food": _summary_stats([float(v) for v in food_series]),
            "peaks": {
                "population": {"value": max_population[0], "tick": max_population[1]},
            },
            "tail_window": {
                "window": window,
                "population": _summary_stats([float(v) for v in population_series[tail_slice]]),
                "food": _summary_stats([float(v) for v in food_series[tail_slice]]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info(
        "Headless run finished at tick %d: population=%d generation=%d",
        world.state.tick,
        len(world.organisms),
        world.state.generation,
    )
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless cellife simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=500,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
