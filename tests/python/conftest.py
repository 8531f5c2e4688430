import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from cellife.sim.core.config import SimulationConfig  # noqa: E402
from cellife.sim.core.grid import create_grid  # noqa: E402
from cellife.sim.core.organism import CellType, Direction, Organism, OrganismCell, Position  # noqa: E402
from cellife.sim.core.rng import DeterministicRng  # noqa: E402
from cellife.sim.core.state import SimulationState  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that pin the shipped default configuration",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration defaults change",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-config-tests"):
        return

    skip_marker = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )

    for item in items:
        if "config_change" in item.keywords:
            item.add_marker(skip_marker)


def make_organism(
    organism_id: int,
    x: int,
    y: int,
    cells: list[tuple[CellType, int, int]] | None = None,
    energy: int = 0,
    age: int = 0,
    direction: Direction = Direction.RIGHT,
    move_counter: int = 10,
) -> Organism:
    body = cells or [(CellType.MOUTH, 0, 0), (CellType.MOVER, 1, 0)]
    return Organism(
        id=organism_id,
        position=Position(x, y),
        cells=[OrganismCell(cell_type, Position(rx, ry)) for cell_type, rx, ry in body],
        energy=energy,
        age=age,
        direction=direction,
        move_counter=move_counter,
        color="hsl(120, 70%, 50%)",
    )


def make_state(width: int, height: int, organisms: list[Organism] | None = None) -> SimulationState:
    organisms = organisms or []
    next_id = max((org.id for org in organisms), default=0) + 1
    return SimulationState(
        grid=create_grid(width, height),
        width=width,
        height=height,
        organisms=organisms,
        next_organism_id=next_id,
    )


def quiet_config(width: int, height: int, **overrides) -> SimulationConfig:
    """Config with no ambient food so tests control every food cell."""
    values = dict(width=width, height=height, food_spawn_rate=0.0, producer_food_chance=0.0)
    values.update(overrides)
    return SimulationConfig(**values)


@pytest.fixture
def rng() -> DeterministicRng:
    return DeterministicRng(1234)
