from __future__ import annotations

from typing import Dict

from ..core.organism import CellType
from ..core.rng import DeterministicRng

CELL_COLORS: Dict[CellType, str] = {
    CellType.EMPTY: "#1a1a2e",
    CellType.FOOD: "#4a5568",
    CellType.WALL: "#718096",
    CellType.MOUTH: "#f97316",
    CellType.PRODUCER: "#22c55e",
    CellType.MOVER: "#38bdf8",
    CellType.KILLER: "#ef4444",
}


def random_color(rng: DeterministicRng) -> str:
    hue = rng.next_between(0, 360)
    return f"hsl({hue}, 70%, 50%)"


def palette() -> Dict[str, str]:
    return {cell_type.value: color for cell_type, color in CELL_COLORS.items()}
