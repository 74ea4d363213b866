"""
ecosystem/render.py - ASCII Grid Composition

Backdrop first, then entities stamped in list order. Spaces are
transparent; anything falling outside the grid is clipped.
"""

from typing import Dict, List, Sequence

import numpy as np

from .constants import GRID_HEIGHT, GRID_WIDTH, Environment
from .registry import EntityRegistry
from .types_state import EcosystemState, Entity

ENVIRONMENT_PATTERNS: Dict[Environment, List[str]] = {
    Environment.TRANQUIL: [
        "~~~~~~~~~~~~~~~~~~~~~~~",
        "~ ~ ~ ~ ~ ~",
        " ~ ~ ~ ~ ~",
        "~ ~ ~ ~ ~ ",
        " ~ ~ ~ ~ ~ ",
        "~ ~ ~ ~ ~",
        "~~~~~~~~~~~~~~~~~~~~~~~",
    ],
    Environment.HARMONIC: [
        "≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈",
        "≈ ≈ ≈ ~ ~ ~ ≈ ≈ ≈ ≈ ≈ ≈",
        "≈ ≈ ~ ~ ~ ~ ~ ≈ ≈ ≈ ≈ ≈",
        "≈ ~ ~ ~ ~ ~ ~ ~ ≈ ≈ ≈ ≈",
        "~ ~ ~ ~ ~ ~ ~ ~ ~ ~ ≈ ≈",
        "≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈≈",
    ],
    Environment.PRISMATIC: [
        "*//*//*//*//*//*//*//*//",
        "//*//*//*//*//*//*//*//*/",
        "*//*//*//*//*//*//*//*//",
        "//*//*//*//*//*//*//*//*/",
        "*//*//*//*//*//*//*//*//",
        "//*//*//*//*//*//*//*//*/",
    ],
    Environment.QUANTUM: [
        "◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊",
        "◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊",
        "◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ",
        " ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊ ",
        " ◊ ◊ ◊ ◊ ◊ ◊ ◊ ◊",
        "◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊◊",
    ],
}


def empty_grid(width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> np.ndarray:
    return np.full((height, width), " ", dtype="<U1")


def stamp(grid: np.ndarray, lines: Sequence[str], x: int, y: int) -> None:
    """Overlay ``lines`` with top-left corner at (x, y), skipping spaces."""
    height, width = grid.shape
    for row, line in enumerate(lines):
        gy = y + row
        if gy < 0 or gy >= height:
            continue
        for col, char in enumerate(line):
            gx = x + col
            if 0 <= gx < width and char != " ":
                grid[gy, gx] = char


def entity_lines(entity: Entity, registry: EntityRegistry) -> List[str]:
    # Unregistered types draw their inline pattern when they carry one
    if entity.type not in registry and entity.pattern:
        return list(entity.pattern)
    lines, _ = registry.resolve_pattern(entity.type, entity.frame)
    return lines


def grid_to_string(grid: np.ndarray) -> str:
    return "\n".join("".join(row) for row in grid)


def render_grid(
    state: EcosystemState,
    registry: EntityRegistry,
    width: int = GRID_WIDTH,
    height: int = GRID_HEIGHT,
) -> str:
    """
    Compose the ecosystem as text.

    Args:
        state: EcosystemState to draw
        registry: Pattern lookup
        width: Columns
        height: Rows

    Returns:
        ``height`` lines of exactly ``width`` characters joined by newlines
    """
    grid = empty_grid(width, height)
    stamp(grid, ENVIRONMENT_PATTERNS.get(Environment(state.environment), []), 0, 0)

    for entity in state.entities:
        x, y = int(np.floor(entity.position.x)), int(np.floor(entity.position.y))
        if x < 0 or y < 0 or x >= width or y >= height:
            continue
        stamp(grid, entity_lines(entity, registry), x, y)

    return grid_to_string(grid)
