"""
ecosystem/types_config.py - InitialConditions Dataclass and Presets

Immutable starting conditions for a fresh ecosystem.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .constants import Environment

Placement = Tuple[str, int, int]


@dataclass(frozen=True)
class InitialConditions:
    """Starting parameters and seed population (immutable)."""
    name: str = "default"
    cycle: int = 1
    environment: Environment = Environment.TRANQUIL
    resonance: int = 50
    complexity: int = 30
    harmony: int = 65
    entropy: int = 25
    # (type, x, y) in creation order
    entities: Tuple[Placement, ...] = (
        ("resonant", 10, 10),
        ("resonant", 25, 8),
        ("resonant", 40, 12),
        ("prismatic", 60, 8),
    )
    with_guardian: bool = True


# =============================================================================
# PRESETS
# =============================================================================

PRESET_DEFAULT = InitialConditions()

PRESET_BARREN = InitialConditions(
    name="barren",
    resonance=20,
    complexity=10,
    harmony=40,
    entropy=60,
    entities=(),
)

PRESET_FLOURISHING = InitialConditions(
    name="flourishing",
    environment=Environment.HARMONIC,
    resonance=75,
    complexity=65,
    harmony=82,
    entropy=15,
    entities=(
        ("resonant", 10, 10),
        ("resonant", 14, 11),
        ("resonant", 40, 12),
        ("prismatic", 18, 8),
        ("prismatic", 60, 8),
        ("weaver", 50, 6),
    ),
)

PRESETS: Dict[str, InitialConditions] = {
    preset.name: preset
    for preset in (PRESET_DEFAULT, PRESET_BARREN, PRESET_FLOURISHING)
}


def get_preset(name: str) -> InitialConditions:
    try:
        return PRESETS[name]
    except KeyError:
        raise KeyError(f"Unknown preset {name!r}; choose from {sorted(PRESETS)}") from None
