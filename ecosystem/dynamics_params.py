"""
ecosystem/dynamics_params.py - Parameter Drift

Random walk of the four ecosystem parameters, clamped to [0, 100].
"""

from .constants import DRIFT_RANGES, PARAM_NAMES
from .rng import RandomSource
from .types_state import EcosystemState, clamp


def drift_parameters(state: EcosystemState, rng: RandomSource) -> None:
    """
    Add an independent signed delta to each parameter, then clamp.

    Draw order is resonance, complexity, harmony, entropy.

    Args:
        state: Current EcosystemState (mutated in place)
        rng: Random source
    """
    for name in PARAM_NAMES:
        low, high = DRIFT_RANGES[name]
        adjust_parameter(state, name, rng.randint(low, high))


def adjust_parameter(state: EcosystemState, name: str, delta: int) -> int:
    """Add ``delta`` to one parameter and clamp. Returns the new value."""
    if name not in PARAM_NAMES:
        raise KeyError(f"Unknown parameter: {name}")
    value = clamp(getattr(state.params, name) + int(delta))
    setattr(state.params, name, value)
    return value
