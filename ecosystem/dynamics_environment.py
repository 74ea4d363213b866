"""
ecosystem/dynamics_environment.py - Environment Cycling

The Etheric Sea backdrop may shift every ENVIRONMENT_CHANGE_PERIOD cycles,
but only while the guardian is inactive. With the guardian active (the
normal case) the environment never changes on its own.
"""

from .codex import add_codex_entry
from .constants import ENVIRONMENT_CHANGE_PERIOD, ENVIRONMENT_DEFAULT, ENVIRONMENT_THRESHOLDS, Environment
from .rng import RandomSource
from .types_state import EcosystemState


def environment_for_roll(roll: float) -> Environment:
    """Map a [0, 100) roll onto an environment by fixed thresholds."""
    for upper, environment in ENVIRONMENT_THRESHOLDS:
        if roll < upper:
            return environment
    return ENVIRONMENT_DEFAULT


def set_environment(state: EcosystemState, environment: Environment) -> bool:
    """Switch environment and log it. Returns False when nothing changed."""
    environment = Environment(environment)
    if environment == state.environment:
        return False
    state.environment = environment
    add_codex_entry(state, f"Etheric Sea shifted to {environment.value} state.")
    return True


def update_environment(state: EcosystemState, rng: RandomSource) -> None:
    """
    Advance the backdrop frame and, on period boundaries, maybe shift.

    Args:
        state: Current EcosystemState (mutated in place)
        rng: Random source
    """
    state.environment_frame += 1

    if state.cycle % ENVIRONMENT_CHANGE_PERIOD == 0 and not state.guardian.active:
        set_environment(state, environment_for_roll(rng.random() * 100))
