"""
ecosystem/cycle.py - Core Simulation Loop

Entry points: initialize_state, step, run_steps.
"""

from typing import Callable, Optional

from .dynamics_environment import update_environment
from .dynamics_interaction import process_random_events
from .dynamics_lifecycle import process_entity_lifecycle
from .dynamics_movement import update_entities
from .dynamics_params import drift_parameters
from .guardian import manifest_guardian, update_guardian
from .population import add_entity
from .registry import EntityRegistry
from .rng import NumpyRandom, RandomSource
from .types_config import PRESET_DEFAULT, InitialConditions
from .types_state import EcosystemState, Params, Position


def initialize_state(
    preset: InitialConditions = PRESET_DEFAULT,
    rng: Optional[RandomSource] = None,
    registry: Optional[EntityRegistry] = None,
) -> EcosystemState:
    """
    Build a fresh ecosystem from a preset.

    Args:
        preset: InitialConditions with parameters and seed population
        rng: Random source (directions, guardian mood/focus)
        registry: Pattern lookup

    Returns:
        EcosystemState with the seed population and, if requested, an
        active guardian
    """
    rng = rng if rng is not None else NumpyRandom()
    registry = registry if registry is not None else EntityRegistry()

    state = EcosystemState(
        cycle=preset.cycle,
        environment=preset.environment,
        params=Params(
            resonance=preset.resonance,
            complexity=preset.complexity,
            harmony=preset.harmony,
            entropy=preset.entropy,
        ),
    )

    for entity_type, x, y in preset.entities:
        add_entity(state, entity_type, Position(x, y), rng, registry)

    if preset.with_guardian:
        manifest_guardian(state, rng, registry)

    return state


def step(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> EcosystemState:
    """
    Advance the ecosystem by exactly one tick (in place).

    Order matters: each sub-step reads what the previous ones wrote.

    Args:
        state: EcosystemState to advance
        rng: Random source
        registry: Pattern lookup

    Returns:
        The same state object, for chaining
    """
    state.cycle += 1

    drift_parameters(state, rng)
    update_environment(state, rng)
    update_entities(state, rng, registry)
    process_random_events(state, rng, registry)
    process_entity_lifecycle(state, rng, registry)
    update_guardian(state, rng)

    return state


def run_steps(
    state: EcosystemState,
    n_steps: int,
    rng: RandomSource,
    registry: EntityRegistry,
    on_step: Optional[Callable[[EcosystemState], None]] = None,
) -> EcosystemState:
    """
    Run ``n_steps`` ticks, calling ``on_step`` after each.

    Returns:
        The advanced state
    """
    for _ in range(n_steps):
        step(state, rng, registry)
        if on_step is not None:
            on_step(state)
    return state
