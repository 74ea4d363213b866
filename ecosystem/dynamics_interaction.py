"""
ecosystem/dynamics_interaction.py - Random Events and Entity Interactions

Two transformation rules over close pairs of entities:

    Rule A: resonant + resonant near a prismatic -> weaver (parents consumed)
    Rule B: prismatic + weaver                   -> dancer (parents kept)

At most one transformation fires per scan.
"""

from typing import Optional

from .codex import add_codex_entry
from .constants import (
    CLOSE_DX,
    CLOSE_DY,
    DANCER_FORMATION_CHANCE,
    DANCER_MIN_RESONANCE,
    ENERGY_FLUX_ENTROPY,
    ENERGY_FLUX_HARMONY_LOSS,
    HARMONIC_CONVERGENCE_BOOST,
    HARMONIC_CONVERGENCE_HARMONY,
    HARMONIC_CONVERGENCE_RESONANCE,
    PRISMATIC_NEAR_DX,
    PRISMATIC_NEAR_DY,
    RANDOM_EVENT_CHANCE,
    WEAVER_FORMATION_CHANCE,
    WEAVER_MIN_COMPLEXITY,
)
from .dynamics_params import adjust_parameter
from .population import add_entity, remove_entity
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import EcosystemState, Entity, Position

WEAVER_TEXT = "Two Resonants harmonized near a Prismatic Drifter to form a Thought Weaver."
DANCER_TEXT = "A Prismatic Drifter and Thought Weaver merged into a Void Dancer."
CONVERGENCE_TEXT = "Harmonic convergence detected in the Etheric Sea."
FLUX_TEXT = "Energy flux destabilizing the ecosystem."


def is_close(a: Entity, b: Entity, max_dx: int = CLOSE_DX, max_dy: int = CLOSE_DY) -> bool:
    """Strict proximity test: |dx| < max_dx and |dy| < max_dy."""
    return (
        abs(a.position.x - b.position.x) < max_dx
        and abs(a.position.y - b.position.y) < max_dy
    )


def midpoint(a: Entity, b: Entity) -> Position:
    return Position(
        (a.position.x + b.position.x) // 2,
        (a.position.y + b.position.y) // 2,
    )


def prismatic_nearby(state: EcosystemState, anchor: Entity) -> bool:
    return any(
        e.type == "prismatic" and is_close(e, anchor, PRISMATIC_NEAR_DX, PRISMATIC_NEAR_DY)
        for e in state.entities
    )


def check_entity_interactions(
    state: EcosystemState,
    rng: RandomSource,
    registry: EntityRegistry,
) -> Optional[Entity]:
    """
    Scan unordered non-guardian pairs in index order for one transformation.

    Args:
        state: Current EcosystemState (mutated in place)
        rng: Random source; one draw per eligible pair
        registry: Pattern lookup for the new entity

    Returns:
        The entity created by the first rule that fired, else None
    """
    entities = state.entities
    for i in range(len(entities)):
        for j in range(i + 1, len(entities)):
            first, second = entities[i], entities[j]
            if first.is_guardian or second.is_guardian:
                continue
            if not is_close(first, second):
                continue

            if first.type == "resonant" and second.type == "resonant" and prismatic_nearby(state, first):
                if rng.random() < WEAVER_FORMATION_CHANCE and state.params.complexity > WEAVER_MIN_COMPLEXITY:
                    weaver = add_entity(state, "weaver", midpoint(first, second), rng, registry)
                    add_codex_entry(state, WEAVER_TEXT)
                    # By identity: the new weaver was appended, so indices are unreliable
                    remove_entity(state, first)
                    remove_entity(state, second)
                    return weaver

            if {first.type, second.type} == {"prismatic", "weaver"}:
                if rng.random() < DANCER_FORMATION_CHANCE and state.params.resonance > DANCER_MIN_RESONANCE:
                    dancer = add_entity(state, "dancer", midpoint(first, second), rng, registry)
                    add_codex_entry(state, DANCER_TEXT)
                    return dancer
    return None


def process_random_events(
    state: EcosystemState,
    rng: RandomSource,
    registry: EntityRegistry,
) -> bool:
    """
    Rare events: interactions, harmonic convergence and energy flux.

    Returns:
        True when the event roll hit this step
    """
    if rng.random() >= RANDOM_EVENT_CHANCE:
        return False

    check_entity_interactions(state, rng, registry)

    params = state.params
    if params.resonance > HARMONIC_CONVERGENCE_RESONANCE and params.harmony > HARMONIC_CONVERGENCE_HARMONY:
        add_codex_entry(state, CONVERGENCE_TEXT)
        adjust_parameter(state, "resonance", HARMONIC_CONVERGENCE_BOOST)

    if params.entropy > ENERGY_FLUX_ENTROPY:
        add_codex_entry(state, FLUX_TEXT)
        adjust_parameter(state, "harmony", -ENERGY_FLUX_HARMONY_LOSS)

    return True
