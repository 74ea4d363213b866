"""
ecosystem/dynamics_lifecycle.py - Spawn and Despawn

Periodic random spawning driven by resonance and complexity, the rare
Crystalline Collective, and age-based despawning with an entropy penalty.
"""

from typing import Optional

from .codex import add_codex_entry
from .constants import (
    COLLECTIVE_MIN_COMPLEXITY,
    COLLECTIVE_MIN_DANCERS,
    COLLECTIVE_MIN_HARMONY,
    COLLECTIVE_MIN_WEAVERS,
    COLLECTIVE_SPAWN_CHANCE,
    DEFAULT_LIFESPAN,
    LIFESPAN_ENTROPY_DIVISOR,
    LIFESPANS,
    RANDOM_CULL_CHANCE,
    SPAWN_ATTEMPT_CHANCE,
    SPAWN_RANGE_COLLECTIVE,
    SPAWN_RANGE_PRISMATIC,
    SPAWN_RANGE_RESONANT,
)
from .population import add_entity, random_position, remove_entity_at
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import EcosystemState, Entity

COLLECTIVE_TEXT = "High harmony and complexity allowed a Crystalline Collective to form!"


def lifespan_for(entity_type: str, entropy: int, rng: RandomSource) -> int:
    """Type base plus a random extra, shortened by entropy // 10."""
    base, extra = LIFESPANS.get(entity_type, DEFAULT_LIFESPAN)
    return base + rng.randint(0, extra) - entropy // LIFESPAN_ENTROPY_DIVISOR


def collective_conditions_met(state: EcosystemState) -> bool:
    params = state.params
    return (
        params.harmony > COLLECTIVE_MIN_HARMONY
        and params.complexity > COLLECTIVE_MIN_COMPLEXITY
        and state.count("weaver") >= COLLECTIVE_MIN_WEAVERS
        and state.count("dancer") >= COLLECTIVE_MIN_DANCERS
    )


def attempt_spawn(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> Optional[Entity]:
    """
    One spawn attempt: a resonant or prismatic by weighted roll, then the
    independent Crystalline Collective check.

    Returns:
        The last entity spawned by this attempt, or None
    """
    spawned = None
    roll = rng.random() * 100
    resonance_share = state.params.resonance / 2
    complexity_share = state.params.complexity / 3

    if roll < resonance_share:
        spawned = add_entity(state, "resonant", random_position(rng, SPAWN_RANGE_RESONANT), rng, registry)
    elif roll < resonance_share + complexity_share:
        spawned = add_entity(state, "prismatic", random_position(rng, SPAWN_RANGE_PRISMATIC), rng, registry)

    if collective_conditions_met(state) and rng.random() < COLLECTIVE_SPAWN_CHANCE:
        spawned = add_entity(state, "collective", random_position(rng, SPAWN_RANGE_COLLECTIVE), rng, registry)
        add_codex_entry(state, COLLECTIVE_TEXT)

    return spawned


def despawn_entities(state: EcosystemState, rng: RandomSource) -> int:
    """
    Remove entities past their lifespan or hit by the flat random cull.

    Scans in reverse index order so removals never shift unvisited indices.

    Returns:
        Number of entities removed
    """
    removed = 0
    for index in range(len(state.entities) - 1, -1, -1):
        entity = state.entities[index]
        if entity.is_guardian:
            continue

        lifespan = lifespan_for(entity.type, state.params.entropy, rng)
        if entity.age > lifespan or rng.random() < RANDOM_CULL_CHANCE:
            if remove_entity_at(state, index):
                removed += 1
    return removed


def process_entity_lifecycle(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> None:
    """
    Spawn attempt (SPAWN_ATTEMPT_CHANCE per step) followed by the despawn scan.

    Args:
        state: Current EcosystemState (mutated in place)
        rng: Random source
        registry: Pattern lookup for new entities
    """
    if rng.random() < SPAWN_ATTEMPT_CHANCE:
        attempt_spawn(state, rng, registry)

    despawn_entities(state, rng)
