"""
ecosystem/guardian.py - The Etheric Guardian

The guardian exists twice: as an Entity of type "guardian" in the entity
list and as the GuardianStatus record on the state. Both views are changed
only here.
"""

from typing import Optional

from .codex import add_codex_entry
from .constants import (
    BUILTIN_TYPES,
    EVOLVE_REMOVAL_CHANCE,
    EVOLVE_REMOVAL_MIN_ENTITIES,
    FLAVOR_ENTRIES,
    GUARDIAN_FOCUSES,
    GUARDIAN_FOCUS_PERIOD,
    GUARDIAN_MOOD_PERIOD,
    GUARDIAN_POSITION,
    GUARDIAN_TYPE,
    GuardianMood,
)
from .population import add_entity, find_oldest_entity, remove_entity, safe_position
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import CodexEntry, EcosystemState, Entity, Position

MANIFEST_TEXT = "The Etheric Guardian has manifested in the ecosystem."
MOODS = tuple(mood.value for mood in GuardianMood)


def guardian_entity(state: EcosystemState) -> Optional[Entity]:
    for entity in state.entities:
        if entity.is_guardian:
            return entity
    return None


def update_mood(state: EcosystemState, rng: RandomSource) -> str:
    state.guardian.mood = rng.choice(MOODS)
    return state.guardian.mood


def update_focus(state: EcosystemState, rng: RandomSource) -> str:
    state.guardian.focus = rng.choice(GUARDIAN_FOCUSES)
    return state.guardian.focus


def manifest_guardian(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> Entity:
    """
    Create the guardian entity and activate its status record.

    Idempotent: an existing guardian entity is reused.
    """
    entity = guardian_entity(state)
    if entity is None:
        entity = add_entity(state, GUARDIAN_TYPE, Position(*GUARDIAN_POSITION), rng, registry)

    status = state.guardian
    status.active = True
    status.last_action = state.cycle
    status.position = Position(entity.position.x, entity.position.y)
    update_mood(state, rng)
    update_focus(state, rng)
    add_codex_entry(state, MANIFEST_TEXT)
    return entity


def update_guardian(state: EcosystemState, rng: RandomSource) -> None:
    """Periodic mood and focus drift while the guardian is active."""
    if not state.guardian.active:
        return
    if state.cycle % GUARDIAN_MOOD_PERIOD == 0:
        update_mood(state, rng)
    if state.cycle % GUARDIAN_FOCUS_PERIOD == 0:
        update_focus(state, rng)


def evolve(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> Optional[str]:
    """
    Autonomous guardian intervention.

    With more than EVOLVE_REMOVAL_MIN_ENTITIES entities there is an
    EVOLVE_REMOVAL_CHANCE of dissolving the oldest non-guardian entity;
    otherwise a random built-in type is manifested at a safe position.

    Returns:
        "removed", "added", or None when the guardian is inactive or had
        nothing to remove
    """
    if not state.guardian.active:
        return None

    should_remove = len(state.entities) > EVOLVE_REMOVAL_MIN_ENTITIES and rng.random() < EVOLVE_REMOVAL_CHANCE

    if should_remove:
        oldest = find_oldest_entity(state)
        if oldest is None or not remove_entity(state, oldest):
            return None
        add_codex_entry(
            state,
            f"Guardian autonomously dissolved a {oldest.type} entity that had completed its cycle.",
        )
        state.guardian.last_action = state.cycle
        return "removed"

    entity_type = rng.choice(BUILTIN_TYPES)
    add_entity(state, entity_type, safe_position(rng), rng, registry)
    add_codex_entry(
        state,
        f"Guardian autonomously manifested a new {entity_type} entity in response to ecosystem needs.",
    )
    state.guardian.last_action = state.cycle
    return "added"


def generate_flavor_entry(state: EcosystemState, rng: RandomSource) -> CodexEntry:
    return add_codex_entry(state, rng.choice(FLAVOR_ENTRIES))
