"""
ecosystem/population.py - Entity Creation and Removal

The only code paths that add or remove entities, so ``counts`` always
matches ``entities``.
"""

from typing import Optional, Tuple

from .codex import add_codex_entry
from .constants import (
    DEFAULT_SPEED,
    GUARDIAN_TYPE,
    MAX_ENTITY_X,
    MAX_ENTITY_Y,
    SAFE_SPAWN_RANGE,
    TYPE_SPEEDS,
)
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import Direction, EcosystemState, Entity, Position

Range = Tuple[Tuple[int, int], Tuple[int, int]]


def random_position(rng: RandomSource, spawn_range: Range) -> Position:
    (x_low, x_high), (y_low, y_high) = spawn_range
    return Position(rng.randint(x_low, x_high), rng.randint(y_low, y_high))


def safe_position(rng: RandomSource) -> Position:
    return random_position(rng, SAFE_SPAWN_RANGE)


def clamp_position(position: Position) -> Position:
    return Position(
        min(max(position.x, 0), MAX_ENTITY_X),
        min(max(position.y, 0), MAX_ENTITY_Y),
    )


def create_entity(
    entity_type: str,
    position: Position,
    rng: RandomSource,
    registry: EntityRegistry,
) -> Entity:
    """New entity at age 0 with its first pattern variant and a random diagonal heading."""
    pattern, _ = registry.resolve_pattern(entity_type, 0)
    direction = Direction(rng.sign(), rng.sign())
    return Entity(
        type=entity_type,
        position=position,
        pattern=pattern,
        frame=0,
        age=0,
        direction=direction,
        speed=TYPE_SPEEDS.get(entity_type, DEFAULT_SPEED),
    )


def add_entity(
    state: EcosystemState,
    entity_type: str,
    position: Position,
    rng: RandomSource,
    registry: EntityRegistry,
) -> Entity:
    """
    Create an entity, append it and update counts.

    The first entity of a type (count 0 -> 1) records a discovery entry,
    except for the guardian.
    """
    entity = create_entity(entity_type, position, rng, registry)
    state.entities.append(entity)
    state.counts[entity_type] = state.counts.get(entity_type, 0) + 1

    if state.counts[entity_type] == 1 and entity_type != GUARDIAN_TYPE:
        add_codex_entry(
            state,
            f"Discovered first {entity_type[:1].upper()}{entity_type[1:]} entity at cycle {state.cycle}.",
        )
    return entity


def remove_entity(state: EcosystemState, entity: Entity) -> bool:
    """Remove ``entity`` by identity. The guardian is never removed."""
    if entity.is_guardian:
        return False
    for index, candidate in enumerate(state.entities):
        if candidate is entity:
            del state.entities[index]
            state.counts[entity.type] = max(state.counts.get(entity.type, 0) - 1, 0)
            return True
    return False


def remove_entity_at(state: EcosystemState, index: int) -> bool:
    if index < 0 or index >= len(state.entities):
        return False
    return remove_entity(state, state.entities[index])


def find_oldest_entity(state: EcosystemState, entity_type: Optional[str] = None) -> Optional[Entity]:
    """Oldest non-guardian entity (optionally of one type); first wins on ties."""
    oldest = None
    for entity in state.entities:
        if entity.is_guardian:
            continue
        if entity_type is not None and entity.type != entity_type:
            continue
        if oldest is None or entity.age > oldest.age:
            oldest = entity
    return oldest


def find_random_entity(
    state: EcosystemState, entity_type: str, rng: RandomSource
) -> Optional[Entity]:
    candidates = [e for e in state.entities if e.type == entity_type]
    if not candidates:
        return None
    return rng.choice(candidates)


def recount(state: EcosystemState) -> None:
    """Rebuild counts from entities, keeping zero entries for types seen before."""
    state.recount()
