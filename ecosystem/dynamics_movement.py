"""
ecosystem/dynamics_movement.py - Aging, Animation and Movement

Every non-guardian entity ages one tick per step, advances its animation
frame every FRAME_ADVANCE_EVERY cycles and moves diagonally on cycles
divisible by (MOVE_PERIOD_BASE - speed), bouncing off the grid edges.
"""

from .constants import (
    DIRECTION_CHANGE_CHANCE,
    FRAME_ADVANCE_EVERY,
    MAX_ENTITY_X,
    MAX_ENTITY_Y,
    MOVE_PERIOD_BASE,
)
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import EcosystemState, Entity


def move_period(speed: int) -> int:
    # Speeds outside [1, 4] would make the period zero or negative
    speed = min(max(int(speed or 1), 1), MOVE_PERIOD_BASE - 1)
    return MOVE_PERIOD_BASE - speed


def advance_frame(entity: Entity, registry: EntityRegistry) -> None:
    count = max(registry.variant_count(entity.type), 1)
    entity.frame = (entity.frame + 1) % count
    # Unknown types keep whatever inline pattern they were created with
    if entity.type in registry:
        entity.pattern, _ = registry.resolve_pattern(entity.type, entity.frame)


def move_entity(entity: Entity, rng: RandomSource) -> None:
    """
    One diagonal step with an occasional new heading.

    Crossing x < 0, x > MAX_ENTITY_X, y < 0 or y > MAX_ENTITY_Y clamps the
    coordinate back onto the edge and reverses that direction component.
    """
    if rng.random() < DIRECTION_CHANGE_CHANCE:
        entity.direction.x = rng.sign()
        entity.direction.y = rng.sign()

    entity.position.x += entity.direction.x
    entity.position.y += entity.direction.y

    if entity.position.x < 0:
        entity.position.x = 0
        entity.direction.x *= -1
    if entity.position.x > MAX_ENTITY_X:
        entity.position.x = MAX_ENTITY_X
        entity.direction.x *= -1
    if entity.position.y < 0:
        entity.position.y = 0
        entity.direction.y *= -1
    if entity.position.y > MAX_ENTITY_Y:
        entity.position.y = MAX_ENTITY_Y
        entity.direction.y *= -1


def update_entities(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> None:
    """
    Age, animate and move all non-guardian entities.

    Args:
        state: Current EcosystemState (mutated in place)
        rng: Random source
        registry: Pattern lookup for frame changes
    """
    for entity in state.entities:
        if entity.is_guardian:
            continue

        entity.age += 1

        if state.cycle % FRAME_ADVANCE_EVERY == 0:
            advance_frame(entity, registry)

        if state.cycle % move_period(entity.speed) == 0:
            move_entity(entity, rng)
