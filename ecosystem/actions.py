"""
ecosystem/actions.py - Observer Interventions

The four control-panel actions plus explicit add/remove requests.
"""

from typing import Optional

from .codex import add_codex_entry
from .constants import GUARDIAN_TYPE
from .dynamics_params import adjust_parameter
from .population import (
    add_entity,
    clamp_position,
    find_oldest_entity,
    find_random_entity,
    remove_entity,
    safe_position,
)
from .registry import EntityRegistry
from .rng import RandomSource
from .types_state import EcosystemState, Entity, Position

OBSERVE_TEXT = "You observe the system without intervention. The flow continues naturally."
STABILIZE_TEXT = "You introduce a stabilizing resonance. The Etheric Sea grows more harmonious."
AMPLIFY_TEXT = "You amplify the energy currents. The system grows more chaotic but also more complex."
FOCUS_NOTHING_TEXT = "You focus your attention, but find no entities to connect with."

# Most evolved first
FOCUS_PRIORITY = ("collective", "dancer", "weaver", "prismatic", "resonant")
FOCUS_REJUVENATION = 50
FOCUS_ECHO_CHANCE = 0.3
FOCUS_ECHO_DX = 10
FOCUS_ECHO_DY = 5


def observe(state: EcosystemState) -> None:
    add_codex_entry(state, OBSERVE_TEXT)


def stabilize_resonance(state: EcosystemState) -> None:
    adjust_parameter(state, "resonance", 10)
    adjust_parameter(state, "entropy", -5)
    add_codex_entry(state, STABILIZE_TEXT)


def amplify_shift(state: EcosystemState) -> None:
    adjust_parameter(state, "entropy", 15)
    adjust_parameter(state, "complexity", 10)
    add_codex_entry(state, AMPLIFY_TEXT)


def focus_entity(state: EcosystemState, rng: RandomSource, registry: EntityRegistry) -> Optional[Entity]:
    """
    Focus on one entity of the most evolved type present.

    The target sheds FOCUS_REJUVENATION ticks of age, and with
    FOCUS_ECHO_CHANCE a sibling of the same type appears nearby.

    Returns:
        The focused entity, or None when no built-in entity is present
    """
    target_type = next((t for t in FOCUS_PRIORITY if state.count(t) > 0), None)
    if target_type is None:
        add_codex_entry(state, FOCUS_NOTHING_TEXT)
        return None

    add_codex_entry(
        state,
        f"You focus your attention on a {target_type.capitalize()}. It seems to respond to your awareness.",
    )

    target = find_random_entity(state, target_type, rng)
    if target is None:
        return None
    target.age = max(target.age - FOCUS_REJUVENATION, 0)

    if rng.random() < FOCUS_ECHO_CHANCE:
        nearby = clamp_position(Position(
            target.position.x + rng.randint(-FOCUS_ECHO_DX, FOCUS_ECHO_DX),
            target.position.y + rng.randint(-FOCUS_ECHO_DY, FOCUS_ECHO_DY),
        ))
        add_entity(state, target_type, nearby, rng, registry)
        add_codex_entry(state, f"Your focus caused resonance, manifesting another {target_type}!")

    return target


def request_entity(
    state: EcosystemState,
    action: str,
    entity_type: str,
    rng: RandomSource,
    registry: EntityRegistry,
) -> Optional[Entity]:
    """
    Apply an explicit add or remove request.

    Adds place the entity at a safe position; removals take the oldest
    entity of that type. The guardian can be neither added nor removed.

    Returns:
        The added or removed entity, or None when nothing changed
    """
    if entity_type == GUARDIAN_TYPE:
        return None

    if action == "add":
        entity = add_entity(state, entity_type, safe_position(rng), rng, registry)
        add_codex_entry(state, f"At the observer's request, a new {entity_type} entity manifested.")
        return entity

    if action == "remove":
        oldest = find_oldest_entity(state, entity_type)
        if oldest is None or not remove_entity(state, oldest):
            return None
        add_codex_entry(state, f"At the observer's request, a {entity_type} entity dissolved.")
        return oldest

    raise ValueError(f"Unknown entity request action: {action!r}")
