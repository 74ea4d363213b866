"""
messages.py - Observer Message Processing

Free-text observer messages either request an entity explicitly ("summon a
void dancer") or, by chance, nudge the ecosystem through keywords.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ecosystem.actions import request_entity
from ecosystem.codex import add_codex_entry
from ecosystem.constants import BUILTIN_TYPES, Environment
from ecosystem.dynamics_params import adjust_parameter
from ecosystem.population import add_entity, safe_position
from ecosystem.registry import EntityRegistry
from ecosystem.rng import RandomSource
from ecosystem.types_state import EcosystemState

__all__ = [
    "EntityRequest",
    "MessageOutcome",
    "parse_entity_request",
    "process_user_message",
]

USER_MESSAGE_INFLUENCE_CHANCE = 0.4
ENVIRONMENT_SWITCH_CHANCE = 0.3
MESSAGE_MANIFEST_MIN_LENGTH = 20
MESSAGE_MANIFEST_CHANCE = 0.2
INFLUENCE_RANGE = (5, 15)

ENTITY_NAMES: Dict[str, Tuple[str, ...]] = {
    "resonant": ("resonant", "resonants", "resonance entity"),
    "prismatic": ("prismatic", "prismatic drifter", "drifter", "prismatic drifters", "drifters"),
    "weaver": ("weaver", "thought weaver", "weavers", "thought weavers"),
    "dancer": ("dancer", "void dancer", "dancers", "void dancers"),
    "collective": ("collective", "crystalline collective", "collectives", "crystalline collectives"),
    "guardian": ("guardian", "etheric guardian"),
}

ADD_ACTIONS = ("add", "create", "spawn", "make", "generate", "manifest", "bring", "summon")
REMOVE_ACTIONS = ("remove", "delete", "destroy", "eliminate", "kill", "despawn", "vanish", "banish")

POSITIVE_KEYWORDS = ("harmony", "balance", "peace", "calm", "growth", "create", "build", "help", "love", "light")
NEGATIVE_KEYWORDS = ("chaos", "destroy", "break", "disrupt", "conflict", "dark", "death", "kill", "hate", "fear")
ENVIRONMENT_KEYWORDS: Dict[Environment, Tuple[str, ...]] = {
    Environment.TRANQUIL: ("calm", "peace", "quiet", "still", "serene"),
    Environment.HARMONIC: ("balance", "harmony", "resonance", "flow", "music"),
    Environment.PRISMATIC: ("color", "light", "rainbow", "crystal", "prism"),
    Environment.QUANTUM: ("chaos", "random", "quantum", "uncertain", "probability"),
}


@dataclass(frozen=True)
class EntityRequest:
    action: str  # "add" or "remove"
    entity_type: str


@dataclass
class MessageOutcome:
    """What a message did to the ecosystem."""
    request: Optional[EntityRequest] = None
    influenced: bool = False
    environment: Optional[Environment] = None
    manifested: Optional[str] = None


def _names_by_type(registry: Optional[EntityRegistry]) -> List[Tuple[str, Tuple[str, ...]]]:
    names = list(ENTITY_NAMES.items())
    if registry is not None:
        for custom in registry.custom_types():
            aliases = {custom, registry.display_name(custom).lower()}
            names.append((custom, tuple(sorted(aliases))))
    return names


def parse_entity_request(message: str, registry: Optional[EntityRegistry] = None) -> Optional[EntityRequest]:
    """
    Detect an add/remove verb and an entity name (substring match).

    Add verbs win over remove verbs; built-in names are checked before
    custom ones.
    """
    lower = message.lower()

    if any(word in lower for word in ADD_ACTIONS):
        action = "add"
    elif any(word in lower for word in REMOVE_ACTIONS):
        action = "remove"
    else:
        return None

    for entity_type, aliases in _names_by_type(registry):
        if any(alias in lower for alias in aliases):
            return EntityRequest(action, entity_type)
    return None


def process_user_message(
    state: EcosystemState,
    message: str,
    rng: RandomSource,
    registry: EntityRegistry,
) -> MessageOutcome:
    """
    Apply one observer message to the ecosystem.

    An entity request is honoured directly and nothing else happens.
    Otherwise, with USER_MESSAGE_INFLUENCE_CHANCE, keywords shift the
    parameters and may switch the environment, and long messages may
    manifest a random built-in entity.
    """
    request = parse_entity_request(message, registry)
    if request is not None:
        request_entity(state, request.action, request.entity_type, rng, registry)
        return MessageOutcome(request=request)

    outcome = MessageOutcome()
    if rng.random() > USER_MESSAGE_INFLUENCE_CHANCE:
        return outcome
    outcome.influenced = True

    lower = message.lower()
    low, high = INFLUENCE_RANGE

    if any(keyword in lower for keyword in POSITIVE_KEYWORDS):
        adjust_parameter(state, "harmony", rng.randint(low, high))
        adjust_parameter(state, "resonance", rng.randint(low, high))

    if any(keyword in lower for keyword in NEGATIVE_KEYWORDS):
        adjust_parameter(state, "entropy", rng.randint(low, high))
        adjust_parameter(state, "complexity", rng.randint(low, high))

    for environment, keywords in ENVIRONMENT_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords) and rng.random() < ENVIRONMENT_SWITCH_CHANCE:
            state.environment = environment
            outcome.environment = environment

    if len(message) > MESSAGE_MANIFEST_MIN_LENGTH and rng.random() < MESSAGE_MANIFEST_CHANCE:
        entity_type = rng.choice(BUILTIN_TYPES)
        add_entity(state, entity_type, safe_position(rng), rng, registry)
        add_codex_entry(state, f"User message influenced the manifestation of a {entity_type}.")
        outcome.manifested = entity_type

    return outcome
