"""
ecosystem - Luminous Ecosystem Simulation Package

Public API for the entity stepper, registry and codex.
Flat, focused files. One file = one responsibility.
"""

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_config import (
    InitialConditions,
    PRESET_DEFAULT,
    PRESET_BARREN,
    PRESET_FLOURISHING,
    PRESETS,
    get_preset,
)
from .types_state import (
    Position,
    Direction,
    Params,
    Entity,
    GuardianStatus,
    CodexEntry,
    EcosystemState,
)
from .errors import EcosystemError, RegistrationError, ConfigError, StorageError

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import (
    Environment,
    GuardianMood,
    BUILTIN_TYPES,
    GUARDIAN_TYPE,
    MAX_ENTITY_X,
    MAX_ENTITY_Y,
    CODEX_MAX_ENTRIES,
)

# =============================================================================
# RANDOMNESS AND REGISTRY
# =============================================================================
from .rng import RandomSource, NumpyRandom, SequenceRandom
from .registry import (
    EntityRegistry,
    EntityTypeSpec,
    PLACEHOLDER,
    parse_entity_reply,
    registration_from_reply,
)

# =============================================================================
# CORE SIMULATION
# =============================================================================
from .cycle import initialize_state, step, run_steps

# =============================================================================
# CODEX AND POPULATION
# =============================================================================
from .codex import add_codex_entry, query_recent, word_overlap, are_similar
from .population import (
    add_entity,
    remove_entity,
    find_oldest_entity,
    find_random_entity,
    safe_position,
    recount,
)

# =============================================================================
# DYNAMICS
# =============================================================================
from .dynamics_params import drift_parameters, adjust_parameter
from .dynamics_environment import update_environment, set_environment
from .dynamics_movement import update_entities
from .dynamics_interaction import check_entity_interactions, process_random_events
from .dynamics_lifecycle import process_entity_lifecycle, attempt_spawn, despawn_entities

# =============================================================================
# GUARDIAN, ACTIONS, RENDERING
# =============================================================================
from .guardian import manifest_guardian, update_guardian, evolve, generate_flavor_entry
from .actions import observe, stabilize_resonance, amplify_shift, focus_entity, request_entity
from .render import render_grid


__all__ = [
    # Types
    "InitialConditions",
    "Position",
    "Direction",
    "Params",
    "Entity",
    "GuardianStatus",
    "CodexEntry",
    "EcosystemState",
    # Presets
    "PRESET_DEFAULT",
    "PRESET_BARREN",
    "PRESET_FLOURISHING",
    "PRESETS",
    "get_preset",
    # Errors
    "EcosystemError",
    "RegistrationError",
    "ConfigError",
    "StorageError",
    # Constants
    "Environment",
    "GuardianMood",
    "BUILTIN_TYPES",
    "GUARDIAN_TYPE",
    "MAX_ENTITY_X",
    "MAX_ENTITY_Y",
    "CODEX_MAX_ENTRIES",
    # Randomness and registry
    "RandomSource",
    "NumpyRandom",
    "SequenceRandom",
    "EntityRegistry",
    "EntityTypeSpec",
    "PLACEHOLDER",
    "parse_entity_reply",
    "registration_from_reply",
    # Core simulation
    "initialize_state",
    "step",
    "run_steps",
    # Codex and population
    "add_codex_entry",
    "query_recent",
    "word_overlap",
    "are_similar",
    "add_entity",
    "remove_entity",
    "find_oldest_entity",
    "find_random_entity",
    "safe_position",
    "recount",
    # Dynamics
    "drift_parameters",
    "adjust_parameter",
    "update_environment",
    "set_environment",
    "update_entities",
    "check_entity_interactions",
    "process_random_events",
    "process_entity_lifecycle",
    "attempt_spawn",
    "despawn_entities",
    # Guardian, actions, rendering
    "manifest_guardian",
    "update_guardian",
    "evolve",
    "generate_flavor_entry",
    "observe",
    "stabilize_resonance",
    "amplify_shift",
    "focus_entity",
    "request_entity",
    "render_grid",
]
