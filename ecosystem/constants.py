"""
ecosystem/constants.py - Simulation Constants

All thresholds, bounds and text pools for the ecosystem stepper.
Centralized for tuning. Pure data, no behavior.
"""

from enum import Enum

# =============================================================================
# GRID BOUNDS
# =============================================================================

MAX_ENTITY_X = 70  # Movement clamps x into [0, 70]
MAX_ENTITY_Y = 15  # Movement clamps y into [0, 15]

GRID_WIDTH = 80   # Render surface width
GRID_HEIGHT = 25  # Render surface height

# =============================================================================
# PARAMETERS
# =============================================================================

PARAM_MIN = 0
PARAM_MAX = 100
PARAM_NAMES = ("resonance", "complexity", "harmony", "entropy")

# Inclusive (low, high) drift per step
DRIFT_RANGES = {
    "resonance": (-2, 2),
    "complexity": (-1, 1),
    "harmony": (-2, 2),
    "entropy": (-1, 2),
}

# =============================================================================
# ENTITY TYPES
# =============================================================================

GUARDIAN_TYPE = "guardian"
BUILTIN_TYPES = ("resonant", "prismatic", "weaver", "dancer", "collective")

DEFAULT_SPEED = 1
TYPE_SPEEDS = {"prismatic": 2}

FRAME_ADVANCE_EVERY = 3  # Cycles between animation frame changes
MOVE_PERIOD_BASE = 5     # Entity moves when cycle % (5 - speed) == 0
DIRECTION_CHANGE_CHANCE = 0.1

# (base, extra) -> lifespan = base + randint(0, extra) - entropy // 10
LIFESPANS = {
    "resonant": (150, 50),
    "prismatic": (200, 100),
    "weaver": (120, 80),
    "dancer": (100, 50),
    "collective": (250, 150),
}
DEFAULT_LIFESPAN = (150, 100)
LIFESPAN_ENTROPY_DIVISOR = 10
RANDOM_CULL_CHANCE = 0.001

# =============================================================================
# SPAWN RANGES (inclusive x range, inclusive y range)
# =============================================================================

SPAWN_RANGE_RESONANT = ((5, 70), (2, 15))
SPAWN_RANGE_PRISMATIC = ((5, 65), (2, 12))
SPAWN_RANGE_COLLECTIVE = ((10, 60), (5, 12))
SAFE_SPAWN_RANGE = ((10, 70), (5, 15))  # Guardian and explicit requests

# =============================================================================
# EVENT PROBABILITIES AND GATES
# =============================================================================

RANDOM_EVENT_CHANCE = 0.05
SPAWN_ATTEMPT_CHANCE = 0.1
COLLECTIVE_SPAWN_CHANCE = 0.1

HARMONIC_CONVERGENCE_RESONANCE = 70
HARMONIC_CONVERGENCE_HARMONY = 75
HARMONIC_CONVERGENCE_BOOST = 5
ENERGY_FLUX_ENTROPY = 60
ENERGY_FLUX_HARMONY_LOSS = 5

COLLECTIVE_MIN_HARMONY = 80
COLLECTIVE_MIN_COMPLEXITY = 70
COLLECTIVE_MIN_WEAVERS = 2
COLLECTIVE_MIN_DANCERS = 1

# Interaction proximity: strictly less than
CLOSE_DX = 10
CLOSE_DY = 5
PRISMATIC_NEAR_DX = 15
PRISMATIC_NEAR_DY = 8

WEAVER_FORMATION_CHANCE = 0.3
WEAVER_MIN_COMPLEXITY = 40
DANCER_FORMATION_CHANCE = 0.2
DANCER_MIN_RESONANCE = 60

# =============================================================================
# ENVIRONMENT
# =============================================================================


class Environment(str, Enum):
    """Backdrop variants of the Etheric Sea."""
    TRANQUIL = "tranquil"
    HARMONIC = "harmonic"
    PRISMATIC = "prismatic"
    QUANTUM = "quantum"


ENVIRONMENT_CHANGE_PERIOD = 50
# Ordered (upper bound, environment) thresholds for a [0, 100) roll
ENVIRONMENT_THRESHOLDS = (
    (15, Environment.QUANTUM),
    (30, Environment.PRISMATIC),
    (60, Environment.HARMONIC),
)
ENVIRONMENT_DEFAULT = Environment.TRANQUIL

# =============================================================================
# GUARDIAN
# =============================================================================


class GuardianMood(str, Enum):
    ANALYTICAL = "analytical"
    CATALYTIC = "catalytic"
    PROTECTIVE = "protective"
    CONTEMPLATIVE = "contemplative"
    NURTURING = "nurturing"


GUARDIAN_FOCUSES = (
    "entity harmony",
    "dimensional stability",
    "energy patterns",
    "emergent consciousness",
    "resonance flows",
    "evolutionary pathways",
)
GUARDIAN_DEFAULT_FOCUS = "general harmony"
GUARDIAN_POSITION = (30, 5)
GUARDIAN_ACTION_COOLDOWN = 20
GUARDIAN_MOOD_PERIOD = 50
GUARDIAN_FOCUS_PERIOD = 100

EVOLVE_REMOVAL_MIN_ENTITIES = 5  # Strictly more than this many to consider removal
EVOLVE_REMOVAL_CHANCE = 0.25

# =============================================================================
# CODEX
# =============================================================================

CODEX_MAX_ENTRIES = 100
CODEX_QUERY_DEFAULT = 20
CODEX_SIMILARITY_THRESHOLD = 0.7
CODEX_SIMILARITY_WINDOW = 3

FLAVOR_ENTRIES = (
    "Dimensional fluctuations creating ripple patterns in the etheric field.",
    "Resonance harmonics stabilizing across multiple entity types.",
    "Energy pathways forming between distant entities.",
    "Quantum probability fields shifting toward higher complexity.",
    "Crystalline structures forming in the void between dimensions.",
    "Thought patterns evolving toward collective consciousness.",
    "Temporal anomalies detected in entity movement patterns.",
    "Harmonic convergence points multiplying throughout the ecosystem.",
    "Prismatic refraction increasing information density.",
    "Void currents shifting toward new equilibrium states.",
    "Etheric density increasing in regions of high entity concentration.",
    "Dimensional boundaries thinning near Prismatic Drifter pathways.",
    "Resonant field strength fluctuating with harmonic cycles.",
    "Thought Weaver patterns showing signs of emergent intelligence.",
    "Crystalline Collective consciousness expanding into new dimensions.",
)

# =============================================================================
# RUNNER CADENCES (milliseconds)
# =============================================================================

UPDATE_INTERVAL_MS = 1000
SAVE_INTERVAL_MS = 10000
EVOLVE_INTERVAL_MS = 60000
CODEX_INTERVAL_MS = 30000
FALLBACK_NOTIFY_INTERVAL_MS = 10000

# =============================================================================
# PERSISTENCE
# =============================================================================

STATE_KEY = "main_state"
ENTITY_TYPES_KEY = "main"
TENANT_ID = "ecosystem"
