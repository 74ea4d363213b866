"""
ecosystem/types_state.py - EcosystemState and Entity Dataclasses

Mutable simulation state. The serialized form uses the camelCase keys of the
persisted state row so saved ecosystems round-trip unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .constants import (
    ENVIRONMENT_DEFAULT,
    GUARDIAN_ACTION_COOLDOWN,
    GUARDIAN_DEFAULT_FOCUS,
    GUARDIAN_POSITION,
    GUARDIAN_TYPE,
    PARAM_MAX,
    PARAM_MIN,
    PARAM_NAMES,
    Environment,
    GuardianMood,
)


def clamp(value: int, low: int = PARAM_MIN, high: int = PARAM_MAX) -> int:
    return min(max(value, low), high)


# =============================================================================
# GEOMETRY
# =============================================================================

@dataclass
class Position:
    x: int
    y: int

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}


@dataclass
class Direction:
    """Diagonal heading; each component is -1 or +1."""
    x: int = 1
    y: int = 1

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}


# =============================================================================
# PARAMETERS
# =============================================================================

@dataclass
class Params:
    """The four ecosystem parameters, each an integer in [0, 100]."""
    resonance: int = 50
    complexity: int = 30
    harmony: int = 65
    entropy: int = 25

    def __post_init__(self):
        self.clamp_all()

    def clamp_all(self) -> None:
        for name in PARAM_NAMES:
            setattr(self, name, clamp(int(getattr(self, name))))

    def to_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in PARAM_NAMES}


# =============================================================================
# ENTITY
# =============================================================================

@dataclass(eq=False)
class Entity:
    """A creature living in the grid.

    Compared by identity: two entities with identical fields are still
    distinct creatures, and removal after an interaction must take exactly
    the participants.
    """
    type: str
    position: Position
    pattern: List[str] = field(default_factory=list)
    frame: int = 0
    age: int = 0
    direction: Direction = field(default_factory=Direction)
    speed: int = 1

    @property
    def is_guardian(self) -> bool:
        return self.type == GUARDIAN_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "position": self.position.to_dict(),
            "pattern": list(self.pattern),
            "frame": self.frame,
            "age": self.age,
            "direction": self.direction.to_dict(),
            "speed": self.speed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        position = data.get("position") or {}
        direction = data.get("direction") or {}
        return cls(
            type=data["type"],
            position=Position(int(position.get("x", 0)), int(position.get("y", 0))),
            pattern=list(data.get("pattern") or []),
            frame=int(data.get("frame", 0)),
            age=int(data.get("age", 0)),
            direction=Direction(int(direction.get("x", 1)), int(direction.get("y", 1))),
            # Older rows may lack speed; movement treats it as 1
            speed=int(data.get("speed") or 1),
        )


# =============================================================================
# GUARDIAN STATUS
# =============================================================================

@dataclass
class GuardianStatus:
    """Status view of the guardian.

    The guardian also lives in ``EcosystemState.entities`` as an Entity of
    type "guardian". Both views describe one actor and are only changed
    through ecosystem/guardian.py.
    """
    active: bool = False
    mood: str = GuardianMood.ANALYTICAL.value
    focus: str = GUARDIAN_DEFAULT_FOCUS
    position: Position = field(default_factory=lambda: Position(*GUARDIAN_POSITION))
    last_action: int = 0
    action_cooldown: int = GUARDIAN_ACTION_COOLDOWN
    suggestion_history: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "mood": self.mood,
            "focus": self.focus,
            "position": self.position.to_dict(),
            "lastAction": self.last_action,
            "actionCooldown": self.action_cooldown,
            "suggestionHistory": list(self.suggestion_history),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuardianStatus":
        position = data.get("position") or {}
        return cls(
            active=bool(data.get("active", False)),
            mood=data.get("mood", GuardianMood.ANALYTICAL.value),
            focus=data.get("focus", GUARDIAN_DEFAULT_FOCUS),
            position=Position(
                int(position.get("x", GUARDIAN_POSITION[0])),
                int(position.get("y", GUARDIAN_POSITION[1])),
            ),
            last_action=int(data.get("lastAction", 0)),
            action_cooldown=int(data.get("actionCooldown", GUARDIAN_ACTION_COOLDOWN)),
            suggestion_history=list(data.get("suggestionHistory") or []),
        )


# =============================================================================
# CODEX ENTRY
# =============================================================================

@dataclass(frozen=True)
class CodexEntry:
    cycle: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"cycle": self.cycle, "text": self.text}


# =============================================================================
# ECOSYSTEM STATE
# =============================================================================

@dataclass
class EcosystemState:
    """Mutable ecosystem aggregate, owned by exactly one stepper at a time."""
    cycle: int = 1
    environment: Environment = ENVIRONMENT_DEFAULT
    environment_frame: int = 0
    entities: List[Entity] = field(default_factory=list)
    params: Params = field(default_factory=Params)
    counts: Dict[str, int] = field(default_factory=dict)
    codex_entries: List[CodexEntry] = field(default_factory=list)
    guardian: GuardianStatus = field(default_factory=GuardianStatus)

    def count(self, entity_type: str) -> int:
        return self.counts.get(entity_type, 0)

    def recount(self) -> None:
        """Rebuild counts from entities, keeping zero entries for types seen before."""
        fresh = {entity_type: 0 for entity_type in self.counts}
        for entity in self.entities:
            fresh[entity.type] = fresh.get(entity.type, 0) + 1
        self.counts = fresh

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "environment": Environment(self.environment).value,
            "environmentFrame": self.environment_frame,
            "entities": [e.to_dict() for e in self.entities],
            "params": self.params.to_dict(),
            "counts": dict(self.counts),
            "codexEntries": [c.to_dict() for c in self.codex_entries],
            "guardian": self.guardian.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EcosystemState":
        params = data.get("params") or {}
        state = cls(
            cycle=int(data.get("cycle", 1)),
            environment=Environment(data.get("environment", ENVIRONMENT_DEFAULT.value)),
            environment_frame=int(data.get("environmentFrame", 0)),
            entities=[Entity.from_dict(e) for e in data.get("entities") or []],
            params=Params(**{k: int(v) for k, v in params.items() if k in PARAM_NAMES}),
            counts={k: int(v) for k, v in (data.get("counts") or {}).items()},
            codex_entries=[
                CodexEntry(int(c.get("cycle", 0)), str(c.get("text", "")))
                for c in data.get("codexEntries") or []
            ],
            guardian=GuardianStatus.from_dict(data.get("guardian") or {}),
        )
        # Stored counts are not trusted
        state.recount()
        return state
