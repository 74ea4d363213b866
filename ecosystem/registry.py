"""
ecosystem/registry.py - Entity Registry

Maps an entity type name to its glyph variants and display metadata.
Built-in types ship with the package; custom types are registered at runtime.
Unknown types resolve to PLACEHOLDER instead of raising.
"""

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .constants import GUARDIAN_TYPE
from .errors import RegistrationError

logger = logging.getLogger(__name__)

__all__ = [
    "EntityTypeSpec",
    "EntityRegistry",
    "RegistrationError",
    "PLACEHOLDER",
    "BUILTIN_SPECS",
    "parse_entity_reply",
    "registration_from_reply",
]


# =============================================================================
# TYPE SPEC
# =============================================================================

@dataclass(frozen=True)
class EntityTypeSpec:
    """Visual and descriptive metadata for one entity type."""
    name: str
    patterns: Tuple[Tuple[str, ...], ...]
    class_name: str
    display_name: str
    description: str = ""
    properties: Tuple[str, ...] = field(default_factory=tuple)
    builtin: bool = False

    @property
    def variant_count(self) -> int:
        return len(self.patterns)

    def variant(self, frame: int) -> List[str]:
        return list(self.patterns[abs(frame) % len(self.patterns)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patterns": [list(p) for p in self.patterns],
            "className": self.class_name,
            "displayName": self.display_name,
            "description": self.description,
            "properties": list(self.properties),
        }


PLACEHOLDER = EntityTypeSpec(
    name="unknown",
    patterns=(("*", "/|\\", "/ \\"),),
    class_name="entity-unknown",
    display_name="Unknown Entity",
)


def _builtin(name, patterns, display_name, description, properties) -> EntityTypeSpec:
    return EntityTypeSpec(
        name=name,
        patterns=tuple(tuple(p) for p in patterns),
        class_name=f"entity-{name}",
        display_name=display_name,
        description=description,
        properties=tuple(properties),
        builtin=True,
    )


BUILTIN_SPECS: Dict[str, EntityTypeSpec] = {
    spec.name: spec for spec in (
        _builtin(
            "resonant",
            [
                ["  ·  ", " / \\ ", "/   \\", " · · "],
                ["  *  ", " / \\ ", "/   \\", " · · "],
            ],
            "Resonant Entities",
            "Simple entities that respond to resonance fields in the ecosystem. "
            "They move in patterns that reflect the overall harmony of the system.",
            [
                "Responds to resonance fields",
                "Forms simple movement patterns",
                "Can combine to form more complex entities",
            ],
        ),
        _builtin(
            "prismatic",
            [
                ["   ✧   ", "  /|\\  ", " / | \\ ", "/  |  \\", "·  |  ·"],
                ["   *   ", "  /|\\  ", " / | \\ ", "/  |  \\", "·  |  ·"],
            ],
            "Prismatic Drifters",
            "Fast-moving entities that drift through dimensional boundaries, "
            "leaving trails of energy that influence nearby entities.",
            [
                "Moves quickly through dimensional boundaries",
                "Creates energy trails that influence other entities",
                "Unpredictable movement patterns",
            ],
        ),
        _builtin(
            "weaver",
            [
                [
                    " .·····. ",
                    " /     \\ ",
                    "/ ·   · \\",
                    "| \\   / |",
                    "|  · ·  |",
                    " \\ ··· / ",
                    "  `···´  ",
                ],
            ],
            "Thought Weavers",
            "Entities that weave thought patterns into the fabric of the ecosystem. "
            "They emerge when Resonants harmonize near Prismatic Drifters.",
            [
                "Processes information flows",
                "Creates thought structures",
                "Forms from Resonant and Prismatic interaction",
            ],
        ),
        _builtin(
            "dancer",
            [
                ["✧ · ✧", " \\|/ ", "--*--", " /|\\ ", "✧ · ✧"],
                ["     ", "  ·  ", "     ", "  ·  ", "     "],
                ["· ✧ ·", " /|\\ ", "--*--", " \\|/ ", "· ✧ ·"],
            ],
            "Void Dancers",
            "Entities that dance through the void between dimensions. They form "
            "from the interaction of Prismatic Drifters and Thought Weavers.",
            [
                "Creates ripples in the etheric field",
                "Influences behavior of nearby entities",
                "Forms from Prismatic and Weaver interaction",
            ],
        ),
        _builtin(
            "collective",
            [
                [
                    "  .·'·.  ",
                    " .'   '. ",
                    "/   ✧   \\",
                    "| ✧   ✧ |",
                    "\\   ✧   /",
                    " '.   .' ",
                    "  `·.·´  ",
                ],
            ],
            "Crystalline Collectives",
            "Highly evolved entities that represent collective consciousness, "
            "formed under conditions of high harmony and complexity.",
            [
                "Represents networked intelligence",
                "Processes multiple information streams",
                "Forms under high harmony and complexity",
            ],
        ),
        _builtin(
            GUARDIAN_TYPE,
            [
                ["   ✷✷✷   ", "  ✷ ✶ ✷  ", " ✷ ✶ ✶ ✷ ", "✷✷✷✷✷✷✷✷✷", "  \\ | /  ", "   \\|/   ", "    ✶    "],
                ["   ✷✷✷   ", "  ✷ ✶ ✷  ", " ✷ ✶ ✶ ✷ ", "✷✷✷✷✷✷✷✷✷", "  / | \\  ", "   /|\\   ", "    ✶    "],
            ],
            "Etheric Guardian",
            "The Etheric Guardian oversees the ecosystem, maintaining balance and "
            "facilitating evolution. Its mood and focus shift over time.",
            [
                "Exists across all dimensional planes",
                "Can influence ecosystem parameters",
                "Mood and focus shift over time",
            ],
        ),
    )
}


# =============================================================================
# REGISTRY
# =============================================================================

class EntityRegistry:
    """Built-in plus runtime-registered entity types.

    One instance is created at application start and passed to whatever needs
    pattern lookups (stepper, runner, renderer).
    """

    def __init__(self, custom: Optional[Dict[str, EntityTypeSpec]] = None):
        self._specs: Dict[str, EntityTypeSpec] = dict(BUILTIN_SPECS)
        self._custom: List[str] = []
        self._listeners: List[Callable[[str], None]] = []
        self._missed: set = set()
        for spec in (custom or {}).values():
            self._specs[spec.name] = spec
            self._custom.append(spec.name)

    # -- lookup ---------------------------------------------------------------

    def __contains__(self, entity_type: str) -> bool:
        return entity_type in self._specs

    def get(self, entity_type: str) -> EntityTypeSpec:
        """Spec for ``entity_type``; PLACEHOLDER on a miss."""
        spec = self._specs.get(entity_type)
        if spec is None:
            if entity_type not in self._missed:
                self._missed.add(entity_type)
                logger.warning("Entity type %r not registered, using placeholder pattern", entity_type)
            return PLACEHOLDER
        return spec

    def resolve_pattern(self, entity_type: str, frame: int = 0) -> Tuple[List[str], int]:
        """Glyph lines for ``frame`` of ``entity_type`` and the type's variant count."""
        spec = self.get(entity_type)
        return spec.variant(frame), spec.variant_count

    def variant_count(self, entity_type: str) -> int:
        return self.get(entity_type).variant_count

    def display_name(self, entity_type: str) -> str:
        spec = self._specs.get(entity_type)
        return spec.display_name if spec else entity_type.capitalize()

    def types(self) -> List[str]:
        return list(self._specs)

    def custom_types(self) -> List[str]:
        return list(self._custom)

    # -- mutation -------------------------------------------------------------

    def register_type(
        self,
        name: str,
        pattern_lines: Sequence[str],
        display_name: str,
        description: str,
        properties: Sequence[str],
        color_tag: str,
    ) -> EntityTypeSpec:
        """Register (or replace) a custom entity type with one pattern variant."""
        name = (name or "").strip().lower()
        if not name:
            raise RegistrationError("Entity type name must not be empty")
        if name == GUARDIAN_TYPE:
            raise RegistrationError("The guardian type cannot be redefined")
        if isinstance(pattern_lines, str) or not pattern_lines:
            raise RegistrationError(f"Pattern for {name!r} must be a non-empty list of strings")
        if not all(isinstance(line, str) for line in pattern_lines):
            raise RegistrationError(f"Pattern for {name!r} must contain only strings")
        if isinstance(properties, str) or len(properties) != 3:
            raise RegistrationError(f"Entity type {name!r} needs exactly 3 properties")

        spec = EntityTypeSpec(
            name=name,
            patterns=(tuple(pattern_lines),),
            class_name=color_tag or f"entity-{name}",
            display_name=display_name or name.capitalize(),
            description=description or "",
            properties=tuple(str(p) for p in properties),
        )
        known = name in self._specs
        self._specs[name] = spec
        self._missed.discard(name)
        if name not in self._custom:
            self._custom.append(name)
        if not known:
            self._notify(name)
        logger.info("Registered entity type %s", name)
        return spec

    def update_type(self, name: str, **changes: Any) -> EntityTypeSpec:
        """Patch fields of an existing type (built-ins included)."""
        spec = self._specs.get(name)
        if spec is None:
            raise KeyError(name)
        if "patterns" in changes:
            changes["patterns"] = tuple(tuple(p) for p in changes["patterns"])
        if "properties" in changes:
            changes["properties"] = tuple(changes["properties"])
        updated = replace(spec, **changes)
        self._specs[name] = updated
        return updated

    def on_type_added(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Call ``callback(name)`` whenever a new custom type appears."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, name: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(name)
            except Exception:
                logger.exception("Entity-added callback failed for %s", name)

    # -- serialization --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Custom types only; built-ins always come from the package."""
        return {name: self._specs[name].to_dict() for name in self._custom}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EntityRegistry":
        registry = cls()
        for name, item in (data or {}).items():
            patterns = item.get("patterns") or []
            registry.register_type(
                name,
                patterns[0] if patterns else [],
                item.get("displayName", ""),
                item.get("description", ""),
                item.get("properties") or [],
                item.get("className", ""),
            )
        return registry

    def register_definition(self, definition: Dict[str, Any]) -> EntityTypeSpec:
        """Register from an authoring definition (entityType, displayName, ..., asciiArt)."""
        art = definition.get("asciiArt") or definition.get("pattern") or ""
        lines = art.split("\n") if isinstance(art, str) else list(art)
        name = str(definition.get("entityType", "")).strip().lower()
        return self.register_type(
            name,
            lines,
            definition.get("displayName", ""),
            definition.get("description", ""),
            definition.get("properties") or [],
            definition.get("className") or f"entity-{name}",
        )


# =============================================================================
# ASSISTANT REPLY PARSING
# =============================================================================

_FENCED_JSON = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
_FENCED_ANY = re.compile(r"```(.*?)```", re.DOTALL)
_BRACES = re.compile(r"\{.*\}", re.DOTALL)

_FALLBACK_DEFINITION = {
    "entityType": "mystical",
    "displayName": "Mystical Entity",
    "description": "A mysterious entity created from the void.",
    "properties": ["Created from chaos", "Mysterious origins", "Unpredictable behavior"],
    "asciiArt": "  ✧  \n /|\\ \n/ | \\\n  |  \n / \\ \n/   \\",
}


def _field(text: str, key: str) -> Optional[str]:
    match = re.search(rf"[\"']?{key}[\"']?\s*:\s*[\"']([^\"']+)[\"']", text)
    return match.group(1) if match else None


def parse_entity_reply(reply: str) -> Dict[str, Any]:
    """
    Extract an entity definition from an assistant reply.

    Looks for a ```json block, then any fenced block, then the outermost
    braces. If none of them parses, individual fields are scraped with
    regular expressions and the rest filled from a fallback definition.

    Returns:
        dict with entityType, displayName, description, properties, asciiArt
    """
    for pattern in (_FENCED_JSON, _FENCED_ANY, _BRACES):
        match = pattern.search(reply)
        if not match:
            continue
        candidate = match.group(1) if pattern is not _BRACES else match.group(0)
        try:
            data = json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and data.get("entityType"):
            return data

    logger.warning("Assistant reply carried no parseable entity JSON, scraping fields")
    definition = dict(_FALLBACK_DEFINITION)
    for key in ("entityType", "displayName", "description"):
        value = _field(reply, key)
        if value:
            definition[key] = value
    return definition


def registration_from_reply(registry: EntityRegistry, reply: str) -> EntityTypeSpec:
    """Parse an assistant reply and register the entity type it describes."""
    return registry.register_definition(parse_entity_reply(reply))
