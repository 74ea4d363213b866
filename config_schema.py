"""
Luminous Ecosystem Configuration Schema - Self-Validating Runner Config

This module defines EcosystemConfig, the settings of the autonomous runner
and its storage chain.

Consumed by:
- runner.py (cadences, background mode)
- storage.py (backend selection)
- cli.py (serve, validate-config)

Design Principles:
- Self-validating: Can't create invalid config
- Self-healing: Invalid input -> safe defaults + warnings
- Self-describing: Can explain itself and export schema
- Immutable: Frozen after load, no runtime mutation
"""

from __future__ import annotations

import json
import warnings
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from ecosystem.constants import (
    CODEX_INTERVAL_MS,
    EVOLVE_INTERVAL_MS,
    FALLBACK_NOTIFY_INTERVAL_MS,
    SAVE_INTERVAL_MS,
    UPDATE_INTERVAL_MS,
)
from ecosystem.errors import ConfigError
from ecosystem.types_config import PRESETS

__all__ = [
    'EcosystemConfig',
    'load',
    'default',
    'STORAGE_BACKENDS',
]

STORAGE_BACKENDS = ('sqlite', 'json', 'memory')


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_INTERVAL = {"type": "integer", "minimum": 1}

_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://luminous-ecosystem.local/schemas/config/v1.0",
    "title": "EcosystemConfig",
    "description": "Autonomous runner and storage configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "version": {
            "type": "string",
            "pattern": r"^\d+\.\d+$",
            "description": "Config schema version",
        },
        "tick_interval_ms": dict(_INTERVAL, description="Milliseconds between simulation steps"),
        "save_interval_ms": dict(_INTERVAL, description="Milliseconds between persisted snapshots"),
        "evolve_interval_ms": dict(_INTERVAL, description="Milliseconds between guardian interventions"),
        "codex_interval_ms": dict(_INTERVAL, description="Milliseconds between flavor codex entries"),
        "fallback_notify_interval_ms": dict(
            _INTERVAL, description="Milliseconds between notifications in fallback mode"
        ),
        "background": {
            "type": "boolean",
            "description": "Run the loop on a background thread; false selects fallback mode",
        },
        "storage_backend": {
            "type": "string",
            "enum": list(STORAGE_BACKENDS),
        },
        "storage_path": {"type": "string", "minLength": 1},
        "fallback_path": {"type": "string", "minLength": 1},
        "seed": {"type": ["integer", "null"], "minimum": 0},
        "preset": {"type": "string", "enum": sorted(PRESETS)},
        "journal_path": {"type": ["string", "null"]},
    },
}

# Compiled once at import
_COMPILED_VALIDATOR = Draft202012Validator(_JSON_SCHEMA)
Draft202012Validator.check_schema(_JSON_SCHEMA)


# =============================================================================
# EcosystemConfig Dataclass
# =============================================================================

@dataclass(frozen=True)
class EcosystemConfig:
    """
    Autonomous runner configuration.

    Attributes:
        version: Config schema version (e.g., "1.0")
        tick_interval_ms: Step cadence
        save_interval_ms: Persistence cadence
        evolve_interval_ms: Guardian evolve cadence
        codex_interval_ms: Flavor-text cadence
        fallback_notify_interval_ms: Notification cadence in fallback mode
        background: Run on a worker thread (False = degraded fallback mode)
        storage_backend: sqlite, json or memory
        storage_path: SQLite database file
        fallback_path: Directory of the JSON fallback store
        seed: RNG seed, None for entropy from the OS
        preset: Initial-conditions preset for a fresh ecosystem
        journal_path: Optional JSONL receipt journal
    """
    version: str = "1.0"
    tick_interval_ms: int = UPDATE_INTERVAL_MS
    save_interval_ms: int = SAVE_INTERVAL_MS
    evolve_interval_ms: int = EVOLVE_INTERVAL_MS
    codex_interval_ms: int = CODEX_INTERVAL_MS
    fallback_notify_interval_ms: int = FALLBACK_NOTIFY_INTERVAL_MS
    background: bool = True
    storage_backend: str = "sqlite"
    storage_path: str = "luminous-ecosystem.db"
    fallback_path: str = ".luminous"
    seed: Optional[int] = None
    preset: str = "default"
    journal_path: Optional[str] = None

    # -------------------------------------------------------------------------
    # Schema Export
    # -------------------------------------------------------------------------

    @property
    def schema(self) -> Dict[str, Any]:
        """Returns JSON Schema dict for external validation."""
        return json.loads(json.dumps(_JSON_SCHEMA))

    def explain(self) -> str:
        """
        Human-readable explanation of this config.

        Lists the cadences, the storage chain, and every non-default setting.
        """
        mode = "background thread" if self.background else "fallback (no stepping)"
        lines = [
            f"EcosystemConfig v{self.version}",
            "",
            "Cadences:",
            f"  step every {self.tick_interval_ms} ms",
            f"  save every {self.save_interval_ms} ms",
            f"  guardian evolve every {self.evolve_interval_ms} ms",
            f"  flavor codex entry every {self.codex_interval_ms} ms",
            "",
            f"Mode: {mode}",
        ]
        if not self.background:
            lines.append(f"  notify every {self.fallback_notify_interval_ms} ms")

        lines.append("")
        lines.append("Storage:")
        if self.storage_backend == "sqlite":
            lines.append(f"  sqlite database {self.storage_path}")
            lines.append(f"  falling back to JSON files in {self.fallback_path}")
        elif self.storage_backend == "json":
            lines.append(f"  JSON files in {self.fallback_path}")
        else:
            lines.append("  in-memory (nothing survives the process)")

        lines.append("")
        lines.append(f"Preset: {self.preset}")
        lines.append(f"Seed: {self.seed if self.seed is not None else 'random'}")
        if self.journal_path:
            lines.append(f"Receipt journal: {self.journal_path}")

        changed = self.non_defaults()
        if changed:
            lines.append("")
            lines.append("Non-default settings:")
            for key, value in sorted(changed.items()):
                lines.append(f"  {key} = {value!r}")
        return "\n".join(lines)

    def non_defaults(self) -> Dict[str, Any]:
        baseline = _DEFAULTS
        return {k: v for k, v in self.to_dict().items() if baseline.get(k) != v}

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Export as dictionary."""
        return asdict(self)

    def to_json(self, pretty: bool = False) -> str:
        """
        Export as JSON string.

        Args:
            pretty: If True, format with indentation
        """
        if pretty:
            return json.dumps(self.to_dict(), indent=2, sort_keys=True)
        return json.dumps(self.to_dict(), separators=(',', ':'))

    def save(self, path: str) -> None:
        """
        Write config to file.

        Args:
            path: File path to write to (.json or .yaml)
        """
        path_obj = Path(path)
        data = self.to_dict()

        if path_obj.suffix in ('.yaml', '.yml'):
            content = yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
        else:
            content = json.dumps(data, indent=2, sort_keys=True)

        path_obj.write_text(content)

    # -------------------------------------------------------------------------
    # Class Methods
    # -------------------------------------------------------------------------

    @classmethod
    def default(cls) -> EcosystemConfig:
        return cls()

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        validate: bool = True,
        strict: bool = False
    ) -> EcosystemConfig:
        """
        Create from dictionary.

        Same validation as load().

        Args:
            data: Configuration dictionary
            validate: Whether to validate (default True)
            strict: If True, raise on invalid; if False, self-heal

        Returns:
            Validated EcosystemConfig instance
        """
        return _create_config(data, validate, strict)


_DEFAULTS: Dict[str, Any] = asdict(EcosystemConfig())


# =============================================================================
# Module-Level Functions
# =============================================================================

def load(
    path: str,
    validate: bool = True,
    strict: bool = False
) -> EcosystemConfig:
    """
    Load config from JSON/YAML file.

    Auto-validates on load (not separate step).

    Args:
        path: Path to config file
        validate: Whether to validate (default True)
        strict: If True, raise on invalid; if False, self-heal with warnings

    Returns:
        Validated, frozen EcosystemConfig instance

    Raises:
        FileNotFoundError: If path doesn't exist
        ConfigError: If strict=True and validation fails
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path_obj.read_text()

    if path_obj.suffix in ('.yaml', '.yml'):
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

    return _create_config(data, validate, strict)


def default() -> EcosystemConfig:
    """Return the default config."""
    return EcosystemConfig.default()


# =============================================================================
# Internal Validation Functions
# =============================================================================

def _validate(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate config data against the schema.

    Returns: (is_valid, errors)
    """
    errors: List[str] = []
    for err in sorted(_COMPILED_VALIDATOR.iter_errors(data), key=lambda e: list(e.path)):
        where = ".".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{where}: {err.message}")
    return len(errors) == 0, errors


def _field_valid(name: str, value: Any) -> bool:
    subschema = _JSON_SCHEMA["properties"][name]
    return Draft202012Validator(subschema).is_valid(value)


def _self_heal(data: Dict[str, Any], warns: List[str]) -> Dict[str, Any]:
    """
    Apply self-healing to config data.

    Self-healing behavior:
    - Invalid value -> use default, add warning
    - Unknown field -> ignore, add warning
    """
    healed: Dict[str, Any] = {}
    known = {f.name for f in fields(EcosystemConfig)}

    for key, value in data.items():
        if key not in known:
            warns.append(f"Ignoring unknown field: {key}")
            continue
        if not _field_valid(key, value):
            warns.append(f"Invalid {key}={value!r}, using default: {_DEFAULTS[key]!r}")
            healed[key] = _DEFAULTS[key]
            continue
        healed[key] = value

    return healed


def _create_config(
    data: Dict[str, Any],
    validate: bool,
    strict: bool
) -> EcosystemConfig:
    """
    Internal factory for creating EcosystemConfig from data.

    Handles validation and self-healing.
    """
    all_warnings: List[str] = []

    if validate:
        is_valid, errors = _validate(data)
        if not is_valid:
            if strict:
                raise ConfigError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
            data = _self_heal(data, all_warnings)
            is_valid, errors = _validate(data)
            if not is_valid:
                raise ConfigError("Config validation failed after self-healing:\n" +
                                  "\n".join(f"  - {e}" for e in errors))

    for w in all_warnings:
        warnings.warn(f"EcosystemConfig: {w}", UserWarning, stacklevel=3)

    return EcosystemConfig(**data)
