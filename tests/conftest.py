"""Shared fixtures for the ecosystem tests."""

import pytest

from ecosystem.population import add_entity
from ecosystem.registry import EntityRegistry
from ecosystem.rng import SequenceRandom
from ecosystem.types_state import EcosystemState, Position


@pytest.fixture
def registry():
    return EntityRegistry()


@pytest.fixture
def place(registry):
    """Add an entity at (x, y) without consuming a test's scripted draws."""
    setup_rng = SequenceRandom(fallback=0.9)

    def _place(state: EcosystemState, entity_type: str, x: int, y: int, age: int = 0):
        entity = add_entity(state, entity_type, Position(x, y), setup_rng, registry)
        entity.age = age
        return entity

    return _place
