"""
Population Tests

Entity creation, removal and the counts invariant.
"""

import pytest

from ecosystem.constants import GUARDIAN_TYPE
from ecosystem.population import (
    add_entity,
    create_entity,
    find_oldest_entity,
    recount,
    remove_entity,
    remove_entity_at,
    safe_position,
)
from ecosystem.rng import SequenceRandom
from ecosystem.types_state import EcosystemState, Position


@pytest.fixture
def rng():
    return SequenceRandom(fallback=0.9)


@pytest.fixture
def state():
    return EcosystemState(cycle=12)


class TestCreate:
    """Tests for create_entity and add_entity."""

    def test_prismatic_speed(self, rng, registry):
        """Prismatic drifters move at speed 2, everything else at 1."""
        assert create_entity("prismatic", Position(1, 1), rng, registry).speed == 2
        assert create_entity("weaver", Position(1, 1), rng, registry).speed == 1
        assert create_entity("nexus", Position(1, 1), rng, registry).speed == 1

    def test_direction_from_two_coin_flips(self, registry):
        """x then y heading, > 0.5 is positive."""
        entity = create_entity("resonant", Position(0, 0), SequenceRandom([0.9, 0.1]), registry)
        assert (entity.direction.x, entity.direction.y) == (1, -1)

    def test_pattern_resolved_at_creation(self, rng, registry):
        """The first variant of the type is stored on the entity."""
        entity = create_entity("dancer", Position(0, 0), rng, registry)
        assert entity.pattern == registry.resolve_pattern("dancer", 0)[0]
        assert entity.age == 0 and entity.frame == 0

    def test_first_of_type_logs_discovery(self, state, rng, registry):
        """count 0 -> 1 writes a discovery entry with the capitalized type."""
        add_entity(state, "weaver", Position(5, 5), rng, registry)
        add_entity(state, "weaver", Position(6, 5), rng, registry)
        texts = [e.text for e in state.codex_entries]
        assert texts == ["Discovered first Weaver entity at cycle 12."]
        assert state.counts["weaver"] == 2

    def test_guardian_exempt_from_discovery(self, state, rng, registry):
        """The guardian never produces a discovery entry."""
        add_entity(state, GUARDIAN_TYPE, Position(30, 5), rng, registry)
        assert state.codex_entries == []
        assert state.counts[GUARDIAN_TYPE] == 1

    def test_unseen_custom_type(self, state, rng, registry):
        """A never-registered type spawns with the placeholder and is counted."""
        add_entity(state, "nexus", Position(4, 4), rng, registry)
        discoveries = [e.text for e in state.codex_entries if "Discovered first Nexus" in e.text]
        assert len(discoveries) == 1
        assert state.counts["nexus"] == 1
        assert state.entities[0].pattern == ["*", "/|\\", "/ \\"]

    def test_rediscovery_after_extinction(self, state, rng, registry):
        """A type that died out is discovered again on its next 0 -> 1."""
        entity = add_entity(state, "resonant", Position(1, 1), rng, registry)
        remove_entity(state, entity)
        add_entity(state, "resonant", Position(1, 1), rng, registry)
        assert sum("Discovered first Resonant" in e.text for e in state.codex_entries) == 2

    def test_safe_position_range(self):
        """Safe positions lie in x [10, 70], y [5, 15]."""
        assert safe_position(SequenceRandom([0.0, 0.0])) == Position(10, 5)
        assert safe_position(SequenceRandom([0.999, 0.999])) == Position(70, 15)


class TestRemove:
    """Tests for remove_entity and friends."""

    def test_remove_by_identity(self, state, rng, registry):
        """Only the given object is removed, even if another is field-identical."""
        first = add_entity(state, "resonant", Position(3, 3), rng, registry)
        twin = add_entity(state, "resonant", Position(3, 3), rng, registry)
        twin.direction.x, twin.direction.y = first.direction.x, first.direction.y

        assert remove_entity(state, twin)
        assert state.entities == [first]
        assert state.counts["resonant"] == 1

    def test_guardian_never_removed(self, state, rng, registry):
        """remove_entity refuses the guardian."""
        guardian = add_entity(state, GUARDIAN_TYPE, Position(30, 5), rng, registry)
        assert not remove_entity(state, guardian)
        assert not remove_entity_at(state, 0)
        assert state.entities == [guardian]

    def test_remove_missing(self, state, rng, registry):
        """Removing an entity that is not present changes nothing."""
        stray = create_entity("resonant", Position(0, 0), rng, registry)
        assert not remove_entity(state, stray)
        assert not remove_entity_at(state, 5)

    def test_find_oldest_skips_guardian(self, state, rng, registry):
        """The oldest non-guardian wins; ties go to the earliest."""
        guardian = add_entity(state, GUARDIAN_TYPE, Position(30, 5), rng, registry)
        guardian.age = 999
        a = add_entity(state, "resonant", Position(1, 1), rng, registry)
        b = add_entity(state, "weaver", Position(1, 1), rng, registry)
        a.age, b.age = 40, 40
        assert find_oldest_entity(state) is a
        assert find_oldest_entity(state, "weaver") is b
        assert find_oldest_entity(state, "dancer") is None

    def test_recount_keeps_seen_types(self, state, rng, registry):
        """recount rebuilds from entities and keeps zero rows for extinct types."""
        add_entity(state, "resonant", Position(1, 1), rng, registry)
        state.counts["dancer"] = 3
        recount(state)
        assert state.counts == {"resonant": 1, "dancer": 0}

    def test_from_dict_recounts(self, state, rng, registry):
        """A serialized row with missing counts is repaired on load."""
        add_entity(state, "resonant", Position(1, 1), rng, registry)
        data = state.to_dict()
        data["counts"] = {}
        loaded = EcosystemState.from_dict(data)
        assert loaded.counts == {"resonant": 1}

    def test_no_rediscovery_after_load(self, state, rng, registry):
        """A type present in a loaded row is not announced as new again."""
        add_entity(state, "resonant", Position(1, 1), rng, registry)
        data = state.to_dict()
        data["counts"] = {}
        loaded = EcosystemState.from_dict(data)
        before = len(loaded.codex_entries)
        add_entity(loaded, "resonant", Position(5, 5), rng, registry)
        assert len(loaded.codex_entries) == before
        assert loaded.counts == {"resonant": 2}
