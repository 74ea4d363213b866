"""
Cycle Tests

initialize_state, step ordering and long-run invariants over seeded runs.
"""

from collections import Counter

import pytest

from ecosystem.constants import CODEX_MAX_ENTRIES, Environment, MAX_ENTITY_X, MAX_ENTITY_Y
from ecosystem.cycle import initialize_state, run_steps, step
from ecosystem.guardian import MANIFEST_TEXT
from ecosystem.rng import NumpyRandom, SequenceRandom
from ecosystem.types_config import PRESET_BARREN, PRESET_FLOURISHING, get_preset


class TestInitialize:
    """Tests for initialize_state."""

    def test_default_population(self, registry):
        """Three resonants, one prismatic and an active guardian."""
        state = initialize_state(rng=SequenceRandom(fallback=0.0), registry=registry)

        assert state.cycle == 1
        assert state.environment == Environment.TRANQUIL
        assert state.params.to_dict() == {
            "resonance": 50, "complexity": 30, "harmony": 65, "entropy": 25,
        }
        assert state.counts == {"resonant": 3, "prismatic": 1, "guardian": 1}
        assert [(e.position.x, e.position.y) for e in state.entities] == [
            (10, 10), (25, 8), (40, 12), (60, 8), (30, 5),
        ]
        assert state.guardian.active
        assert state.guardian.mood == "analytical"
        assert state.guardian.focus == "entity harmony"

    def test_default_codex(self, registry):
        """Discoveries for the seed types and the guardian manifestation."""
        state = initialize_state(rng=SequenceRandom(fallback=0.0), registry=registry)
        assert [e.text for e in state.codex_entries] == [
            "Discovered first Resonant entity at cycle 1.",
            "Discovered first Prismatic entity at cycle 1.",
            MANIFEST_TEXT,
        ]

    def test_barren_preset(self, registry):
        """The barren preset starts with only the guardian."""
        state = initialize_state(PRESET_BARREN, SequenceRandom(), registry)
        assert [e.type for e in state.entities] == ["guardian"]
        assert state.params.entropy == 60

    def test_flourishing_preset(self, registry):
        """The flourishing preset seeds a weaver and a harmonic sea."""
        state = initialize_state(PRESET_FLOURISHING, SequenceRandom(), registry)
        assert state.environment == Environment.HARMONIC
        assert state.count("weaver") == 1
        assert state.count("resonant") == 3

    def test_unknown_preset(self):
        """Unknown preset names raise KeyError."""
        with pytest.raises(KeyError):
            get_preset("volcanic")


class TestStep:
    """Tests for step and run_steps."""

    def test_cycle_increments(self, registry):
        """Each step advances the cycle by exactly one."""
        state = initialize_state(rng=NumpyRandom(1), registry=registry)
        step(state, NumpyRandom(2), registry)
        assert state.cycle == 2

    def test_run_steps_callback(self, registry):
        """on_step sees every intermediate cycle."""
        state = initialize_state(rng=NumpyRandom(1), registry=registry)
        seen = []
        run_steps(state, 5, NumpyRandom(2), registry, on_step=lambda s: seen.append(s.cycle))
        assert seen == [2, 3, 4, 5, 6]

    def test_seeded_runs_are_reproducible(self, registry):
        """Same seed, same trajectory."""
        a = initialize_state(rng=NumpyRandom(5), registry=registry)
        b = initialize_state(rng=NumpyRandom(5), registry=registry)
        run_steps(a, 200, NumpyRandom(9), registry)
        run_steps(b, 200, NumpyRandom(9), registry)
        assert a.to_dict() == b.to_dict()

    def test_environment_frozen_with_guardian(self, registry):
        """With an active guardian the environment never changes on its own."""
        state = initialize_state(rng=NumpyRandom(3), registry=registry)
        run_steps(state, 500, NumpyRandom(4), registry)
        assert state.environment == Environment.TRANQUIL
        assert not any("Etheric Sea shifted" in e.text for e in state.codex_entries)

    def test_environment_cycles_without_guardian(self, registry):
        """Without a guardian the environment is re-rolled on period boundaries."""
        state = initialize_state(PRESET_BARREN, NumpyRandom(3), registry)
        state.guardian.active = False
        state.entities.clear()
        state.counts.clear()
        rng = NumpyRandom(8)
        seen = set()
        for _ in range(20):
            run_steps(state, 50, rng, registry)
            seen.add(state.environment)
        assert len(seen) > 1

    @pytest.mark.parametrize("seed", [0, 17, 42])
    def test_long_run_invariants(self, seed, registry):
        """Parameters bounded, counts consistent, codex capped, positions in bounds."""
        state = initialize_state(rng=NumpyRandom(seed), registry=registry)
        rng = NumpyRandom(seed + 1000)

        for _ in range(300):
            step(state, rng, registry)

            for value in state.params.to_dict().values():
                assert 0 <= value <= 100
            actual = Counter(e.type for e in state.entities)
            for entity_type, count in state.counts.items():
                assert actual.get(entity_type, 0) == count
            assert set(actual) <= set(state.counts)
            assert len(state.codex_entries) <= CODEX_MAX_ENTRIES
            for entity in state.entities:
                assert 0 <= entity.position.x <= MAX_ENTITY_X
                assert 0 <= entity.position.y <= MAX_ENTITY_Y

        assert state.count("guardian") == 1
