"""
Dynamics Tests

Parameter drift, environment cycling, movement, interactions, random events
and the spawn/despawn lifecycle, each driven by scripted random draws.
"""

import pytest

from ecosystem.constants import Environment
from ecosystem.dynamics_environment import environment_for_roll, set_environment, update_environment
from ecosystem.dynamics_interaction import (
    CONVERGENCE_TEXT,
    DANCER_TEXT,
    FLUX_TEXT,
    WEAVER_TEXT,
    check_entity_interactions,
    is_close,
    process_random_events,
)
from ecosystem.dynamics_lifecycle import (
    COLLECTIVE_TEXT,
    attempt_spawn,
    despawn_entities,
    lifespan_for,
    process_entity_lifecycle,
)
from ecosystem.dynamics_movement import move_entity, move_period, update_entities
from ecosystem.dynamics_params import adjust_parameter, drift_parameters
from ecosystem.rng import SequenceRandom
from ecosystem.types_state import Direction, EcosystemState, Params, Position


def _texts(state):
    return [e.text for e in state.codex_entries]


# =============================================================================
# PARAMETERS AND ENVIRONMENT
# =============================================================================

class TestParameters:
    """Tests for drift_parameters and adjust_parameter."""

    def test_drift_draw_order(self):
        """Deltas are drawn for resonance, complexity, harmony, entropy in that order."""
        state = EcosystemState(params=Params(50, 50, 50, 50))
        drift_parameters(state, SequenceRandom([0.0, 0.0, 0.999, 0.999]))
        assert state.params.to_dict() == {
            "resonance": 48, "complexity": 49, "harmony": 52, "entropy": 52,
        }

    def test_drift_clamps(self):
        """Drift never leaves [0, 100]."""
        state = EcosystemState(params=Params(0, 0, 100, 100))
        drift_parameters(state, SequenceRandom([0.0, 0.0, 0.999, 0.999]))
        assert state.params.to_dict() == {
            "resonance": 0, "complexity": 0, "harmony": 100, "entropy": 100,
        }

    def test_adjust_unknown_parameter(self):
        """Unknown parameter names raise KeyError."""
        with pytest.raises(KeyError):
            adjust_parameter(EcosystemState(), "luminosity", 5)


class TestEnvironment:
    """Tests for environment cycling."""

    @pytest.mark.parametrize("roll,expected", [
        (0, Environment.QUANTUM),
        (14.9, Environment.QUANTUM),
        (15, Environment.PRISMATIC),
        (29.9, Environment.PRISMATIC),
        (30, Environment.HARMONIC),
        (59.9, Environment.HARMONIC),
        (60, Environment.TRANQUIL),
        (99.9, Environment.TRANQUIL),
    ])
    def test_roll_thresholds(self, roll, expected):
        """Rolls map onto environments by fixed thresholds."""
        assert environment_for_roll(roll) == expected

    def test_shift_only_when_guardian_inactive(self):
        """An active guardian freezes the environment."""
        state = EcosystemState(cycle=50)
        state.guardian.active = True
        rng = SequenceRandom([0.0])
        update_environment(state, rng)
        assert state.environment == Environment.TRANQUIL
        assert rng.remaining == 1

    def test_shift_on_period(self):
        """Inactive guardian: cycle 50 rolls a new environment and logs it."""
        state = EcosystemState(cycle=50)
        update_environment(state, SequenceRandom([0.0]))
        assert state.environment == Environment.QUANTUM
        assert state.environment_frame == 1
        assert _texts(state) == ["Etheric Sea shifted to quantum state."]

    def test_off_period_no_roll(self):
        """Off-period cycles only advance the backdrop frame."""
        state = EcosystemState(cycle=51)
        rng = SequenceRandom([0.0])
        update_environment(state, rng)
        assert state.environment == Environment.TRANQUIL
        assert rng.remaining == 1

    def test_same_environment_not_logged(self):
        """Setting the current environment is a no-op."""
        state = EcosystemState()
        assert not set_environment(state, Environment.TRANQUIL)
        assert state.codex_entries == []


# =============================================================================
# MOVEMENT
# =============================================================================

class TestMovement:
    """Tests for aging, animation and movement."""

    def test_move_period(self):
        """Period is 5 - speed, with speed held to [1, 4]."""
        assert move_period(1) == 4
        assert move_period(2) == 3
        assert move_period(0) == 4
        assert move_period(9) == 1

    def test_bounce_off_right_edge(self, place):
        """x past 70 clamps to 70 and reverses the x heading."""
        state = EcosystemState(cycle=4)
        entity = place(state, "resonant", 70, 5)
        entity.direction = Direction(1, 1)

        move_entity(entity, SequenceRandom([0.5]))

        assert (entity.position.x, entity.position.y) == (70, 6)
        assert (entity.direction.x, entity.direction.y) == (-1, 1)

    def test_bounce_off_bottom_edge(self, place):
        """y past 15 clamps to 15 and reverses the y heading."""
        entity = place(EcosystemState(), "resonant", 20, 15)
        entity.direction = Direction(-1, 1)
        move_entity(entity, SequenceRandom([0.5]))
        assert (entity.position.x, entity.position.y) == (19, 15)
        assert entity.direction.y == -1

    def test_bounce_off_left_edge(self, place):
        """x below 0 clamps to 0 and reverses the x heading."""
        entity = place(EcosystemState(), "resonant", 0, 8)
        entity.direction = Direction(-1, -1)
        move_entity(entity, SequenceRandom([0.5]))
        assert (entity.position.x, entity.position.y) == (0, 7)
        assert entity.direction.x == 1

    def test_occasional_new_heading(self, place):
        """A draw below 0.1 picks a new heading before moving."""
        entity = place(EcosystemState(), "resonant", 20, 8)
        entity.direction = Direction(-1, 1)
        move_entity(entity, SequenceRandom([0.05, 0.9, 0.1]))
        assert (entity.direction.x, entity.direction.y) == (1, -1)
        assert (entity.position.x, entity.position.y) == (21, 7)

    def test_frame_advances_every_third_cycle(self, place, registry):
        """Cycle 3 advances the frame and refreshes the pattern without moving speed-1 entities."""
        state = EcosystemState(cycle=3)
        entity = place(state, "resonant", 20, 8)

        update_entities(state, SequenceRandom(), registry)

        assert entity.frame == 1
        assert entity.pattern == registry.resolve_pattern("resonant", 1)[0]
        assert (entity.position.x, entity.position.y) == (20, 8)
        assert entity.age == 1

    def test_prismatic_moves_every_third_cycle(self, place, registry):
        """Speed 2 entities move when cycle % 3 == 0."""
        state = EcosystemState(cycle=3)
        drifter = place(state, "prismatic", 20, 8)
        drifter.direction = Direction(1, 1)
        update_entities(state, SequenceRandom(), registry)
        assert (drifter.position.x, drifter.position.y) == (21, 9)

    def test_guardian_does_not_age(self, place, registry):
        """The guardian is skipped entirely."""
        state = EcosystemState(cycle=12)
        guardian = place(state, "guardian", 30, 5)
        update_entities(state, SequenceRandom(), registry)
        assert guardian.age == 0
        assert (guardian.position.x, guardian.position.y) == (30, 5)

    def test_age_counts_steps(self, place, registry):
        """Age equals the number of update passes survived."""
        state = EcosystemState(cycle=1)
        entity = place(state, "weaver", 30, 8)
        rng = SequenceRandom()
        for _ in range(25):
            state.cycle += 1
            update_entities(state, rng, registry)
        assert entity.age == 25
        assert 0 <= entity.position.x <= 70 and 0 <= entity.position.y <= 15


# =============================================================================
# INTERACTIONS
# =============================================================================

@pytest.fixture
def weaver_scene(place):
    """Two close resonants with a prismatic drifter nearby."""
    state = EcosystemState(params=Params(resonance=10, complexity=60, harmony=65, entropy=25))
    first = place(state, "resonant", 10, 10)
    second = place(state, "resonant", 12, 10)
    place(state, "prismatic", 15, 12)
    return state, first, second


class TestInteractions:
    """Tests for check_entity_interactions."""

    def test_closeness_is_strict(self, place):
        """|dx| must be below 10 and |dy| below 5."""
        state = EcosystemState()
        a = place(state, "resonant", 0, 0)
        assert is_close(a, place(state, "resonant", 9, 4))
        assert not is_close(a, place(state, "resonant", 10, 0))
        assert not is_close(a, place(state, "resonant", 0, 5))

    def test_weaver_formation(self, weaver_scene, registry):
        """Rule A fires once: one weaver at the midpoint, both parents gone."""
        state, first, second = weaver_scene
        rng = SequenceRandom([0.0] * 20)

        results = [check_entity_interactions(state, rng, registry) for _ in range(5)]

        weavers = [e for e in state.entities if e.type == "weaver"]
        assert len(weavers) == 1
        assert results[0] is weavers[0]
        assert results[1:] == [None] * 4
        assert (weavers[0].position.x, weavers[0].position.y) == (11, 10)
        assert first not in state.entities and second not in state.entities
        assert state.counts["resonant"] == 0
        assert state.counts["weaver"] == 1
        assert WEAVER_TEXT in _texts(state)

    def test_weaver_roll_gate(self, weaver_scene, registry):
        """A draw of exactly 0.3 does not form a weaver."""
        state, _, _ = weaver_scene
        assert check_entity_interactions(state, SequenceRandom([0.3]), registry) is None
        assert state.count("resonant") == 2

    def test_weaver_needs_complexity(self, weaver_scene, registry):
        """Complexity of 40 or less blocks rule A."""
        state, _, _ = weaver_scene
        state.params.complexity = 40
        assert check_entity_interactions(state, SequenceRandom([0.0] * 5), registry) is None
        assert state.count("weaver") == 0

    def test_weaver_needs_prismatic(self, place, registry):
        """Without a prismatic near the first resonant nothing happens."""
        state = EcosystemState(params=Params(complexity=60))
        place(state, "resonant", 10, 10)
        place(state, "resonant", 12, 10)
        place(state, "prismatic", 40, 10)
        assert check_entity_interactions(state, SequenceRandom([0.0] * 5), registry) is None

    def test_one_transformation_per_scan(self, place, registry):
        """Only the first eligible pair transforms."""
        state = EcosystemState(params=Params(complexity=60, resonance=10))
        place(state, "resonant", 10, 10)
        place(state, "resonant", 12, 10)
        place(state, "resonant", 14, 10)
        place(state, "prismatic", 15, 12)

        check_entity_interactions(state, SequenceRandom([0.0] * 20), registry)

        assert state.count("weaver") == 1
        assert state.count("resonant") == 1

    def test_dancer_formation_keeps_parents(self, place, registry):
        """Rule B creates a dancer and leaves the prismatic and weaver in place."""
        state = EcosystemState(params=Params(resonance=70))
        drifter = place(state, "prismatic", 15, 12)
        weaver = place(state, "weaver", 11, 10)

        dancer = check_entity_interactions(state, SequenceRandom([0.1]), registry)

        assert dancer is not None and dancer.type == "dancer"
        assert (dancer.position.x, dancer.position.y) == (13, 11)
        assert drifter in state.entities and weaver in state.entities
        assert DANCER_TEXT in _texts(state)

    def test_dancer_needs_resonance(self, place, registry):
        """Resonance of 60 or less blocks rule B."""
        state = EcosystemState(params=Params(resonance=60))
        place(state, "prismatic", 15, 12)
        place(state, "weaver", 11, 10)
        assert check_entity_interactions(state, SequenceRandom([0.0]), registry) is None

    def test_guardian_pairs_skipped(self, place, registry):
        """Pairs involving the guardian never draw."""
        state = EcosystemState(params=Params(resonance=90))
        place(state, "guardian", 30, 5)
        place(state, "prismatic", 31, 5)
        rng = SequenceRandom([0.0])
        assert check_entity_interactions(state, rng, registry) is None
        assert rng.remaining == 1


class TestRandomEvents:
    """Tests for process_random_events."""

    def test_roll_miss(self, registry):
        """A roll of 0.05 or more does nothing."""
        state = EcosystemState(params=Params(resonance=80, harmony=80, entropy=70))
        assert not process_random_events(state, SequenceRandom([0.05]), registry)
        assert state.codex_entries == []

    def test_harmonic_convergence(self, registry):
        """Resonance > 70 and harmony > 75 boosts resonance by 5."""
        state = EcosystemState(params=Params(resonance=80, harmony=80))
        assert process_random_events(state, SequenceRandom([0.0]), registry)
        assert state.params.resonance == 85
        assert _texts(state) == [CONVERGENCE_TEXT]

    def test_convergence_clamped(self, registry):
        """The boost never pushes resonance past 100."""
        state = EcosystemState(params=Params(resonance=98, harmony=80))
        process_random_events(state, SequenceRandom([0.0]), registry)
        assert state.params.resonance == 100

    def test_energy_flux(self, registry):
        """Entropy > 60 costs 5 harmony."""
        state = EcosystemState(params=Params(entropy=70, harmony=65))
        process_random_events(state, SequenceRandom([0.0]), registry)
        assert state.params.harmony == 60
        assert _texts(state) == [FLUX_TEXT]


# =============================================================================
# LIFECYCLE
# =============================================================================

class TestLifecycle:
    """Tests for spawning and despawning."""

    def test_lifespan(self):
        """base + randint(0, extra) - entropy // 10."""
        assert lifespan_for("resonant", 0, SequenceRandom([0.0])) == 150
        assert lifespan_for("resonant", 50, SequenceRandom([0.0])) == 145
        assert lifespan_for("collective", 0, SequenceRandom([0.999])) == 400
        assert lifespan_for("nexus", 0, SequenceRandom([0.0])) == 150

    def test_despawn_at_lifespan_boundary(self, place):
        """age == lifespan survives; age > lifespan is removed."""
        state = EcosystemState(params=Params(entropy=0))
        survivor = place(state, "resonant", 10, 10, age=150)
        assert despawn_entities(state, SequenceRandom([0.0, 0.5])) == 0
        assert survivor in state.entities

        survivor.age = 151
        assert despawn_entities(state, SequenceRandom([0.0, 0.5])) == 1
        assert state.entities == []
        assert state.counts["resonant"] == 0

    def test_random_cull(self, place):
        """The flat cull removes even young entities."""
        state = EcosystemState(params=Params(entropy=0))
        place(state, "weaver", 10, 10, age=1)
        assert despawn_entities(state, SequenceRandom([0.0, 0.0005])) == 1

    def test_guardian_never_despawns(self, place):
        """The guardian is skipped by the despawn scan."""
        state = EcosystemState()
        guardian = place(state, "guardian", 30, 5, age=10_000)
        assert despawn_entities(state, SequenceRandom([0.0] * 4)) == 0
        assert state.entities == [guardian]

    def test_spawn_resonant(self, registry):
        """A roll below resonance / 2 spawns a resonant in its range."""
        state = EcosystemState()
        rng = SequenceRandom([0.05, 0.0, 0.0, 0.9, 0.9])
        spawned = attempt_spawn(state, rng, registry)
        assert spawned.type == "resonant"
        assert (spawned.position.x, spawned.position.y) == (5, 2)
        assert (spawned.direction.x, spawned.direction.y) == (1, 1)

    def test_spawn_prismatic(self, registry):
        """Rolls in [resonance / 2, resonance / 2 + complexity / 3) spawn a prismatic."""
        state = EcosystemState()
        spawned = attempt_spawn(state, SequenceRandom([0.30, 0.0, 0.0]), registry)
        assert spawned.type == "prismatic"
        assert (spawned.position.x, spawned.position.y) == (5, 2)

    def test_spawn_nothing(self, registry):
        """Higher rolls spawn nothing."""
        state = EcosystemState()
        assert attempt_spawn(state, SequenceRandom([0.5]), registry) is None
        assert state.entities == []

    def test_collective_spawn(self, place, registry):
        """Harmony > 80, complexity > 70, 2 weavers and a dancer allow a collective."""
        state = EcosystemState(params=Params(harmony=85, complexity=75))
        place(state, "weaver", 20, 5)
        place(state, "weaver", 40, 5)
        place(state, "dancer", 60, 5)

        spawned = attempt_spawn(state, SequenceRandom([0.99, 0.05, 0.0, 0.0]), registry)

        assert spawned.type == "collective"
        assert (spawned.position.x, spawned.position.y) == (10, 5)
        assert _texts(state)[-1] == COLLECTIVE_TEXT

    def test_collective_needs_conditions(self, place, registry):
        """With one weaver the collective check never draws."""
        state = EcosystemState(params=Params(harmony=85, complexity=75))
        place(state, "weaver", 20, 5)
        place(state, "dancer", 60, 5)
        rng = SequenceRandom([0.99, 0.0])
        assert attempt_spawn(state, rng, registry) is None
        assert rng.remaining == 1

    def test_spawn_attempt_gate(self, registry):
        """Without the 10% attempt draw nothing spawns."""
        state = EcosystemState()
        process_entity_lifecycle(state, SequenceRandom([0.1, 0.0]), registry)
        assert state.entities == []

        process_entity_lifecycle(state, SequenceRandom([0.05, 0.1, 0.0, 0.0, 0.9, 0.9]), registry)
        assert state.count("resonant") == 1
