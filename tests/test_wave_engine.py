"""
Tests for wavefront emission, growth, collisions and blending.
"""

import math
from dataclasses import replace

import pytest

from palette_master.sim_core.color import BLUE, RED, WHITE, YELLOW, Color
from palette_master.sim_core.color_mixer import mix_subtractive
from palette_master.sim_core.config_loader import load_config
from palette_master.sim_core.wave_engine import WavePropagationEngine


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def engine(config):
    return WavePropagationEngine(config)


class TestEmission:
    """Test periodic emission from sources."""

    def test_zero_frequency_never_emits(self, engine):
        engine.add_source((100, 100), RED, frequency=0)
        engine.add_source((200, 100), BLUE, frequency=-3)
        for _ in range(100):
            engine.step(0.25)
        assert engine.front_count == 0

    def test_emits_once_per_period(self, engine):
        engine.add_source((100, 100), RED, frequency=2)
        emitted = [len(engine.step(0.25).emitted) for _ in range(6)]
        assert emitted == [0, 1, 0, 1, 0, 1]
        assert engine.front_count == 3

    def test_emitted_front_uses_base_values(self, engine, config):
        source = engine.add_source((100, 100), YELLOW, frequency=4)
        result = engine.step(0.25)
        front = engine.fronts[0]
        assert result.emitted == [front.uid]
        assert front.color == YELLOW
        assert front.radius == config.waves.base_radius
        assert front.opacity == config.waves.base_opacity
        assert front.speed == config.waves.base_speed
        assert front.position == source.position

    def test_duplicate_emission_is_skipped(self, engine):
        engine.emit((100, 100), RED)
        engine.add_source((101, 100), RED, frequency=1000)
        result = engine.step(0.01)
        assert result.emitted == []
        assert result.suppressed == 1
        assert engine.front_count == 1

    def test_distant_source_is_not_a_duplicate(self, engine):
        engine.emit((100, 100), RED)
        engine.add_source((300, 300), RED, frequency=1000)
        assert len(engine.step(0.01).emitted) == 1

    def test_throttle_near_cap(self, engine, config):
        cap = config.caps.max_wavefronts
        for i in range(cap - config.waves.throttle_margin):
            engine.emit((i * 1000, 0), RED)
        engine.add_source((-5000, -5000), BLUE, frequency=4)

        emitted = [len(engine.step(0.25).emitted) for _ in range(6)]

        assert emitted == [0, 0, 1, 0, 0, 1]
        assert engine.front_count == cap

    def test_population_cap_evicts_oldest(self, engine, config):
        cap = config.caps.max_wavefronts
        first = engine.emit((0, 0), RED)
        for i in range(cap + 5):
            engine.emit((i * 1000 + 1000, 0), RED)
        assert engine.front_count == cap
        assert first.uid not in [f.uid for f in engine.fronts]

    def test_removed_source_stops_emitting(self, engine):
        source = engine.add_source((100, 100), RED, frequency=4)
        engine.step(0.25)
        engine.remove_source(source.uid)
        engine.step(0.25)
        engine.step(0.25)
        assert engine.front_count == 1
        assert engine.sources == []


class TestGrowth:
    """Test per-tick growth and fading."""

    def test_radius_grows_and_opacity_fades(self, engine, config):
        front = engine.emit((100, 100), RED)
        engine.step(0.25)
        assert front.radius == pytest.approx(config.waves.base_radius + config.waves.base_speed)
        assert front.opacity == pytest.approx(1.0 - config.waves.opacity_decay)

    def test_radius_never_decreases(self, engine):
        front = engine.emit((100, 100), RED)
        last = front.radius
        for _ in range(50):
            engine.step(0.25)
            assert front.radius >= last
            last = front.radius

    def test_faded_front_is_removed(self, engine):
        front = engine.emit((100, 100), RED, opacity=0.004)
        result = engine.step(0.25)
        assert result.expired == [front.uid]
        assert engine.front_count == 0

    def test_sweep_can_be_deferred(self, engine):
        front = engine.emit((100, 100), RED, opacity=0.004)
        engine.step(0.25, sweep=False)
        assert front.expired
        assert engine.front_count == 1
        engine.sweep()
        assert engine.front_count == 0

    def test_speed_modifier(self, engine, config):
        front = engine.emit((100, 100), RED)
        engine.speed_modifier = 2.0
        engine.step(0.25)
        assert front.radius == pytest.approx(config.waves.base_radius + 2 * config.waves.base_speed)
        engine.speed_modifier = -1.0
        assert engine.speed_modifier == 0.0

    def test_carried_fronts_follow_source(self, engine):
        source = engine.add_source((100, 100), RED, frequency=4, carries_fronts=True)
        engine.step(0.25)
        front = engine.fronts[0]
        engine.move_source(source.uid, (150, 120))
        engine.step(0.25)
        assert front.position == (150, 120)

    def test_uncarried_fronts_stay_put(self, engine):
        source = engine.add_source((100, 100), RED, frequency=4)
        engine.step(0.25)
        front = engine.fronts[0]
        engine.move_source(source.uid, (150, 120))
        engine.step(0.25)
        assert front.position == (100, 100)


class TestObstacleCollisions:
    """Test reflection and absorption."""

    def test_reflection_spawns_mixed_child(self, engine, config):
        wave_color = Color(0, 128, 255)
        front = engine.emit((100, 100), wave_color, opacity=0.7)
        obstacle = engine.add_obstacle((110, 100), 10, YELLOW, reflective=True)

        collisions = engine.resolve_collisions()

        assert len(collisions) == 1
        event = collisions[0]
        assert event.kind == "obstacle"
        child = [f for f in engine.fronts if f.uid == event.child_uid][0]
        assert child.opacity == pytest.approx(0.63)
        assert child.speed == pytest.approx(front.speed * config.waves.reflect_factor)
        assert child.color == mix_subtractive([wave_color, YELLOW])
        assert child.position == obstacle.position
        assert child.radius == config.waves.base_radius
        assert engine.front_count == 2

    def test_obstacle_hit_only_once(self, engine):
        engine.emit((100, 100), RED, opacity=0.7)
        engine.add_obstacle((110, 100), 10, YELLOW, reflective=True)
        hits = 0
        for _ in range(20):
            result = engine.step(0.25)
            hits += sum(1 for c in result.collisions if c.kind == "obstacle")
        assert hits == 1
        assert engine.front_count == 2

    def test_absorption_weakens_front(self, engine):
        front = engine.emit((100, 100), RED, opacity=0.7)
        engine.add_obstacle((110, 100), 10, YELLOW, absorptive=True)
        collisions = engine.resolve_collisions()
        assert collisions[0].absorbed
        assert collisions[0].child_uid is None
        assert front.opacity == pytest.approx(0.49)
        assert front.speed == pytest.approx(1.5 * 0.7)
        assert engine.front_count == 1

    def test_reflect_uses_values_before_absorption(self, engine):
        front = engine.emit((100, 100), RED, opacity=0.7)
        engine.add_obstacle((110, 100), 10, YELLOW, reflective=True, absorptive=True)
        event = engine.resolve_collisions()[0]
        child = [f for f in engine.fronts if f.uid == event.child_uid][0]
        assert child.opacity == pytest.approx(0.63)
        assert front.opacity == pytest.approx(0.49)

    def test_distant_obstacle_is_not_hit(self, engine):
        engine.emit((100, 100), RED)
        engine.add_obstacle((200, 100), 10, YELLOW, reflective=True)
        assert engine.resolve_collisions() == []

    def test_removed_obstacle(self, engine):
        obstacle = engine.add_obstacle((110, 100), 10, YELLOW, reflective=True)
        assert engine.remove_obstacle(obstacle.uid) is obstacle
        engine.emit((100, 100), RED)
        assert engine.resolve_collisions() == []


class TestWaveInterference:
    """Test front-front collisions."""

    def test_touching_fronts_spawn_child(self, engine):
        a = engine.emit((100, 100), RED)
        b = engine.emit((111, 100), BLUE, opacity=0.5, speed=0.5)

        collisions = engine.resolve_collisions()

        assert len(collisions) == 1
        event = collisions[0]
        assert event.kind == "wave"
        assert event.position == pytest.approx((105, 100))
        child = [f for f in engine.fronts if f.uid == event.child_uid][0]
        assert child.color == mix_subtractive([RED, BLUE])
        assert child.opacity == pytest.approx(0.75)
        assert child.speed == pytest.approx(1.0)
        assert a.key in child.memory
        assert b.key in child.memory
        assert b.key in a.memory
        assert a.key in b.memory

    def test_pair_interferes_once(self, engine):
        engine.emit((100, 100), RED)
        engine.emit((111, 100), BLUE)
        assert len(engine.resolve_collisions()) == 1
        assert engine.resolve_collisions() == []

    def test_far_or_nested_fronts_do_not_interfere(self, engine):
        engine.emit((100, 100), RED)
        engine.emit((100, 100), BLUE)
        engine.emit((300, 300), YELLOW)
        assert engine.resolve_collisions() == []

    def test_collision_memory_is_bounded(self, engine, config):
        engine.add_source((100, 100), RED, frequency=4)
        engine.add_source((130, 100), BLUE, frequency=4)
        engine.add_obstacle((115, 140), 10, YELLOW, reflective=True)
        for _ in range(60):
            engine.step(0.25)
            for front in engine.fronts:
                assert len(front.memory) <= config.waves.collision_memory + len(engine.obstacles)

    def test_long_lived_front_never_rehits_obstacle(self, config):
        roomy = replace(config, caps=replace(config.caps, max_wavefronts=5000))
        engine = WavePropagationEngine(roomy)
        big = engine.emit((100, 100), RED, radius=50, speed=0)
        obstacle = engine.add_obstacle((160, 100), 20, YELLOW, reflective=True)
        hits = 0
        for i in range(40):
            angle = math.pi / 2 + math.pi * i / 39
            engine.emit((100 + 55 * math.cos(angle), 100 + 55 * math.sin(angle)), BLUE)
            for event in engine.resolve_collisions():
                if event.kind == "obstacle" and (event.wave_uid, event.other_uid) == (big.uid, obstacle.uid):
                    hits += 1
        assert hits == 1
        assert obstacle.key in big.memory
        assert len(big.memory) == config.waves.collision_memory + 1


class TestAggregateColor:
    """Test the weighted blend of live fronts."""

    def test_no_fronts_is_white(self, engine):
        assert engine.aggregate_color() == WHITE

    def test_single_front(self, engine):
        engine.emit((100, 100), Color(10, 200, 30))
        assert engine.aggregate_color() == Color(10, 200, 30)

    def test_equal_weights_average(self, engine):
        engine.emit((100, 100), RED, radius=50)
        engine.emit((300, 300), BLUE, radius=50)
        assert engine.aggregate_color().rgb == (128, 0, 128)

    def test_large_opaque_front_dominates(self, engine):
        engine.emit((100, 100), RED, radius=200)
        engine.emit((300, 300), BLUE, radius=5, opacity=0.3)
        mixed = engine.aggregate_color()
        assert mixed.r > 200
        assert mixed.b < 30

    def test_invisible_fronts_are_ignored(self, engine):
        engine.emit((100, 100), RED, opacity=0.0)
        assert engine.aggregate_color() == WHITE


class TestManagement:
    """Test engine bookkeeping."""

    def test_clock_advances(self, engine):
        engine.step(0.25)
        engine.step(0.5)
        assert engine.time == pytest.approx(0.75)

    def test_set_source_color(self, engine):
        source = engine.add_source((100, 100), RED, frequency=4)
        engine.set_source_color(source.uid, BLUE)
        engine.step(0.25)
        assert engine.fronts[0].color == BLUE

    def test_unknown_uids_are_ignored(self, engine):
        assert engine.remove_source(99) is None
        assert engine.move_source(99, (0, 0)) is None
        assert engine.remove_obstacle(99) is None

    def test_clear(self, engine):
        engine.add_source((100, 100), RED, frequency=4)
        engine.add_obstacle((10, 10), 5, BLUE)
        engine.emit((50, 50), RED)
        engine.step(0.25)
        engine.clear()
        assert engine.front_count == 0
        assert engine.sources == []
        assert engine.obstacles == []
        assert engine.time == 0.0

    def test_negative_obstacle_radius_is_clamped(self, engine):
        assert engine.add_obstacle((10, 10), -5, BLUE).radius == 0.0
