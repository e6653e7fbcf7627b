"""
Tests for body integration, boundaries, spawning and dragging.
"""

import math
import random

import pytest

from palette_master.sim_core.color import BLUE, RED, YELLOW
from palette_master.sim_core.config_loader import load_config
from palette_master.sim_core.physics_world import PhysicsWorld


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def world(config):
    return PhysicsWorld(config, seed=7)


class TestIntegration:
    """Test the per-tick integrator."""

    def test_gravity_then_damping(self, world, config):
        body = world.spawn_body(RED, 200, 300, radius=10)
        world.step()
        expected_vy = config.physics.gravity_y * config.physics.damping
        assert body.velocity.y == pytest.approx(expected_vy)
        assert body.position.y == pytest.approx(300 + expected_vy)
        assert body.position.x == pytest.approx(200)

    def test_gravity_points_down_the_screen(self, world):
        body = world.spawn_body(RED, 200, 100, radius=10)
        for _ in range(30):
            world.step()
        assert body.position.y > 100

    def test_damping_slows_free_flight(self, world, config):
        body = world.spawn_body(RED, 200, 300, radius=10, velocity=(4.0, 0.0))
        world.step()
        assert body.velocity.x == pytest.approx(4.0 * config.physics.damping)

    def test_left_wall_bounce(self, world, config):
        body = world.spawn_body(RED, 5, 300, radius=10, velocity=(-3.0, 0.0))
        world.step()
        assert body.position.x == pytest.approx(10)
        assert body.velocity.x == pytest.approx(3.0 * config.physics.damping * config.physics.boundary_restitution)

    def test_floor_bounce(self, world, config):
        height = config.canvas.height
        body = world.spawn_body(RED, 200, height - 12, radius=10, velocity=(0.0, 5.0))
        world.step()
        assert body.position.y == pytest.approx(height - 10)
        assert body.velocity.y < 0

    def test_oversized_body_rests_centered(self, world):
        body = world.spawn_body(RED, 150, 300, radius=world.width * 0.6)
        for _ in range(10):
            world.step()
            assert body.position.x == pytest.approx(world.width / 2)
            assert body.velocity.x == pytest.approx(0)

    def test_bodies_stay_inside_canvas(self, world):
        rng = random.Random(3)
        for _ in range(20):
            world.spawn_body(
                RED,
                rng.uniform(0, world.width),
                rng.uniform(0, world.height),
                radius=rng.uniform(5, 30),
                velocity=(rng.uniform(-20, 20), rng.uniform(-20, 20))
            )
        for _ in range(300):
            world.step()
            assert world.check_contained()
        for body in world.bodies:
            assert body.radius <= body.position.x <= world.width - body.radius
            assert body.radius <= body.position.y <= world.height - body.radius

    def test_non_finite_state_fails_assertion(self, world):
        world.spawn_body(RED, 200, 300, radius=10, velocity=(math.nan, 0.0))
        with pytest.raises(AssertionError):
            world.step()


class TestLifetimeAndGrowth:
    """Test particle decay and growing bodies."""

    def test_particle_expires(self, world):
        particle = world.spawn_particle(RED, 200, 300, radius=3, velocity=(0, 0), lifetime=1.0)
        for _ in range(10):
            world.step()
        assert particle.lifetime == pytest.approx(0.8)
        assert world.particle_count == 1
        for _ in range(50):
            world.step()
        assert world.particle_count == 0

    def test_expired_bodies_wait_for_sweep(self, world):
        world.spawn_particle(RED, 200, 300, radius=3, velocity=(0, 0), lifetime=0.01)
        expired = world.step(sweep=False)
        assert len(expired) == 1
        assert world.particle_count == 1
        removed = world.sweep()
        assert [b.uid for b in removed] == expired
        assert world.particle_count == 0

    def test_lifetime_is_clamped(self, world):
        particle = world.spawn_particle(RED, 200, 300, radius=3, velocity=(0, 0), lifetime=5.0)
        assert particle.lifetime == 1.0

    def test_growing_body_reaches_target(self, world, config):
        body = world.spawn_growing(BLUE, 200, 300)
        assert body.radius == 0.0
        world.step()
        assert body.radius == pytest.approx(config.physics.grow_rate)
        for _ in range(30):
            world.step()
        assert body.radius == pytest.approx(config.physics.grow_target_radius)
        assert not body.is_growing


class TestSpawning:
    """Test spawn helpers and capacity."""

    def test_negative_radius_is_clamped(self, world):
        assert world.spawn_body(RED, 10, 10, radius=-4).radius == 0.0

    def test_body_cap_evicts_oldest(self, world, config):
        cap = config.caps.max_bodies
        first = world.spawn_body(RED, 100, 100, radius=5)
        for _ in range(cap):
            world.spawn_body(RED, 100, 100, radius=5)
        assert world.body_count == cap
        assert world.get_body(first.uid) is None

    def test_dragged_body_is_not_evicted(self, world, config):
        first = world.spawn_body(RED, 100, 100, radius=5)
        world.begin_drag(first.uid)
        for _ in range(config.caps.max_bodies * 2):
            world.spawn_body(RED, 100, 100, radius=5)
        assert world.get_body(first.uid) is first

    def test_particles_do_not_evict_bodies(self, world, config):
        body = world.spawn_body(RED, 100, 100, radius=5)
        for _ in range(config.caps.max_particles + 10):
            world.spawn_particle(RED, 100, 100, radius=1, velocity=(0, 0))
        assert world.get_body(body.uid) is body
        assert world.particle_count == config.caps.max_particles

    def test_burst_is_radial(self, world):
        particles = world.spawn_burst(
            center=world.spawn_body(RED, 200, 300, radius=10).position,
            count=8,
            distance=12,
            radius=3,
            speed_range=(2.0, 5.0),
            lifetime=1.0,
            colors=(RED, YELLOW)
        )
        assert len(particles) == 8
        for particle in particles:
            offset = particle.position - (200, 300)
            assert offset.length == pytest.approx(12)
            assert 2.0 <= particle.speed <= 5.0
            assert particle.velocity.normalized().dot(offset.normalized()) == pytest.approx(1.0)
            assert particle.is_particle

    def test_seed_bodies_count_scales_with_level(self, world):
        palette = [RED, YELLOW, BLUE]
        assert len(world.seed_bodies(palette, level=1)) == 3
        world.clear()
        five = [RED, YELLOW, BLUE, RED, YELLOW]
        assert len(world.seed_bodies(five, level=10)) == 5
        world.clear()
        assert len(world.seed_bodies(five, level=0)) == 3

    def test_seeded_bodies_are_in_range(self, world, config):
        for body in world.seed_bodies([RED, YELLOW, BLUE], level=1):
            assert config.bubbles.seed_min_diameter / 2 <= body.radius <= config.bubbles.seed_max_diameter / 2
            assert -1.0 <= body.velocity.x <= 1.0
            assert -1.0 <= body.velocity.y <= 1.0
        assert world.check_contained()

    def test_seed_is_reproducible(self, config):
        first = PhysicsWorld(config, seed=11).seed_bodies([RED, YELLOW, BLUE])
        second = PhysicsWorld(config, seed=11).seed_bodies([RED, YELLOW, BLUE])
        assert [b.position for b in first] == [b.position for b in second]


class TestDragging:
    """Test out-of-band drag writes."""

    def test_dragged_body_ignores_integration(self, world):
        body = world.spawn_body(RED, 200, 300, radius=10, velocity=(3, 0))
        world.begin_drag(body.uid)
        world.step()
        assert body.position == (200, 300)
        assert body.velocity == (0, 0)

    def test_drag_to_sets_velocity(self, world, config):
        body = world.spawn_body(RED, 200, 300, radius=10)
        world.begin_drag(body.uid)
        world.drag_to(body.uid, (210, 290))
        assert body.position == (210, 290)
        assert body.velocity.x == pytest.approx(10 * config.physics.drag_velocity_scale)
        assert body.velocity.y == pytest.approx(-10 * config.physics.drag_velocity_scale)

    def test_drag_to_requires_begin_drag(self, world):
        body = world.spawn_body(RED, 200, 300, radius=10)
        assert world.drag_to(body.uid, (0, 0)) is None
        assert body.position == (200, 300)

    def test_end_drag_releases_body(self, world):
        body = world.spawn_body(RED, 200, 300, radius=10)
        world.begin_drag(body.uid)
        world.drag_to(body.uid, (220, 300))
        world.end_drag(body.uid)
        world.step()
        assert body.position.x > 220

    def test_unknown_uid_is_ignored(self, world):
        assert world.begin_drag(999) is None
        assert world.end_drag(999) is None
        assert world.remove_body(999) is None

    def test_body_at(self, world):
        body = world.spawn_body(RED, 200, 300, radius=10)
        assert world.body_at((205, 300)) is body
        assert world.body_at((250, 300)) is None
