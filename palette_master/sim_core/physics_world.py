"""
Physics World
=============

Owns the body and particle populations and advances them one fixed tick at a
time: lifetime decay, growth, gravity, damping, integration and boundary
bounce.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Iterable, List, Optional, Sequence, Tuple

from pymunk import Vec2d

from palette_master.sim_core.bodies import PhysicsBody
from palette_master.sim_core.color import Color
from palette_master.sim_core.config_loader import GameConfig, get_config
from palette_master.sim_core.population import BoundedPopulation

logger = logging.getLogger("palette_master.physics")


class PhysicsWorld:
    """
    Manages the circle-body simulation.

    Handles:
    - Body and particle creation, removal and capacity eviction
    - Per-tick integration of free bodies
    - Boundary collisions against the canvas edges
    - Out-of-band drag writes from the input layer

    Particles live in their own population so a burst of visual feedback
    never evicts a gameplay body.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize physics world.

        Args:
            config: Game configuration. Uses default if None.
            rng: Random source for seeding and burst jitter. Built from
                ``seed`` if None.
            seed: Seed used when ``rng`` is not supplied.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else random.Random(seed)

        self._bodies: BoundedPopulation[PhysicsBody] = BoundedPopulation(
            config.caps.max_bodies, name="bodies"
        )
        self._particles: BoundedPopulation[PhysicsBody] = BoundedPopulation(
            config.caps.max_particles, name="particles"
        )
        self._next_uid = 0

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def width(self) -> float:
        return self._config.canvas.width

    @property
    def height(self) -> float:
        return self._config.canvas.height

    @property
    def bodies(self) -> List[PhysicsBody]:
        """Non-particle bodies, oldest first."""
        return self._bodies.values()

    @property
    def particles(self) -> List[PhysicsBody]:
        """Burst particles, oldest first."""
        return self._particles.values()

    @property
    def all_bodies(self) -> List[PhysicsBody]:
        return self._bodies.values() + self._particles.values()

    @property
    def body_count(self) -> int:
        """Number of non-particle bodies."""
        return len(self._bodies)

    @property
    def particle_count(self) -> int:
        return len(self._particles)

    def _new_uid(self) -> int:
        uid = self._next_uid
        self._next_uid += 1
        return uid

    def _insert(self, body: PhysicsBody) -> Optional[PhysicsBody]:
        population = self._particles if body.is_particle else self._bodies
        evicted = population.add(body)
        if evicted and evicted[0] is body:
            return None
        return body

    def spawn_body(
        self,
        color: Color,
        x: float,
        y: float,
        radius: float,
        velocity: Tuple[float, float] = (0.0, 0.0),
        lifetime: Optional[float] = None,
        is_growing: bool = False
    ) -> Optional[PhysicsBody]:
        """
        Spawn a gameplay body.

        Args:
            color: Body color.
            x: X coordinate.
            y: Y coordinate.
            radius: Radius; negative values are clamped to zero.
            velocity: Initial velocity in pixels per tick.
            lifetime: Optional countdown in [0, 1].
            is_growing: Ramp the radius up to ``grow_target_radius``.

        Returns:
            The created body, or None if the population is full of pinned
            bodies.
        """
        body = PhysicsBody(
            uid=self._new_uid(),
            position=Vec2d(x, y),
            velocity=Vec2d(*velocity),
            radius=max(0.0, radius),
            color=color,
            lifetime=None if lifetime is None else max(0.0, min(1.0, lifetime)),
            is_growing=is_growing,
            target_radius=self._config.physics.grow_target_radius if is_growing else max(0.0, radius)
        )
        return self._insert(body)

    def spawn_growing(self, color: Color, x: float, y: float) -> Optional[PhysicsBody]:
        """Spawn a zero-radius body that grows in over the next ticks."""
        return self.spawn_body(color, x, y, radius=0.0, is_growing=True)

    def spawn_particle(
        self,
        color: Color,
        x: float,
        y: float,
        radius: float,
        velocity: Tuple[float, float],
        lifetime: float = 1.0
    ) -> Optional[PhysicsBody]:
        """Spawn a short-lived particle that never collides."""
        body = PhysicsBody(
            uid=self._new_uid(),
            position=Vec2d(x, y),
            velocity=Vec2d(*velocity),
            radius=max(0.0, radius),
            color=color,
            lifetime=max(0.0, min(1.0, lifetime)),
            is_particle=True
        )
        return self._insert(body)

    def spawn_burst(
        self,
        center: Vec2d,
        count: int,
        distance: float,
        radius: float,
        speed_range: Tuple[float, float],
        lifetime: float,
        colors: Sequence[Color]
    ) -> List[PhysicsBody]:
        """
        Spawn ``count`` particles evenly spaced on a circle, flying outward.

        Each particle's color is a random blend between the first and last
        entry of ``colors``.
        """
        spawned: List[PhysicsBody] = []
        if count <= 0 or not colors:
            return spawned

        low, high = speed_range
        for i in range(count):
            angle = i * (2.0 * math.pi / count)
            direction = Vec2d(math.cos(angle), math.sin(angle))
            speed = low + self._rng.random() * (high - low)
            color = colors[0].lerp(colors[-1], self._rng.random())
            position = center + direction * distance
            particle = self.spawn_particle(
                color, position.x, position.y, radius,
                velocity=direction * speed,
                lifetime=lifetime
            )
            if particle is not None:
                spawned.append(particle)
        return spawned

    def seed_bodies(self, colors: Sequence[Color], level: int = 1) -> List[PhysicsBody]:
        """
        Place the opening bubbles for a level.

        Spawns ``min(len(colors), 3 + level // 5)`` bodies cycling through
        ``colors``, with random diameters, positions inside the canvas and a
        small random drift.
        """
        bubbles = self._config.bubbles
        count = min(len(colors), 3 + level // 5)
        spawned: List[PhysicsBody] = []

        for i in range(count):
            color = colors[i % len(colors)]
            size = bubbles.seed_min_diameter + self._rng.random() * (
                bubbles.seed_max_diameter - bubbles.seed_min_diameter
            )
            x = size + self._rng.random() * max(0.0, self.width - size * 2)
            y = size + self._rng.random() * max(0.0, self.height - size * 2)
            velocity = (
                (self._rng.random() - 0.5) * 2,
                (self._rng.random() - 0.5) * 2,
            )
            body = self.spawn_body(color, x, y, radius=size / 2, velocity=velocity)
            if body is not None:
                spawned.append(body)

        logger.debug("Seeded %d bodies for level %d", len(spawned), level)
        return spawned

    def get_body(self, uid: int) -> Optional[PhysicsBody]:
        """Get a body or particle by UID."""
        body = self._bodies.get(uid)
        if body is None:
            body = self._particles.get(uid)
        return body

    def remove_body(self, uid: int) -> Optional[PhysicsBody]:
        """
        Remove a body or particle.

        Returns:
            The removed body, or None if not found.
        """
        body = self._bodies.remove(uid)
        if body is None:
            body = self._particles.remove(uid)
        return body

    def body_at(self, point: Tuple[float, float]) -> Optional[PhysicsBody]:
        """First non-particle body containing ``point``."""
        for body in self._bodies:
            if body.contains(Vec2d(*point)):
                return body
        return None

    def begin_drag(self, uid: int) -> Optional[PhysicsBody]:
        """Exclude a body from integration and zero its velocity."""
        body = self._bodies.get(uid)
        if body is None:
            return None
        body.is_dragging = True
        body.velocity = Vec2d(0, 0)
        return body

    def drag_to(self, uid: int, position: Tuple[float, float]) -> Optional[PhysicsBody]:
        """
        Move a dragged body, carrying a fraction of the motion as velocity.

        Ignored for bodies that are not being dragged.
        """
        body = self._bodies.get(uid)
        if body is None or not body.is_dragging:
            return None
        new_position = Vec2d(*position)
        body.velocity = (new_position - body.position) * self._config.physics.drag_velocity_scale
        body.position = new_position
        return body

    def end_drag(self, uid: int) -> Optional[PhysicsBody]:
        """Hand a dragged body back to the integrator."""
        body = self._bodies.get(uid)
        if body is None:
            return None
        body.is_dragging = False
        return body

    def step(self, sweep: bool = True) -> List[int]:
        """
        Advance every free body by one tick.

        Args:
            sweep: Remove expired bodies after the pass. The tick
                orchestrator passes False and sweeps in its cleanup phase.

        Returns:
            UIDs of bodies that expired during this step.
        """
        expired: List[int] = []
        for body in self.all_bodies:
            if body.expired or not body.is_free:
                continue
            if self._integrate(body):
                expired.append(body.uid)

        if sweep:
            self.sweep()
        return expired

    def _integrate(self, body: PhysicsBody) -> bool:
        """Integrate one body. Returns True if it expired this tick."""
        physics = self._config.physics

        if body.lifetime is not None:
            body.lifetime = max(0.0, min(1.0, body.lifetime - physics.particle_decay))
            if body.lifetime <= 0:
                body.expired = True
                return True

        if body.is_growing:
            body.radius = min(body.radius + physics.grow_rate, body.target_radius)
            if body.radius >= body.target_radius:
                body.is_growing = False

        body.velocity = (body.velocity + Vec2d(physics.gravity_x, physics.gravity_y)) * physics.damping
        body.position = body.position + body.velocity

        self._bounce(body)
        self._sanitize(body)
        return False

    def _bounce(self, body: PhysicsBody) -> None:
        """Clamp to the canvas and reflect the crossing velocity component."""
        restitution = self._config.physics.boundary_restitution
        x, y = body.position
        vx, vy = body.velocity
        # A body wider than the canvas rests centered on that axis
        rx = min(body.radius, self.width / 2)
        ry = min(body.radius, self.height / 2)

        if x - rx < 0:
            x = rx
            vx = -vx * restitution
        elif x + rx > self.width:
            x = self.width - rx
            vx = -vx * restitution

        if y - ry < 0:
            y = ry
            vy = -vy * restitution
        elif y + ry > self.height:
            y = self.height - ry
            vy = -vy * restitution

        body.position = Vec2d(x, y)
        body.velocity = Vec2d(vx, vy)

    def _sanitize(self, body: PhysicsBody) -> None:
        finite = all(math.isfinite(v) for v in (*body.position, *body.velocity, body.radius))
        assert finite, f"Non-finite state on {body!r}"
        if not finite:
            body.position = Vec2d(self.width / 2, self.height / 2)
            body.velocity = Vec2d(0, 0)
            if not math.isfinite(body.radius):
                body.radius = 0.0

    def sweep(self) -> List[PhysicsBody]:
        """Remove bodies marked expired."""
        removed = []
        for population in (self._bodies, self._particles):
            removed.extend(population.remove_many(
                [b.uid for b in population if b.expired]
            ))
        return removed

    def check_contained(self) -> bool:
        """True if every body's center lies inside the canvas."""
        for body in self.all_bodies:
            x, y = body.position
            if not (0 <= x <= self.width and 0 <= y <= self.height):
                return False
        return True

    def add_bodies(self, bodies: Iterable[PhysicsBody]) -> List[PhysicsBody]:
        """Insert prebuilt bodies (merge and split products)."""
        inserted = []
        for body in bodies:
            if self._insert(body) is not None:
                inserted.append(body)
        return inserted

    def new_uid(self) -> int:
        """Reserve a UID for a body built outside the world."""
        return self._new_uid()

    def clear(self) -> None:
        """Remove all bodies and particles."""
        self._bodies.clear()
        self._particles.clear()
        self._next_uid = 0
