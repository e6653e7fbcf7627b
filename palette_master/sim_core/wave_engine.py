"""
Wave Propagation Engine
=======================

Expanding circular wavefronts emitted periodically from sources. Fronts grow
and fade each tick, bounce color off obstacles, interfere with each other,
and blend into one aggregate color.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Tuple

import numpy as np
from pymunk import Vec2d

from palette_master.sim_core.color import WHITE, Color
from palette_master.sim_core.color_mixer import mix_subtractive
from palette_master.sim_core.config_loader import GameConfig, get_config
from palette_master.sim_core.population import BoundedPopulation, CollisionMemory

logger = logging.getLogger("palette_master.waves")


@dataclass
class WaveSource:
    """A point that emits a wavefront every ``1 / frequency`` seconds."""
    uid: int
    position: Vec2d
    color: Color
    frequency: float
    carries_fronts: bool = False
    accumulator: float = 0.0

    @property
    def period(self) -> Optional[float]:
        """Seconds between emissions, or None if the source never emits."""
        if self.frequency <= 0:
            return None
        return 1.0 / self.frequency


@dataclass
class Obstacle:
    """
    Static circle that waves can hit.

    ``reflective`` obstacles emit a color-mixed child front on impact;
    ``absorptive`` obstacles slow and fade the incoming front. Both effects
    apply independently.
    """
    uid: int
    position: Vec2d
    radius: float
    color: Color
    reflective: bool = False
    absorptive: bool = False

    @property
    def key(self) -> Tuple[str, int]:
        return ("obstacle", self.uid)


@dataclass
class Wavefront:
    """An expanding ring of color."""
    uid: int
    position: Vec2d
    color: Color
    radius: float
    speed: float
    opacity: float
    born_at: float
    origin: Vec2d = field(default_factory=lambda: Vec2d(0, 0))
    source_uid: Optional[int] = None
    memory: CollisionMemory = field(default_factory=CollisionMemory)
    expired: bool = False

    @property
    def key(self) -> Tuple[str, int]:
        return ("wave", self.uid)

    @property
    def is_pinned(self) -> bool:
        return False


@dataclass
class WaveCollision:
    """A front hit an obstacle or another front."""
    kind: str                      # "obstacle" or "wave"
    wave_uid: int
    other_uid: int
    position: Tuple[float, float]
    child_uid: Optional[int] = None
    absorbed: bool = False


@dataclass
class WaveStepResult:
    """What happened during one engine step."""
    emitted: List[int]
    collisions: List[WaveCollision]
    expired: List[int]
    suppressed: int = 0


class WavePropagationEngine:
    """
    Manages wave sources, obstacles and live wavefronts.

    One ``step`` grows and fades existing fronts, emits new ones from due
    sources, then resolves front-obstacle and front-front collisions. Each
    front collides with a given entity at most once, tracked by its bounded
    collision memory. Fronts spawned by collisions join after the pass.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize wave engine.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._fronts: BoundedPopulation[Wavefront] = BoundedPopulation(
            config.caps.max_wavefronts, name="wavefronts"
        )
        self._sources: Dict[int, WaveSource] = {}
        self._obstacles: Dict[int, Obstacle] = {}
        self._next_uid = 0
        self._time = 0.0
        self._speed_modifier = 1.0
        self._throttle_attempts = 0

    @property
    def time(self) -> float:
        """Seconds simulated since the last reset."""
        return self._time

    @property
    def fronts(self) -> List[Wavefront]:
        """Live wavefronts, oldest first."""
        return self._fronts.values()

    @property
    def front_count(self) -> int:
        return len(self._fronts)

    @property
    def sources(self) -> List[WaveSource]:
        return list(self._sources.values())

    @property
    def obstacles(self) -> List[Obstacle]:
        return list(self._obstacles.values())

    @property
    def speed_modifier(self) -> float:
        return self._speed_modifier

    @speed_modifier.setter
    def speed_modifier(self, value: float) -> None:
        """Scale applied to every front's growth (power-ups, slow motion)."""
        self._speed_modifier = max(0.0, value)

    def _new_uid(self) -> int:
        uid = self._next_uid
        self._next_uid += 1
        return uid

    def add_source(
        self,
        position: Tuple[float, float],
        color: Color,
        frequency: float,
        carries_fronts: bool = False
    ) -> WaveSource:
        """
        Add an emitter.

        Args:
            position: Emission point.
            color: Color of emitted fronts.
            frequency: Emissions per second; zero or negative never emits.
            carries_fronts: Emitted fronts follow the source when it moves.
        """
        source = WaveSource(
            uid=self._new_uid(),
            position=Vec2d(*position),
            color=color,
            frequency=frequency,
            carries_fronts=carries_fronts
        )
        self._sources[source.uid] = source
        return source

    def remove_source(self, uid: int) -> Optional[WaveSource]:
        return self._sources.pop(uid, None)

    def move_source(self, uid: int, position: Tuple[float, float]) -> Optional[WaveSource]:
        source = self._sources.get(uid)
        if source is not None:
            source.position = Vec2d(*position)
        return source

    def set_source_color(self, uid: int, color: Color) -> Optional[WaveSource]:
        source = self._sources.get(uid)
        if source is not None:
            source.color = color
        return source

    def add_obstacle(
        self,
        position: Tuple[float, float],
        radius: float,
        color: Color,
        reflective: bool = False,
        absorptive: bool = False
    ) -> Obstacle:
        obstacle = Obstacle(
            uid=self._new_uid(),
            position=Vec2d(*position),
            radius=max(0.0, radius),
            color=color,
            reflective=reflective,
            absorptive=absorptive
        )
        self._obstacles[obstacle.uid] = obstacle
        return obstacle

    def remove_obstacle(self, uid: int) -> Optional[Obstacle]:
        return self._obstacles.pop(uid, None)

    def _make_front(
        self,
        position: Vec2d,
        color: Color,
        radius: float,
        speed: float,
        opacity: float,
        source_uid: Optional[int] = None,
        memory: Optional[CollisionMemory] = None
    ) -> Wavefront:
        if memory is None:
            memory = CollisionMemory(self._config.waves.collision_memory)
        return Wavefront(
            uid=self._new_uid(),
            position=position,
            color=color,
            radius=max(0.0, radius),
            speed=max(0.0, speed),
            opacity=max(0.0, min(1.0, opacity)),
            born_at=self._time,
            origin=position,
            source_uid=source_uid,
            memory=memory
        )

    def _insert(self, front: Wavefront) -> bool:
        evicted = self._fronts.add(front)
        if evicted:
            logger.debug("Wavefront cap reached, evicted %s", [f.uid for f in evicted])
        return not (evicted and evicted[0] is front)

    def emit(
        self,
        position: Tuple[float, float],
        color: Color,
        speed: Optional[float] = None,
        opacity: Optional[float] = None,
        radius: Optional[float] = None
    ) -> Wavefront:
        """
        Emit a front immediately, outside any source schedule.

        Unset parameters use the configured base values. The oldest front is
        evicted if the population is full.
        """
        waves = self._config.waves
        front = self._make_front(
            Vec2d(*position),
            color,
            radius=waves.base_radius if radius is None else radius,
            speed=waves.base_speed if speed is None else speed,
            opacity=waves.base_opacity if opacity is None else opacity
        )
        self._insert(front)
        return front

    def _is_duplicate(self, position: Vec2d) -> bool:
        waves = self._config.waves
        for front in self._fronts:
            if self._time - front.born_at > waves.dedup_window:
                continue
            if (front.origin - position).length < waves.dedup_distance:
                return True
        return False

    def _accept_emission(self) -> bool:
        """Throttle emissions once the population nears its cap."""
        waves = self._config.waves
        near_cap = len(self._fronts) >= self._fronts.capacity - waves.throttle_margin
        if not near_cap:
            self._throttle_attempts = 0
            return True
        self._throttle_attempts += 1
        return self._throttle_attempts % waves.throttle_every == 0

    def _emit_from(self, source: WaveSource) -> Optional[Wavefront]:
        if self._is_duplicate(source.position):
            return None
        if not self._accept_emission():
            return None
        waves = self._config.waves
        front = self._make_front(
            source.position,
            source.color,
            radius=waves.base_radius,
            speed=waves.base_speed,
            opacity=waves.base_opacity,
            source_uid=source.uid if source.carries_fronts else None
        )
        self._insert(front)
        return front

    def step(self, dt: Optional[float] = None, sweep: bool = True) -> WaveStepResult:
        """
        Advance the engine by one tick.

        Args:
            dt: Elapsed seconds. Uses the configured physics dt if None.
            sweep: Remove expired fronts after the pass.

        Returns:
            Emissions, collisions and expirations from this tick.
        """
        if dt is None:
            dt = self._config.physics.dt
        dt = max(0.0, dt)
        self._time += dt

        expired = self._advance_fronts()

        emitted: List[int] = []
        suppressed = 0
        for source in list(self._sources.values()):
            period = source.period
            if period is None:
                continue
            source.accumulator += dt
            if source.accumulator >= period:
                source.accumulator = 0.0
                front = self._emit_from(source)
                if front is not None:
                    emitted.append(front.uid)
                else:
                    suppressed += 1

        collisions = self.resolve_collisions()

        if sweep:
            self.sweep()

        return WaveStepResult(
            emitted=emitted,
            collisions=collisions,
            expired=expired,
            suppressed=suppressed
        )

    def _advance_fronts(self) -> List[int]:
        """Grow and fade every live front; returns UIDs that faded out."""
        decay = self._config.waves.opacity_decay
        expired: List[int] = []
        for front in self._fronts:
            if front.expired:
                continue
            if front.source_uid is not None:
                source = self._sources.get(front.source_uid)
                if source is not None:
                    front.position = source.position
            front.radius += front.speed * self._speed_modifier
            front.opacity = max(0.0, front.opacity - decay)
            if front.opacity <= 0:
                front.expired = True
                expired.append(front.uid)
        return expired

    def resolve_collisions(self) -> List[WaveCollision]:
        """
        Resolve front-obstacle then front-front collisions.

        Child fronts are inserted after both passes.
        """
        live = [f for f in self._fronts if not f.expired]
        children: List[Wavefront] = []
        collisions: List[WaveCollision] = []

        for front in live:
            for obstacle in self._obstacles.values():
                event = self._hit_obstacle(front, obstacle, children)
                if event is not None:
                    collisions.append(event)

        for i, front_a in enumerate(live):
            for front_b in live[i + 1:]:
                event = self._interfere(front_a, front_b, children)
                if event is not None:
                    collisions.append(event)

        for child in children:
            self._insert(child)

        return collisions

    def _hit_obstacle(
        self,
        front: Wavefront,
        obstacle: Obstacle,
        children: List[Wavefront]
    ) -> Optional[WaveCollision]:
        if obstacle.key in front.memory:
            return None
        distance = (front.position - obstacle.position).length
        if distance > obstacle.radius + front.radius:
            return None

        front.memory.add(obstacle.key, pinned=True)
        waves = self._config.waves
        event = WaveCollision(
            kind="obstacle",
            wave_uid=front.uid,
            other_uid=obstacle.uid,
            position=(obstacle.position.x, obstacle.position.y)
        )

        if obstacle.reflective:
            memory = front.memory.copy()
            memory.add(front.key)
            child = self._make_front(
                obstacle.position,
                mix_subtractive([front.color, obstacle.color]),
                radius=waves.base_radius,
                speed=front.speed * waves.reflect_factor,
                opacity=front.opacity * waves.reflect_factor,
                memory=memory
            )
            children.append(child)
            event.child_uid = child.uid

        if obstacle.absorptive:
            front.speed *= waves.absorb_factor
            front.opacity *= waves.absorb_factor
            event.absorbed = True

        return event

    def _interfere(
        self,
        front_a: Wavefront,
        front_b: Wavefront,
        children: List[Wavefront]
    ) -> Optional[WaveCollision]:
        if front_b.key in front_a.memory or front_a.key in front_b.memory:
            return None

        delta = front_b.position - front_a.position
        distance = delta.length
        if abs(distance - (front_a.radius + front_b.radius)) >= self._config.waves.wave_contact_tolerance:
            return None

        front_a.memory.add(front_b.key)
        front_b.memory.add(front_a.key)

        if distance > 0:
            point = front_a.position + delta / distance * front_a.radius
        else:
            point = front_a.position

        keys: List[Hashable] = [front_a.key, front_b.key]
        child = self._make_front(
            point,
            mix_subtractive([front_a.color, front_b.color]),
            radius=self._config.waves.base_radius,
            speed=(front_a.speed + front_b.speed) / 2,
            opacity=(front_a.opacity + front_b.opacity) / 2,
            memory=CollisionMemory(self._config.waves.collision_memory, keys)
        )
        children.append(child)

        return WaveCollision(
            kind="wave",
            wave_uid=front_a.uid,
            other_uid=front_b.uid,
            position=(point.x, point.y),
            child_uid=child.uid
        )

    def aggregate_color(self) -> Color:
        """
        Blend live fronts as overlapping translucent rings.

        Weighted RGB average with weight ``opacity * clamp(radius / scale,
        min, max)``, so large, opaque fronts dominate. WHITE when nothing is
        visible.
        """
        live = [f for f in self._fronts if not f.expired and f.opacity > 0]
        if not live:
            return WHITE

        waves = self._config.waves
        rgb = np.array([f.color.rgb for f in live], dtype=np.float64)
        radii = np.array([f.radius for f in live], dtype=np.float64)
        opacity = np.array([f.opacity for f in live], dtype=np.float64)
        weights = opacity * np.clip(radii / waves.weight_radius_scale, waves.weight_min, waves.weight_max)

        total = weights.sum()
        if total <= 0:
            return WHITE

        mixed = (rgb * weights[:, None]).sum(axis=0) / total
        return Color(float(mixed[0]), float(mixed[1]), float(mixed[2]))

    def sweep(self) -> List[Wavefront]:
        """Remove fronts marked expired."""
        return self._fronts.remove_many([f.uid for f in self._fronts if f.expired])

    def clear(self) -> None:
        """Remove all fronts, sources and obstacles and restart the clock."""
        self._fronts.clear()
        self._sources.clear()
        self._obstacles.clear()
        self._next_uid = 0
        self._time = 0.0
        self._speed_modifier = 1.0
        self._throttle_attempts = 0
