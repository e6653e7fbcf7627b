"""
State Snapshot
==============

Packs simulation state into fixed-size numpy arrays for renderers and
headless analysis. Bodies, particles, obstacles and wavefronts share one
padded object table distinguished by a kind code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, TYPE_CHECKING

import numpy as np

from palette_master.sim_core.color import WHITE, Color
from palette_master.sim_core.config_loader import GameConfig, get_config

if TYPE_CHECKING:
    from palette_master.sim_core.physics_world import PhysicsWorld
    from palette_master.sim_core.wave_engine import WavePropagationEngine

# Object kind codes; padding rows use KIND_NONE
KIND_NONE = -1
KIND_BODY = 0
KIND_PARTICLE = 1
KIND_OBSTACLE = 2
KIND_WAVEFRONT = 3


@dataclass
class SimulationSnapshot:
    """
    Read-only view of one tick.

    All object arrays have length ``max_render_objects`` with ``obj_mask``
    marking the populated rows. Objects are packed bodies first, then
    particles, obstacles and wavefronts.
    """
    tick: int
    time: float
    mode: str
    objects_count: int
    body_count: int
    particle_count: int
    front_count: int

    # Board info (for normalization)
    canvas_width: float
    canvas_height: float

    # Color state
    mixed_rgb: np.ndarray             # (3,) uint8
    target_rgb: np.ndarray            # (3,) uint8
    similarity: float

    # Object arrays (fixed size, padded)
    obj_kind: np.ndarray              # (MAX_OBJ,) int8
    obj_x: np.ndarray                 # (MAX_OBJ,) float32
    obj_y: np.ndarray                 # (MAX_OBJ,) float32
    obj_radius: np.ndarray            # (MAX_OBJ,) float32
    obj_rgb: np.ndarray               # (MAX_OBJ, 3) uint8
    obj_opacity: np.ndarray           # (MAX_OBJ,) float32
    obj_mask: np.ndarray              # (MAX_OBJ,) bool

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Convert to a flat dictionary of numpy arrays."""
        return {
            "tick": np.array(self.tick, dtype=np.int64),
            "time": np.array(self.time, dtype=np.float32),
            "objects_count": np.array(self.objects_count, dtype=np.int32),
            "body_count": np.array(self.body_count, dtype=np.int32),
            "particle_count": np.array(self.particle_count, dtype=np.int32),
            "front_count": np.array(self.front_count, dtype=np.int32),
            "canvas_width": np.array(self.canvas_width, dtype=np.float32),
            "canvas_height": np.array(self.canvas_height, dtype=np.float32),
            "mixed_rgb": self.mixed_rgb,
            "target_rgb": self.target_rgb,
            "similarity": np.array(self.similarity, dtype=np.float32),
            "obj_kind": self.obj_kind,
            "obj_x": self.obj_x,
            "obj_y": self.obj_y,
            "obj_radius": self.obj_radius,
            "obj_rgb": self.obj_rgb,
            "obj_opacity": self.obj_opacity,
            "obj_mask": self.obj_mask,
        }


class SnapshotBuilder:
    """Builds simulation snapshots with pre-allocated arrays."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._max_objects = config.caps.max_render_objects

        self._obj_kind = np.full(self._max_objects, KIND_NONE, dtype=np.int8)
        self._obj_x = np.zeros(self._max_objects, dtype=np.float32)
        self._obj_y = np.zeros(self._max_objects, dtype=np.float32)
        self._obj_radius = np.zeros(self._max_objects, dtype=np.float32)
        self._obj_rgb = np.zeros((self._max_objects, 3), dtype=np.uint8)
        self._obj_opacity = np.zeros(self._max_objects, dtype=np.float32)
        self._obj_mask = np.zeros(self._max_objects, dtype=bool)

    @property
    def max_objects(self) -> int:
        return self._max_objects

    def _reset(self) -> None:
        self._obj_kind.fill(KIND_NONE)
        self._obj_x.fill(0)
        self._obj_y.fill(0)
        self._obj_radius.fill(0)
        self._obj_rgb.fill(0)
        self._obj_opacity.fill(0)
        self._obj_mask.fill(False)

    def _pack(
        self,
        rows: Iterable[Tuple[int, float, float, float, Color, float]],
        start: int
    ) -> int:
        """Write rows from ``start`` until the table is full; returns next free row."""
        i = start
        for kind, x, y, radius, color, opacity in rows:
            if i >= self._max_objects:
                break
            self._obj_kind[i] = kind
            self._obj_x[i] = x
            self._obj_y[i] = y
            self._obj_radius[i] = radius
            self._obj_rgb[i] = color.rgb
            self._obj_opacity[i] = opacity
            self._obj_mask[i] = True
            i += 1
        return i

    def build(
        self,
        world: "PhysicsWorld",
        waves: Optional["WavePropagationEngine"] = None,
        tick: int = 0,
        time: float = 0.0,
        mixed_color: Color = WHITE,
        target: Optional[Color] = None,
        similarity: float = 0.0
    ) -> SimulationSnapshot:
        """Build a snapshot from current simulation state."""
        self._reset()

        count = self._pack(
            ((KIND_BODY, b.position.x, b.position.y, b.radius, b.color, b.color.opacity)
             for b in world.bodies),
            0
        )
        count = self._pack(
            ((KIND_PARTICLE, p.position.x, p.position.y, p.radius, p.color,
              p.color.opacity * (p.lifetime if p.lifetime is not None else 1.0))
             for p in world.particles),
            count
        )

        front_count = 0
        if waves is not None:
            front_count = waves.front_count
            count = self._pack(
                ((KIND_OBSTACLE, o.position.x, o.position.y, o.radius, o.color, 1.0)
                 for o in waves.obstacles),
                count
            )
            count = self._pack(
                ((KIND_WAVEFRONT, f.position.x, f.position.y, f.radius, f.color, f.opacity)
                 for f in waves.fronts),
                count
            )

        return SimulationSnapshot(
            tick=tick,
            time=time,
            mode=self._config.session.mode,
            objects_count=count,
            body_count=world.body_count,
            particle_count=world.particle_count,
            front_count=front_count,
            canvas_width=self._config.canvas.width,
            canvas_height=self._config.canvas.height,
            mixed_rgb=np.array(mixed_color.rgb, dtype=np.uint8),
            target_rgb=np.array((target or WHITE).rgb, dtype=np.uint8),
            similarity=similarity,
            obj_kind=self._obj_kind.copy(),
            obj_x=self._obj_x.copy(),
            obj_y=self._obj_y.copy(),
            obj_radius=self._obj_radius.copy(),
            obj_rgb=self._obj_rgb.copy(),
            obj_opacity=self._obj_opacity.copy(),
            obj_mask=self._obj_mask.copy()
        )

    def empty_snapshot(self) -> SimulationSnapshot:
        """Create an empty snapshot."""
        return SimulationSnapshot(
            tick=0,
            time=0.0,
            mode=self._config.session.mode,
            objects_count=0,
            body_count=0,
            particle_count=0,
            front_count=0,
            canvas_width=self._config.canvas.width,
            canvas_height=self._config.canvas.height,
            mixed_rgb=np.array(WHITE.rgb, dtype=np.uint8),
            target_rgb=np.array(WHITE.rgb, dtype=np.uint8),
            similarity=0.0,
            obj_kind=np.full(self._max_objects, KIND_NONE, dtype=np.int8),
            obj_x=np.zeros(self._max_objects, dtype=np.float32),
            obj_y=np.zeros(self._max_objects, dtype=np.float32),
            obj_radius=np.zeros(self._max_objects, dtype=np.float32),
            obj_rgb=np.zeros((self._max_objects, 3), dtype=np.uint8),
            obj_opacity=np.zeros(self._max_objects, dtype=np.float32),
            obj_mask=np.zeros(self._max_objects, dtype=bool)
        )
