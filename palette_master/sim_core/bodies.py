"""
Physics Bodies
==============

Circular moving entities: bubbles, droplets and short-lived burst particles.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from pymunk import Vec2d

from palette_master.sim_core.color import Color


@dataclass
class PhysicsBody:
    """
    A circle advanced by the integrator.

    ``position`` and ``velocity`` are pymunk vectors in canvas pixels and
    pixels per tick. A body with a ``lifetime`` counts it down each tick and
    is marked ``expired`` when it reaches zero.
    """
    uid: int
    position: Vec2d
    velocity: Vec2d
    radius: float
    color: Color
    lifetime: Optional[float] = None
    is_dragging: bool = False
    is_particle: bool = False
    is_growing: bool = False
    is_fixed: bool = False
    pinned: bool = False
    target_radius: float = 0.0
    expired: bool = False

    def __post_init__(self) -> None:
        self.position = Vec2d(*self.position)
        self.velocity = Vec2d(*self.velocity)
        self.radius = max(0.0, float(self.radius))

    @property
    def is_free(self) -> bool:
        """True if the integrator moves this body."""
        return not (self.is_dragging or self.is_fixed)

    @property
    def is_pinned(self) -> bool:
        """Pinned bodies are skipped by capacity eviction."""
        return self.pinned or self.is_dragging

    @property
    def area(self) -> float:
        return math.pi * self.radius * self.radius

    @property
    def mass(self) -> float:
        """Collision mass, proportional to area."""
        return self.radius * self.radius

    @property
    def speed(self) -> float:
        return self.velocity.length

    def contains(self, point: Vec2d) -> bool:
        return (Vec2d(*point) - self.position).length <= self.radius

    def __repr__(self) -> str:
        kind = "particle" if self.is_particle else "body"
        return (
            f"PhysicsBody({kind} {self.uid}: r={self.radius:.1f} "
            f"at ({self.position.x:.1f}, {self.position.y:.1f}) {self.color!r})"
        )
