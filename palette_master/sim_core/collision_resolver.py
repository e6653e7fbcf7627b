"""
Collision Resolver
==================

Pairwise circle collisions between gameplay bodies: push-apart, impulse
exchange, and the merge and split operations layered on top.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from pymunk import Vec2d

from palette_master.sim_core.bodies import PhysicsBody
from palette_master.sim_core.color import Color
from palette_master.sim_core.color_mixer import mix_subtractive, to_repeats
from palette_master.sim_core.config_loader import GameConfig
from palette_master.sim_core.physics_world import PhysicsWorld

logger = logging.getLogger("palette_master.collisions")

SPLIT_AREA_FACTOR = math.sqrt(0.5)


@dataclass
class Contact:
    """Two overlapping bodies found by the broad pass."""
    uid_a: int
    uid_b: int
    distance: float
    overlap: float


@dataclass
class MergeEvent:
    """Two bodies combined into one."""
    removed_uids: Tuple[int, int]
    created_uid: int
    position: Tuple[float, float]
    color: Color
    radius: float


@dataclass
class SplitEvent:
    """One body divided into two equal-area children."""
    parent_uid: int
    child_uids: Tuple[int, ...]
    position: Tuple[float, float]
    color: Color
    child_radius: float


class CollisionResolver:
    """
    Resolves body-body interactions once per tick.

    Pairs are visited in insertion order. A pair that overlaps deeply merges;
    a shallow overlap is pushed apart and exchanges an impulse. Bodies
    consumed by a merge take no further part in the pass, and merged bodies
    join the world only after the pass completes.
    """

    def __init__(self, world: PhysicsWorld, config: Optional[GameConfig] = None):
        """
        Initialize collision resolver.

        Args:
            world: The physics world whose bodies are resolved.
            config: Game configuration. Uses the world's if None.
        """
        if config is None:
            config = world.config

        self._world = world
        self._config = config

    @property
    def world(self) -> PhysicsWorld:
        return self._world

    def find_contacts(self) -> List[Contact]:
        """All overlapping pairs of non-particle bodies."""
        contacts: List[Contact] = []
        bodies = self._world.bodies
        for i, body_a in enumerate(bodies):
            for body_b in bodies[i + 1:]:
                distance = (body_b.position - body_a.position).length
                min_distance = body_a.radius + body_b.radius
                if distance < min_distance:
                    contacts.append(Contact(
                        uid_a=body_a.uid,
                        uid_b=body_b.uid,
                        distance=distance,
                        overlap=min_distance - distance
                    ))
        return contacts

    def resolve(self) -> List[MergeEvent]:
        """
        Run one collision pass over all body pairs.

        Returns:
            Merge events in the order they happened.
        """
        ratio = self._config.bubbles.merge_overlap_ratio
        bodies = self._world.bodies
        consumed: Set[int] = {b.uid for b in bodies if b.expired}
        merged: List[Tuple[PhysicsBody, PhysicsBody, PhysicsBody, MergeEvent]] = []

        for i, body_a in enumerate(bodies):
            if body_a.uid in consumed:
                continue
            for body_b in bodies[i + 1:]:
                if body_b.uid in consumed:
                    continue

                delta = body_b.position - body_a.position
                distance = delta.length
                min_distance = body_a.radius + body_b.radius
                if distance >= min_distance:
                    continue

                if distance < min_distance * ratio:
                    product, event = self._build_merge(body_a, body_b)
                    merged.append((body_a, body_b, product, event))
                    consumed.add(body_a.uid)
                    consumed.add(body_b.uid)
                    break

                self._separate(body_a, body_b, delta, distance, min_distance)

        events: List[MergeEvent] = []
        for body_a, body_b, product, event in merged:
            self._commit_merge(body_a, body_b, product)
            events.append(event)
        return events

    def _separate(
        self,
        body_a: PhysicsBody,
        body_b: PhysicsBody,
        delta: Vec2d,
        distance: float,
        min_distance: float
    ) -> None:
        """Push a shallow overlap apart and exchange an impulse."""
        if distance <= 0:
            return

        normal = delta / distance
        overlap = min_distance - distance
        body_a.position = body_a.position - normal * (overlap * 0.5)
        body_b.position = body_b.position + normal * (overlap * 0.5)

        mass_a = body_a.mass
        mass_b = body_b.mass
        total_mass = mass_a + mass_b
        if total_mass <= 0:
            return

        # Positive when the bodies approach each other along the normal
        impact_speed = (body_a.velocity - body_b.velocity).dot(normal)
        if impact_speed < 0:
            return

        impulse = 2.0 * impact_speed / total_mass
        body_a.velocity = body_a.velocity - normal * (impulse * mass_b)
        body_b.velocity = body_b.velocity + normal * (impulse * mass_a)

    def _build_merge(
        self,
        body_a: PhysicsBody,
        body_b: PhysicsBody
    ) -> Tuple[PhysicsBody, MergeEvent]:
        """
        Compute the merged body without touching the world.

        The product stays dragged if either source was being dragged.
        """
        bubbles = self._config.bubbles
        area_a = body_a.area
        area_b = body_b.area
        total_area = area_a + area_b

        new_radius = math.sqrt(total_area / math.pi)

        colors = (
            [body_a.color] * to_repeats(area_a / bubbles.merge_weight_divisor, 1, bubbles.merge_weight_max)
            + [body_b.color] * to_repeats(area_b / bubbles.merge_weight_divisor, 1, bubbles.merge_weight_max)
        )
        new_color = mix_subtractive(colors)

        if total_area > 0:
            position = (body_a.position * area_a + body_b.position * area_b) / total_area
            velocity = (body_a.velocity * area_a + body_b.velocity * area_b) / total_area
        else:
            position = (body_a.position + body_b.position) / 2
            velocity = (body_a.velocity + body_b.velocity) / 2

        product = PhysicsBody(
            uid=self._world.new_uid(),
            position=position,
            velocity=velocity,
            radius=new_radius,
            color=new_color,
            target_radius=new_radius,
            is_dragging=body_a.is_dragging or body_b.is_dragging
        )
        event = MergeEvent(
            removed_uids=(body_a.uid, body_b.uid),
            created_uid=product.uid,
            position=(position.x, position.y),
            color=new_color,
            radius=new_radius
        )
        return product, event

    def _commit_merge(
        self,
        body_a: PhysicsBody,
        body_b: PhysicsBody,
        product: PhysicsBody
    ) -> None:
        bubbles = self._config.bubbles
        self._world.remove_body(body_a.uid)
        self._world.remove_body(body_b.uid)
        self._world.add_bodies([product])

        self._world.spawn_burst(
            center=product.position,
            count=bubbles.merge_burst_count,
            distance=product.radius * 1.2,
            radius=product.radius * 0.3,
            speed_range=(2.0, 5.0),
            lifetime=bubbles.merge_burst_lifetime,
            colors=(body_a.color, body_b.color)
        )
        logger.debug("Merged %d + %d -> %d (r=%.2f, %r)",
                     body_a.uid, body_b.uid, product.uid, product.radius, product.color)

    def merge(self, uid_a: int, uid_b: int) -> Optional[MergeEvent]:
        """
        Merge two bodies immediately, regardless of overlap.

        Merging a body with itself, a particle, or an unknown UID is ignored.

        Returns:
            The merge event, or None if the request was ignored.
        """
        if uid_a == uid_b:
            return None
        body_a = self._world.get_body(uid_a)
        body_b = self._world.get_body(uid_b)
        if body_a is None or body_b is None:
            return None
        if body_a.is_particle or body_b.is_particle:
            return None

        product, event = self._build_merge(body_a, body_b)
        self._commit_merge(body_a, body_b, product)
        return event

    def split(self, uid: int) -> Optional[SplitEvent]:
        """
        Split a body into two equal-area children along a random axis.

        Bodies smaller than ``min_split_radius``, particles and unknown UIDs
        are ignored.

        Returns:
            The split event, or None if the request was ignored.
        """
        body = self._world.get_body(uid)
        if body is None or body.is_particle:
            return None

        bubbles = self._config.bubbles
        if body.radius < bubbles.min_split_radius:
            return None

        child_radius = body.radius * SPLIT_AREA_FACTOR
        angle = self._world.rng.random() * math.pi
        offset = Vec2d(math.cos(angle), math.sin(angle)) * (child_radius * 0.5)

        children = []
        for direction in (offset, -offset):
            children.append(PhysicsBody(
                uid=self._world.new_uid(),
                position=body.position + direction,
                velocity=body.velocity + direction * 0.5,
                radius=child_radius,
                color=body.color,
                target_radius=child_radius
            ))

        self._world.remove_body(body.uid)
        inserted = self._world.add_bodies(children)

        self._world.spawn_burst(
            center=body.position,
            count=bubbles.split_burst_count,
            distance=child_radius,
            radius=child_radius * 0.2,
            speed_range=(1.0, 3.0),
            lifetime=bubbles.split_burst_lifetime,
            colors=(body.color.with_opacity(0.7),)
        )
        logger.debug("Split %d -> %s (r=%.2f)", body.uid, [c.uid for c in inserted], child_radius)

        return SplitEvent(
            parent_uid=body.uid,
            child_uids=tuple(c.uid for c in inserted),
            position=(body.position.x, body.position.y),
            color=body.color,
            child_radius=child_radius
        )
