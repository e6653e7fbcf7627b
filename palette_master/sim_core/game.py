"""
Color Game
==========

Tick orchestrator combining physics, collisions, waves and scoring.

``step`` is the pure form: it advances a copy of a ``SimulationState`` and
leaves the input untouched. ``ColorGame`` is the in-place host wrapper used
by interactive front ends.
"""

from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Union

from palette_master.sim_core.bodies import PhysicsBody
from palette_master.sim_core.collision_resolver import CollisionResolver, MergeEvent, SplitEvent
from palette_master.sim_core.color import BLUE, RED, WHITE, YELLOW, Color
from palette_master.sim_core.color_mixer import mix_subtractive, to_repeats
from palette_master.sim_core.config_loader import VALID_MODES, GameConfig, get_config
from palette_master.sim_core.physics_world import PhysicsWorld
from palette_master.sim_core.similarity import SimilarityScorer
from palette_master.sim_core.state_snapshot import SimulationSnapshot, SnapshotBuilder
from palette_master.sim_core.wave_engine import WavePropagationEngine, WaveStepResult

logger = logging.getLogger("palette_master")

MergeListener = Callable[[MergeEvent], None]

DEFAULT_PALETTE = (RED, YELLOW, BLUE)


@dataclass
class SimulationState:
    """
    Everything one tick reads and writes.

    The resolver holds a reference to ``world`` and the world draws from
    ``rng``; ``copy.deepcopy`` keeps those links inside the copy.
    """
    world: PhysicsWorld
    resolver: CollisionResolver
    waves: WavePropagationEngine
    rng: random.Random
    tick: int = 0
    time: float = 0.0

    @classmethod
    def create(
        cls,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None
    ) -> "SimulationState":
        """Build an empty state with a seeded random source."""
        if config is None:
            config = get_config()
        rng = random.Random(seed)
        world = PhysicsWorld(config, rng=rng)
        return cls(
            world=world,
            resolver=CollisionResolver(world, config),
            waves=WavePropagationEngine(config),
            rng=rng
        )


@dataclass
class StepResult:
    """Result of a single tick."""
    state: SimulationState
    mixed_color: Color
    merges: List[MergeEvent] = field(default_factory=list)
    expired_uids: List[int] = field(default_factory=list)
    waves: Optional[WaveStepResult] = None

    @property
    def tick(self) -> int:
        return self.state.tick


def mix_bodies(bodies: Sequence[PhysicsBody], config: Optional[GameConfig] = None) -> Color:
    """
    Area-weighted subtractive mix of gameplay bodies.

    Each body contributes ``clamp(round(area / mix_weight_divisor), 1,
    mix_weight_max)`` copies of its color. Particles, expired and zero-radius
    bodies are ignored; WHITE when nothing remains.
    """
    if config is None:
        config = get_config()
    bubbles = config.bubbles

    colors: List[Color] = []
    for body in bodies:
        if body.is_particle or body.expired or body.radius <= 0:
            continue
        repeats = to_repeats(body.area / bubbles.mix_weight_divisor, 1, bubbles.mix_weight_max)
        colors.extend([body.color] * repeats)

    if not colors:
        return WHITE
    return mix_subtractive(colors)


def current_color(state: SimulationState, mode: str, config: Optional[GameConfig] = None) -> Color:
    """The mixed color reported for ``mode`` ("bubbles" or "waves")."""
    if mode == "waves":
        return state.waves.aggregate_color()
    return mix_bodies(state.world.bodies, config or state.world.config)


def _advance(state: SimulationState, dt: float, config: GameConfig) -> StepResult:
    """Run the phases of one tick on ``state`` in place."""
    expired = state.world.step(sweep=False)
    merges = state.resolver.resolve()
    wave_result = state.waves.step(dt, sweep=False)
    mixed = current_color(state, config.session.mode, config)

    state.world.sweep()
    state.waves.sweep()
    state.tick += 1
    state.time += dt

    return StepResult(
        state=state,
        mixed_color=mixed,
        merges=merges,
        expired_uids=expired,
        waves=wave_result
    )


def step(
    state: SimulationState,
    dt: Optional[float] = None,
    config: Optional[GameConfig] = None
) -> StepResult:
    """
    Advance a copy of ``state`` by one tick.

    Phases run in a fixed order: integrate, collide, waves, aggregate color,
    cleanup. The input state is not mutated.

    Args:
        state: State to advance.
        dt: Elapsed seconds. Uses the configured physics dt if None.
        config: Configuration for dt and mode. Uses the world's if None.

    Returns:
        StepResult holding the new state.
    """
    if config is None:
        config = state.world.config
    if dt is None:
        dt = config.physics.dt

    return _advance(copy.deepcopy(state), dt, config)


class ColorGame:
    """
    Interactive color mixing session.

    Orchestrates:
    - Physics world and collision resolution
    - Wave propagation
    - Mixed color and similarity against the target
    - State snapshots

    One ``tick`` advances the session in place by one fixed step.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        target: Optional[Color] = None,
        palette: Sequence[Color] = DEFAULT_PALETTE,
        mode: Optional[str] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility.
            target: Color the player must produce. Defaults to WHITE.
            palette: Colors available for seeding and tapping.
            mode: "bubbles" or "waves". Uses ``session.mode`` if None.
        """
        if config is None:
            config = get_config()
        if mode is None:
            mode = config.session.mode
        if mode not in VALID_MODES:
            raise ValueError(f"mode must be one of {VALID_MODES}, got '{mode}'")

        if mode != config.session.mode:
            config = replace(config, session=replace(config.session, mode=mode))

        self._config = config
        self._seed = seed
        self._mode = mode
        self._palette: List[Color] = list(palette)
        self._selected: Optional[Color] = self._palette[0] if self._palette else None

        self._state = SimulationState.create(config, seed)
        self._scorer = SimilarityScorer(target or WHITE, config=config)
        self._snapshot_builder = SnapshotBuilder(config)
        self._merge_listeners: List[MergeListener] = []
        # grabbed uid -> uid of the body now under the pointer
        self._drag_handles: Dict[int, int] = {}

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def world(self) -> PhysicsWorld:
        return self._state.world

    @property
    def waves(self) -> WavePropagationEngine:
        return self._state.waves

    @property
    def resolver(self) -> CollisionResolver:
        return self._state.resolver

    @property
    def scorer(self) -> SimilarityScorer:
        return self._scorer

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def tick_count(self) -> int:
        return self._state.tick

    @property
    def target(self) -> Color:
        return self._scorer.target

    @property
    def palette(self) -> List[Color]:
        return list(self._palette)

    @property
    def selected_color(self) -> Optional[Color]:
        """Color used when tapping empty canvas."""
        return self._selected

    def select_color(self, color: Optional[Color]) -> None:
        self._selected = color

    @property
    def mixed_color(self) -> Color:
        """Current mix of the active collection."""
        return current_color(self._state, self._mode, self._config)

    @property
    def similarity(self) -> float:
        return self._scorer.similarity(self.mixed_color)

    @property
    def is_solved(self) -> bool:
        """True once the mixed color reaches the accuracy threshold."""
        return self._scorer.is_match(self.mixed_color)

    def add_merge_listener(self, listener: MergeListener) -> None:
        """Call ``listener`` with every merge that happens during ``tick``."""
        self._merge_listeners.append(listener)

    def remove_merge_listener(self, listener: MergeListener) -> None:
        if listener in self._merge_listeners:
            self._merge_listeners.remove(listener)

    def reset(
        self,
        seed: Optional[int] = None,
        level: int = 1,
        target: Optional[Color] = None
    ) -> SimulationSnapshot:
        """
        Reset the session and seed the opening bubbles.

        Args:
            seed: New random seed. Uses previous if None.
            level: Puzzle level; higher levels seed more bubbles.
            target: New target color. Keeps the current one if None.

        Returns:
            Initial snapshot.
        """
        if seed is not None:
            self._seed = seed

        self._state = SimulationState.create(self._config, self._seed)
        self._scorer.reset(target)
        self._drag_handles.clear()
        if self._mode == "bubbles" and self._palette:
            self._state.world.seed_bodies(self._palette, level)

        logger.debug("Reset session (mode=%s, level=%d, seed=%s)", self._mode, level, self._seed)
        return self.snapshot()

    def tick(self, dt: Optional[float] = None) -> StepResult:
        """
        Advance the session by one tick in place.

        Merge listeners are notified after the tick completes.
        """
        if dt is None:
            dt = self._config.physics.dt

        result = _advance(self._state, dt, self._config)
        self._scorer.score(result.mixed_color)

        for event in result.merges:
            for handle, uid in self._drag_handles.items():
                if uid in event.removed_uids:
                    self._drag_handles[handle] = event.created_uid

        for event in result.merges:
            for listener in list(self._merge_listeners):
                listener(event)
        return result

    def tap(self, x: float, y: float) -> Union[SplitEvent, PhysicsBody, None]:
        """
        Handle a tap on the canvas.

        Tapping a bubble splits it (ignored if it is too small). Tapping
        empty canvas grows a new bubble of the selected color.

        Returns:
            The split event, the new body, or None if nothing happened.
        """
        body = self._state.world.body_at((x, y))
        if body is not None:
            return self._state.resolver.split(body.uid)
        if self._selected is None:
            return None
        return self._state.world.spawn_growing(self._selected, x, y)

    def begin_drag(self, uid: int) -> Optional[PhysicsBody]:
        """
        Grab a bubble.

        ``uid`` stays a valid handle for ``drag_to`` and ``end_drag`` even
        if the grabbed bubble merges while it is held.
        """
        body = self._state.world.begin_drag(uid)
        if body is not None:
            self._drag_handles[uid] = uid
        return body

    def drag_to(self, uid: int, x: float, y: float) -> Optional[PhysicsBody]:
        return self._state.world.drag_to(self._drag_handles.get(uid, uid), (x, y))

    def end_drag(self, uid: int) -> Optional[PhysicsBody]:
        return self._state.world.end_drag(self._drag_handles.pop(uid, uid))

    def snapshot(self) -> SimulationSnapshot:
        """Build a render snapshot of the current tick."""
        mixed = self.mixed_color
        return self._snapshot_builder.build(
            self._state.world,
            self._state.waves,
            tick=self._state.tick,
            time=self._state.time,
            mixed_color=mixed,
            target=self._scorer.target,
            similarity=self._scorer.similarity(mixed)
        )
