"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger("palette_master.config")


@dataclass(frozen=True)
class CanvasConfig:
    """Canvas geometry in pixels."""
    width: float
    height: float


@dataclass(frozen=True)
class PhysicsConfig:
    """Per-tick integration parameters."""
    gravity_x: float
    gravity_y: float
    damping: float
    boundary_restitution: float
    particle_decay: float
    grow_rate: float
    grow_target_radius: float
    drag_velocity_scale: float
    dt: float

    @property
    def gravity(self) -> Tuple[float, float]:
        return (self.gravity_x, self.gravity_y)


@dataclass(frozen=True)
class BubbleConfig:
    """Merge, split and seeding parameters for circle bodies."""
    merge_overlap_ratio: float
    min_split_radius: float
    merge_weight_divisor: float  # area per repeated color entry when merging
    merge_weight_max: int
    mix_weight_divisor: float    # area per repeated color entry for the aggregate mix
    mix_weight_max: int
    merge_burst_count: int
    merge_burst_lifetime: float
    split_burst_count: int
    split_burst_lifetime: float
    seed_min_diameter: float
    seed_max_diameter: float


@dataclass(frozen=True)
class WaveConfig:
    """Wavefront emission, decay and interaction parameters."""
    base_radius: float
    base_opacity: float
    base_speed: float
    opacity_decay: float
    reflect_factor: float
    absorb_factor: float
    wave_contact_tolerance: float
    dedup_distance: float
    dedup_window: float
    throttle_margin: int
    throttle_every: int
    collision_memory: int
    weight_radius_scale: float
    weight_min: float
    weight_max: float


@dataclass(frozen=True)
class ScoringConfig:
    """Similarity weights and thresholds."""
    accuracy_threshold: float
    close_threshold: float
    weight_r: float
    weight_g: float
    weight_b: float

    @property
    def weights(self) -> Tuple[float, float, float]:
        return (self.weight_r, self.weight_g, self.weight_b)


@dataclass(frozen=True)
class CapsConfig:
    """Population limits."""
    max_bodies: int
    max_particles: int
    max_wavefronts: int
    max_render_objects: int


@dataclass(frozen=True)
class SessionConfig:
    """Which collection drives the reported mixed color."""
    mode: str


@dataclass(frozen=True)
class LoggingConfig:
    """Logger level, format and optional log file."""
    level: str
    format: str
    file: Optional[str] = None


@dataclass(frozen=True)
class GameConfig:
    """
    Complete simulation configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    canvas: CanvasConfig
    physics: PhysicsConfig
    bubbles: BubbleConfig
    waves: WaveConfig
    scoring: ScoringConfig
    caps: CapsConfig
    session: SessionConfig
    logging: LoggingConfig


VALID_MODES = ("bubbles", "waves")


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    if config.canvas.width <= 0 or config.canvas.height <= 0:
        raise ValueError(
            f"Canvas must have positive size, got {config.canvas.width}x{config.canvas.height}"
        )

    if not 0.0 <= config.physics.damping <= 1.0:
        raise ValueError(f"damping must be in [0, 1], got {config.physics.damping}")

    if not 0.0 <= config.physics.boundary_restitution <= 1.0:
        raise ValueError(
            f"boundary_restitution must be in [0, 1], got {config.physics.boundary_restitution}"
        )

    if not 0.0 < config.bubbles.merge_overlap_ratio <= 1.0:
        raise ValueError(
            f"merge_overlap_ratio must be in (0, 1], got {config.bubbles.merge_overlap_ratio}"
        )

    if config.bubbles.merge_weight_max < 1 or config.bubbles.mix_weight_max < 1:
        raise ValueError("Color repeat caps must be at least 1")

    for name in ("max_bodies", "max_particles", "max_wavefronts", "max_render_objects"):
        if getattr(config.caps, name) < 1:
            raise ValueError(f"caps.{name} must be at least 1, got {getattr(config.caps, name)}")

    if config.waves.throttle_every < 1:
        raise ValueError(f"throttle_every must be at least 1, got {config.waves.throttle_every}")

    if config.waves.collision_memory < 1:
        raise ValueError(f"collision_memory must be at least 1, got {config.waves.collision_memory}")

    if config.waves.weight_min > config.waves.weight_max:
        raise ValueError("waves.weight_min must not exceed waves.weight_max")

    if not 0.0 <= config.scoring.accuracy_threshold <= 1.0:
        raise ValueError(
            f"accuracy_threshold must be in [0, 1], got {config.scoring.accuracy_threshold}"
        )

    if config.session.mode not in VALID_MODES:
        raise ValueError(f"session.mode must be one of {VALID_MODES}, got '{config.session.mode}'")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate simulation configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    canvas_data = raw.get("canvas", {})
    canvas = CanvasConfig(
        width=float(canvas_data.get("width", 400)),
        height=float(canvas_data.get("height", 600))
    )

    physics_data = raw.get("physics", {})
    physics = PhysicsConfig(
        gravity_x=float(physics_data.get("gravity_x", 0.0)),
        gravity_y=float(physics_data.get("gravity_y", 0.05)),
        damping=float(physics_data.get("damping", 0.98)),
        boundary_restitution=float(physics_data.get("boundary_restitution", 0.8)),
        particle_decay=float(physics_data.get("particle_decay", 0.02)),
        grow_rate=float(physics_data.get("grow_rate", 2.0)),
        grow_target_radius=float(physics_data.get("grow_target_radius", 25.0)),
        drag_velocity_scale=float(physics_data.get("drag_velocity_scale", 0.5)),
        dt=float(physics_data.get("dt", 1.0 / 60.0))
    )

    bubble_data = raw.get("bubbles", {})
    bubbles = BubbleConfig(
        merge_overlap_ratio=float(bubble_data.get("merge_overlap_ratio", 0.7)),
        min_split_radius=float(bubble_data.get("min_split_radius", 30.0)),
        merge_weight_divisor=float(bubble_data.get("merge_weight_divisor", 50.0)),
        merge_weight_max=int(bubble_data.get("merge_weight_max", 20)),
        mix_weight_divisor=float(bubble_data.get("mix_weight_divisor", 100.0)),
        mix_weight_max=int(bubble_data.get("mix_weight_max", 10)),
        merge_burst_count=int(bubble_data.get("merge_burst_count", 8)),
        merge_burst_lifetime=float(bubble_data.get("merge_burst_lifetime", 1.0)),
        split_burst_count=int(bubble_data.get("split_burst_count", 6)),
        split_burst_lifetime=float(bubble_data.get("split_burst_lifetime", 0.8)),
        seed_min_diameter=float(bubble_data.get("seed_min_diameter", 50.0)),
        seed_max_diameter=float(bubble_data.get("seed_max_diameter", 80.0))
    )

    wave_data = raw.get("waves", {})
    waves = WaveConfig(
        base_radius=float(wave_data.get("base_radius", 5.0)),
        base_opacity=float(wave_data.get("base_opacity", 1.0)),
        base_speed=float(wave_data.get("base_speed", 1.5)),
        opacity_decay=float(wave_data.get("opacity_decay", 0.005)),
        reflect_factor=float(wave_data.get("reflect_factor", 0.9)),
        absorb_factor=float(wave_data.get("absorb_factor", 0.7)),
        wave_contact_tolerance=float(wave_data.get("wave_contact_tolerance", 2.0)),
        dedup_distance=float(wave_data.get("dedup_distance", 5.0)),
        dedup_window=float(wave_data.get("dedup_window", 0.1)),
        throttle_margin=int(wave_data.get("throttle_margin", 2)),
        throttle_every=int(wave_data.get("throttle_every", 3)),
        collision_memory=int(wave_data.get("collision_memory", 32)),
        weight_radius_scale=float(wave_data.get("weight_radius_scale", 100.0)),
        weight_min=float(wave_data.get("weight_min", 0.1)),
        weight_max=float(wave_data.get("weight_max", 2.0))
    )

    scoring_data = raw.get("scoring", {})
    scoring = ScoringConfig(
        accuracy_threshold=float(scoring_data.get("accuracy_threshold", 0.9)),
        close_threshold=float(scoring_data.get("close_threshold", 0.8)),
        weight_r=float(scoring_data.get("weight_r", 0.3)),
        weight_g=float(scoring_data.get("weight_g", 0.59)),
        weight_b=float(scoring_data.get("weight_b", 0.11))
    )

    caps_data = raw.get("caps", {})
    caps = CapsConfig(
        max_bodies=int(caps_data.get("max_bodies", 40)),
        max_particles=int(caps_data.get("max_particles", 120)),
        max_wavefronts=int(caps_data.get("max_wavefronts", 30)),
        max_render_objects=int(caps_data.get("max_render_objects", 256))
    )

    session_data = raw.get("session", {})
    session = SessionConfig(mode=str(session_data.get("mode", "bubbles")))

    log_data = raw.get("logging", {})
    log_file = log_data.get("file")
    logging_config = LoggingConfig(
        level=str(log_data.get("level", "WARNING")).upper(),
        format=str(log_data.get("format", "%(asctime)s [%(levelname)s] %(name)s: %(message)s")),
        file=str(log_file) if log_file else None
    )

    config = GameConfig(
        canvas=canvas,
        physics=physics,
        bubbles=bubbles,
        waves=waves,
        scoring=scoring,
        caps=caps,
        session=session,
        logging=logging_config
    )

    _validate_config(config)
    logger.debug("Loaded configuration from %s", config_path)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
