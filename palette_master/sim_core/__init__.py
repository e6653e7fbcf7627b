"""
Sim Core - The color mixing simulation.

This module provides color math, the bubble physics world with merge and
split, the wave propagation engine, and the tick orchestrator.

Main exports:
- ColorGame: Interactive session wrapper (tap, drag, tick, snapshot)
- step / SimulationState: Pure tick over a copied state
- mix_subtractive / similarity: Color mixing and scoring primitives
- GameConfig: Configuration loaded from game_config.yaml
"""

from palette_master.sim_core.config_loader import GameConfig, get_config, load_config
from palette_master.sim_core.logging_setup import setup_logging
from palette_master.sim_core.color import BLACK, BLUE, GREEN, RED, WHITE, YELLOW, Color
from palette_master.sim_core.color_mixer import (
    MixSample,
    get_analogous,
    get_complementary,
    get_triadic,
    mix_additive,
    mix_subtractive,
    mix_weighted,
)
from palette_master.sim_core.similarity import SimilarityScorer, similarity
from palette_master.sim_core.bodies import PhysicsBody
from palette_master.sim_core.physics_world import PhysicsWorld
from palette_master.sim_core.collision_resolver import CollisionResolver, MergeEvent, SplitEvent
from palette_master.sim_core.wave_engine import Obstacle, WavePropagationEngine, Wavefront, WaveSource
from palette_master.sim_core.state_snapshot import SimulationSnapshot, SnapshotBuilder
from palette_master.sim_core.game import ColorGame, SimulationState, StepResult, step

__all__ = [
    "GameConfig",
    "get_config",
    "load_config",
    "setup_logging",
    "Color",
    "WHITE",
    "BLACK",
    "RED",
    "YELLOW",
    "BLUE",
    "GREEN",
    "MixSample",
    "mix_subtractive",
    "mix_additive",
    "mix_weighted",
    "get_complementary",
    "get_analogous",
    "get_triadic",
    "similarity",
    "SimilarityScorer",
    "PhysicsBody",
    "PhysicsWorld",
    "CollisionResolver",
    "MergeEvent",
    "SplitEvent",
    "WaveSource",
    "Wavefront",
    "Obstacle",
    "WavePropagationEngine",
    "SimulationSnapshot",
    "SnapshotBuilder",
    "ColorGame",
    "SimulationState",
    "StepResult",
    "step",
]
