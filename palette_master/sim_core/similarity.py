"""
Similarity Scoring
==================

Scores how close a produced color is to a puzzle target.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from palette_master.sim_core.color import Color
from palette_master.sim_core.config_loader import GameConfig, get_config

# Luminance weights: the eye is most sensitive to green, least to blue.
DEFAULT_WEIGHTS: Tuple[float, float, float] = (0.3, 0.59, 0.11)


def similarity(
    a: Color,
    b: Color,
    weights: Tuple[float, float, float] = DEFAULT_WEIGHTS
) -> float:
    """
    Perceptual similarity of two colors in [0, 1].

    Weighted Euclidean distance over channel differences normalised to
    [0, 1], subtracted from one. With the default weights (which sum to 1)
    white against black scores exactly 0.

    Args:
        a: First color.
        b: Second color.
        weights: (R, G, B) weights.

    Returns:
        1.0 for identical colors, lower as they diverge.
    """
    if a.rgb == b.rgb:
        return 1.0

    wr, wg, wb = weights
    dr = (a.r - b.r) / 255.0
    dg = (a.g - b.g) / 255.0
    db = (a.b - b.b) / 255.0

    distance = math.sqrt(dr * dr * wr + dg * dg * wg + db * db * wb)
    return max(0.0, min(1.0, 1.0 - distance))


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    color: Color
    score: float
    is_match: bool
    is_best: bool

    def __repr__(self) -> str:
        return f"ScoreEvent({self.color!r}, score={self.score:.3f}, match={self.is_match})"


class SimilarityScorer:
    """
    Tracks similarity against a fixed target.

    Consumers feed the mixed color after each tick; the scorer keeps the
    latest and best scores and decides success against the puzzle's
    accuracy threshold.
    """

    def __init__(
        self,
        target: Color,
        threshold: Optional[float] = None,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize scorer.

        Args:
            target: Color the player is trying to produce.
            threshold: Accuracy threshold in [0, 1]. Uses config default if None.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._target = target
        if threshold is None:
            threshold = config.scoring.accuracy_threshold
        self._threshold = max(0.0, min(1.0, threshold))
        self._weights = config.scoring.weights
        self._close_threshold = config.scoring.close_threshold
        self._last: float = 0.0
        self._best: float = 0.0

    @property
    def target(self) -> Color:
        return self._target

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def last_score(self) -> float:
        """Score of the most recently scored color."""
        return self._last

    @property
    def best_score(self) -> float:
        """Highest score seen since the last reset."""
        return self._best

    def similarity(self, color: Color) -> float:
        """Score a color without recording it."""
        return similarity(color, self._target, self._weights)

    def score(self, color: Color) -> ScoreEvent:
        """Score a color and record it as the latest result."""
        value = self.similarity(color)
        is_best = value > self._best
        self._last = value
        if is_best:
            self._best = value
        return ScoreEvent(
            color=color,
            score=value,
            is_match=value >= self._threshold,
            is_best=is_best
        )

    def is_match(self, color: Color) -> bool:
        """True if the color meets the accuracy threshold."""
        return self.similarity(color) >= self._threshold

    def grade(self, score: float) -> str:
        """Coarse feedback bucket: "match", "close" or "far"."""
        if score >= self._threshold:
            return "match"
        if score >= self._close_threshold:
            return "close"
        return "far"

    def reset(self, target: Optional[Color] = None) -> None:
        """Forget recorded scores, optionally switching target."""
        if target is not None:
            self._target = target
        self._last = 0.0
        self._best = 0.0
