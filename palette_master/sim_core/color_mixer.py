"""
Color Mixer
===========

Pigment-style (subtractive) mixing and derived color relationships.

Every function here is pure and order independent. Empty input never raises:
subtractive and weighted mixes fall back to WHITE (an untouched canvas),
additive mixing falls back to BLACK (no light).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from palette_master.sim_core.color import BLACK, WHITE, Color


@dataclass(frozen=True)
class MixSample:
    """A color contributed to a blend with a relative weight."""
    color: Color
    weight: float


def mix_subtractive(colors: Sequence[Color]) -> Color:
    """
    Mix colors the way pigments mix.

    Each channel is treated as ink absorption (255 - channel); absorptions
    are averaged and converted back to reflectance. Repeating a color in the
    input weights it proportionally.

    Args:
        colors: Colors to mix. Alpha is ignored.

    Returns:
        The mixed, opaque color. WHITE for empty input.
    """
    if not colors:
        return WHITE

    count = len(colors)
    absorb_r = sum(255 - c.r for c in colors) / count
    absorb_g = sum(255 - c.g for c in colors) / count
    absorb_b = sum(255 - c.b for c in colors) / count

    return Color(255.0 - absorb_r, 255.0 - absorb_g, 255.0 - absorb_b)


def mix_additive(colors: Sequence[Color]) -> Color:
    """Average colors as light. BLACK for empty input."""
    if not colors:
        return BLACK

    count = len(colors)
    return Color(
        sum(c.r for c in colors) / count,
        sum(c.g for c in colors) / count,
        sum(c.b for c in colors) / count,
    )


def to_repeats(weight: float, min_repeats: int = 1, max_repeats: int = 20) -> int:
    """Number of list entries a weight expands to for subtractive mixing."""
    return max(min_repeats, min(max_repeats, int(round(weight))))


def expand_samples(
    samples: Iterable[MixSample],
    min_repeats: int = 1,
    max_repeats: int = 20
) -> List[Color]:
    """Expand weighted samples into a repeated color list."""
    colors: List[Color] = []
    for sample in samples:
        colors.extend([sample.color] * to_repeats(sample.weight, min_repeats, max_repeats))
    return colors


def mix_weighted(samples: Sequence[MixSample], max_repeats: int = 100) -> Color:
    """
    Subtractive mix of weighted samples.

    Weights are normalised to proportions of ``max_repeats`` entries, the way
    the balance sliders turn a percentage into a number of paint dabs.
    Samples whose share rounds to zero contribute nothing; if every share
    rounds to zero the result is WHITE.
    """
    total = sum(max(0.0, s.weight) for s in samples)
    if total <= 0:
        return WHITE

    colors: List[Color] = []
    for sample in samples:
        share = max(0.0, sample.weight) / total
        colors.extend([sample.color] * int(round(share * max_repeats)))

    return mix_subtractive(colors)


def _rotate_hue(color: Color, degrees: float) -> Color:
    hue, saturation, value = color.to_hsv()
    return Color.from_hsv(hue + degrees, saturation, value)


def get_complementary(color: Color) -> Color:
    """Rotate hue by 180 degrees, keeping saturation and value."""
    return _rotate_hue(color, 180.0)


def get_analogous(color: Color, count: int = 2, interval: float = 30.0) -> List[Color]:
    """
    Neighbouring hues for puzzle generation.

    Returns ``max(2, count)`` colors at offsets -interval, +interval,
    -2*interval, +2*interval, ...
    """
    colors: List[Color] = []
    for i in range(max(2, count)):
        step = i // 2 + 1
        sign = -1.0 if i % 2 == 0 else 1.0
        colors.append(_rotate_hue(color, sign * step * interval))
    return colors


def get_triadic(color: Color) -> List[Color]:
    """The color plus its two 120-degree hue rotations."""
    return [color, _rotate_hue(color, 120.0), _rotate_hue(color, 240.0)]


def hue_distance(a: Color, b: Color) -> float:
    """Weighted HSV distance (hue 0.6, saturation 0.3, value 0.1)."""
    hue_a, sat_a, val_a = a.to_hsv()
    hue_b, sat_b, val_b = b.to_hsv()
    diff = abs(hue_a - hue_b)
    hue_diff = min(diff, 360.0 - diff) / 180.0
    return hue_diff * 0.6 + abs(sat_a - sat_b) * 0.3 + abs(val_a - val_b) * 0.1


def closest_by_hue(target: Color, palette: Sequence[Color]) -> Optional[Color]:
    """Palette entry nearest to ``target`` in HSV terms; None for an empty palette."""
    best: Optional[Color] = None
    best_distance = float("inf")
    for candidate in palette:
        distance = hue_distance(target, candidate)
        if distance < best_distance:
            best_distance = distance
            best = candidate
    return best

