"""
Color
=====

Immutable RGB(A) color value with HSV, CMYK and hex conversions.
"""

from __future__ import annotations

import colorsys
import math
from dataclasses import dataclass
from typing import Tuple


def to_channel(value: float) -> int:
    """Round half-up and clamp a channel value to [0, 255]."""
    if math.isnan(value):
        return 0
    return max(0, min(255, int(math.floor(value + 0.5))))


@dataclass(frozen=True)
class Color:
    """
    An 8-bit RGB color with an optional alpha channel.

    Channels are rounded and clamped on construction, so any arithmetic
    result can be passed straight in. Alpha is carried for renderers only;
    mixing math ignores it.
    """
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        object.__setattr__(self, "r", to_channel(self.r))
        object.__setattr__(self, "g", to_channel(self.g))
        object.__setattr__(self, "b", to_channel(self.b))
        object.__setattr__(self, "a", to_channel(self.a))

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @property
    def opacity(self) -> float:
        return self.a / 255.0

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse ``#RRGGBB`` or ``#AARRGGBB`` (leading ``#`` optional)."""
        text = value.strip().lstrip("#")
        if len(text) == 6:
            return cls(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        if len(text) == 8:
            return cls(
                int(text[2:4], 16), int(text[4:6], 16), int(text[6:8], 16),
                int(text[0:2], 16)
            )
        raise ValueError(f"Hex color must have 6 or 8 digits, got '{value}'")

    def opaque(self) -> "Color":
        """This color with full alpha."""
        if self.a == 255:
            return self
        return Color(self.r, self.g, self.b)

    def with_opacity(self, opacity: float) -> "Color":
        return Color(self.r, self.g, self.b, opacity * 255.0)

    def to_hsv(self) -> Tuple[float, float, float]:
        """
        Convert to HSV.

        Returns:
            (hue in degrees [0, 360), saturation [0, 1], value [0, 1]).
        """
        h, s, v = colorsys.rgb_to_hsv(self.r / 255.0, self.g / 255.0, self.b / 255.0)
        return (h * 360.0, s, v)

    @classmethod
    def from_hsv(cls, hue: float, saturation: float, value: float, alpha: int = 255) -> "Color":
        hue = hue % 360.0
        saturation = max(0.0, min(1.0, saturation))
        value = max(0.0, min(1.0, value))
        r, g, b = colorsys.hsv_to_rgb(hue / 360.0, saturation, value)
        return cls(r * 255.0, g * 255.0, b * 255.0, alpha)

    def to_cmyk(self) -> Tuple[float, float, float, float]:
        """Convert to the CMYK ink model, each component in [0, 1]."""
        r = self.r / 255.0
        g = self.g / 255.0
        b = self.b / 255.0
        k = 1.0 - max(r, g, b)
        if k >= 1.0:
            return (0.0, 0.0, 0.0, 1.0)
        c = (1.0 - r - k) / (1.0 - k)
        m = (1.0 - g - k) / (1.0 - k)
        y = (1.0 - b - k) / (1.0 - k)
        return (
            max(0.0, min(1.0, c)),
            max(0.0, min(1.0, m)),
            max(0.0, min(1.0, y)),
            max(0.0, min(1.0, k)),
        )

    @classmethod
    def from_cmyk(cls, c: float, m: float, y: float, k: float, alpha: int = 255) -> "Color":
        return cls(
            255.0 * (1.0 - c) * (1.0 - k),
            255.0 * (1.0 - m) * (1.0 - k),
            255.0 * (1.0 - y) * (1.0 - k),
            alpha
        )

    def lerp(self, other: "Color", t: float) -> "Color":
        """Linear interpolation toward ``other``; ``t`` is clamped to [0, 1]."""
        t = max(0.0, min(1.0, t))
        return Color(
            self.r + (other.r - self.r) * t,
            self.g + (other.g - self.g) * t,
            self.b + (other.b - self.b) * t,
            self.a + (other.a - self.a) * t,
        )

    def __repr__(self) -> str:
        if self.a == 255:
            return f"Color({self.r}, {self.g}, {self.b})"
        return f"Color({self.r}, {self.g}, {self.b}, a={self.a})"


WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)
RED = Color(255, 0, 0)
YELLOW = Color(255, 255, 0)
BLUE = Color(0, 0, 255)
GREEN = Color(0, 255, 0)
