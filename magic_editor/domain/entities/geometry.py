from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AspectClass(str, Enum):
    SQUARE = "square"
    PORTRAIT_MODERATE = "portrait_moderate"
    LANDSCAPE_MODERATE = "landscape_moderate"
    UNSUPPORTED_EXTREME = "unsupported_extreme"


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class PixelRect:
    """Axis-aligned rectangle; UI coordinates may be fractional."""

    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def scaled(self, sx: float, sy: float) -> PixelRect:
        return PixelRect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def clamped(self, width: float, height: float) -> PixelRect:
        """Intersection with the rectangle (0, 0, width, height)."""
        x0 = min(max(self.x, 0.0), width)
        y0 = min(max(self.y, 0.0), height)
        x1 = min(max(self.right, 0.0), width)
        y1 = min(max(self.bottom, 0.0), height)
        return PixelRect(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))

    @classmethod
    def full(cls, dims: Dimensions) -> PixelRect:
        return cls(0.0, 0.0, float(dims.width), float(dims.height))
