"""A small immutable two-dimensional vector."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Iterator


@dataclass(frozen=True)
class Vec2:
    """A 2D vector of floats."""

    x: float = 0.0
    y: float = 0.0

    ZERO: ClassVar[Vec2]

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vec2:
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def length(self) -> float:
        """Euclidean length."""
        return math.hypot(self.x, self.y)

    def distance(self, other: Vec2) -> float:
        """Euclidean distance to ``other``."""
        return (self - other).length()

    def normalize_or_zero(self) -> Vec2:
        """Unit vector in the same direction, or zero when that is not defined."""
        length = self.length()
        if not length > 0:
            return Vec2.ZERO
        rcp = 1.0 / length
        if math.isfinite(rcp) and rcp > 0:
            return Vec2(self.x * rcp, self.y * rcp)
        return Vec2.ZERO


Vec2.ZERO = Vec2(0.0, 0.0)