"""Mutable two-dimensional vector used for physics."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class Vector:
    """A 2D vector; the in-place methods return ``self`` for chaining."""

    x: float = 0.0
    y: float = 0.0

    def set(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def copy(self) -> Vector:
        return Vector(self.x, self.y)

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def angle(self) -> float:
        """Direction in radians; the zero vector has angle 0."""
        if self.x == 0 and self.y == 0:
            return 0.0
        return math.atan2(self.y, self.x)

    def normalize(self) -> Vector:
        """Scale to unit length; the zero vector is left unchanged."""
        if self.x == 0 and self.y == 0:
            return self
        mag = self.magnitude()
        self.x /= mag
        self.y /= mag
        return self

    def set_magnitude(self, v: float) -> Vector:
        self.normalize()
        self.x *= v
        self.y *= v
        return self

    def unit_normal(self, a: float) -> Vector:
        """Become the unit vector pointing at angle ``a``."""
        self.x = math.cos(a)
        self.y = math.sin(a)
        return self

    def __iadd__(self, other: Vector) -> Vector:
        self.x += other.x
        self.y += other.y
        return self

    def __imul__(self, v: float) -> Vector:
        self.x *= v
        self.y *= v
        return self