"""Small numeric helpers shared by the simulation and the protocol."""

from __future__ import annotations

import math
import random

TAU = 2 * math.pi

_U32 = 0xFFFFFFFF


def fclamp(v: float, s: float, e: float) -> float:
    """Clamp ``v`` into ``[s, e]``; a NaN clamps to ``s``."""
    if not v >= s:
        return s
    if not v <= e:
        return e
    return v


def lerp(v: float, e: float, a: float) -> float:
    """Linear interpolation from ``v`` towards ``e`` by a clamped amount ``a``."""
    a = fclamp(a, 0, 1)
    return v * (1 - a) + e * a


def angle_lerp(start: float, end: float, t: float) -> float:
    """Interpolate between two angles along the shorter arc."""
    t = fclamp(t, 0, 1)
    start = math.fmod(start, TAU)
    end = math.fmod(end, TAU)
    if abs(end - start) < math.pi:
        return (end - start) * t + start
    if end > start:
        start += TAU
    else:
        end += TAU
    return math.fmod((end - start) * t + start + TAU, TAU)


def frand() -> float:
    """A uniformly distributed random number in ``[0, 1]``."""
    return random.random()


def div_round_up(a: int, b: int) -> int:
    """Integer division of ``a`` by ``b``, rounding up."""
    return (a + b - 1) // b


def bit_count(v: int) -> int:
    """Number of bits needed to hold values ``0 .. v - 1``."""
    if v < 1:
        raise ValueError("bit_count needs a positive value")
    return (v - 1).bit_length()


def bit_fill(v: int) -> int:
    """An integer whose lowest ``v`` bits are set."""
    return (1 << v) - 1


def bit_at(val: int, bit: int) -> int:
    """The bit of ``val`` at position ``bit`` (0 or 1)."""
    return (val >> bit) & 1


class LerpValue:
    """A target value together with a smoothed value that chases it."""

    def __init__(self, value: float = 0.0) -> None:
        self.value = value
        self.lerp_value = value

    def lerp_step(self, v: float) -> None:
        """Move the smoothed value towards the target by fraction ``v``."""
        self.lerp_value = lerp(self.lerp_value, self.value, v)

    def __float__(self) -> float:
        return float(self.lerp_value)

    def __repr__(self) -> str:
        return f"LerpValue(value={self.value!r}, lerp_value={self.lerp_value!r})"


class SeedGenerator:
    """Deterministic pseudo-random sequence driven by 32-bit arithmetic."""

    def __init__(self, seed: int) -> None:
        self._seed = seed & _U32

    def next(self) -> float:
        """Advance the generator and return a value in ``[0, 1)``."""
        seed = self._seed
        seed = (seed * 167436543) & _U32
        seed = (seed + 5832385) & _U32
        seed = (seed * ((76372345 + seed) & _U32)) & _U32
        seed = (seed + 937323) & _U32
        self._seed = seed
        return (seed % 65536) / 65536.0