"""Small vector and affine types plus helpers shared by the stages."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Sequence, Tuple

ONE_MINUS_ULP = 0.99999994
"""The largest single-precision value strictly less than 1."""

ROBUST_EPSILON = 2e-7
"""Nudge applied to slopes when floor(a * (n - 1) + b) misses its target."""

DRAWTAG_NOP = 0


def _div(a: float, b: float) -> float:
    """IEEE division: a zero divisor yields infinity or NaN instead of raising."""
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def f32_from_bits(bits: int) -> float:
    """Interpret a 32-bit word as an IEEE single-precision float."""
    if not 0 <= bits <= 0xFFFF_FFFF:
        raise ValueError(f"not a 32-bit word: {bits}")
    return struct.unpack("<f", struct.pack("<I", bits))[0]


def f32_to_bits(value: float) -> int:
    """Round to single precision and return the 32-bit word."""
    try:
        packed = struct.pack("<f", value)
    except OverflowError:
        packed = struct.pack("<f", math.copysign(math.inf, value))
    return struct.unpack("<I", packed)[0]


@dataclass(frozen=True)
class Vec2:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, k: float) -> "Vec2":
        return Vec2(self.x * k, self.y * k)

    __rmul__ = __mul__

    def __truediv__(self, k: float) -> "Vec2":
        return Vec2(_div(self.x, k), _div(self.y, k))

    def __neg__(self) -> "Vec2":
        return Vec2(-self.x, -self.y)

    def dot(self, other: "Vec2") -> float:
        return self.x * other.x + self.y * other.y

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def to_array(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @classmethod
    def from_array(cls, a: Sequence[float]) -> "Vec2":
        x, y = a
        return cls(x, y)

    def mix(self, other: "Vec2", t: float) -> "Vec2":
        return Vec2(self.x + (other.x - self.x) * t, self.y + (other.y - self.y) * t)

    def normalize(self) -> "Vec2":
        """Unit vector in the same direction; NaN components for a zero vector."""
        return self / self.length()

    def is_nan(self) -> bool:
        return math.isnan(self.x) or math.isnan(self.y)


@dataclass(frozen=True)
class Transform:
    """Affine transform stored as (a, b, c, d, e, f) column-major coefficients."""

    coeffs: Tuple[float, float, float, float, float, float]

    def __post_init__(self) -> None:
        if len(self.coeffs) != 6:
            raise ValueError("a transform has exactly six coefficients")
        object.__setattr__(self, "coeffs", tuple(float(c) for c in self.coeffs))

    @classmethod
    def identity(cls) -> "Transform":
        return cls((1.0, 0.0, 0.0, 1.0, 0.0, 0.0))

    def apply(self, p: Vec2) -> Vec2:
        z = self.coeffs
        return Vec2(z[0] * p.x + z[2] * p.y + z[4], z[1] * p.x + z[3] * p.y + z[5])

    @classmethod
    def read(cls, transform_base: int, ix: int, data: Sequence[int]) -> "Transform":
        """Decode transform ``ix`` from 32-bit words starting at ``transform_base``."""
        base = transform_base + ix * 6
        words = data[base : base + 6]
        if len(words) != 6:
            raise IndexError(f"transform {ix} lies outside the scene data")
        return cls(tuple(f32_from_bits(w) for w in words))


def span(a: float, b: float) -> int:
    """Number of unit grid cells touched by the interval between a and b, at least 1."""
    return int(max(math.ceil(max(a, b)) - math.floor(min(a, b)), 1))


def read_draw_tag_from_scene(config, scene: Sequence[int], ix: int) -> int:
    """Read draw tag ``ix``; indices past the last draw object read as NOP."""
    layout = config.layout
    if ix < layout.n_draw_objects:
        return scene[layout.draw_tag_base + ix]
    return DRAWTAG_NOP