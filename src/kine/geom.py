from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Mapping, Protocol

from .math import clamp


class SupportsXYZ(Protocol):
    x: float
    y: float
    z: float


@dataclass(slots=True, frozen=True)
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def length_sq(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def length(self) -> float:
        return math.sqrt(self.length_sq())

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vec3:
        return Vec3(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vec3:
        return self * scalar

    def __truediv__(self, scalar: float) -> Vec3:
        return Vec3(self.x / scalar, self.y / scalar, self.z / scalar)

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def normalized(self) -> Vec3:
        magnitude_sq = self.length_sq()
        if magnitude_sq <= 0.0:
            return Vec3()
        inv_magnitude = 1.0 / math.sqrt(magnitude_sq)
        return Vec3(self.x * inv_magnitude, self.y * inv_magnitude, self.z * inv_magnitude)

    def normalized_with_length(self, *, epsilon: float = 1e-6) -> tuple[Vec3, float]:
        magnitude = self.length()
        if magnitude <= epsilon:
            return Vec3(), 0.0
        return self / magnitude, magnitude

    def distance_to(self, other: Vec3) -> float:
        return (other - self).length()

    def max_abs_delta(self, other: Vec3) -> float:
        return max(
            math.fabs(other.x - self.x),
            math.fabs(other.y - self.y),
            math.fabs(other.z - self.z),
        )

    def any_axis_exceeds(self, other: Vec3, threshold: float) -> bool:
        """True when any single axis moved by more than `threshold`.

        This is a per-axis test, not a Euclidean distance: a diagonal move of
        0.03 on every axis does not exceed a 0.04 threshold.
        """
        t = float(threshold)
        return (
            math.fabs(other.x - self.x) > t
            or math.fabs(other.y - self.y) > t
            or math.fabs(other.z - self.z) > t
        )

    @classmethod
    def from_xyz(cls, value: SupportsXYZ) -> Vec3:
        return cls(x=float(value.x), y=float(value.y), z=float(value.z))

    @classmethod
    def from_dict(cls, value: Mapping[str, float]) -> Vec3:
        return cls(
            x=float(value.get("x", 0.0)),
            y=float(value.get("y", 0.0)),
            z=float(value.get("z", 0.0)),
        )

    def to_dict(self, *, ndigits: int | None = None) -> dict[str, float]:
        if ndigits is None:
            return {"x": self.x, "y": self.y, "z": self.z}
        return {
            "x": round(self.x, ndigits),
            "y": round(self.y, ndigits),
            "z": round(self.z, ndigits),
        }

    def to_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def clamp_box(self, low: Vec3, high: Vec3) -> Vec3:
        return Vec3(
            x=clamp(self.x, low.x, high.x),
            y=clamp(self.y, low.y, high.y),
            z=clamp(self.z, low.z, high.z),
        )

    @staticmethod
    def lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
        return Vec3(
            x=a.x + (b.x - a.x) * t,
            y=a.y + (b.y - a.y) * t,
            z=a.z + (b.z - a.z) * t,
        )

    @staticmethod
    def slerp(a: Vec3, b: Vec3, t: float) -> Vec3:
        """Spherical blend of two directions, interpolating magnitude linearly.

        Zero-length inputs and (anti)parallel pairs without a defined rotation
        plane fall back to a linear blend.
        """
        if t <= 0.0:
            return a
        if t >= 1.0:
            return b
        dir_a, len_a = a.normalized_with_length()
        dir_b, len_b = b.normalized_with_length()
        if len_a == 0.0 or len_b == 0.0:
            return Vec3.lerp(a, b, t)

        cos_theta = clamp(dir_a.dot(dir_b), -1.0, 1.0)
        theta = math.acos(cos_theta)
        sin_theta = math.sin(theta)
        if sin_theta < 1e-6:
            return Vec3.lerp(a, b, t)

        wa = math.sin((1.0 - t) * theta) / sin_theta
        wb = math.sin(t * theta) / sin_theta
        direction = dir_a * wa + dir_b * wb
        magnitude = len_a + (len_b - len_a) * t
        return direction * magnitude
