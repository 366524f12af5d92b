from __future__ import annotations

import math


def clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if value > high:
        return high
    return value


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def inverse_lerp(a: float, b: float, value: float) -> float:
    """Position of `value` between `a` and `b`, clamped to [0, 1].

    Degenerate spans (`a == b`) map to 0.
    """
    if a == b:
        return 0.0
    return clamp01((float(value) - float(a)) / (float(b) - float(a)))


def abs_delta_exceeds(a: float, b: float, threshold: float) -> bool:
    return math.fabs(float(b) - float(a)) > float(threshold)
