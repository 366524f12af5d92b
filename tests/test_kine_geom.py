from __future__ import annotations

import math

import pytest

from kine.geom import Vec3
from kine.math import abs_delta_exceeds, clamp01, inverse_lerp, lerp


def test_any_axis_exceeds_is_per_axis_not_euclidean() -> None:
    origin = Vec3()
    assert not origin.any_axis_exceeds(Vec3(0.03, 0.03, 0.03), 0.04)
    assert origin.any_axis_exceeds(Vec3(0.0, 0.05, 0.0), 0.04)
    assert origin.any_axis_exceeds(Vec3(0.0, 0.0, -0.05), 0.04)


def test_any_axis_exceeds_is_strict() -> None:
    assert not Vec3(1.0, 0.0, 0.0).any_axis_exceeds(Vec3(1.5, 0.0, 0.0), 0.5)
    assert Vec3(1.0, 0.0, 0.0).any_axis_exceeds(Vec3(1.5, 0.0, 0.0), 0.25)


def test_vec3_lerp_midpoint() -> None:
    mid = Vec3.lerp(Vec3(0.0, 0.0, 0.0), Vec3(2.0, 4.0, -6.0), 0.5)
    assert mid == Vec3(1.0, 2.0, -3.0)


def test_vec3_slerp_quarter_turn_stays_unit_length() -> None:
    mid = Vec3.slerp(Vec3(1.0, 0.0, 0.0), Vec3(0.0, 1.0, 0.0), 0.5)
    assert mid.length() == pytest.approx(1.0)
    assert mid.x == pytest.approx(math.sqrt(0.5))
    assert mid.y == pytest.approx(math.sqrt(0.5))
    assert mid.z == pytest.approx(0.0)


def test_vec3_slerp_endpoints_are_exact() -> None:
    a = Vec3(1.0, 0.0, 0.0)
    b = Vec3(0.0, 0.0, 2.0)
    assert Vec3.slerp(a, b, 0.0) is a
    assert Vec3.slerp(a, b, 1.0) is b


def test_vec3_slerp_falls_back_to_lerp_for_degenerate_inputs() -> None:
    assert Vec3.slerp(Vec3(), Vec3(2.0, 0.0, 0.0), 0.5) == Vec3(1.0, 0.0, 0.0)
    assert Vec3.slerp(Vec3(1.0, 0.0, 0.0), Vec3(3.0, 0.0, 0.0), 0.5) == Vec3(2.0, 0.0, 0.0)


def test_vec3_slerp_interpolates_magnitude() -> None:
    mid = Vec3.slerp(Vec3(1.0, 0.0, 0.0), Vec3(0.0, 3.0, 0.0), 0.5)
    assert mid.length() == pytest.approx(2.0)


def test_vec3_dict_helpers() -> None:
    vec = Vec3.from_dict({"x": 1.23456, "z": 2})
    assert vec == Vec3(1.23456, 0.0, 2.0)
    assert vec.to_dict(ndigits=2) == {"x": 1.23, "y": 0.0, "z": 2.0}
    assert vec.to_tuple() == (1.23456, 0.0, 2.0)


def test_vec3_normalized_zero_is_zero() -> None:
    assert Vec3().normalized() == Vec3()
    assert Vec3().normalized_with_length() == (Vec3(), 0.0)


def test_scalar_helpers() -> None:
    assert lerp(10.0, 20.0, 0.25) == 12.5
    assert inverse_lerp(100.0, 200.0, 150.0) == 0.5
    assert inverse_lerp(100.0, 200.0, 250.0) == 1.0
    assert inverse_lerp(100.0, 100.0, 100.0) == 0.0
    assert clamp01(-3.0) == 0.0
    assert abs_delta_exceeds(1.0, 1.5, 0.25)
    assert not abs_delta_exceeds(1.0, 1.0, 0.0)
