from __future__ import annotations

import pytest

from kine.geom import Vec3
from retrace.trajectory import (
    Pose,
    Sample,
    Track,
    TrackKind,
    TrajectoryStore,
    TrajectoryStoreFrozenError,
    chart_track,
)


def _position_track(name: str, times: list[int]) -> Track:
    track = Track(name=name, kind=TrackKind.POSITION)
    for idx, time_ms in enumerate(times):
        track.append(Sample(time_ms, Vec3(float(idx), 0.0, 0.0)))
    return track


def test_track_append_rejects_going_back_in_time() -> None:
    track = _position_track("cube", [0, 100])
    with pytest.raises(ValueError, match="precedes"):
        track.append(Sample(50, Vec3()))
    track.append(Sample(100, Vec3(9.0, 0.0, 0.0)))
    assert len(track) == 3


def test_track_append_rejects_negative_time_and_wrong_kind() -> None:
    track = Track(name="cam", kind=TrackKind.POSE)
    with pytest.raises(ValueError):
        track.append(Sample(-1, Pose(Vec3(), Vec3(0.0, 0.0, 1.0))))
    with pytest.raises(ValueError):
        track.append(Sample(0, Vec3()))
    scalar = Track(name="s", kind=TrackKind.SCALAR)
    with pytest.raises(ValueError):
        scalar.append(Sample(0, True))  # type: ignore[arg-type]
    scalar.append(Sample(0, 3))
    assert scalar.last == Sample(0, 3)


def test_left_index_brackets_and_resolves_ties_to_last() -> None:
    track = _position_track("cube", [0, 100, 100, 250])
    assert track.left_index(-10) == 0
    assert track.left_index(0) == 0
    assert track.left_index(99) == 0
    assert track.left_index(100) == 2
    assert track.left_index(249.9) == 2
    assert track.left_index(250) == 3
    assert track.left_index(10_000) == 3


def test_left_index_before_first_sample_is_zero() -> None:
    track = _position_track("late", [400, 800])
    assert track.left_index(0) == 0
    assert track.duration_ms == 800


def test_chart_track_naming() -> None:
    track = chart_track("Sales", 1, 4)
    assert track.name == "Sales/1/4"
    assert track.kind is TrackKind.SCALAR
    assert track.chart is not None
    assert track.chart.data_index == 4


def test_store_duration_is_max_over_tracks() -> None:
    store = TrajectoryStore()
    store.add_track(_position_track("a", [0, 300]))
    store.add_track(_position_track("b", [0, 100, 900]))
    store.add_track(Track(name="empty", kind=TrackKind.POSITION))
    assert store.duration_ms == 900
    assert store.sample_count == 5
    assert not store.is_empty
    assert [track.name for track in store.objects()] == ["a", "b", "empty"]
    assert "a" in store
    assert store.get("missing") is None


def test_empty_store_has_zero_duration() -> None:
    store = TrajectoryStore()
    assert store.duration_ms == 0
    assert store.is_empty


def test_store_rejects_duplicate_names() -> None:
    store = TrajectoryStore()
    store.add_track(_position_track("a", [0]))
    with pytest.raises(ValueError, match="duplicate"):
        store.add_track(_position_track("a", [5]))


def test_frozen_store_rejects_mutation() -> None:
    store = TrajectoryStore()
    store.add_track(_position_track("a", [0]))
    store.freeze()
    with pytest.raises(TrajectoryStoreFrozenError):
        store.append("a", Sample(10, Vec3()))
    with pytest.raises(TrajectoryStoreFrozenError):
        store.add_track(_position_track("b", [0]))


def test_store_append_unknown_track() -> None:
    store = TrajectoryStore()
    with pytest.raises(KeyError):
        store.append("ghost", Sample(0, Vec3()))
