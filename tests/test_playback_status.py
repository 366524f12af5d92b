from __future__ import annotations

from dataclasses import dataclass

from kine.geom import Vec3
from retrace.playback import PlaybackStatus, PlaybackStatusTracker, ReplayEngine, format_ms, time_label
from retrace.trajectory import Sample, Track, TrackKind, TrajectoryStore


class FakeTime:
    def __init__(self) -> None:
        self.now_ms = 0.0

    def __call__(self) -> float:
        return self.now_ms


@dataclass
class FakeState:
    is_replaying: bool = False
    is_paused: bool = False
    progress01: float = 0.0
    total_duration_ms: int = 10_000
    elapsed_ms: int = 0


def _engine() -> tuple[ReplayEngine, FakeTime]:
    store = TrajectoryStore()
    track = Track(name="Cube", kind=TrackKind.POSITION)
    track.append(Sample(0, Vec3()))
    track.append(Sample(10_000, Vec3(1.0, 0.0, 0.0)))
    store.add_track(track)
    now = FakeTime()
    engine = ReplayEngine(time_source=now)
    engine.load(store.freeze())
    return engine, now


def _frame(tracker: PlaybackStatusTracker, engine: ReplayEngine, now: FakeTime, ms: float = 100.0) -> PlaybackStatus:
    now.now_ms += ms
    return tracker.update(engine, ms / 1000.0)


def test_status_ready_before_first_start() -> None:
    engine, now = _engine()
    tracker = PlaybackStatusTracker()
    assert _frame(tracker, engine, now) is PlaybackStatus.READY
    assert tracker.text == "Ready"


def test_status_playing_then_paused() -> None:
    engine, now = _engine()
    tracker = PlaybackStatusTracker()
    engine.start_playback()
    assert _frame(tracker, engine, now) is PlaybackStatus.PLAYING
    engine.pause()
    assert _frame(tracker, engine, now) is PlaybackStatus.PAUSED
    assert tracker.text == "Paused"


def test_forward_scrub_reports_fast_forward_then_decays() -> None:
    engine, now = _engine()
    tracker = PlaybackStatusTracker()
    engine.start_playback()
    _frame(tracker, engine, now)
    engine.seek(engine.elapsed_ms + 2000)
    assert _frame(tracker, engine, now) is PlaybackStatus.FAST_FORWARD
    assert _frame(tracker, engine, now) is PlaybackStatus.FAST_FORWARD
    _frame(tracker, engine, now)
    assert _frame(tracker, engine, now) is PlaybackStatus.PLAYING


def test_backward_scrub_reports_rewind() -> None:
    engine, now = _engine()
    tracker = PlaybackStatusTracker()
    engine.start_playback()
    engine.seek(5000)
    tracker.last_time_ms = 5000.0
    engine.seek(4000)
    assert _frame(tracker, engine, now) is PlaybackStatus.REWIND
    assert tracker.text == "Rewind"


def test_finished_counts_as_paused_when_enabled() -> None:
    state = FakeState(is_replaying=False, progress01=1.0, elapsed_ms=10_000)
    tracker = PlaybackStatusTracker(ff_velocity_threshold=1e12)
    tracker.has_ever_started = True
    tracker.last_time_ms = 10_000.0
    assert tracker.update(state, 0.1) is PlaybackStatus.PAUSED

    tracker = PlaybackStatusTracker(ff_velocity_threshold=1e12, finished_counts_as_paused=False)
    tracker.has_ever_started = True
    tracker.last_time_ms = 10_000.0
    assert tracker.update(state, 0.1) is PlaybackStatus.READY


def test_reset_returns_to_ready() -> None:
    tracker = PlaybackStatusTracker()
    tracker.update(FakeState(is_replaying=True, progress01=0.5), 0.1)
    tracker.reset()
    assert tracker.status is PlaybackStatus.READY
    assert not tracker.has_ever_started


def test_time_labels() -> None:
    assert format_ms(0) == "00:00"
    assert format_ms(61_400) == "01:01"
    assert format_ms(-5) == "00:00"
    assert time_label(FakeState(elapsed_ms=3000, total_duration_ms=125_000)) == "00:03 / 02:05"
