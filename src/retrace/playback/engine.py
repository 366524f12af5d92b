from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from kine.geom import Vec3
from kine.math import clamp01, inverse_lerp, lerp

from ..debug_log import debug_log
from ..trajectory.codec import TrajectoryCodecError, ensure_ordered, load_trajectory
from ..trajectory.store import TrajectoryStore
from ..trajectory.types import Pose, SampleValue, Track, TrackKind
from .clock import SampleClock, monotonic_ms

SampleSink = Callable[[SampleValue], None]


@dataclass(slots=True)
class Playhead:
    track_name: str
    index: int = 0


@dataclass(slots=True)
class ReplayTarget:
    name: str
    track_name: str
    sink: SampleSink | None = None


def blend(kind: TrackKind, a: SampleValue, b: SampleValue, t: float) -> SampleValue:
    # Endpoints return the stored values untouched so sample boundaries replay exactly.
    if t <= 0.0:
        return a
    if t >= 1.0:
        return b
    if kind is TrackKind.POSITION:
        assert isinstance(a, Vec3) and isinstance(b, Vec3)
        return Vec3.lerp(a, b, t)
    if kind is TrackKind.POSE:
        assert isinstance(a, Pose) and isinstance(b, Pose)
        return Pose(
            position=Vec3.lerp(a.position, b.position, t),
            forward=Vec3.slerp(a.forward, b.forward, t),
        )
    return lerp(float(a), float(b), t)


def advance_playhead(track: Track, playhead: Playhead, elapsed_ms: float) -> int:
    """Move `playhead` to the left-bracketing sample for `elapsed_ms`.

    Walks forward from the current index; a query that lands before the
    current sample re-derives the index from scratch.
    """
    samples = track.samples
    idx = int(playhead.index)
    if idx >= len(samples) or (idx > 0 and samples[idx].time_ms > elapsed_ms):
        idx = track.left_index(elapsed_ms)
    while idx + 1 < len(samples) and samples[idx + 1].time_ms <= elapsed_ms:
        idx += 1
    playhead.index = idx
    return idx


def value_at_index(track: Track, idx: int, elapsed_ms: float, *, interpolate: bool) -> SampleValue:
    samples = track.samples
    left = samples[idx]
    if interpolate and idx + 1 < len(samples):
        right = samples[idx + 1]
        t = inverse_lerp(left.time_ms, right.time_ms, elapsed_ms)
        return blend(track.kind, left.value, right.value, t)
    return left.value


class ReplayEngine:
    """Timeline clock plus per-target playheads over a loaded trajectory store.

    Drive it with one `tick()` per frame: each registered target gets the value
    of its track at the current elapsed time, pushed to its sink and returned.
    None of the public operations raise on missing data; problems are written
    to the debug log and the call degrades to a no-op.
    """

    def __init__(self, *, interpolate: bool = True, time_source: Callable[[], float] | None = None) -> None:
        self.interpolate = bool(interpolate)
        self._clock = SampleClock(total_duration_ms=0, time_source=time_source or monotonic_ms)
        self._store: TrajectoryStore | None = None
        self._targets: dict[str, ReplayTarget] = {}
        self._playheads: dict[str, Playhead] = {}
        self._query_playheads: dict[str, Playhead] = {}
        self._missing_reported: set[str] = set()

    @property
    def clock(self) -> SampleClock:
        return self._clock

    @property
    def store(self) -> TrajectoryStore | None:
        return self._store

    @property
    def has_data(self) -> bool:
        return self._store is not None and not self._store.is_empty

    @property
    def targets(self) -> tuple[ReplayTarget, ...]:
        return tuple(self._targets.values())

    @property
    def is_replaying(self) -> bool:
        return self._clock.running

    @property
    def is_playing(self) -> bool:
        return self._clock.running and not self._clock.paused

    @property
    def is_paused(self) -> bool:
        return self._clock.running and self._clock.paused

    @property
    def is_finished(self) -> bool:
        return self._clock.is_finished

    @property
    def elapsed_ms(self) -> int:
        return self._clock.elapsed_ms()

    @property
    def total_duration_ms(self) -> int:
        return int(self._clock.total_duration_ms or 0)

    @property
    def progress01(self) -> float:
        return self._clock.progress01()

    def load(self, source: TrajectoryStore | bytes | None) -> TrajectoryStore:
        """Replace the loaded store; resets the clock and every playhead.

        Accepts a store or a serialized blob. A passed-in store is frozen and its
        tracks put in timestamp order. Absent or malformed input loads an empty
        store (nothing to play) instead of raising.
        """
        store: TrajectoryStore
        if source is None:
            debug_log("load_empty", reason="absent")
            store = TrajectoryStore().freeze()
        elif isinstance(source, TrajectoryStore):
            store = ensure_ordered(source)
        else:
            try:
                store = load_trajectory(bytes(source))
            except TrajectoryCodecError as exc:
                debug_log("load_failed", error=exc)
                store = TrajectoryStore().freeze()

        self._store = store
        self._clock.stop()
        self._clock.total_duration_ms = store.duration_ms
        self._playheads.clear()
        self._query_playheads.clear()
        self._missing_reported.clear()
        debug_log("load", tracks=len(store), samples=store.sample_count, duration_ms=store.duration_ms)
        return store

    def register_target(self, name: str, track_name: str | None = None, sink: SampleSink | None = None) -> ReplayTarget:
        target = ReplayTarget(name=str(name), track_name=str(track_name if track_name is not None else name), sink=sink)
        self._targets[target.name] = target
        self._missing_reported.discard(target.name)
        self._playheads.pop(target.name, None)
        if self.is_replaying:
            self._playheads[target.name] = Playhead(target.track_name, self._left_index(target.track_name, self.elapsed_ms))
        return target

    def unregister_target(self, name: str) -> None:
        self._targets.pop(name, None)
        self._playheads.pop(name, None)
        self._missing_reported.discard(name)

    def playhead_index(self, target_name: str) -> int | None:
        playhead = self._playheads.get(target_name)
        return None if playhead is None else int(playhead.index)

    def _left_index(self, track_name: str, elapsed_ms: float) -> int:
        track = self._store.get(track_name) if self._store is not None else None
        if track is None:
            return 0
        return track.left_index(elapsed_ms)

    def _rederive_playheads(self, elapsed_ms: int) -> None:
        for playhead in self._playheads.values():
            playhead.index = self._left_index(playhead.track_name, elapsed_ms)
        for playhead in self._query_playheads.values():
            playhead.index = self._left_index(playhead.track_name, elapsed_ms)

    def start_playback(self) -> bool:
        if not self.has_data:
            debug_log("playback_start_ignored", reason="no_data")
            return False
        self._clock.start()
        self._playheads = {name: Playhead(target.track_name, 0) for name, target in self._targets.items()}
        self._query_playheads.clear()
        debug_log("playback_start", targets=len(self._targets), duration_ms=self.total_duration_ms)
        return True

    def stop_playback(self) -> None:
        if self._clock.running:
            debug_log("playback_stop", elapsed_ms=self.elapsed_ms)
        self._clock.stop()
        self._playheads.clear()
        self._query_playheads.clear()

    def pause(self) -> None:
        self._clock.pause()

    def resume(self) -> None:
        self._clock.resume()

    def toggle_pause(self) -> None:
        if not self._clock.running:
            debug_log("toggle_pause_ignored", reason="stopped")
            return
        self._clock.toggle_pause()

    def seek(self, target_ms: float) -> int:
        """Jump to `target_ms` (clamped to the timeline) and re-derive every playhead."""
        if not self._clock.running:
            debug_log("seek_ignored", reason="stopped", target_ms=target_ms)
            return self.elapsed_ms
        elapsed = self._clock.seek(target_ms)
        self._rederive_playheads(elapsed)
        return elapsed

    def seek_progress(self, fraction: float) -> int:
        return self.seek(round(clamp01(float(fraction)) * self.total_duration_ms))

    def nudge(self, delta_seconds: float) -> int:
        return self.seek(self.elapsed_ms + float(delta_seconds) * 1000.0)

    def sample_at(self, track_name: str, elapsed_ms: float) -> SampleValue | None:
        track = self._store.get(track_name) if self._store is not None else None
        if track is None or not track.samples:
            return None
        playhead = self._query_playheads.get(track_name)
        if playhead is None:
            playhead = Playhead(track_name, 0)
            self._query_playheads[track_name] = playhead
        idx = advance_playhead(track, playhead, elapsed_ms)
        return value_at_index(track, idx, elapsed_ms, interpolate=self.interpolate)

    def tick(self) -> dict[str, SampleValue]:
        """Sample every target at the current elapsed time and feed its sink."""
        if not self._clock.running or self._store is None:
            return {}
        elapsed = self._clock.elapsed_ms()
        out: dict[str, SampleValue] = {}
        for name, target in self._targets.items():
            track = self._store.get(target.track_name)
            if track is None:
                if name not in self._missing_reported:
                    self._missing_reported.add(name)
                    debug_log("target_track_missing", target=name, track=target.track_name)
                continue
            if not track.samples:
                continue
            playhead = self._playheads.get(name)
            if playhead is None:
                playhead = Playhead(target.track_name, track.left_index(elapsed))
                self._playheads[name] = playhead
            idx = advance_playhead(track, playhead, elapsed)
            value = value_at_index(track, idx, elapsed, interpolate=self.interpolate)
            if target.sink is not None:
                target.sink(value)
            out[name] = value
        return out
