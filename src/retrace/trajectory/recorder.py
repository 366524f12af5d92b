from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Callable

from kine.geom import Vec3
from kine.math import abs_delta_exceeds

from ..debug_log import debug_log
from ..playback.clock import SampleClock
from .codec import dump_trajectory
from .store import TrajectoryStore
from .types import Pose, Sample, SampleValue, Track, TrackKind, chart_track

ValueProvider = Callable[[], Any]


def _check_threshold(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0:
        raise ValueError(f"{name} threshold must be a non-negative finite number, got {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Minimum per-axis (vectors) or absolute (scalars) change that gets recorded."""

    position: float = 0.01
    direction: float = 0.01
    value: float = 0.0

    def __post_init__(self) -> None:
        _check_threshold("position", self.position)
        _check_threshold("direction", self.direction)
        _check_threshold("value", self.value)


@dataclass(slots=True)
class _Binding:
    track: Track
    provider: ValueProvider
    position_threshold: float
    secondary_threshold: float

    @property
    def name(self) -> str:
        return self.track.name

    @property
    def kind(self) -> TrackKind:
        return self.track.kind


def exceeds_threshold(
    kind: TrackKind,
    last: SampleValue,
    current: SampleValue,
    *,
    primary: float,
    secondary: float,
) -> bool:
    if kind is TrackKind.POSITION:
        assert isinstance(last, Vec3) and isinstance(current, Vec3)
        return last.any_axis_exceeds(current, primary)
    if kind is TrackKind.POSE:
        assert isinstance(last, Pose) and isinstance(current, Pose)
        return last.position.any_axis_exceeds(current.position, primary) or last.forward.any_axis_exceeds(
            current.forward, secondary
        )
    return abs_delta_exceeds(float(last), float(current), secondary)


class Recorder:
    """Threshold-based multi-track sampler.

    Providers are polled on every `tick`; a sample is appended only when the
    value moved past the track's threshold relative to the last *recorded*
    value, so sub-threshold drift is dropped rather than accumulated.
    """

    def __init__(
        self,
        *,
        thresholds: Thresholds | None = None,
        sample_interval_ms: int = 0,
        clock: SampleClock | None = None,
    ) -> None:
        if int(sample_interval_ms) < 0:
            raise ValueError(f"sample_interval_ms must be non-negative, got {sample_interval_ms}")
        self._thresholds = thresholds if thresholds is not None else Thresholds()
        self._sample_interval_ms = int(sample_interval_ms)
        self._clock = clock if clock is not None else SampleClock()
        self._bindings: dict[str, _Binding] = {}
        self._store: TrajectoryStore | None = None
        self._last_recorded: dict[str, SampleValue] = {}
        self._last_tick_ms: int | None = None
        self._recording = False

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def store(self) -> TrajectoryStore | None:
        return self._store

    @property
    def track_names(self) -> list[str]:
        return list(self._bindings)

    @property
    def elapsed_ms(self) -> int:
        return self._clock.elapsed_ms()

    def _register(self, track: Track, provider: ValueProvider, *, primary: float, secondary: float) -> str:
        if track.name in self._bindings:
            raise ValueError(f"duplicate track name: {track.name!r}")
        binding = _Binding(
            track=track,
            provider=provider,
            position_threshold=_check_threshold("position", primary),
            secondary_threshold=_check_threshold("secondary", secondary),
        )
        store = self._store
        if self._recording and store is not None:
            existing = store.get(track.name)
            if existing is None:
                store.add_track(track)
            elif existing.kind is not track.kind or existing.chart != track.chart:
                raise ValueError(
                    f"track {track.name!r} was recorded as {existing.kind.value}, cannot rebind as {track.kind.value}"
                )
            else:
                # A removed entity that comes back continues its earlier history.
                binding.track = existing
                debug_log("record_rebind", track=track.name, samples=len(existing))
        self._bindings[track.name] = binding
        return track.name

    def add_object(self, name: str, provider: ValueProvider, *, threshold: float | None = None) -> str:
        primary = self._thresholds.position if threshold is None else threshold
        return self._register(Track(name=str(name), kind=TrackKind.POSITION), provider, primary=primary, secondary=0.0)

    def add_camera(
        self,
        name: str,
        provider: ValueProvider,
        *,
        position_threshold: float | None = None,
        direction_threshold: float | None = None,
    ) -> str:
        primary = self._thresholds.position if position_threshold is None else position_threshold
        secondary = self._thresholds.direction if direction_threshold is None else direction_threshold
        return self._register(Track(name=str(name), kind=TrackKind.POSE), provider, primary=primary, secondary=secondary)

    def add_chart_point(
        self,
        chart_name: str,
        serie_index: int,
        data_index: int,
        provider: ValueProvider,
        *,
        threshold: float | None = None,
    ) -> str:
        secondary = self._thresholds.value if threshold is None else threshold
        track = chart_track(chart_name, serie_index, data_index)
        return self._register(track, provider, primary=0.0, secondary=secondary)

    def remove(self, name: str) -> None:
        """Stop sampling a track. Samples already recorded stay in the store."""
        self._bindings.pop(name, None)
        self._last_recorded.pop(name, None)

    def start_recording(self) -> TrajectoryStore:
        store = TrajectoryStore()
        for name, binding in list(self._bindings.items()):
            track = Track(name=name, kind=binding.kind, chart=binding.track.chart)
            binding.track = track
            store.add_track(track)
        self._store = store
        self._last_recorded.clear()
        self._last_tick_ms = None
        self._recording = True
        self._clock.start()
        debug_log("record_start", tracks=len(store))
        return store

    def tick(self, now_ms: float | None = None) -> int:
        """Poll every provider once and return how many samples were appended."""
        store = self._store
        if not self._recording or store is None:
            debug_log("record_tick_ignored", reason="not_recording")
            return 0

        if now_ms is None:
            now_ms = self._clock.elapsed_ms()
        now = max(0, int(round(float(now_ms))))

        last_tick = self._last_tick_ms
        if self._sample_interval_ms > 0 and last_tick is not None and now - last_tick < self._sample_interval_ms:
            return 0
        self._last_tick_ms = now

        appended = 0
        for name, binding in self._bindings.items():
            value = binding.provider()
            if value is None:
                debug_log("provider_unavailable", track=name, time_ms=now)
                continue
            if binding.kind is TrackKind.SCALAR:
                value = float(value)

            track = binding.track
            last_sample = track.last
            if last_sample is not None and int(last_sample.time_ms) >= now:
                continue

            last_value = self._last_recorded.get(name)
            if last_value is not None and not exceeds_threshold(
                binding.kind,
                last_value,
                value,
                primary=binding.position_threshold,
                secondary=binding.secondary_threshold,
            ):
                continue

            store.append(name, Sample(now, value))
            self._last_recorded[name] = value
            appended += 1
        return appended

    def stop_recording(self) -> TrajectoryStore:
        store = self._store if self._store is not None else TrajectoryStore()
        self._store = store
        if self._recording:
            debug_log("record_stop", tracks=len(store), samples=store.sample_count, duration_ms=store.duration_ms)
        self._recording = False
        self._clock.stop()
        return store.freeze()

    def stop_and_dump(self, *, compress: bool = False, indent: int = 2) -> bytes:
        return dump_trajectory(self.stop_recording(), compress=compress, indent=indent)
