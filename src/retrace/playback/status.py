from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from kine.math import clamp01

_NEAR_START = 0.0001
_NEAR_END = 0.999


class SupportsPlaybackState(Protocol):
    @property
    def is_replaying(self) -> bool: ...

    @property
    def is_paused(self) -> bool: ...

    @property
    def progress01(self) -> float: ...

    @property
    def total_duration_ms(self) -> int: ...

    @property
    def elapsed_ms(self) -> int: ...


class PlaybackStatus(str, Enum):
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    FAST_FORWARD = "fast_forward"
    REWIND = "rewind"


STATUS_TEXT: dict[PlaybackStatus, str] = {
    PlaybackStatus.READY: "Ready",
    PlaybackStatus.PLAYING: "Playing",
    PlaybackStatus.PAUSED: "Paused",
    PlaybackStatus.FAST_FORWARD: "Fast Forward",
    PlaybackStatus.REWIND: "Rewind",
}


def format_ms(ms: int) -> str:
    total_sec = int(round(int(ms) / 1000.0))
    minutes, seconds = divmod(max(0, total_sec), 60)
    return f"{minutes:02d}:{seconds:02d}"


def time_label(engine: SupportsPlaybackState) -> str:
    return f"{format_ms(engine.elapsed_ms)} / {format_ms(engine.total_duration_ms)}"


@dataclass(slots=True)
class PlaybackStatusTracker:
    """Classifies playback state once per frame for status displays.

    Fast-forward and rewind are inferred from timeline velocity (timeline ms per
    wall second) and held for `hold_seconds` after the last qualifying frame so
    a short scrub still registers. Priority: fast-forward, rewind, ready (never
    started and at the beginning), playing, paused.
    """

    ff_velocity_threshold: float = 1200.0
    rw_velocity_threshold: float = -200.0
    hold_seconds: float = 0.25
    finished_counts_as_paused: bool = True
    has_ever_started: bool = False
    last_progress01: float = 0.0
    last_time_ms: float = 0.0
    ff_timer: float = 0.0
    rw_timer: float = 0.0
    status: PlaybackStatus = PlaybackStatus.READY

    def reset(self) -> None:
        self.has_ever_started = False
        self.last_progress01 = 0.0
        self.last_time_ms = 0.0
        self.ff_timer = 0.0
        self.rw_timer = 0.0
        self.status = PlaybackStatus.READY

    def update(self, engine: SupportsPlaybackState, dt_seconds: float) -> PlaybackStatus:
        progress = clamp01(float(engine.progress01))
        if engine.is_replaying:
            self.has_ever_started = True
        self.last_progress01 = progress

        total = max(1, int(engine.total_duration_ms))
        current_ms = progress * total
        dt = max(float(dt_seconds), 1e-6)
        velocity = (current_ms - self.last_time_ms) / dt

        if velocity >= self.ff_velocity_threshold:
            self.ff_timer = self.hold_seconds
        else:
            self.ff_timer = max(0.0, self.ff_timer - dt)
        if velocity <= self.rw_velocity_threshold:
            self.rw_timer = self.hold_seconds
        else:
            self.rw_timer = max(0.0, self.rw_timer - dt)
        self.last_time_ms = current_ms

        self.status = self._classify(engine)
        return self.status

    def _classify(self, engine: SupportsPlaybackState) -> PlaybackStatus:
        if self.ff_timer > 0.0:
            return PlaybackStatus.FAST_FORWARD
        if self.rw_timer > 0.0:
            return PlaybackStatus.REWIND

        near_start = self.last_progress01 <= _NEAR_START
        near_end = self.last_progress01 >= _NEAR_END
        is_paused = engine.is_replaying and engine.is_paused
        is_playing = engine.is_replaying and not is_paused

        if not self.has_ever_started and near_start:
            return PlaybackStatus.READY
        if is_playing:
            return PlaybackStatus.PLAYING
        if is_paused:
            return PlaybackStatus.PAUSED
        if near_end and self.finished_counts_as_paused:
            return PlaybackStatus.PAUSED
        return PlaybackStatus.READY

    @property
    def text(self) -> str:
        return STATUS_TEXT[self.status]
