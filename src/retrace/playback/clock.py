from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


@dataclass(slots=True)
class SampleClock:
    """Pausable, seekable timeline over a free-running millisecond time source.

    `total_duration_ms=None` leaves the timeline unbounded (recording);
    otherwise every reported value is clamped to `[0, total_duration_ms]`.
    Reaching the end does not stop the clock: callers detect completion with
    `is_finished` while `running` stays true until `stop()`.
    """

    total_duration_ms: int | None = None
    time_source: Callable[[], float] = monotonic_ms
    running: bool = False
    paused: bool = False
    start_wall_ms: float = 0.0
    paused_elapsed_ms: int = 0

    def __post_init__(self) -> None:
        if self.total_duration_ms is not None:
            total = int(self.total_duration_ms)
            if total < 0:
                raise ValueError(f"total_duration_ms must be non-negative, got {total}")
            self.total_duration_ms = total

    def _clamp_ms(self, value: float) -> int:
        ms = int(round(float(value)))
        if ms < 0:
            return 0
        total = self.total_duration_ms
        if total is not None and ms > total:
            return int(total)
        return ms

    def start(self) -> None:
        self.running = True
        self.paused = False
        self.start_wall_ms = float(self.time_source())
        self.paused_elapsed_ms = 0

    def stop(self) -> None:
        self.running = False
        self.paused = False
        self.paused_elapsed_ms = 0

    def pause(self) -> None:
        if not self.running or self.paused:
            return
        self.paused_elapsed_ms = self.elapsed_ms()
        self.paused = True

    def resume(self) -> None:
        if not (self.running and self.paused):
            return
        self.start_wall_ms = float(self.time_source()) - float(self.paused_elapsed_ms)
        self.paused = False

    def toggle_pause(self) -> None:
        if self.paused:
            self.resume()
        else:
            self.pause()

    def seek(self, target_ms: float) -> int:
        target = self._clamp_ms(target_ms)
        if self.paused:
            self.paused_elapsed_ms = target
        else:
            self.start_wall_ms = float(self.time_source()) - float(target)
        return target

    def elapsed_ms(self) -> int:
        if not self.running:
            return 0
        if self.paused:
            return int(self.paused_elapsed_ms)
        return self._clamp_ms(float(self.time_source()) - self.start_wall_ms)

    @property
    def is_finished(self) -> bool:
        total = self.total_duration_ms
        return self.running and total is not None and self.elapsed_ms() >= total

    def progress01(self) -> float:
        total = self.total_duration_ms
        if not total:
            return 0.0
        return min(1.0, self.elapsed_ms() / float(total))
