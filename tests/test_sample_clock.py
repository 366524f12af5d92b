from __future__ import annotations

from retrace.playback.clock import SampleClock


class FakeTime:
    def __init__(self) -> None:
        self.now_ms = 1000.0

    def __call__(self) -> float:
        return self.now_ms


def test_clock_reports_zero_until_started() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=5000, time_source=now)
    now.now_ms += 300.0
    assert clock.elapsed_ms() == 0
    clock.start()
    now.now_ms += 300.0
    assert clock.elapsed_ms() == 300


def test_clock_clamps_to_total_duration_and_reports_finished() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=1000, time_source=now)
    clock.start()
    now.now_ms += 1500.0
    assert clock.elapsed_ms() == 1000
    assert clock.is_finished
    assert clock.running
    assert clock.progress01() == 1.0


def test_unbounded_clock_never_finishes() -> None:
    now = FakeTime()
    clock = SampleClock(time_source=now)
    clock.start()
    now.now_ms += 60_000.0
    assert clock.elapsed_ms() == 60_000
    assert not clock.is_finished
    assert clock.progress01() == 0.0


def test_pause_freezes_and_resume_conserves_elapsed() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=10_000, time_source=now)
    clock.start()
    now.now_ms += 1200.0
    clock.pause()
    now.now_ms += 5000.0
    assert clock.elapsed_ms() == 1200
    clock.resume()
    assert clock.elapsed_ms() == 1200
    now.now_ms += 300.0
    assert clock.elapsed_ms() == 1500


def test_seek_clamps_and_is_idempotent() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=2000, time_source=now)
    clock.start()
    assert clock.seek(-50) == 0
    assert clock.seek(2500) == 2000
    assert clock.seek(750) == 750
    assert clock.seek(750) == 750
    assert clock.elapsed_ms() == 750


def test_seek_while_paused_stays_paused() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=2000, time_source=now)
    clock.start()
    clock.pause()
    clock.seek(1500)
    now.now_ms += 400.0
    assert clock.paused
    assert clock.elapsed_ms() == 1500
    clock.resume()
    now.now_ms += 100.0
    assert clock.elapsed_ms() == 1600


def test_toggle_pause_and_stop() -> None:
    now = FakeTime()
    clock = SampleClock(total_duration_ms=2000, time_source=now)
    clock.start()
    clock.toggle_pause()
    assert clock.paused
    clock.toggle_pause()
    assert not clock.paused
    clock.stop()
    assert not clock.running
    assert clock.elapsed_ms() == 0
