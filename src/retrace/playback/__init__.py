from __future__ import annotations

from .clock import SampleClock, monotonic_ms
from .engine import Playhead, ReplayEngine, ReplayTarget, SampleSink, advance_playhead, blend, value_at_index
from .status import STATUS_TEXT, PlaybackStatus, PlaybackStatusTracker, format_ms, time_label

__all__ = [
    "STATUS_TEXT",
    "PlaybackStatus",
    "PlaybackStatusTracker",
    "Playhead",
    "ReplayEngine",
    "ReplayTarget",
    "SampleClock",
    "SampleSink",
    "advance_playhead",
    "blend",
    "format_ms",
    "monotonic_ms",
    "time_label",
    "value_at_index",
]
