from __future__ import annotations

from .types import ChartKey, Pose, Sample, SampleValue, Track, TrackKind, chart_track, chart_track_name
from .store import TrajectoryStore, TrajectoryStoreFrozenError
from .codec import (
    TrajectoryCodecError,
    TrajectoryFormatWarning,
    TrajectoryOrderWarning,
    dump_trajectory,
    dump_trajectory_file,
    ensure_ordered,
    load_trajectory,
    load_trajectory_file,
)
from .recorder import Recorder, Thresholds

__all__ = [
    "ChartKey",
    "Pose",
    "Recorder",
    "Sample",
    "SampleValue",
    "Thresholds",
    "Track",
    "TrackKind",
    "TrajectoryCodecError",
    "TrajectoryFormatWarning",
    "TrajectoryOrderWarning",
    "TrajectoryStore",
    "TrajectoryStoreFrozenError",
    "chart_track",
    "chart_track_name",
    "dump_trajectory",
    "dump_trajectory_file",
    "ensure_ordered",
    "load_trajectory",
    "load_trajectory_file",
]
