from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

from kine.geom import Vec3


class TrackKind(str, Enum):
    POSITION = "position"
    POSE = "pose"
    SCALAR = "scalar"


@dataclass(frozen=True, slots=True)
class Pose:
    position: Vec3
    forward: Vec3


SampleValue: TypeAlias = Vec3 | Pose | float


@dataclass(frozen=True, slots=True)
class Sample:
    time_ms: int
    value: SampleValue


@dataclass(frozen=True, slots=True)
class ChartKey:
    chart_name: str
    serie_index: int
    data_index: int


def chart_track_name(chart_name: str, serie_index: int, data_index: int) -> str:
    return f"{chart_name}/{int(serie_index)}/{int(data_index)}"


def value_matches_kind(kind: TrackKind, value: object) -> bool:
    if kind is TrackKind.POSITION:
        return isinstance(value, Vec3)
    if kind is TrackKind.POSE:
        return isinstance(value, Pose)
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(slots=True)
class Track:
    """Timestamped history of one entity.

    Samples are kept in non-decreasing `time_ms` order; `append` refuses to go
    back in time. `chart` is only set for scalar tracks and records where the
    series lives in the persisted `charts` family.
    """

    name: str
    kind: TrackKind
    samples: list[Sample] = field(default_factory=list)
    chart: ChartKey | None = None

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def first(self) -> Sample | None:
        return self.samples[0] if self.samples else None

    @property
    def last(self) -> Sample | None:
        return self.samples[-1] if self.samples else None

    @property
    def duration_ms(self) -> int:
        last = self.last
        return int(last.time_ms) if last is not None else 0

    def append(self, sample: Sample) -> None:
        if int(sample.time_ms) < 0:
            raise ValueError(f"track {self.name!r}: time_ms must be non-negative, got {sample.time_ms}")
        last = self.last
        if last is not None and int(sample.time_ms) < int(last.time_ms):
            raise ValueError(
                f"track {self.name!r}: sample at {sample.time_ms}ms precedes last sample at {last.time_ms}ms"
            )
        if not value_matches_kind(self.kind, sample.value):
            raise ValueError(f"track {self.name!r}: {type(sample.value).__name__} is not a {self.kind.value} value")
        self.samples.append(sample)

    def left_index(self, elapsed_ms: float) -> int:
        """Index of the latest sample with `time_ms <= elapsed_ms`.

        Equal timestamps resolve to the last of them, the same index a forward
        scan from 0 with a `<=` comparison stops at. Times before the first
        sample map to 0.
        """
        idx = bisect_right(self.samples, elapsed_ms, key=lambda sample: sample.time_ms) - 1
        return idx if idx > 0 else 0


def chart_track(chart_name: str, serie_index: int, data_index: int) -> Track:
    key = ChartKey(chart_name=str(chart_name), serie_index=int(serie_index), data_index=int(data_index))
    return Track(
        name=chart_track_name(key.chart_name, key.serie_index, key.data_index),
        kind=TrackKind.SCALAR,
        chart=key,
    )
