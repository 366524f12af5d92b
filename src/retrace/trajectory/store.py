from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .types import Sample, Track, TrackKind


class TrajectoryStoreFrozenError(RuntimeError):
    pass


@dataclass(slots=True)
class TrajectoryStore:
    """All tracks of one recording, keyed by track name in insertion order."""

    tracks: dict[str, Track] = field(default_factory=dict)
    frozen: bool = False

    def __len__(self) -> int:
        return len(self.tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks.values())

    def __contains__(self, name: object) -> bool:
        return name in self.tracks

    def get(self, name: str) -> Track | None:
        return self.tracks.get(name)

    def _check_mutable(self) -> None:
        if self.frozen:
            raise TrajectoryStoreFrozenError("trajectory store is frozen")

    def add_track(self, track: Track) -> Track:
        self._check_mutable()
        if track.name in self.tracks:
            raise ValueError(f"duplicate track name: {track.name!r}")
        self.tracks[track.name] = track
        return track

    def append(self, name: str, sample: Sample) -> None:
        self._check_mutable()
        track = self.tracks.get(name)
        if track is None:
            raise KeyError(name)
        track.append(sample)

    def freeze(self) -> TrajectoryStore:
        self.frozen = True
        return self

    def of_kind(self, kind: TrackKind) -> list[Track]:
        return [track for track in self.tracks.values() if track.kind is kind]

    def objects(self) -> list[Track]:
        return self.of_kind(TrackKind.POSITION)

    def cameras(self) -> list[Track]:
        return self.of_kind(TrackKind.POSE)

    def charts(self) -> list[Track]:
        return self.of_kind(TrackKind.SCALAR)

    @property
    def duration_ms(self) -> int:
        return max((track.duration_ms for track in self.tracks.values()), default=0)

    @property
    def sample_count(self) -> int:
        return sum(len(track) for track in self.tracks.values())

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0
