from __future__ import annotations

import gzip
import warnings
import zlib
from pathlib import Path
from typing import Iterable

import msgspec

from kine.geom import Vec3

from .store import TrajectoryStore
from .types import ChartKey, Pose, Sample, Track, TrackKind, chart_track_name

_GZIP_MAGIC = b"\x1f\x8b"

# Early capture builds wrote untimed samples on a fixed 0.5 s cadence.
LEGACY_SAMPLE_INTERVAL_MS = 500


class TrajectoryCodecError(ValueError):
    pass


class TrajectoryFormatWarning(UserWarning):
    """Persisted trajectory data was accepted but needed repair or reinterpretation."""


class TrajectoryOrderWarning(TrajectoryFormatWarning):
    """A track's samples were not stored in timestamp order and were re-sorted on load."""


class WireVec3(msgspec.Struct, forbid_unknown_fields=True):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class PositionSampleDoc(msgspec.Struct, rename="camel", omit_defaults=True, forbid_unknown_fields=True):
    position: WireVec3
    time_ms: int | None = None


class CameraSampleDoc(msgspec.Struct, rename="camel", omit_defaults=True, forbid_unknown_fields=True):
    position: WireVec3
    forward: WireVec3
    time_ms: int | None = None


class ScalarSampleDoc(msgspec.Struct, rename="camel", forbid_unknown_fields=True):
    value: float
    time_ms: int


class ObjectTrajectoryDoc(msgspec.Struct, rename="camel", omit_defaults=True, forbid_unknown_fields=True):
    object_name: str
    samples: list[PositionSampleDoc] | None = None
    # Untimed position list written by early capture builds.
    positions: list[WireVec3] | None = None


class CameraTrajectoryDoc(msgspec.Struct, rename="camel", forbid_unknown_fields=True):
    camera_name: str
    samples: list[CameraSampleDoc] = msgspec.field(default_factory=list)


class ChartPointDoc(msgspec.Struct, rename="camel", forbid_unknown_fields=True):
    data_index: int
    samples: list[ScalarSampleDoc] = msgspec.field(default_factory=list)


class ChartTrajectoryDoc(msgspec.Struct, rename="camel", forbid_unknown_fields=True):
    chart_name: str
    serie_index: int = 0
    points: list[ChartPointDoc] = msgspec.field(default_factory=list)


class TrajectoryDocument(msgspec.Struct, forbid_unknown_fields=True):
    objects: list[ObjectTrajectoryDoc] = msgspec.field(default_factory=list)
    cameras: list[CameraTrajectoryDoc] = msgspec.field(default_factory=list)
    charts: list[ChartTrajectoryDoc] = msgspec.field(default_factory=list)


_DOCUMENT_DECODER = msgspec.json.Decoder(type=TrajectoryDocument)


def _is_gzip(data: bytes) -> bool:
    return data.startswith(_GZIP_MAGIC)


def _wire(vec: Vec3) -> WireVec3:
    return WireVec3(x=float(vec.x), y=float(vec.y), z=float(vec.z))


def _vec(wire: WireVec3) -> Vec3:
    return Vec3(float(wire.x), float(wire.y), float(wire.z))


def _resolve_time_ms(track_name: str, idx: int, time_ms: int | None, *, legacy: list[str]) -> int:
    if time_ms is None:
        if not legacy:
            legacy.append(track_name)
        return idx * LEGACY_SAMPLE_INTERVAL_MS
    time_ms = int(time_ms)
    if time_ms < 0:
        raise TrajectoryCodecError(f"track {track_name!r} sample {idx} has negative timeMs: {time_ms}")
    return time_ms


def _ordered(track_name: str, samples: list[Sample], *, sort_samples: bool) -> list[Sample]:
    unordered = any(samples[idx].time_ms < samples[idx - 1].time_ms for idx in range(1, len(samples)))
    if not unordered:
        return samples
    if not sort_samples:
        raise TrajectoryCodecError(f"track {track_name!r} samples are not in timestamp order")
    warnings.warn(
        f"Track {track_name!r} samples were out of timestamp order; re-sorted on load.",
        category=TrajectoryOrderWarning,
        stacklevel=4,
    )
    return sorted(samples, key=lambda sample: sample.time_ms)


def _add(store: TrajectoryStore, track: Track) -> None:
    try:
        store.add_track(track)
    except ValueError as exc:
        raise TrajectoryCodecError(str(exc)) from exc


def document_to_store(doc: TrajectoryDocument, *, sort_samples: bool = True) -> TrajectoryStore:
    store = TrajectoryStore()
    legacy: list[str] = []

    for obj in doc.objects:
        name = str(obj.object_name)
        samples: list[Sample] = []
        if obj.samples is not None:
            for idx, raw in enumerate(obj.samples):
                time_ms = _resolve_time_ms(name, idx, raw.time_ms, legacy=legacy)
                samples.append(Sample(time_ms, _vec(raw.position)))
        elif obj.positions is not None:
            for idx, raw_pos in enumerate(obj.positions):
                time_ms = _resolve_time_ms(name, idx, None, legacy=legacy)
                samples.append(Sample(time_ms, _vec(raw_pos)))
        samples = _ordered(name, samples, sort_samples=sort_samples)
        _add(store, Track(name=name, kind=TrackKind.POSITION, samples=samples))

    for cam in doc.cameras:
        name = str(cam.camera_name)
        samples = []
        for idx, raw in enumerate(cam.samples):
            time_ms = _resolve_time_ms(name, idx, raw.time_ms, legacy=legacy)
            samples.append(Sample(time_ms, Pose(position=_vec(raw.position), forward=_vec(raw.forward))))
        samples = _ordered(name, samples, sort_samples=sort_samples)
        _add(store, Track(name=name, kind=TrackKind.POSE, samples=samples))

    for chart in doc.charts:
        for point in chart.points:
            key = ChartKey(
                chart_name=str(chart.chart_name),
                serie_index=int(chart.serie_index),
                data_index=int(point.data_index),
            )
            name = chart_track_name(key.chart_name, key.serie_index, key.data_index)
            samples = []
            for idx, raw in enumerate(point.samples):
                time_ms = _resolve_time_ms(name, idx, raw.time_ms, legacy=legacy)
                samples.append(Sample(time_ms, float(raw.value)))
            samples = _ordered(name, samples, sort_samples=sort_samples)
            _add(store, Track(name=name, kind=TrackKind.SCALAR, samples=samples, chart=key))

    if legacy:
        warnings.warn(
            f"Untimed samples (first in track {legacy[0]!r}) were timed at a fixed "
            f"{LEGACY_SAMPLE_INTERVAL_MS}ms cadence.",
            category=TrajectoryFormatWarning,
            stacklevel=3,
        )
    return store.freeze()


def ensure_ordered(store: TrajectoryStore, *, sort_samples: bool = True) -> TrajectoryStore:
    """Freeze `store` after putting every track in timestamp order.

    Tracks built by hand can bypass `Track.append`; they get the same
    sort-or-reject treatment as persisted documents.
    """
    for track in store:
        track.samples = _ordered(track.name, track.samples, sort_samples=sort_samples)
    return store.freeze()


def _chart_groups(tracks: Iterable[Track]) -> list[ChartTrajectoryDoc]:
    groups: dict[tuple[str, int], ChartTrajectoryDoc] = {}
    for track in tracks:
        key = track.chart
        if key is None:
            raise TrajectoryCodecError(f"scalar track {track.name!r} has no chart key")
        group = groups.get((key.chart_name, key.serie_index))
        if group is None:
            group = ChartTrajectoryDoc(chart_name=key.chart_name, serie_index=key.serie_index)
            groups[(key.chart_name, key.serie_index)] = group
        group.points.append(
            ChartPointDoc(
                data_index=key.data_index,
                samples=[ScalarSampleDoc(value=float(s.value), time_ms=int(s.time_ms)) for s in track.samples],
            )
        )
    return list(groups.values())


def store_to_document(store: TrajectoryStore) -> TrajectoryDocument:
    objects = [
        ObjectTrajectoryDoc(
            object_name=track.name,
            samples=[PositionSampleDoc(position=_wire(s.value), time_ms=int(s.time_ms)) for s in track.samples],
        )
        for track in store.objects()
    ]
    cameras = [
        CameraTrajectoryDoc(
            camera_name=track.name,
            samples=[
                CameraSampleDoc(
                    position=_wire(s.value.position),
                    forward=_wire(s.value.forward),
                    time_ms=int(s.time_ms),
                )
                for s in track.samples
            ],
        )
        for track in store.cameras()
    ]
    return TrajectoryDocument(objects=objects, cameras=cameras, charts=_chart_groups(store.charts()))


def dump_trajectory(store: TrajectoryStore, *, compress: bool = False, indent: int = 2) -> bytes:
    """Serialize a store as a JSON document.

    Pretty-printed by default so save files stay human readable. With
    `compress=True` the JSON is gzipped with mtime=0 for stable content hashing.
    """

    raw = msgspec.json.encode(store_to_document(store))
    if int(indent) > 0:
        raw = msgspec.json.format(raw, indent=int(indent))
    if compress:
        return gzip.compress(raw, compresslevel=9, mtime=0)
    return raw


def load_trajectory(data: bytes, *, sort_samples: bool = True) -> TrajectoryStore:
    data = bytes(data)
    if _is_gzip(data):
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as exc:
            raise TrajectoryCodecError(f"corrupt gzip trajectory: {exc}") from exc
    try:
        doc = _DOCUMENT_DECODER.decode(data)
    except (msgspec.DecodeError, UnicodeDecodeError) as exc:
        raise TrajectoryCodecError(f"invalid trajectory document: {exc}") from exc
    return document_to_store(doc, sort_samples=sort_samples)


def dump_trajectory_file(path: Path, store: TrajectoryStore, *, compress: bool = False) -> None:
    path = Path(path)
    path.write_bytes(dump_trajectory(store, compress=compress))


def load_trajectory_file(path: Path, *, sort_samples: bool = True) -> TrajectoryStore:
    path = Path(path)
    return load_trajectory(path.read_bytes(), sort_samples=sort_samples)
