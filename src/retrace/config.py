from __future__ import annotations

from dataclasses import dataclass
import math
from pathlib import Path

from construct import Byte, Const, ConstructError, Float64l, Int16ul, Int32ul, Padding, Struct

from .playback.status import PlaybackStatusTracker
from .trajectory.recorder import Thresholds

RETRACE_CFG_NAME = "retrace.cfg"
RETRACE_CFG_MAGIC = b"RTCF"
RETRACE_CFG_VERSION = 1
RETRACE_CFG_SIZE = 0x40

RETRACE_CFG_STRUCT = Struct(
    "magic" / Const(RETRACE_CFG_MAGIC),
    "version" / Int16ul,
    "interpolate" / Byte,
    "compress_saves" / Byte,
    "position_threshold" / Float64l,
    "direction_threshold" / Float64l,
    "value_threshold" / Float64l,
    "sample_interval_ms" / Int32ul,
    "nudge_step_ms" / Int32ul,
    "ff_velocity_threshold" / Float64l,
    "rw_velocity_threshold" / Float64l,
    "ff_rw_hold_ms" / Int32ul,
    "finished_counts_as_paused" / Byte,
    Padding(3),
)

_THRESHOLD_FIELDS = ("position_threshold", "direction_threshold", "value_threshold")


@dataclass(slots=True)
class RetraceConfig:
    path: Path
    data: dict

    @property
    def interpolate(self) -> bool:
        return bool(self.data["interpolate"])

    @interpolate.setter
    def interpolate(self, value: bool) -> None:
        self.data["interpolate"] = 1 if value else 0

    @property
    def compress_saves(self) -> bool:
        return bool(self.data["compress_saves"])

    @compress_saves.setter
    def compress_saves(self, value: bool) -> None:
        self.data["compress_saves"] = 1 if value else 0

    @property
    def position_threshold(self) -> float:
        return float(self.data["position_threshold"])

    @position_threshold.setter
    def position_threshold(self, value: float) -> None:
        self.data["position_threshold"] = _checked_threshold("position_threshold", value)

    @property
    def direction_threshold(self) -> float:
        return float(self.data["direction_threshold"])

    @direction_threshold.setter
    def direction_threshold(self, value: float) -> None:
        self.data["direction_threshold"] = _checked_threshold("direction_threshold", value)

    @property
    def value_threshold(self) -> float:
        return float(self.data["value_threshold"])

    @value_threshold.setter
    def value_threshold(self, value: float) -> None:
        self.data["value_threshold"] = _checked_threshold("value_threshold", value)

    @property
    def sample_interval_ms(self) -> int:
        return int(self.data["sample_interval_ms"])

    @sample_interval_ms.setter
    def sample_interval_ms(self, value: int) -> None:
        self.data["sample_interval_ms"] = max(0, int(value))

    @property
    def nudge_step_ms(self) -> int:
        return int(self.data["nudge_step_ms"])

    @nudge_step_ms.setter
    def nudge_step_ms(self, value: int) -> None:
        self.data["nudge_step_ms"] = max(0, int(value))

    @property
    def nudge_step_seconds(self) -> float:
        return self.nudge_step_ms / 1000.0

    def thresholds(self) -> Thresholds:
        return Thresholds(
            position=self.position_threshold,
            direction=self.direction_threshold,
            value=self.value_threshold,
        )

    def status_tracker(self) -> PlaybackStatusTracker:
        return PlaybackStatusTracker(
            ff_velocity_threshold=float(self.data["ff_velocity_threshold"]),
            rw_velocity_threshold=float(self.data["rw_velocity_threshold"]),
            hold_seconds=int(self.data["ff_rw_hold_ms"]) / 1000.0,
            finished_counts_as_paused=bool(self.data["finished_counts_as_paused"]),
        )

    def save(self) -> None:
        self.path.write_bytes(RETRACE_CFG_STRUCT.build(self.data))


def _checked_threshold(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0:
        raise ValueError(f"{name} must be a non-negative finite number, got {value!r}")
    return value


def default_retrace_cfg_data() -> dict:
    thresholds = Thresholds()
    tracker = PlaybackStatusTracker()
    return RETRACE_CFG_STRUCT.parse(
        RETRACE_CFG_STRUCT.build(
            {
                "version": RETRACE_CFG_VERSION,
                "interpolate": 1,
                "compress_saves": 0,
                "position_threshold": thresholds.position,
                "direction_threshold": thresholds.direction,
                "value_threshold": thresholds.value,
                # 0 disables interval gating; thresholds alone decide what gets recorded.
                "sample_interval_ms": 0,
                "nudge_step_ms": 100,
                "ff_velocity_threshold": tracker.ff_velocity_threshold,
                "rw_velocity_threshold": tracker.rw_velocity_threshold,
                "ff_rw_hold_ms": int(round(tracker.hold_seconds * 1000.0)),
                "finished_counts_as_paused": 1 if tracker.finished_counts_as_paused else 0,
            }
        )
    )


def _parse_cfg_bytes(path: Path, data: bytes) -> dict:
    if len(data) != RETRACE_CFG_SIZE:
        raise ValueError(f"{path} has unexpected size {len(data)} (expected {RETRACE_CFG_SIZE})")
    try:
        return RETRACE_CFG_STRUCT.parse(data)
    except ConstructError as exc:
        raise ValueError(f"{path} is not a retrace config: {exc}") from exc


def ensure_retrace_cfg(base_dir: Path) -> RetraceConfig:
    path = Path(base_dir) / RETRACE_CFG_NAME
    if path.exists():
        config = RetraceConfig(path=path, data=_parse_cfg_bytes(path, path.read_bytes()))
        # Repair thresholds written by hand or by a broken tool; the recorder rejects them otherwise.
        defaults = default_retrace_cfg_data()
        patched = False
        for name in _THRESHOLD_FIELDS:
            value = float(config.data[name])
            if not math.isfinite(value) or value < 0.0:
                config.data[name] = defaults[name]
                patched = True
        if patched:
            config.save()
        return config
    path.parent.mkdir(parents=True, exist_ok=True)
    config = RetraceConfig(path=path, data=default_retrace_cfg_data())
    config.save()
    return config


def load_retrace_cfg(path: Path) -> RetraceConfig:
    path = Path(path)
    return RetraceConfig(path=path, data=_parse_cfg_bytes(path, path.read_bytes()))
