from __future__ import annotations

from pathlib import Path

import pytest

from retrace import config as retrace_config
from retrace.trajectory import Thresholds


def test_retrace_cfg_roundtrip_default() -> None:
    data = retrace_config.default_retrace_cfg_data()
    blob = retrace_config.RETRACE_CFG_STRUCT.build(data)
    assert len(blob) == retrace_config.RETRACE_CFG_SIZE
    assert blob[:4] == retrace_config.RETRACE_CFG_MAGIC
    parsed = retrace_config.RETRACE_CFG_STRUCT.parse(blob)
    assert retrace_config.RETRACE_CFG_STRUCT.build(parsed) == blob


def test_retrace_cfg_save_load(tmp_path: Path) -> None:
    cfg = retrace_config.ensure_retrace_cfg(tmp_path)
    assert cfg.path == tmp_path / retrace_config.RETRACE_CFG_NAME
    assert cfg.interpolate
    assert not cfg.compress_saves
    assert cfg.thresholds() == Thresholds()
    assert cfg.nudge_step_seconds == pytest.approx(0.1)

    cfg.position_threshold = 0.04
    cfg.compress_saves = True
    cfg.sample_interval_ms = 250
    cfg.save()

    loaded = retrace_config.load_retrace_cfg(cfg.path)
    assert loaded.thresholds().position == pytest.approx(0.04)
    assert loaded.compress_saves
    assert loaded.sample_interval_ms == 250


def test_retrace_cfg_status_tracker_defaults(tmp_path: Path) -> None:
    tracker = retrace_config.ensure_retrace_cfg(tmp_path).status_tracker()
    assert tracker.ff_velocity_threshold == pytest.approx(1200.0)
    assert tracker.rw_velocity_threshold == pytest.approx(-200.0)
    assert tracker.hold_seconds == pytest.approx(0.25)
    assert tracker.finished_counts_as_paused


def test_retrace_cfg_rejects_negative_threshold(tmp_path: Path) -> None:
    cfg = retrace_config.ensure_retrace_cfg(tmp_path)
    with pytest.raises(ValueError):
        cfg.direction_threshold = -0.5


def test_retrace_cfg_repairs_bad_thresholds(tmp_path: Path) -> None:
    data = retrace_config.default_retrace_cfg_data()
    data["position_threshold"] = -1.0
    data["value_threshold"] = float("inf")
    path = tmp_path / retrace_config.RETRACE_CFG_NAME
    path.write_bytes(retrace_config.RETRACE_CFG_STRUCT.build(data))

    cfg = retrace_config.ensure_retrace_cfg(tmp_path)
    defaults = retrace_config.default_retrace_cfg_data()
    assert cfg.position_threshold == defaults["position_threshold"]
    assert cfg.value_threshold == defaults["value_threshold"]
    assert retrace_config.load_retrace_cfg(path).position_threshold == defaults["position_threshold"]


def test_retrace_cfg_rejects_foreign_files(tmp_path: Path) -> None:
    path = tmp_path / retrace_config.RETRACE_CFG_NAME
    path.write_bytes(b"\x00" * 8)
    with pytest.raises(ValueError, match="unexpected size"):
        retrace_config.load_retrace_cfg(path)
    path.write_bytes(b"XXXX" + b"\x00" * (retrace_config.RETRACE_CFG_SIZE - 4))
    with pytest.raises(ValueError, match="not a retrace config"):
        retrace_config.ensure_retrace_cfg(tmp_path)
