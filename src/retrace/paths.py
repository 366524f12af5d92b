from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "retrace"
RUNTIME_DIR_ENV = "RETRACE_RUNTIME_DIR"
SAVES_DIR_NAME = "saves"


def default_runtime_dir() -> Path:
    override = os.environ.get(RUNTIME_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(PlatformDirs(APP_NAME, appauthor=False).user_data_path)


def saves_dir(base_dir: Path) -> Path:
    return Path(base_dir) / SAVES_DIR_NAME
