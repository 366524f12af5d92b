from __future__ import annotations

import re
from pathlib import Path

SAVE_PREFIX = "save_"
SAVE_SUFFIX = ".json"
COMPRESSED_SAVE_SUFFIX = ".json.gz"

_SAVE_RE = re.compile(r"^save_(\d+)\.json(\.gz)?$")


def save_slot(path: Path) -> int | None:
    match = _SAVE_RE.match(Path(path).name)
    if match is None:
        return None
    return int(match.group(1))


def list_saves(save_dir: Path) -> list[Path]:
    save_dir = Path(save_dir)
    if not save_dir.is_dir():
        return []
    found: list[tuple[int, str, Path]] = []
    for path in save_dir.iterdir():
        slot = save_slot(path)
        if slot is None or not path.is_file():
            continue
        found.append((slot, path.name, path))
    found.sort()
    return [path for _slot, _name, path in found]


def latest_save(save_dir: Path) -> Path | None:
    saves = list_saves(save_dir)
    return saves[-1] if saves else None


def next_save_path(save_dir: Path, *, compressed: bool = False) -> Path:
    """First free `save_N` slot, counting up from 1.

    A slot counts as taken whether it holds a plain or a gzipped save.
    """
    save_dir = Path(save_dir)
    taken = {save_slot(path) for path in list_saves(save_dir)}
    slot = 1
    while slot in taken:
        slot += 1
    suffix = COMPRESSED_SAVE_SUFFIX if compressed else SAVE_SUFFIX
    return save_dir / f"{SAVE_PREFIX}{slot}{suffix}"


def write_save(save_dir: Path, blob: bytes, *, compressed: bool = False) -> Path:
    save_dir = Path(save_dir)
    save_dir.mkdir(parents=True, exist_ok=True)
    path = next_save_path(save_dir, compressed=compressed)
    path.write_bytes(bytes(blob))
    return path
