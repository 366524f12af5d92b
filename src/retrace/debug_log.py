from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import math
import os
from pathlib import Path
from threading import Lock

from kine.geom import Vec3


@dataclass(slots=True)
class _EventLog:
    path: Path
    role: str
    seq: int = 0


_LOCK = Lock()
_ACTIVE: _EventLog | None = None


def _format_float(value: float) -> str:
    if not math.isfinite(value):
        return str(value)
    return f"{value:.6g}"


def _format_vec3(vec: Vec3) -> str:
    return ",".join(_format_float(component) for component in vec.to_tuple())


def _format_value(value: object) -> str:
    """Render one field value as a single whitespace-free token where possible.

    Vectors become `x,y,z`, poses `pos@fwd`, and exceptions carry their type so
    codec failures stay greppable.
    """
    if isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, float):
        text = _format_float(value)
    elif isinstance(value, Vec3):
        text = _format_vec3(value)
    elif isinstance(getattr(value, "position", None), Vec3) and isinstance(getattr(value, "forward", None), Vec3):
        text = f"{_format_vec3(value.position)}@{_format_vec3(value.forward)}"  # type: ignore[attr-defined]
    elif isinstance(value, BaseException):
        text = f"{type(value).__name__}:{value}"
    else:
        text = str(value)
    return text.replace("\n", "\\n")


def _format_line(log: _EventLog, event: str, fields: dict[str, object]) -> str:
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds")
    parts = [timestamp, f"seq={log.seq}", f"role={log.role}", f"event={str(event).strip()}"]
    parts.extend(f"{key}={_format_value(fields[key])}" for key in sorted(fields))
    return " ".join(parts) + "\n"


def debug_log_path() -> Path | None:
    with _LOCK:
        return _ACTIVE.path if _ACTIVE is not None else None


def init_debug_log(*, base_dir: Path, role: str, **fields: object) -> Path:
    """Start appending diagnostic events to a fresh per-process log file.

    The file lives under `<base_dir>/logs/` and is named after the role, pid and
    UTC start time. Every line carries the role and a per-file sequence number;
    extra keyword fields are written on the `init` line.
    """
    role_name = str(role).strip().lower() or "unknown"
    timestamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%S.%fZ")
    path = Path(base_dir) / "logs" / f"retrace-{role_name}-pid{os.getpid()}-{timestamp}.log"
    path.parent.mkdir(parents=True, exist_ok=True)

    global _ACTIVE
    with _LOCK:
        _ACTIVE = _EventLog(path=path, role=role_name)

    debug_log("init", pid=int(os.getpid()), **fields)
    return path


def debug_log(event: str, **fields: object) -> None:
    """Append one event; a no-op until `init_debug_log` has been called."""
    with _LOCK:
        log = _ACTIVE
        if log is None:
            return
        log.seq += 1
        line = _format_line(log, event, fields)
        with log.path.open("a", encoding="utf-8") as handle:
            handle.write(line)


def close_debug_log() -> None:
    global _ACTIVE
    with _LOCK:
        _ACTIVE = None
