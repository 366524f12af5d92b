from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from kine.geom import Vec3

from .config import RETRACE_CFG_STRUCT, RetraceConfig, ensure_retrace_cfg
from .debug_log import debug_log, init_debug_log
from .paths import default_runtime_dir, saves_dir
from .playback import ReplayEngine, format_ms
from .saves import list_saves, write_save
from .trajectory import Pose, SampleValue, TrajectoryCodecError, TrajectoryStore, dump_trajectory, load_trajectory_file

app = typer.Typer(add_completion=False)


@dataclass(slots=True)
class _CliState:
    base_dir: Path

    def config(self) -> RetraceConfig:
        return ensure_retrace_cfg(self.base_dir)


def _state(ctx: typer.Context) -> _CliState:
    state = ctx.obj
    if not isinstance(state, _CliState):
        state = _CliState(base_dir=default_runtime_dir())
        ctx.obj = state
    return state


def _load_or_exit(path: Path) -> TrajectoryStore:
    try:
        return load_trajectory_file(path)
    except FileNotFoundError:
        typer.echo(f"trajectory file not found: {path}", err=True)
        raise typer.Exit(code=1)
    except TrajectoryCodecError as exc:
        typer.echo(f"invalid trajectory file {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _format_vec3(vec: Vec3) -> str:
    return f"({vec.x:g}, {vec.y:g}, {vec.z:g})"


def _format_value(value: SampleValue) -> str:
    if isinstance(value, Vec3):
        return _format_vec3(value)
    if isinstance(value, Pose):
        return f"pos={_format_vec3(value.position)} fwd={_format_vec3(value.forward)}"
    return f"{float(value):g}"


def _format_cfg_value(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return f"{bytes(value)!r} (len={len(value)})"
    return str(value)


@app.callback()
def cmd_main(
    ctx: typer.Context,
    base_dir: Path = typer.Option(
        default_runtime_dir(),
        "--base-dir",
        "--runtime-dir",
        help="base path for config, saves and logs (default: per-user OS data dir; override with RETRACE_RUNTIME_DIR)",
    ),
    debug_log_enabled: bool = typer.Option(False, "--debug-log", help="write a diagnostic event log under base-dir/logs"),
) -> None:
    """Record, inspect and replay trajectory files."""
    ctx.obj = _CliState(base_dir=base_dir)
    if debug_log_enabled:
        path = init_debug_log(base_dir=base_dir, role="cli", command=ctx.invoked_subcommand or "")
        typer.echo(f"debug log: {path}", err=True)


@app.command("info")
def cmd_info(trajectory_file: Path = typer.Argument(..., help="trajectory file (.json or .json.gz)")) -> None:
    """Summarize the tracks stored in a trajectory file."""
    store = _load_or_exit(trajectory_file)
    typer.echo(f"file: {trajectory_file}")
    typer.echo(f"duration: {format_ms(store.duration_ms)} ({store.duration_ms} ms)")
    typer.echo(f"tracks: {len(store)} samples: {store.sample_count}")
    for track in store:
        first = track.first
        last = track.last
        span = f"{first.time_ms}..{last.time_ms} ms" if first is not None and last is not None else "empty"
        typer.echo(f"  {track.name} [{track.kind.value}] samples={len(track)} {span}")


@app.command("sample")
def cmd_sample(
    ctx: typer.Context,
    trajectory_file: Path = typer.Argument(..., help="trajectory file (.json or .json.gz)"),
    track: str = typer.Argument(..., help="track name (objectName, cameraName or chart/serie/data)"),
    at_ms: int = typer.Option(0, "--at", help="timeline position in ms"),
    interpolate: bool | None = typer.Option(
        None,
        "--interpolate/--no-interpolate",
        help="blend between samples (default: use retrace.cfg)",
    ),
) -> None:
    """Print a track's value at one timeline position."""
    state = _state(ctx)
    store = _load_or_exit(trajectory_file)
    if interpolate is None:
        interpolate = state.config().interpolate
    engine = ReplayEngine(interpolate=bool(interpolate))
    engine.load(store)
    value = engine.sample_at(track, at_ms)
    if value is None:
        typer.echo(f"track {track!r} not found or empty", err=True)
        raise typer.Exit(code=1)
    typer.echo(_format_value(value))


@app.command("play")
def cmd_play(
    ctx: typer.Context,
    trajectory_file: Path = typer.Argument(..., help="trajectory file (.json or .json.gz)"),
    step_ms: int = typer.Option(100, "--step-ms", min=1, help="timeline step between printed frames"),
    tracks: list[str] = typer.Option([], "--track", help="track to print (repeatable; default: all)"),
    interpolate: bool | None = typer.Option(
        None,
        "--interpolate/--no-interpolate",
        help="blend between samples (default: use retrace.cfg)",
    ),
) -> None:
    """Replay a trajectory headlessly, printing every target per frame."""
    state = _state(ctx)
    store = _load_or_exit(trajectory_file)
    if interpolate is None:
        interpolate = state.config().interpolate

    now_ms = 0.0

    def _time_source() -> float:
        return now_ms

    engine = ReplayEngine(interpolate=bool(interpolate), time_source=_time_source)
    engine.load(store)
    names = list(tracks) if tracks else [track.name for track in store]
    for name in names:
        if name not in store:
            typer.echo(f"unknown track {name!r}", err=True)
            raise typer.Exit(code=1)
        engine.register_target(name)

    if not engine.start_playback():
        typer.echo("nothing to play", err=True)
        raise typer.Exit(code=1)

    frames = 0
    while True:
        elapsed = engine.elapsed_ms
        for name, value in engine.tick().items():
            typer.echo(f"{elapsed:>8} {name} {_format_value(value)}")
        frames += 1
        if engine.is_finished:
            break
        now_ms += float(step_ms)
    engine.stop_playback()
    debug_log("cli_play_done", frames=frames, duration_ms=store.duration_ms)
    typer.echo(f"frames: {frames} duration: {format_ms(store.duration_ms)}")


@app.command("convert")
def cmd_convert(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="input trajectory file"),
    dest: Path | None = typer.Argument(None, help="output path (default: next save slot under base-dir/saves)"),
    compress: bool | None = typer.Option(
        None,
        "--gzip/--plain",
        help="gzip the output (default: use retrace.cfg)",
    ),
) -> None:
    """Re-encode a trajectory file (sorting samples and upgrading old layouts)."""
    state = _state(ctx)
    store = _load_or_exit(source)
    if compress is None:
        compress = state.config().compress_saves
    blob = dump_trajectory(store, compress=bool(compress))
    if dest is None:
        out_path = write_save(saves_dir(state.base_dir), blob, compressed=bool(compress))
    else:
        out_path = Path(dest)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(blob)
    typer.echo(f"wrote {out_path}")


@app.command("saves")
def cmd_saves(ctx: typer.Context) -> None:
    """List trajectory save slots under base-dir/saves."""
    state = _state(ctx)
    save_root = saves_dir(state.base_dir)
    paths = list_saves(save_root)
    if not paths:
        typer.echo(f"no saves under {save_root}")
        return
    for path in paths:
        try:
            store = load_trajectory_file(path)
        except TrajectoryCodecError as exc:
            typer.echo(f"{path.name}: unreadable ({exc})")
            continue
        typer.echo(f"{path.name}: tracks={len(store)} duration={format_ms(store.duration_ms)}")


@app.command("config")
def cmd_config(ctx: typer.Context) -> None:
    """Inspect retrace.cfg values (created with defaults if missing)."""
    config = _state(ctx).config()
    typer.echo(f"path: {config.path}")
    typer.echo("fields:")
    for sub in RETRACE_CFG_STRUCT.subcons:
        name = sub.name
        if not name:
            continue
        typer.echo(f"{name}: {_format_cfg_value(config.data[name])}")


def main(argv: list[str] | None = None) -> None:
    app(prog_name="retrace", args=argv)


if __name__ == "__main__":
    main()
