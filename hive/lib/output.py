"""CLI output formatting and helpers."""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum

import typer


def set_flags(ctx: typer.Context, json_output: bool, quiet_output: bool) -> None:
    if ctx.obj is None:
        ctx.obj = {}
    ctx.obj["json_output"] = json_output or ctx.obj.get("json_output", False)
    ctx.obj["quiet_output"] = quiet_output or ctx.obj.get("quiet_output", False)


def _default(value):
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def to_json(data) -> str:
    if is_dataclass(data):
        data = asdict(data)
    elif isinstance(data, list):
        data = [asdict(d) if is_dataclass(d) else d for d in data]
    return json.dumps(data, indent=2, default=_default)


def output_json(data, ctx: typer.Context) -> bool:
    """Output data as JSON if requested. Returns True if output, False otherwise."""
    if (ctx.obj or {}).get("json_output"):
        typer.echo(to_json(data))
        return True
    return False


def should_output(ctx: typer.Context) -> bool:
    """Check if output should be printed (not quiet mode)."""
    return not (ctx.obj or {}).get("quiet_output")


def echo_if_output(msg: str, ctx: typer.Context) -> None:
    """Echo message only if not in quiet mode."""
    if should_output(ctx):
        typer.echo(msg)


def format_local_time(timestamp: str | None) -> str:
    """Format ISO timestamp as readable local time."""
    if not timestamp:
        return "-"
    try:
        dt = datetime.fromisoformat(timestamp)
        return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, TypeError):
        return timestamp
