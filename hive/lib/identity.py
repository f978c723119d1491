"""Resolve the calling agent and project for CLI commands."""

import typer

from hive.errors import InvalidInputError

from . import paths


def agent(ctx: typer.Context, override: str | None = None) -> str:
    """Agent name from the command option, the global --as flag, or AGENT_NAME."""
    obj = ctx.obj or {}
    name = override or obj.get("identity") or paths.default_agent()
    if not name:
        raise InvalidInputError("--as required (or set AGENT_NAME)")
    return name


def project(ctx: typer.Context) -> str | None:
    return (ctx.obj or {}).get("project")


def scope(ctx: typer.Context, all_projects: bool = False) -> str | None:
    """Project filter for listings: None spans every project."""
    if all_projects:
        return None
    return project(ctx) or paths.project_key()
