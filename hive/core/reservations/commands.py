"""Reservation CLI: reserve, release, renew, reservations."""

from typing import Annotated

import typer

from hive.core.models import FileReservation
from hive.lib import identity, output
from hive.lib.errors import error_feedback

from . import api

app = typer.Typer(add_completion=False)


def _line(r: FileReservation) -> str:
    mode = "exclusive" if r.exclusive else "shared"
    reason = f"  {r.reason}" if r.reason else ""
    expires = output.format_local_time(r.expires_ts)
    return f"{r.path_pattern:<32} {r.agent_name:<20} {mode:<9} until {expires}{reason}"


@app.command("reserve")
@error_feedback
def reserve(
    ctx: typer.Context,
    patterns: Annotated[list[str], typer.Argument(help="Path patterns, e.g. 'src/auth/**'")],
    ttl: Annotated[int | None, typer.Option("--ttl", help="Seconds until expiry")] = None,
    shared: Annotated[bool, typer.Option("--shared", help="Allow other shared holders")] = False,
    reason: Annotated[str, typer.Option("--reason", "-r", help="Why, usually a task id")] = "",
):
    """Reserve path patterns for the calling agent (all or nothing)."""
    granted = api.reserve(
        identity.agent(ctx),
        patterns,
        ttl_seconds=ttl,
        exclusive=not shared,
        reason=reason,
        project=identity.project(ctx),
    )
    if output.output_json(granted, ctx):
        return
    for r in granted:
        output.echo_if_output(f"✓ Reserved {_line(r)}", ctx)


@app.command("release")
@error_feedback
def release(
    ctx: typer.Context,
    patterns: Annotated[list[str] | None, typer.Argument(help="Patterns to release")] = None,
    all_: Annotated[bool, typer.Option("--all", help="Release every reservation held")] = False,
):
    """Release reservations held by the calling agent."""
    count = api.release(
        identity.agent(ctx), patterns=patterns, all=all_, project=identity.project(ctx)
    )
    if output.output_json({"released": count}, ctx):
        return
    output.echo_if_output(f"Released {count} reservation(s)", ctx)


@app.command("renew")
@error_feedback
def renew(
    ctx: typer.Context,
    patterns: Annotated[list[str] | None, typer.Argument(help="Only these patterns")] = None,
    extend: Annotated[int, typer.Option("--extend", "-e", help="Seconds to add")] = 3600,
):
    """Extend the calling agent's active reservations."""
    renewed = api.renew(
        identity.agent(ctx), extend, patterns=patterns, project=identity.project(ctx)
    )
    if output.output_json(renewed, ctx):
        return
    if not renewed:
        output.echo_if_output("Nothing to renew", ctx)
    for r in renewed:
        output.echo_if_output(f"Renewed {_line(r)}", ctx)


@app.command("reservations")
@error_feedback
def reservations(
    ctx: typer.Context,
    agent: Annotated[str | None, typer.Option("--agent", "-a", help="Only this holder")] = None,
    check: Annotated[
        list[str] | None, typer.Option("--check", "-c", help="Probe paths for blockers")
    ] = None,
    all_projects: Annotated[
        bool, typer.Option("--all-projects", help="List holds across every project")
    ] = False,
):
    """List active reservations, or probe paths with --check."""
    if check:
        conflicts = api.check(
            check, project=identity.project(ctx), exclude_agent=(ctx.obj or {}).get("identity")
        )
        if output.output_json(conflicts, ctx):
            return
        if not conflicts:
            output.echo_if_output("No blocking reservations", ctx)
        for c in conflicts:
            typer.echo(c.describe())
        return

    active = api.list_active(project=identity.scope(ctx, all_projects), agent=agent)
    if output.output_json(active, ctx):
        return
    if not active:
        output.echo_if_output("No active reservations", ctx)
        return
    for r in active:
        typer.echo(_line(r))
