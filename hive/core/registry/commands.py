"""Registry CLI: register, agents, whoami, generate-name."""

from typing import Annotated

import typer

from hive.lib import identity, output
from hive.lib.errors import error_feedback

from . import api

app = typer.Typer(add_completion=False)


@app.command("register")
@error_feedback
def register(
    ctx: typer.Context,
    program: Annotated[str, typer.Option("--program", help="Agent program, e.g. claude-code")],
    model: Annotated[str, typer.Option("--model", help="Model identifier")],
    name: Annotated[
        str | None, typer.Option("--name", "-n", help="Agent name (generated when omitted)")
    ] = None,
    task: Annotated[str, typer.Option("--task", help="What the agent is working on")] = "",
):
    """Register an agent in the current project (idempotent by name)."""
    agent = api.register(
        name=name or (ctx.obj or {}).get("identity"),
        program=program,
        model=model,
        task_description=task,
        project=identity.project(ctx),
    )
    if output.output_json(agent, ctx):
        return
    output.echo_if_output(f"Registered {agent.name} ({agent.program}/{agent.model})", ctx)
    if not output.should_output(ctx):
        typer.echo(agent.name)


@app.command("agents")
@error_feedback
def agents(
    ctx: typer.Context,
    active_within: Annotated[
        int | None,
        typer.Option("--active-within", help="Only agents active in the last N seconds"),
    ] = None,
    all_projects: Annotated[
        bool, typer.Option("--all-projects", help="List agents of every project")
    ] = False,
):
    """List agents in the current project, or every project with --all-projects."""
    rows = api.list_agents(
        project=identity.scope(ctx, all_projects), active_within=active_within
    )
    if output.output_json(rows, ctx):
        return
    if not rows:
        output.echo_if_output("No agents", ctx)
        return
    for agent in rows:
        last = output.format_local_time(agent.last_active_ts)
        task = f"  {agent.task_description}" if agent.task_description else ""
        typer.echo(f"{agent.name:<24} {agent.program}/{agent.model:<20} {last}{task}")


@app.command("whoami")
@error_feedback
def whoami(ctx: typer.Context):
    """Show the calling agent with unread, pending-ack and reservation counts."""
    summary = api.whoami(identity.agent(ctx), project=identity.project(ctx))
    if output.output_json(summary, ctx):
        return
    agent = summary.agent
    typer.echo(f"{agent.name} ({agent.program}/{agent.model}) in {summary.project}")
    typer.echo(
        f"  unread: {summary.unread}  pending acks: {summary.pending_acks}  "
        f"reservations: {summary.reservations}"
    )


@app.command("generate-name")
@error_feedback
def generate_name(ctx: typer.Context):
    """Print a fresh adjective+noun agent name."""
    name = api.generate_name()
    if output.output_json({"name": name}, ctx):
        return
    typer.echo(name)
