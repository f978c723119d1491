"""Session CLI: status."""

from typing import Annotated

import typer

from hive.core.models import SessionSnapshot
from hive.core.tasks.tracker import BeadsTracker
from hive.lib import config, identity, output
from hive.lib.errors import error_feedback
from hive.lib.supervisor import TmuxSupervisor

from . import monitor

app = typer.Typer(add_completion=False)


def _line(s: SessionSnapshot) -> str:
    task = f"  {s.task.id} {s.task.title}" if s.task else ""
    return f"{s.agent_name:<20} {s.state.value:<17}{task}"


@app.command("status")
@error_feedback
def status(
    ctx: typer.Context,
    agent: Annotated[
        str | None, typer.Argument(help="Agent name, all live sessions when omitted")
    ] = None,
    all_projects: Annotated[
        bool, typer.Option("--all-projects", help="Sessions of every project")
    ] = False,
):
    """Infer what each agent session is doing from its terminal output."""
    prefix = config.get("session_prefix")
    supervisor = TmuxSupervisor(prefix=prefix)
    tracker = BeadsTracker(command=config.get("tracker_command"))
    if agent:
        snapshots = [monitor.snapshot(agent, supervisor, tracker)]
    else:
        snapshots = monitor.snapshot_all(
            supervisor, tracker, project=identity.scope(ctx, all_projects)
        )
    if output.output_json(snapshots, ctx):
        return
    if not snapshots:
        output.echo_if_output("No live sessions", ctx)
        return
    for s in snapshots:
        typer.echo(_line(s))
