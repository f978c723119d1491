"""Task CLI: next."""

from typing import Annotated

import typer

from hive.lib import config, output
from hive.lib.errors import error_feedback

from .selector import pick_next
from .tracker import BeadsTracker

app = typer.Typer(add_completion=False)


@app.command("next")
@error_feedback
def next_task(
    ctx: typer.Context,
    completed: Annotated[
        str | None, typer.Option("--completed", "-c", help="Task just finished")
    ] = None,
    project: Annotated[
        str | None, typer.Option("--tracker-project", help="Tracker id prefix, e.g. jat")
    ] = None,
    backlog: Annotated[bool, typer.Option("--backlog", help="Skip the epic lookup")] = False,
):
    """Suggest the next task: remaining epic work first, then the ready backlog."""
    tracker = BeadsTracker(command=config.get("tracker_command"))
    picked = pick_next(
        tracker, completed_task_id=completed, project=project, prefer_epic=not backlog
    )
    if output.output_json(picked, ctx):
        return
    if picked is None:
        output.echo_if_output("Nothing ready", ctx)
        return
    via = f" (epic {picked.epic_id}: {picked.epic_title})" if picked.epic_id else " (backlog)"
    typer.echo(f"{picked.task_id} P{picked.priority} {picked.title}{via}")
