import typer

from hive.core import mail, registry, reservations, sessions, tasks
from hive.lib import config, output
from hive.lib.errors import error_feedback

app = typer.Typer(invoke_without_command=True, no_args_is_help=False, add_completion=False)


@app.callback(invoke_without_command=True)
def common_options_callback(
    ctx: typer.Context,
    identity: str = typer.Option(
        None, "--as", help="Agent identity to act as (defaults to AGENT_NAME)."
    ),
    project: str = typer.Option(
        None, "--project", "-p", help="Project key (defaults to PROJECT_KEY or the cwd)."
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output in JSON format."),
    quiet_output: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
):
    """Multi-agent coordination

    File reservations, threaded mail, session states and next-task picks
    for coding agents sharing one codebase."""
    config.configure_logging(log_level)
    output.set_flags(ctx, json_output, quiet_output)

    ctx.obj["identity"] = identity
    ctx.obj["project"] = project

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command("init")
@error_feedback
def init(ctx: typer.Context):
    """Write ~/.hive/config.yaml from the packaged defaults if missing."""
    path = config.init_config()
    if output.output_json({"config": str(path)}, ctx):
        return
    output.echo_if_output(f"Config: {path}", ctx)


# component commands mount flat: `hive reserve`, not `hive reservations reserve`
for component in (registry, reservations, mail, sessions, tasks):
    app.registered_commands.extend(component.app.registered_commands)


def main() -> None:
    """Entry point for hive command."""
    try:
        app()
    except SystemExit:
        raise
    except BaseException as e:
        raise SystemExit(1) from e
