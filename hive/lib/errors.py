"""CLI error handling: wrap commands to report errors instead of silent failures."""

import logging
from functools import wraps

import typer

from hive.errors import (
    ConflictError,
    HiveError,
    InvalidInputError,
    NotFoundError,
    NotRecipientError,
    StoreBusyError,
)

from . import output

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_CONFLICT = 2
EXIT_NOT_FOUND = 3


def _payload(e: Exception) -> dict:
    payload = {"status": "error", "error": type(e).__name__, "message": str(e)}
    if isinstance(e, ConflictError):
        payload["conflicts"] = [
            {
                "pattern": c.pattern,
                "held_by": c.held_by,
                "held_pattern": c.held_pattern,
                "exclusive": c.exclusive,
                "expires_ts": c.expires_ts,
            }
            for c in e.conflicts
        ]
    return payload


def report(e: Exception, ctx: typer.Context | None) -> int:
    """Print the error (JSON or text) and return the exit code for it."""
    if ctx is not None and output.output_json(_payload(e), ctx):
        pass
    elif isinstance(e, ConflictError):
        typer.echo(f"✗ Conflict: {e}", err=True)
        for c in e.conflicts:
            typer.echo(f"  - {c.describe()}", err=True)
        typer.echo("Message the holder, wait for expiry, or pick another pattern.", err=True)
    elif isinstance(e, InvalidInputError):
        typer.echo(f"✗ Invalid input: {e}", err=True)
    elif isinstance(e, NotRecipientError):
        typer.echo(f"✗ Not a recipient: {e}", err=True)
    elif isinstance(e, StoreBusyError):
        typer.echo(f"✗ Store busy: {e}", err=True)
    else:
        typer.echo(f"✗ Error: {e}", err=True)

    if isinstance(e, ConflictError):
        return EXIT_CONFLICT
    if isinstance(e, NotFoundError):
        return EXIT_NOT_FOUND
    return EXIT_ERROR


def error_feedback(f):
    """Wrap command to catch exceptions and report them before exiting.

    Domain errors map to exit codes (conflict 2, not found 3, else 1);
    unexpected errors are logged with traceback and exit 1.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        ctx = kwargs.get("ctx")
        try:
            return f(*args, **kwargs)
        except (SystemExit, typer.Exit):
            raise
        except (HiveError, ValueError) as e:
            raise typer.Exit(report(e, ctx)) from e
        except OSError as e:
            typer.echo(f"✗ File error: {e}", err=True)
            raise typer.Exit(EXIT_ERROR) from e
        except Exception as e:
            logger.exception("Unhandled error")
            raise typer.Exit(report(e, ctx)) from e

    return wrapper
