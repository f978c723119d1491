"""Mail CLI: send, inbox, ack, reply, search, thread, threads, pending-acks."""

import sys
from typing import Annotated

import typer

from hive.core.models import Importance, InboxItem, Message
from hive.lib import identity, output
from hive.lib.errors import error_feedback

from . import api

app = typer.Typer(add_completion=False)

IMPORTANCE_MARKS = {Importance.HIGH: "!", Importance.URGENT: "!!"}


def _body(value: str | None) -> str:
    """`-` or no body reads stdin, so long markdown can be piped in."""
    if value is None or value == "-":
        if sys.stdin is None or sys.stdin.isatty():
            return ""
        return sys.stdin.read()
    return value


def _header(message: Message) -> str:
    mark = IMPORTANCE_MARKS.get(message.importance, "")
    thread = f" [{message.thread_id}]" if message.thread_id else ""
    ack = " (ack required)" if message.ack_required else ""
    when = output.format_local_time(message.created_ts)
    return f"#{message.id}{mark} {when} {message.sender_name}: {message.subject}{thread}{ack}"


def _inbox_line(item: InboxItem) -> str:
    unread = "*" if item.read_ts is None else " "
    acked = " ✓" if item.ack_ts else ""
    return f"{unread} {_header(item.message)}{acked}"


def _print_message(message: Message) -> None:
    typer.echo(_header(message))
    recipients = ", ".join(f"{r.agent_name}({r.kind.value})" for r in message.recipients)
    typer.echo(f"  to: {recipients}")
    typer.echo("")
    typer.echo(message.body)
    typer.echo("")


@app.command("send")
@error_feedback
def send(
    ctx: typer.Context,
    to: Annotated[str, typer.Argument(help="Recipients, comma separated")],
    subject: Annotated[str, typer.Option("--subject", "-s", help="Subject line")],
    body: Annotated[
        str | None, typer.Option("--body", "-b", help="Markdown body, - for stdin")
    ] = None,
    cc: Annotated[str, typer.Option("--cc", help="Cc recipients, comma separated")] = "",
    thread: Annotated[str | None, typer.Option("--thread", "-t", help="Thread id")] = None,
    importance: Annotated[
        Importance, typer.Option("--importance", "-i", help="normal, high or urgent")
    ] = Importance.NORMAL,
    ack: Annotated[bool, typer.Option("--ack", help="Require acknowledgement")] = False,
    ttl: Annotated[int | None, typer.Option("--ttl", help="Hide after N seconds")] = None,
):
    """Send a message from the calling agent."""
    message = api.send(
        identity.agent(ctx),
        to,
        subject,
        _body(body),
        cc=cc,
        thread_id=thread,
        importance=importance,
        ack_required=ack,
        ttl_seconds=ttl,
        project=identity.project(ctx),
    )
    if output.output_json(message, ctx):
        return
    output.echo_if_output(f"✓ Sent #{message.id} to {to}", ctx)


@app.command("inbox")
@error_feedback
def inbox(
    ctx: typer.Context,
    unread: Annotated[bool, typer.Option("--unread", "-u", help="Only unread messages")] = False,
    thread: Annotated[str | None, typer.Option("--thread", "-t", help="Only this thread")] = None,
    mark_read: Annotated[
        bool, typer.Option("--mark-read", "-m", help="Mark listed messages read")
    ] = False,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="At most N messages")] = None,
    full: Annotated[bool, typer.Option("--full", "-f", help="Show bodies")] = False,
):
    """Show messages addressed to the calling agent, newest first."""
    items = api.inbox(
        identity.agent(ctx),
        unread_only=unread,
        thread_id=thread,
        mark_read=mark_read,
        limit=limit,
        project=identity.project(ctx),
    )
    if output.output_json(items, ctx):
        return
    if not items:
        output.echo_if_output("Inbox empty", ctx)
        return
    for item in items:
        if full:
            _print_message(item.message)
        else:
            typer.echo(_inbox_line(item))


@app.command("ack")
@error_feedback
def ack(
    ctx: typer.Context,
    message_ids: Annotated[list[int], typer.Argument(help="Message ids to acknowledge")],
):
    """Acknowledge messages (also marks them read)."""
    agent = identity.agent(ctx)
    acked = [api.ack(message_id, agent) for message_id in message_ids]
    if output.output_json(acked, ctx):
        return
    for message in acked:
        output.echo_if_output(f"✓ Acknowledged #{message.id}: {message.subject}", ctx)


@app.command("read")
@error_feedback
def read(
    ctx: typer.Context,
    message_id: Annotated[int, typer.Argument(help="Message id")],
):
    """Show one message and mark it read."""
    agent = identity.agent(ctx)
    message = api.get_message(message_id)
    api.mark_read(message_id, agent)
    if output.output_json(message, ctx):
        return
    _print_message(message)


@app.command("reply")
@error_feedback
def reply(
    ctx: typer.Context,
    message_id: Annotated[int, typer.Argument(help="Message id to reply to")],
    body: Annotated[
        str | None, typer.Option("--body", "-b", help="Markdown body, - for stdin")
    ] = None,
    importance: Annotated[
        Importance | None, typer.Option("--importance", "-i", help="Defaults to the original's")
    ] = None,
    ack: Annotated[bool, typer.Option("--ack", help="Require acknowledgement")] = False,
):
    """Reply to a message in its thread."""
    message = api.reply(
        message_id, identity.agent(ctx), _body(body), importance=importance, ack_required=ack
    )
    if output.output_json(message, ctx):
        return
    output.echo_if_output(f"✓ Replied #{message.id} in thread {message.thread_id}", ctx)


@app.command("search")
@error_feedback
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="FTS5 query, e.g. 'auth AND token'")],
    thread: Annotated[str | None, typer.Option("--thread", "-t", help="Only this thread")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="At most N results")] = 50,
):
    """Full-text search over subjects and bodies."""
    results = api.search(query, thread_id=thread, project=identity.project(ctx), limit=limit)
    if output.output_json(results, ctx):
        return
    if not results:
        output.echo_if_output("No matches", ctx)
        return
    for message in results:
        typer.echo(_header(message))


@app.command("thread")
@error_feedback
def thread(
    ctx: typer.Context,
    thread_id: Annotated[str, typer.Argument(help="Thread id")],
):
    """Show a whole conversation, oldest first."""
    messages = api.thread(thread_id, project=identity.project(ctx))
    if output.output_json(messages, ctx):
        return
    if not messages:
        output.echo_if_output(f"No messages in thread {thread_id}", ctx)
        return
    for message in messages:
        _print_message(message)


@app.command("threads")
@error_feedback
def threads(
    ctx: typer.Context,
    agent: Annotated[
        str | None, typer.Option("--agent", "-a", help="Only threads with this agent")
    ] = None,
):
    """List threads, most recently active first."""
    summaries = api.threads(project=identity.project(ctx), agent=agent)
    if output.output_json(summaries, ctx):
        return
    if not summaries:
        output.echo_if_output("No threads", ctx)
        return
    for s in summaries:
        last = output.format_local_time(s.last_ts)
        who = ", ".join(s.participants)
        typer.echo(f"{s.thread_id:<24} {s.message_count:>3} msg  {last}  {who}")


@app.command("pending-acks")
@error_feedback
def pending_acks(
    ctx: typer.Context,
    agent: Annotated[str | None, typer.Option("--agent", "-a", help="Only this recipient")] = None,
):
    """List acknowledgements still owed."""
    pending = api.pending_acks(agent=agent, project=identity.project(ctx))
    if output.output_json(pending, ctx):
        return
    if not pending:
        output.echo_if_output("No pending acks", ctx)
        return
    for p in pending:
        typer.echo(f"{p.agent_name:<20} {_header(p.message)}")
