"""Recipient-side state: inbox, read stamps, acknowledgements."""

import logging
import sqlite3

from hive.core.models import InboxItem, Message, PendingAck, RecipientKind
from hive.core.registry import api as registry
from hive.core.registry.api import projects
from hive.errors import NotFoundError, NotRecipientError
from hive.lib import clock, store

from .messages import SELECT_MESSAGES, attach_recipients, row_to_message

logger = logging.getLogger(__name__)

UNEXPIRED = "(m.expires_ts IS NULL OR m.expires_ts > ?)"


def inbox(
    agent: str,
    unread_only: bool = False,
    thread_id: str | None = None,
    mark_read: bool = False,
    limit: int | None = None,
    project: str | None = None,
) -> list[InboxItem]:
    """Messages addressed to the agent, newest first, expired ones hidden.

    With mark_read, returned messages get a read stamp where they had none;
    the returned items still show their state from before the read.
    """

    def _inbox(conn: sqlite3.Connection) -> list[InboxItem]:
        recipient = registry.resolve(conn, agent, project)
        now = clock.now_iso()
        query = (
            "SELECT m.id, m.project_id, m.sender_id, m.thread_id, m.subject, m.body, "
            "m.importance, m.ack_required, m.created_ts, m.expires_ts, s.name AS sender_name, "
            "mr.kind, mr.read_ts, mr.ack_ts "
            "FROM message_recipients mr "
            "JOIN messages m ON m.id = mr.message_id "
            "JOIN agents s ON s.id = m.sender_id "
            f"WHERE mr.agent_id = ? AND {UNEXPIRED}"
        )
        params: list = [recipient.id, now]
        if unread_only:
            query += " AND mr.read_ts IS NULL"
        if thread_id:
            query += " AND (m.thread_id = ? OR CAST(m.id AS TEXT) = ?)"
            params.extend([thread_id, thread_id])
        query += " ORDER BY m.created_ts DESC, m.id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(int(limit))

        rows = conn.execute(query, params).fetchall()
        messages = attach_recipients(conn, [row_to_message(row) for row in rows])
        items = [
            InboxItem(
                message=message,
                kind=RecipientKind(row["kind"]),
                read_ts=row["read_ts"],
                ack_ts=row["ack_ts"],
            )
            for message, row in zip(messages, rows, strict=True)
        ]

        if mark_read and items:
            ids = [item.message.id for item in items if item.read_ts is None]
            if ids:
                conn.execute(
                    "UPDATE message_recipients SET read_ts = ? WHERE agent_id = ? AND read_ts IS NULL "
                    f"AND message_id IN ({', '.join('?' * len(ids))})",
                    [now, recipient.id, *ids],
                )
        registry.touch_in(conn, recipient.id)
        return items

    return store.atomic(_inbox)


def _recipient_row(conn: sqlite3.Connection, message_id: int, agent: str) -> tuple[int, store.Row]:
    message = conn.execute(
        "SELECT m.id, p.human_key FROM messages m JOIN projects p ON p.id = m.project_id "
        "WHERE m.id = ?",
        (message_id,),
    ).fetchone()
    if not message:
        raise NotFoundError(f"Message {message_id} not found")
    recipient = registry.resolve(conn, agent, message["human_key"])
    row = conn.execute(
        "SELECT read_ts, ack_ts FROM message_recipients WHERE message_id = ? AND agent_id = ?",
        (message_id, recipient.id),
    ).fetchone()
    if not row:
        raise NotRecipientError(f"Message {message_id} is not addressed to {agent}")
    return recipient.id, row


def mark_read(message_id: int, agent: str) -> None:
    """Stamp read_ts for one recipient; an existing stamp is kept."""

    def _mark(conn: sqlite3.Connection) -> None:
        agent_id, _ = _recipient_row(conn, message_id, agent)
        conn.execute(
            "UPDATE message_recipients SET read_ts = ? "
            "WHERE message_id = ? AND agent_id = ? AND read_ts IS NULL",
            (clock.now_iso(), message_id, agent_id),
        )
        registry.touch_in(conn, agent_id)

    store.atomic(_mark)


def ack(message_id: int, agent: str) -> Message:
    """Acknowledge a message; also marks it read. Repeating is a no-op."""

    def _ack(conn: sqlite3.Connection) -> Message:
        agent_id, row = _recipient_row(conn, message_id, agent)
        now = clock.now_iso()
        if row["ack_ts"] is None:
            conn.execute(
                "UPDATE message_recipients SET ack_ts = ?, read_ts = COALESCE(read_ts, ?) "
                "WHERE message_id = ? AND agent_id = ?",
                (now, now, message_id, agent_id),
            )
            logger.info(f"{agent} acknowledged message {message_id}")
        registry.touch_in(conn, agent_id)
        row = conn.execute(f"{SELECT_MESSAGES} WHERE m.id = ?", (message_id,)).fetchone()
        return attach_recipients(conn, [row_to_message(row)])[0]

    return store.atomic(_ack)


def pending_acks(agent: str | None = None, project: str | None = None) -> list[PendingAck]:
    """One entry per recipient still owing an ack on an unexpired message, oldest first."""
    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return []
        query = (
            "SELECT m.id, m.project_id, m.sender_id, m.thread_id, m.subject, m.body, "
            "m.importance, m.ack_required, m.created_ts, m.expires_ts, s.name AS sender_name, "
            "a.name AS recipient_name "
            "FROM message_recipients mr "
            "JOIN messages m ON m.id = mr.message_id "
            "JOIN agents s ON s.id = m.sender_id "
            "JOIN agents a ON a.id = mr.agent_id "
            f"WHERE m.project_id = ? AND m.ack_required = 1 AND mr.ack_ts IS NULL AND {UNEXPIRED}"
        )
        params: list = [proj.id, clock.now_iso()]
        if agent:
            query += " AND a.name = ?"
            params.append(agent)
        query += " ORDER BY m.created_ts, m.id, a.name"
        rows = conn.execute(query, params).fetchall()
        messages = attach_recipients(conn, [row_to_message(row) for row in rows])
        return [
            PendingAck(agent_name=row["recipient_name"], message=message)
            for message, row in zip(messages, rows, strict=True)
        ]
