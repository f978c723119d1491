"""Messages: send, reply, fetch single messages and threads."""

import logging
import sqlite3
from collections.abc import Iterable
from datetime import datetime

from hive.core.models import Importance, Message, Recipient, RecipientKind, ThreadSummary
from hive.core.registry import api as registry
from hive.core.registry.api import projects
from hive.errors import InvalidInputError, NotFoundError, NotRecipientError
from hive.lib import clock, store
from hive.lib.store import from_row

logger = logging.getLogger(__name__)

REPLY_PREFIX = "Re: "

SELECT_MESSAGES = (
    "SELECT m.id, m.project_id, m.sender_id, m.thread_id, m.subject, m.body, m.importance, "
    "m.ack_required, m.created_ts, m.expires_ts, s.name AS sender_name "
    "FROM messages m JOIN agents s ON s.id = m.sender_id"
)


def row_to_message(row: store.Row) -> Message:
    message = from_row(row, Message)
    message.ack_required = bool(message.ack_required)
    message.importance = Importance(message.importance)
    return message


def attach_recipients(conn: sqlite3.Connection, messages: list[Message]) -> list[Message]:
    if not messages:
        return messages
    by_id: dict[int, list[Message]] = {}
    for m in messages:
        by_id.setdefault(m.id, []).append(m)
    placeholders = ", ".join("?" * len(by_id))
    rows = conn.execute(
        "SELECT mr.message_id, a.name AS agent_name, mr.kind, mr.read_ts, mr.ack_ts "
        "FROM message_recipients mr JOIN agents a ON a.id = mr.agent_id "
        f"WHERE mr.message_id IN ({placeholders}) ORDER BY mr.kind DESC, a.name",
        list(by_id),
    ).fetchall()
    for row in rows:
        for message in by_id[row["message_id"]]:
            message.recipients.append(
                Recipient(
                    agent_name=row["agent_name"],
                    kind=RecipientKind(row["kind"]),
                    read_ts=row["read_ts"],
                    ack_ts=row["ack_ts"],
                )
            )
    return messages


def _fetch(conn: sqlite3.Connection, message_id: int) -> Message:
    row = conn.execute(f"{SELECT_MESSAGES} WHERE m.id = ?", (message_id,)).fetchone()
    if not row:
        raise NotFoundError(f"Message {message_id} not found")
    return attach_recipients(conn, [row_to_message(row)])[0]


def _names(value: str | Iterable[str] | None) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [n.strip() for n in value if n and n.strip()]


def _expiry(expires_at: str | datetime | None, ttl_seconds: int | None) -> str | None:
    if expires_at is not None and ttl_seconds is not None:
        raise InvalidInputError("Give expires_at or ttl_seconds, not both")
    if ttl_seconds is not None:
        if int(ttl_seconds) <= 0:
            raise InvalidInputError("ttl_seconds must be positive")
        return clock.after(int(ttl_seconds))
    if isinstance(expires_at, datetime):
        return clock.iso(expires_at)
    if expires_at:
        parsed = clock.parse(expires_at)
        if parsed is None:
            raise InvalidInputError(f"Unparseable expiry: {expires_at}")
        return clock.iso(parsed)
    return None


def _importance(value: Importance | str) -> Importance:
    try:
        return Importance(value)
    except ValueError as e:
        choices = ", ".join(i.value for i in Importance)
        raise InvalidInputError(f"Importance must be one of: {choices}") from e


def _insert(
    conn: sqlite3.Connection,
    sender_name: str,
    to: list[str],
    cc: list[str],
    subject: str,
    body: str,
    thread_id: str | None,
    importance: Importance,
    ack_required: bool,
    expires_ts: str | None,
    project: str | None,
) -> Message:
    sender = registry.resolve(conn, sender_name, project)
    project_key = projects.require(conn, project).human_key

    # to wins over cc for a name listed in both
    addressees: dict[str, RecipientKind] = {}
    for name in to:
        addressees.setdefault(name, RecipientKind.TO)
    for name in cc:
        addressees.setdefault(name, RecipientKind.CC)
    resolved = [
        (registry.resolve(conn, name, project_key), kind) for name, kind in addressees.items()
    ]

    now = clock.now_iso()
    cursor = conn.execute(
        "INSERT INTO messages (project_id, sender_id, thread_id, subject, body, importance, "
        "ack_required, created_ts, expires_ts) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            sender.project_id,
            sender.id,
            thread_id,
            subject,
            body,
            importance.value,
            int(ack_required),
            now,
            expires_ts,
        ),
    )
    message_id = cursor.lastrowid
    conn.executemany(
        "INSERT INTO message_recipients (message_id, agent_id, kind) VALUES (?, ?, ?)",
        [(message_id, agent.id, kind.value) for agent, kind in resolved],
    )
    registry.touch_in(conn, sender.id)

    return Message(
        id=message_id,
        project_id=sender.project_id,
        sender_id=sender.id,
        subject=subject,
        body=body,
        thread_id=thread_id,
        importance=importance,
        ack_required=ack_required,
        created_ts=now,
        expires_ts=expires_ts,
        sender_name=sender.name,
        recipients=[Recipient(agent_name=agent.name, kind=kind) for agent, kind in resolved],
    )


def send(
    sender: str,
    to: str | Iterable[str],
    subject: str,
    body: str,
    cc: str | Iterable[str] = (),
    thread_id: str | None = None,
    importance: Importance | str = Importance.NORMAL,
    ack_required: bool = False,
    expires_at: str | datetime | None = None,
    ttl_seconds: int | None = None,
    project: str | None = None,
) -> Message:
    """Send a message to one or more agents of the sender's project.

    Every addressee is resolved before anything is written; an unknown name
    raises NotFoundError and leaves the store untouched.
    """
    to_names, cc_names = _names(to), _names(cc)
    if not to_names:
        raise InvalidInputError("At least one recipient is required")
    if not subject or not subject.strip():
        raise InvalidInputError("Subject cannot be empty")
    if not body or not body.strip():
        raise InvalidInputError("Body cannot be empty")
    level = _importance(importance)
    expires_ts = _expiry(expires_at, ttl_seconds)

    message = store.atomic(
        lambda conn: _insert(
            conn,
            sender,
            to_names,
            cc_names,
            subject,
            body,
            thread_id or None,
            level,
            ack_required,
            expires_ts,
            project,
        )
    )
    recipients = ", ".join(r.agent_name for r in message.recipients)
    logger.info(f"Message {message.id} from {sender} to {recipients}: {subject}")
    return message


def reply(
    message_id: int,
    agent: str,
    body: str,
    importance: Importance | str | None = None,
    ack_required: bool = False,
) -> Message:
    """Reply in the original's thread, to its sender, cc its other recipients.

    The replier must be the original's sender or one of its recipients.
    """
    if not body or not body.strip():
        raise InvalidInputError("Body cannot be empty")

    def _reply(conn: sqlite3.Connection) -> Message:
        original = _fetch(conn, message_id)
        project_key = projects.get_by_id(conn, original.project_id).human_key
        participants = {r.agent_name for r in original.recipients}
        if agent != original.sender_name and agent not in participants:
            raise NotRecipientError(f"{agent} is not part of message {message_id}")

        subject = original.subject
        if not subject.lower().startswith(REPLY_PREFIX.lower()):
            subject = f"{REPLY_PREFIX}{subject}"
        to = [original.sender_name] if original.sender_name != agent else []
        cc = [r.agent_name for r in original.recipients if r.agent_name != agent]
        if not to:
            # replying to one's own message goes back to its recipients
            to, cc = cc, []
        if not to:
            raise InvalidInputError(f"Message {message_id} has nobody else to reply to")

        return _insert(
            conn,
            agent,
            to,
            cc,
            subject,
            body,
            original.thread_id or str(original.id),
            _importance(importance or original.importance),
            ack_required,
            None,
            project_key,
        )

    message = store.atomic(_reply)
    logger.info(f"Reply {message.id} from {agent} in thread {message.thread_id}")
    return message


def get_message(message_id: int) -> Message:
    with store.ensure() as conn:
        return _fetch(conn, message_id)


def thread(thread_id: str, project: str | None = None) -> list[Message]:
    """Every message of a thread, oldest first, with recipients.

    The thread's root message is included when the thread id is its own id.
    """
    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return []
        query = f"{SELECT_MESSAGES} WHERE m.project_id = ? AND (m.thread_id = ?"
        params: list = [proj.id, thread_id]
        if thread_id.isdigit():
            query += " OR (m.id = ? AND m.thread_id IS NULL)"
            params.append(int(thread_id))
        query += ") ORDER BY m.created_ts, m.id"
        messages = [row_to_message(row) for row in conn.execute(query, params).fetchall()]
        return attach_recipients(conn, messages)


def threads(project: str | None = None, agent: str | None = None) -> list[ThreadSummary]:
    """Thread summaries, most recently active first.

    A message whose id was adopted as a thread id by a reply counts as the
    thread's root. With an agent, only threads the agent took part in.
    """
    thread_key = "COALESCE(m.thread_id, CAST(m.id AS TEXT))"
    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return []
        query = (
            f"{SELECT_MESSAGES} WHERE m.project_id = ? AND (m.thread_id IS NOT NULL "
            "OR CAST(m.id AS TEXT) IN (SELECT thread_id FROM messages WHERE thread_id IS NOT NULL))"
        )
        params: list = [proj.id]
        if agent:
            member = registry.resolve(conn, agent, proj.human_key)
            query += (
                f" AND {thread_key} IN (SELECT COALESCE(m.thread_id, CAST(m.id AS TEXT)) "
                "FROM messages m LEFT JOIN message_recipients mr ON mr.message_id = m.id "
                "WHERE m.sender_id = ? OR mr.agent_id = ?)"
            )
            params.extend([member.id, member.id])
        query += " ORDER BY m.created_ts, m.id"
        messages = attach_recipients(
            conn, [row_to_message(row) for row in conn.execute(query, params).fetchall()]
        )

    summaries: dict[str, ThreadSummary] = {}
    for m in messages:
        key = m.thread_id or str(m.id)
        summary = summaries.get(key)
        if summary is None:
            summary = summaries[key] = ThreadSummary(
                thread_id=key, message_count=0, first_ts=m.created_ts, last_ts=m.created_ts
            )
        summary.message_count += 1
        summary.last_ts = m.created_ts
        for name in [m.sender_name, *(r.agent_name for r in m.recipients)]:
            if name not in summary.participants:
                summary.participants.append(name)
    return sorted(summaries.values(), key=lambda s: s.last_ts, reverse=True)
