"""Agent operations: register (upsert), touch, lookup, listing."""

import logging
import sqlite3
from datetime import timedelta

from hive.core.models import Agent, AgentSummary
from hive.errors import InvalidInputError, NotFoundError
from hive.lib import clock, names, store
from hive.lib.store import from_row

from . import projects

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 50

_COLUMNS = "id, project_id, name, program, model, task_description, inception_ts, last_active_ts"


def _row_to_agent(row: store.Row) -> Agent:
    return from_row(row, Agent)


def _find(conn: sqlite3.Connection, project_id: int, name: str) -> Agent | None:
    row = conn.execute(
        f"SELECT {_COLUMNS} FROM agents WHERE project_id = ? AND name = ?",
        (project_id, name),
    ).fetchone()
    return _row_to_agent(row) if row else None


def resolve(conn: sqlite3.Connection, name: str, project: str | None = None) -> Agent:
    """Look up an agent inside an open connection or raise NotFoundError."""
    if not name:
        raise InvalidInputError("Agent name is required")
    proj = projects.require(conn, project)
    agent = _find(conn, proj.id, name)
    if not agent:
        raise NotFoundError(f"Agent '{name}' not registered in {proj.human_key}")
    return agent


def touch_in(conn: sqlite3.Connection, agent_id: int) -> str:
    now = clock.now_iso()
    conn.execute("UPDATE agents SET last_active_ts = ? WHERE id = ?", (now, agent_id))
    return now


def touch(agent_id: int) -> None:
    store.atomic(lambda conn: touch_in(conn, agent_id))


def register(
    name: str | None = None,
    program: str = "",
    model: str = "",
    task_description: str = "",
    project: str | None = None,
) -> Agent:
    """Register an agent, or refresh an existing one with the same name.

    Without a name, a free adjective+noun name is generated inside the same
    transaction so two registrations cannot pick the same one.
    """
    if not program or not program.strip():
        raise InvalidInputError("program is required")
    if not model or not model.strip():
        raise InvalidInputError("model is required")
    if name is not None:
        try:
            names.validate(name)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

    def _register(conn: sqlite3.Connection) -> Agent:
        proj = projects.ensure_in(conn, project)
        now = clock.now_iso()

        agent_name = name
        if agent_name is None:
            for _ in range(MAX_NAME_ATTEMPTS):
                candidate = names.generate()
                if not _find(conn, proj.id, candidate):
                    agent_name = candidate
                    break
            else:
                raise InvalidInputError(
                    f"Could not generate a free agent name after {MAX_NAME_ATTEMPTS} attempts"
                )

        existing = _find(conn, proj.id, agent_name)
        if existing:
            conn.execute(
                "UPDATE agents SET program = ?, model = ?, task_description = ?, last_active_ts = ? "
                "WHERE id = ?",
                (program, model, task_description, now, existing.id),
            )
            logger.info(f"Agent '{agent_name}' re-registered in {proj.slug}")
            return _find(conn, proj.id, agent_name)

        cursor = conn.execute(
            "INSERT INTO agents (project_id, name, program, model, task_description, inception_ts, "
            "last_active_ts) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (proj.id, agent_name, program, model, task_description, now, now),
        )
        logger.info(f"Agent '{agent_name}' registered in {proj.slug}")
        return Agent(
            id=cursor.lastrowid,
            project_id=proj.id,
            name=agent_name,
            program=program,
            model=model,
            task_description=task_description,
            inception_ts=now,
            last_active_ts=now,
        )

    return store.atomic(_register)


def get_agent(name: str, project: str | None = None) -> Agent | None:
    with store.ensure() as conn:
        proj = projects.find(conn, project)
        if not proj:
            return None
        return _find(conn, proj.id, name)


def lookup(name: str, project: str | None = None) -> Agent:
    with store.ensure() as conn:
        return resolve(conn, name, project)


def list_agents(project: str | None = None, active_within: int | None = None) -> list[Agent]:
    """Agents, most recently active first.

    Args:
        project: Project key; every project when None
        active_within: Only agents active in the last N seconds
    """
    where: list[str] = []
    params: list = []
    with store.ensure() as conn:
        if project is not None:
            proj = projects.find(conn, project)
            if not proj:
                return []
            where.append("project_id = ?")
            params.append(proj.id)
        if active_within is not None:
            where.append("last_active_ts >= ?")
            params.append(clock.iso(clock.now() - timedelta(seconds=active_within)))
        query = f"SELECT {_COLUMNS} FROM agents"
        if where:
            query += f" WHERE {' AND '.join(where)}"
        query += " ORDER BY last_active_ts DESC, name"
        return [_row_to_agent(row) for row in conn.execute(query, params).fetchall()]


def whoami(name: str, project: str | None = None) -> AgentSummary:
    """Agent identity plus unread, pending-ack and active-reservation counts."""
    now = clock.now_iso()
    with store.ensure() as conn:
        agent = resolve(conn, name, project)
        proj = projects.require(conn, project)
        unread = conn.execute(
            "SELECT COUNT(*) FROM message_recipients mr JOIN messages m ON m.id = mr.message_id "
            "WHERE mr.agent_id = ? AND mr.read_ts IS NULL "
            "AND (m.expires_ts IS NULL OR m.expires_ts > ?)",
            (agent.id, now),
        ).fetchone()[0]
        pending = conn.execute(
            "SELECT COUNT(*) FROM message_recipients mr JOIN messages m ON m.id = mr.message_id "
            "WHERE mr.agent_id = ? AND m.ack_required = 1 AND mr.ack_ts IS NULL "
            "AND (m.expires_ts IS NULL OR m.expires_ts > ?)",
            (agent.id, now),
        ).fetchone()[0]
        reservations = conn.execute(
            "SELECT COUNT(*) FROM file_reservations "
            "WHERE agent_id = ? AND released_ts IS NULL AND expires_ts > ?",
            (agent.id, now),
        ).fetchone()[0]
    return AgentSummary(
        agent=agent,
        project=proj.human_key,
        unread=unread,
        pending_acks=pending,
        reservations=reservations,
    )


def generate_name() -> str:
    return names.generate()


__all__ = [
    "register",
    "touch",
    "touch_in",
    "resolve",
    "get_agent",
    "lookup",
    "list_agents",
    "whoami",
    "generate_name",
]
