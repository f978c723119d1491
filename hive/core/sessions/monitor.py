"""Poll supervisor and tracker for each agent and classify its session."""

import logging
from datetime import datetime

from hive.core.models import SessionSnapshot, Task, TaskStatus
from hive.core.registry import api as registry
from hive.core.tasks.tracker import TaskTracker
from hive.errors import HiveError
from hive.lib import config
from hive.lib.supervisor import Supervisor

from .detect import detect

logger = logging.getLogger(__name__)


def session_name(agent: str) -> str:
    return f"{config.get('session_prefix')}{agent}"


def _latest(tasks: list[Task], attr: str) -> Task | None:
    if not tasks:
        return None
    return max(tasks, key=lambda t: getattr(t, attr) or "")


def _tasks(tracker: TaskTracker, agent: str) -> tuple[Task | None, Task | None]:
    """Current in-progress task and most recently closed task of an agent."""
    try:
        current = _latest(tracker.list_assigned(agent, TaskStatus.IN_PROGRESS), "updated_at")
        closed = _latest(tracker.list_assigned(agent, TaskStatus.CLOSED), "closed_at")
    except HiveError as e:
        logger.warning(f"Tracker lookup for {agent} failed: {e}")
        return None, None
    return current, closed


def snapshot(
    agent: str,
    supervisor: Supervisor,
    tracker: TaskTracker,
    now: datetime | None = None,
) -> SessionSnapshot:
    session = session_name(agent)
    output = supervisor.get_recent_output(session, int(config.get("output_bytes")))
    task, last_closed = _tasks(tracker, agent)
    state = detect(output, task, last_closed, now=now)
    return SessionSnapshot(
        agent_name=agent,
        session=session,
        state=state,
        task=task,
        last_closed=last_closed,
        output_chars=len(output),
    )


def snapshot_all(
    supervisor: Supervisor,
    tracker: TaskTracker,
    project: str | None = None,
    now: datetime | None = None,
) -> list[SessionSnapshot]:
    """One snapshot per registered agent that has a live session.

    Covers every project when project is None.
    """
    live = set(supervisor.list_sessions())
    return [
        snapshot(agent.name, supervisor, tracker, now=now)
        for agent in registry.list_agents(project)
        if session_name(agent.name) in live
    ]
