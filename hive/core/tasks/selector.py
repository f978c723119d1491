"""Pick what an agent should work on next: its epic first, then the backlog."""

import logging

from hive.core.models import NextTask, Task, TaskSource, TaskStatus
from hive.errors import HiveError, NotFoundError

from .tracker import TaskTracker

logger = logging.getLogger(__name__)

EPIC = "epic"


def parent_id_from_dotted(task_id: str) -> str | None:
    """`jat-abc.3` -> `jat-abc`; None when the id has no dotted suffix."""
    head, dot, tail = task_id.rpartition(".")
    if not dot or not head or not tail:
        return None
    return head


def find_parent_epic(tracker: TaskTracker, task_id: str) -> Task | None:
    """Resolve the epic a task belongs to.

    Tried in order: the tracker's parent field, the dotted-id convention,
    then open epics of the task's project that list it as a dependency.
    """
    task = tracker.get_task(task_id)

    if task.parent:
        return tracker.get_task(task.parent)

    dotted = parent_id_from_dotted(task_id)
    if dotted:
        try:
            return tracker.get_task(dotted)
        except NotFoundError:
            logger.debug(f"{task_id}: dotted parent {dotted} does not exist")

    for epic in tracker.list_open_by_type(EPIC, project=task.project):
        if any(dep.id == task_id for dep in epic.depends_on):
            return epic
    return None


def _recency(task: Task) -> str:
    return max(task.created_at or "", task.updated_at or "")


def hybrid_order(tasks: list[Task]) -> list[Task]:
    """Priority ascending, then most recently created or updated, then id."""
    by_id = sorted(tasks, key=lambda t: t.id)
    by_recency = sorted(by_id, key=_recency, reverse=True)
    return sorted(by_recency, key=lambda t: t.priority)


def _in_project(task: Task, project: str | None) -> bool:
    return project is None or task.project == project


def _from_epic(
    tracker: TaskTracker, completed_task_id: str, project: str | None
) -> NextTask | None:
    epic = find_parent_epic(tracker, completed_task_id)
    if epic is None:
        logger.debug(f"{completed_task_id}: no parent epic")
        return None

    candidates = [
        child
        for child in tracker.get_dependencies(epic.id)
        if child.id != completed_task_id
        and child.status == TaskStatus.OPEN
        and not child.blocked
        and _in_project(child, project)
    ]
    if not candidates:
        logger.debug(f"Epic {epic.id}: no ready children")
        return None

    pick = min(candidates, key=lambda t: (t.priority, t.id))
    return NextTask(
        task_id=pick.id,
        title=pick.title,
        priority=pick.priority,
        source=TaskSource.EPIC,
        epic_id=epic.id,
        epic_title=epic.title,
    )


def _from_backlog(tracker: TaskTracker, project: str | None) -> NextTask | None:
    ready = [
        t
        for t in tracker.list_ready(project)
        if t.ready and t.issue_type != EPIC and _in_project(t, project)
    ]
    if not ready:
        return None
    pick = hybrid_order(ready)[0]
    return NextTask(
        task_id=pick.id, title=pick.title, priority=pick.priority, source=TaskSource.BACKLOG
    )


def pick_next(
    tracker: TaskTracker,
    completed_task_id: str | None = None,
    project: str | None = None,
    prefer_epic: bool = True,
) -> NextTask | None:
    """Next task after completed_task_id, or None when nothing is ready.

    Siblings in the completed task's epic come first, ordered by priority
    then id. Otherwise the ready backlog in hybrid order. Tracker errors
    while resolving the epic fall through to the backlog; backlog errors
    propagate.
    """
    if completed_task_id and prefer_epic:
        try:
            picked = _from_epic(tracker, completed_task_id, project)
        except HiveError as e:
            logger.warning(f"Epic lookup for {completed_task_id} failed, using backlog: {e}")
            picked = None
        if picked:
            logger.info(f"Next after {completed_task_id}: {picked.task_id} (epic {picked.epic_id})")
            return picked

    picked = _from_backlog(tracker, project)
    if picked:
        logger.info(f"Next from backlog: {picked.task_id}")
    return picked
