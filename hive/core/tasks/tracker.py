"""Task tracker boundary and the Beads (`bd`) CLI adapter."""

import json
import logging
import subprocess
from typing import Any, Protocol, runtime_checkable

from hive.core.models import Dependency, Task, TaskStatus
from hive.errors import NotFoundError, TrackerError

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskTracker(Protocol):
    """What hive needs from an issue tracker."""

    def get_task(self, task_id: str) -> Task: ...

    def list_ready(self, project: str | None = None) -> list[Task]: ...

    def list_open_by_type(self, issue_type: str, project: str | None = None) -> list[Task]: ...

    def get_dependencies(self, task_id: str) -> list[Task]: ...

    def get_dependents(self, task_id: str) -> list[Task]: ...

    def list_assigned(self, assignee: str, status: TaskStatus | str) -> list[Task]: ...

    def update_status(
        self, task_id: str, status: TaskStatus | str, assignee: str | None = None
    ) -> Task: ...


def _dependency(raw: Any) -> Dependency:
    if isinstance(raw, str):
        return Dependency(id=raw)
    return Dependency(id=raw["id"], status=raw.get("status", TaskStatus.OPEN.value))


def task_from_json(data: dict) -> Task:
    """Build a Task from one `bd --json` issue object.

    Raises:
        TrackerError: missing id, unknown status or non-numeric priority.
    """
    deps = data.get("dependencies") or data.get("depends_on") or []
    try:
        return Task(
            id=data["id"],
            title=data.get("title", ""),
            status=data.get("status", TaskStatus.OPEN.value),
            priority=int(data.get("priority", 2)),
            issue_type=data.get("issue_type") or data.get("type") or "task",
            assignee=data.get("assignee") or None,
            parent=data.get("parent") or None,
            project=data.get("project") or None,
            depends_on=[_dependency(d) for d in deps],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            closed_at=data.get("closed_at"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TrackerError(f"Unreadable tracker issue {data.get('id', '?')}: {e}") from e


class BeadsTracker:
    """Talks to the Beads tracker through `bd ... --json`."""

    def __init__(self, command: str = "bd", cwd: str | None = None):
        self.command = command
        self.cwd = cwd

    def _run(self, *args: str) -> Any:
        cmd = [self.command, *args, "--json"]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False, cwd=self.cwd)
        except FileNotFoundError as e:
            raise TrackerError(f"{self.command} not installed") from e
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if "not found" in stderr.lower():
                raise NotFoundError(stderr)
            raise TrackerError(f"{' '.join(cmd)} failed ({result.returncode}): {stderr}")
        if not result.stdout.strip():
            return []
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise TrackerError(f"{' '.join(cmd)} returned invalid JSON: {e}") from e

    def _tasks(self, *args: str) -> list[Task]:
        data = self._run(*args)
        if isinstance(data, dict):
            data = [data]
        return [task_from_json(item) for item in data or []]

    def _show(self, task_id: str) -> dict:
        data = self._run("show", task_id)
        if isinstance(data, list):
            if not data:
                raise NotFoundError(f"Task {task_id} not found")
            data = data[0]
        return data

    def get_task(self, task_id: str) -> Task:
        return task_from_json(self._show(task_id))

    def list_ready(self, project: str | None = None) -> list[Task]:
        tasks = self._tasks("ready")
        return [t for t in tasks if project is None or t.project == project]

    def list_open_by_type(self, issue_type: str, project: str | None = None) -> list[Task]:
        tasks = self._tasks("list", "--status", TaskStatus.OPEN.value, "--type", issue_type)
        return [t for t in tasks if project is None or t.project == project]

    def get_dependencies(self, task_id: str) -> list[Task]:
        """Full records of a task's dependencies, each with its own dependency list."""
        raw = self._show(task_id).get("dependencies") or []
        return [self.get_task(_dependency(d).id) for d in raw]

    def get_dependents(self, task_id: str) -> list[Task]:
        raw = self._show(task_id).get("dependents") or []
        return [self.get_task(_dependency(d).id) for d in raw]

    def list_assigned(self, assignee: str, status: TaskStatus | str) -> list[Task]:
        return self._tasks("list", "--assignee", assignee, "--status", TaskStatus(status).value)

    def update_status(
        self, task_id: str, status: TaskStatus | str, assignee: str | None = None
    ) -> Task:
        args = ["update", task_id, "--status", TaskStatus(status).value]
        if assignee:
            args += ["--assignee", assignee]
        self._run(*args)
        logger.info(f"{task_id} -> {TaskStatus(status).value}")
        return self.get_task(task_id)
