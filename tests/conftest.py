from datetime import datetime, timedelta, timezone

import pytest

from hive.core import registry
from hive.core.models import Task, TaskStatus
from hive.errors import NotFoundError
from hive.lib import clock, store

PROJECT = "/work/demo"


@pytest.fixture
def test_store(monkeypatch, tmp_path):
    """Isolated coordination store per test.

    Provides:
    - tmp_path sqlite file via HIVE_DB instead of ~/.agent-mail.db
    - tmp HIVE_HOME so no user config leaks in
    - PROJECT_KEY pinned to /work/demo
    - fresh connection caches (setup + teardown reset)

    ALL tests using store.ensure() must accept this fixture to ensure isolation.
    """
    store._reset_for_testing()

    db_path = tmp_path / "hive.db"
    monkeypatch.setenv("HIVE_DB", str(db_path))
    monkeypatch.setenv("HIVE_HOME", str(tmp_path / ".hive"))
    monkeypatch.setenv("PROJECT_KEY", PROJECT)
    monkeypatch.delenv("AGENT_MAIL_DB", raising=False)
    monkeypatch.delenv("AGENT_NAME", raising=False)

    store.ensure()

    yield db_path

    store._reset_for_testing()


@pytest.fixture
def agents(test_store):
    """Three registered agents in the default project: Alpha, Bravo, Charlie."""
    names = ["Alpha", "Bravo", "Charlie"]
    return {
        name: registry.register(name=name, program="claude-code", model="opus")
        for name in names
    }


@pytest.fixture
def frozen_clock(monkeypatch):
    """Controllable clock: call .advance(seconds) to move time forward."""

    class FrozenClock:
        def __init__(self):
            self.current = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

        def now(self):
            return self.current

        def advance(self, seconds):
            self.current += timedelta(seconds=seconds)

    frozen = FrozenClock()
    monkeypatch.setattr(clock, "now", frozen.now)
    return frozen


class MemoryTracker:
    """In-memory TaskTracker for selector and monitor tests."""

    def __init__(self, tasks=()):
        self.tasks = {t.id: t for t in tasks}
        self.calls = []

    def add(self, task_id, **fields):
        task = Task(id=task_id, **fields)
        self.tasks[task_id] = task
        return task

    def get_task(self, task_id):
        self.calls.append(("get_task", task_id))
        if task_id not in self.tasks:
            raise NotFoundError(f"Task {task_id} not found")
        return self.tasks[task_id]

    def list_ready(self, project=None):
        self.calls.append(("list_ready", project))
        return [
            t
            for t in self.tasks.values()
            if t.ready and (project is None or t.project == project)
        ]

    def list_open_by_type(self, issue_type, project=None):
        self.calls.append(("list_open_by_type", issue_type))
        return [
            t
            for t in self.tasks.values()
            if t.issue_type == issue_type
            and t.status == TaskStatus.OPEN
            and (project is None or t.project == project)
        ]

    def get_dependencies(self, task_id):
        self.calls.append(("get_dependencies", task_id))
        return [self.get_task(dep.id) for dep in self.get_task(task_id).depends_on]

    def get_dependents(self, task_id):
        return [
            t for t in self.tasks.values() if any(dep.id == task_id for dep in t.depends_on)
        ]

    def list_assigned(self, assignee, status):
        return [
            t
            for t in self.tasks.values()
            if t.assignee == assignee and t.status == TaskStatus(status)
        ]

    def update_status(self, task_id, status, assignee=None):
        task = self.get_task(task_id)
        task.status = TaskStatus(status)
        if assignee:
            task.assignee = assignee
        return task


@pytest.fixture
def tracker():
    return MemoryTracker()
