import json
import subprocess
from unittest.mock import patch

import pytest

from hive.core.models import TaskStatus
from hive.core.tasks.tracker import BeadsTracker, TaskTracker, task_from_json
from hive.errors import NotFoundError, TrackerError

ISSUE = {
    "id": "jat-abc",
    "title": "Auth epic",
    "status": "open",
    "priority": 1,
    "issue_type": "epic",
    "created_at": "2026-10-01T10:00:00Z",
    "dependencies": [
        {"id": "jat-abc.1", "status": "closed", "dependency_type": "blocks"},
        {"id": "jat-abc.2", "status": "open", "dependency_type": "blocks"},
    ],
}


def _done(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_task_from_json():
    task = task_from_json(ISSUE)
    assert task.id == "jat-abc"
    assert task.status == TaskStatus.OPEN
    assert task.issue_type == "epic"
    assert task.project == "jat"
    assert [d.id for d in task.depends_on] == ["jat-abc.1", "jat-abc.2"]
    assert task.blocked


def test_beads_tracker_satisfies_protocol():
    assert isinstance(BeadsTracker(), TaskTracker)


def test_get_task_runs_bd_show():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(json.dumps([ISSUE]))
        task = BeadsTracker().get_task("jat-abc")

    assert task.title == "Auth epic"
    args = run.call_args[0][0]
    assert args == ["bd", "show", "jat-abc", "--json"]


def test_list_ready_filters_project():
    issues = [dict(ISSUE, id="jat-1", issue_type="task"), dict(ISSUE, id="web-1")]
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(json.dumps(issues))
        ready = BeadsTracker().list_ready(project="jat")

    assert [t.id for t in ready] == ["jat-1"]


def test_nonzero_exit_raises_tracker_error():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(returncode=1, stderr="database locked")
        with pytest.raises(TrackerError, match="database locked"):
            BeadsTracker().list_ready()


def test_unknown_id_raises_not_found():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(returncode=1, stderr="Error: issue jat-nope not found")
        with pytest.raises(NotFoundError):
            BeadsTracker().get_task("jat-nope")


def test_missing_executable_raises_tracker_error():
    with patch("hive.core.tasks.tracker.subprocess.run", side_effect=FileNotFoundError):
        with pytest.raises(TrackerError, match="not installed"):
            BeadsTracker(command="bd-missing").list_ready()


def test_invalid_json_raises_tracker_error():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done("not json")
        with pytest.raises(TrackerError, match="invalid JSON"):
            BeadsTracker().list_ready()


def test_update_status_passes_assignee():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(json.dumps([dict(ISSUE, status="in_progress")]))
        task = BeadsTracker().update_status("jat-abc", TaskStatus.IN_PROGRESS, "BlueLake")

    first = run.call_args_list[0][0][0]
    assert first == [
        "bd", "update", "jat-abc", "--status", "in_progress", "--assignee", "BlueLake", "--json"
    ]
    assert task.status == TaskStatus.IN_PROGRESS


@pytest.mark.parametrize(
    "issue",
    [
        dict(ISSUE, status="deferred"),
        dict(ISSUE, priority="high"),
        {"title": "no id"},
    ],
)
def test_unreadable_issue_raises_tracker_error(issue):
    with pytest.raises(TrackerError, match="Unreadable tracker issue"):
        task_from_json(issue)


def test_unknown_status_from_bd_show_raises_tracker_error():
    with patch("hive.core.tasks.tracker.subprocess.run") as run:
        run.return_value = _done(json.dumps([dict(ISSUE, status="deferred")]))
        with pytest.raises(TrackerError):
            BeadsTracker().get_task("jat-abc")
